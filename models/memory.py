from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint
from .base import Base

class Memory(Base):
    __tablename__ = 'memories'
    __table_args__ = (UniqueConstraint('user_id', 'module_id', name='uq_memories_user_module'),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    module_id = Column(String(64), nullable=False)
    context = Column(Text, nullable=False)  # MemoryContext JSON
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Memory(user_id='{self.user_id}', module_id='{self.module_id}')>"
