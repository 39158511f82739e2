from sqlalchemy import Column, Integer, String, Text, DateTime
from .base import Base

class Execution(Base):
    __tablename__ = 'executions'
    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    module_id = Column(String(64), nullable=False, index=True)
    input = Column(Text, nullable=False)  # {"content", "options"} JSON
    output = Column(Text, nullable=True)  # completed 일 때만
    status = Column(String(20), nullable=False, default='running', index=True)  # running, completed, failed, cancelled
    error = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Execution(id='{self.id}', module_id='{self.module_id}', status='{self.status}')>"
