from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from models.memory import Memory
from module_models import MemoryContext
from utils.exceptions import StorageError

class MemoryStore:
    """(user_id, module_id) 당 한 행으로 MemoryContext를 JSON 저장"""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError("Memory store failure", dev_message=str(e)) from e

    async def load(self, user_id: str, module_id: str) -> Optional[MemoryContext]:
        async with self._session() as db:
            result = await db.execute(
                select(Memory).where(Memory.user_id == user_id, Memory.module_id == module_id)
            )
            row = result.scalars().first()
        if row is None:
            return None
        try:
            return MemoryContext.model_validate_json(row.context)
        except ValidationError as e:
            raise StorageError("Corrupted memory context", dev_message=str(e)) from e

    async def save(self, context: MemoryContext) -> None:
        try:
            payload = context.model_dump_json()
        except PydanticSerializationError as e:
            raise StorageError("Memory context is not serializable", dev_message=str(e)) from e
        now = datetime.now()
        async with self._session() as db:
            result = await db.execute(
                select(Memory).where(Memory.user_id == context.user_id, Memory.module_id == context.module_id)
            )
            existing = result.scalars().first()
            # upsert
            if existing:
                existing.context = payload
                existing.updated_at = now
            else:
                db.add(Memory(
                    user_id=context.user_id,
                    module_id=context.module_id,
                    context=payload,
                    created_at=now,
                    updated_at=now,
                ))
            await db.commit()

    async def delete(self, user_id: str, module_id: str) -> bool:
        async with self._session() as db:
            result = await db.execute(
                delete(Memory).where(Memory.user_id == user_id, Memory.module_id == module_id)
            )
            await db.commit()
            return result.rowcount > 0
