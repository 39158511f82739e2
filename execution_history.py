import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from models.execution import Execution
from module_models import STATUS_RUNNING
from schemas.execution import ExecutionRead
from utils.exceptions import StorageError

logger = logging.getLogger(__name__)

class ExecutionHistory:
    """실행 id로 조회하는 Execution 행 저장소"""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError("Execution store failure", dev_message=str(e)) from e

    async def create(self, execution_id: str, user_id: str, module_id: str, input_json: str,
                     created_at: Optional[datetime] = None) -> None:
        async with self._session() as db:
            db.add(Execution(
                id=execution_id,
                user_id=user_id,
                module_id=module_id,
                input=input_json,
                status=STATUS_RUNNING,
                created_at=created_at or datetime.now(),
            ))
            await db.commit()

    async def finish(self, execution_id: str, status: str, output: Optional[str] = None,
                     error: Optional[str] = None, duration_ms: Optional[int] = None) -> bool:
        """running 상태의 행을 종료 상태로 전환.

        행이 없거나 이미 종료 상태면 아무것도 쓰지 않고 False 반환
        """
        async with self._session() as db:
            result = await db.execute(
                update(Execution)
                .where(Execution.id == execution_id, Execution.status == STATUS_RUNNING)
                .values(
                    status=status,
                    output=output,
                    error=error,
                    duration_ms=duration_ms,
                    completed_at=datetime.now(),
                )
            )
            await db.commit()
            return result.rowcount == 1

    async def get(self, execution_id: str) -> Optional[ExecutionRead]:
        async with self._session() as db:
            result = await db.execute(select(Execution).where(Execution.id == execution_id))
            row = result.scalars().first()
            return ExecutionRead.model_validate(row) if row else None

    async def list(self, user_id: str, module_id: Optional[str] = None, limit: int = 20) -> List[ExecutionRead]:
        # SQLite는 음수 LIMIT을 무제한으로 처리함
        if limit < 1:
            raise ValueError("limit must be positive")
        query = select(Execution).where(Execution.user_id == user_id)
        if module_id:
            query = query.where(Execution.module_id == module_id)
        query = query.order_by(Execution.created_at.desc()).limit(limit)
        async with self._session() as db:
            result = await db.execute(query)
            return [ExecutionRead.model_validate(row) for row in result.scalars().all()]
