import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from execution_history import ExecutionHistory
from memory_service import MemoryService
from module_models import (
    ExecutionResult, MemoryContext, ModuleDefinition, ModuleInput, ModuleOutput,
    STATUS_CANCELLED, STATUS_COMPLETED, STATUS_FAILED,
)
from module_registry import ModuleRegistry
from schemas.execution import ExecutionRead
from utils.exceptions import ExecutionCancelled, ModuleNotFound, StorageError

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WINDOW = 10

@dataclass
class ActiveJob:
    task: asyncio.Task
    started: float
    cancel_requested: bool = False

def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)

class ExecutorManager:
    """등록된 모듈을 실행 기록, 대화 메모리와 함께 실행.

    :meth:`execute` 호출마다 ``executions`` 행을 하나 만들며, ``running`` 으로 시작해
    ``completed``, ``failed``, ``cancelled`` 중 하나로 정확히 한 번 전환된다.
    모듈 호출은 ``active_jobs`` 에 보관한 태스크로 실행되므로
    :meth:`cancel_execution` 으로 요청 도중에도 중단할 수 있다.
    """

    def __init__(self, module_registry: ModuleRegistry, memory_service: MemoryService,
                 execution_history: ExecutionHistory, context_window: int = DEFAULT_CONTEXT_WINDOW):
        self.module_registry = module_registry
        self.memory_service = memory_service
        self.execution_history = execution_history
        self.context_window = context_window
        self.active_jobs: Dict[str, ActiveJob] = {}

    async def execute(self, module_id: str, input: ModuleInput) -> ExecutionResult:
        module = self.module_registry.get(module_id)
        if not module:
            raise ModuleNotFound(module_id)

        execution_id = str(uuid.uuid4())
        started = time.monotonic()
        # 저장되는 입력은 호출자가 준 content/options 만 (context 제외)
        await self.execution_history.create(execution_id, input.user_id, module_id, self._snapshot_input(input))
        logger.info("Execution %s started: module=%s user=%s", execution_id, module_id, input.user_id)

        try:
            await self.memory_service.add_message(input.user_id, module_id, "user", input.content)
            recent = await self.memory_service.get_recent_messages(input.user_id, module_id, self.context_window)
            run_input = input.model_copy(update={
                "context": "\n".join(f"{m.role}: {m.content}" for m in recent),
            })
            output = await self._run_module(execution_id, module, run_input, started)
            await self.memory_service.add_message(input.user_id, module_id, "assistant", output.content)
        except ExecutionCancelled:
            await self.execution_history.finish(execution_id, STATUS_CANCELLED, duration_ms=_elapsed_ms(started))
            logger.info("Execution %s cancelled", execution_id)
            raise
        except asyncio.CancelledError:
            # 호출자 쪽 태스크가 취소된 경우
            await self.execution_history.finish(execution_id, STATUS_CANCELLED, duration_ms=_elapsed_ms(started))
            logger.info("Execution %s cancelled by caller", execution_id)
            raise
        except Exception as e:
            duration_ms = _elapsed_ms(started)
            await self.execution_history.finish(
                execution_id, STATUS_FAILED, error=str(e) or type(e).__name__, duration_ms=duration_ms,
            )
            logger.warning("Execution %s failed after %dms: %s", execution_id, duration_ms, e)
            raise

        duration_ms = _elapsed_ms(started)
        await self.execution_history.finish(
            execution_id, STATUS_COMPLETED, output=output.model_dump_json(), duration_ms=duration_ms,
        )
        logger.info("Execution %s completed in %dms", execution_id, duration_ms)
        return ExecutionResult(execution_id=execution_id, module_id=module_id, output=output, duration_ms=duration_ms)

    async def run(self, module_id: str, user_id: str, content: str,
                  options: Optional[Dict[str, Any]] = None) -> ExecutionResult:
        return await self.execute(module_id, ModuleInput(user_id=user_id, content=content, options=options or {}))

    async def _run_module(self, execution_id: str, module: ModuleDefinition, run_input: ModuleInput,
                          started: float) -> ModuleOutput:
        task = asyncio.ensure_future(module.execute(run_input))
        job = ActiveJob(task=task, started=started)
        self.active_jobs[execution_id] = job
        try:
            output = await task
        except asyncio.CancelledError:
            if job.cancel_requested:
                raise ExecutionCancelled(execution_id) from None
            task.cancel()
            raise
        finally:
            self.active_jobs.pop(execution_id, None)
        if job.cancel_requested:
            # 취소 요청 이후 완료된 결과는 버림
            raise ExecutionCancelled(execution_id)
        return output

    def _snapshot_input(self, input: ModuleInput) -> str:
        try:
            return json.dumps({"content": input.content, "options": input.options})
        except (TypeError, ValueError) as e:
            raise StorageError("Execution input is not serializable", dev_message=str(e)) from e

    async def cancel_execution(self, execution_id: str) -> bool:
        job = self.active_jobs.pop(execution_id, None)
        if job is None:
            return False
        job.cancel_requested = True
        job.task.cancel()
        await self.execution_history.finish(execution_id, STATUS_CANCELLED, duration_ms=_elapsed_ms(job.started))
        logger.info("Cancellation requested for execution %s", execution_id)
        return True

    async def get_history(self, user_id: str, module_id: Optional[str] = None, limit: int = 20) -> List[ExecutionRead]:
        return await self.execution_history.list(user_id, module_id, limit)

    async def get_execution(self, execution_id: str) -> Optional[ExecutionRead]:
        return await self.execution_history.get(execution_id)

    async def get_memory(self, user_id: str, module_id: str) -> MemoryContext:
        return await self.memory_service.get_context(user_id, module_id)

    async def clear_memory(self, user_id: str, module_id: str) -> None:
        await self.memory_service.clear_context(user_id, module_id)

    async def cleanup(self) -> None:
        for execution_id in list(self.active_jobs):
            await self.cancel_execution(execution_id)
