import logging
from typing import List, Optional
from fastapi import FastAPI, APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse
from executor_manager import ExecutorManager
from media_store import MediaStore
from module_models import ExecutionResult, MemoryContext, PromptTemplate
from schemas.ai import CancelResponse, ExecuteRequest, ModuleInfo
from schemas.execution import ExecutionRead
from template_service import TemplateService
from utils.exceptions import CustomException, ExecutionNotFound, ModuleNotFound

logger = logging.getLogger(__name__)

def get_executor_manager(request: Request) -> ExecutorManager:
    return request.app.state.executor_manager

# 인증 토큰 발급은 별도 서비스 담당. 여기서는 게이트웨이가 넣어준 사용자 id만 사용
async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity", headers={"WWW-Authenticate": "Bearer"})
    return x_user_id

def create_app(executor_manager: ExecutorManager, template_service: Optional[TemplateService] = None,
               media_store: Optional[MediaStore] = None) -> FastAPI:
    app = FastAPI(title="Lab Runner", description="AI lab module orchestration")
    app.state.executor_manager = executor_manager

    router = APIRouter(prefix="/api/ai", dependencies=[Depends(get_current_user_id)])

    @router.get("/modules", response_model=List[ModuleInfo])
    async def list_modules(manager: ExecutorManager = Depends(get_executor_manager)):
        return [m.info() for m in manager.module_registry.get_all()]

    @router.get("/modules/{module_id}", response_model=ModuleInfo)
    async def get_module(module_id: str, manager: ExecutorManager = Depends(get_executor_manager)):
        module = manager.module_registry.get(module_id)
        if not module:
            raise ModuleNotFound(module_id)
        return module.info()

    @router.post("/execute/{module_id}", response_model=ExecutionResult)
    async def execute_module(
        module_id: str,
        body: ExecuteRequest,
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        return await manager.run(module_id, user_id, body.content, body.options)

    @router.get("/history", response_model=List[ExecutionRead])
    async def get_history(
        module_id: Optional[str] = None,
        limit: int = Query(20, ge=1, le=100),
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        return await manager.get_history(user_id, module_id, limit)

    async def _owned_execution(execution_id: str, user_id: str, manager: ExecutorManager) -> ExecutionRead:
        execution = await manager.get_execution(execution_id)
        # 다른 사용자의 실행 기록은 존재 여부도 노출하지 않음
        if not execution or execution.user_id != user_id:
            raise ExecutionNotFound(execution_id)
        return execution

    @router.get("/execution/{execution_id}", response_model=ExecutionRead)
    async def get_execution(
        execution_id: str,
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        return await _owned_execution(execution_id, user_id, manager)

    @router.post("/execution/{execution_id}/cancel", response_model=CancelResponse)
    async def cancel_execution(
        execution_id: str,
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        await _owned_execution(execution_id, user_id, manager)
        return {"cancelled": await manager.cancel_execution(execution_id)}

    @router.get("/memory/{module_id}", response_model=MemoryContext)
    async def get_memory(
        module_id: str,
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        return await manager.get_memory(user_id, module_id)

    @router.delete("/memory/{module_id}")
    async def clear_memory(
        module_id: str,
        user_id: str = Depends(get_current_user_id),
        manager: ExecutorManager = Depends(get_executor_manager),
    ):
        await manager.clear_memory(user_id, module_id)
        return {"success": True}

    @router.get("/templates", response_model=List[PromptTemplate])
    async def list_templates():
        return template_service.list() if template_service else []

    app.include_router(router)

    @app.get("/api/media/{kind}/{filename}")
    async def get_media(kind: str, filename: str):
        path = media_store.resolve(kind, filename) if media_store else None
        if not path:
            raise HTTPException(status_code=404, detail="Media not found")
        return FileResponse(path)

    @app.exception_handler(CustomException)
    async def custom_exception_handler(request: Request, exc: CustomException):
        if exc.status_code >= 500:
            logger.error(f"[{exc.code}] {exc.message} {exc.dev_message} | {request.url}")
        else:
            logger.info(f"[{exc.code}] {exc.message} | {request.url}")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict()
        )

    return app
