import asyncio
import argparse
import logging
from dataclasses import dataclass
from typing import Optional
import uvicorn
from api.rest import create_app
from core import config
from core.db import create_engine_and_sessionmaker, init_models
from execution_history import ExecutionHistory
from executor_manager import ExecutorManager
from labs import register_labs
from media_store import MediaStore
from memory_service import MemoryService
from memory_store import MemoryStore
from module_registry import ModuleRegistry
from providers.base import GenerationProvider
from providers.gemini import GeminiProvider
from template_service import TemplateService

logger = logging.getLogger(__name__)

@dataclass
class Runtime:
    engine: object
    provider: GenerationProvider
    template_service: TemplateService
    media_store: MediaStore
    executor_manager: ExecutorManager

    async def close(self) -> None:
        await self.executor_manager.cleanup()
        await self.provider.close()
        await self.engine.dispose()

async def build_runtime(database_url: str = config.DATABASE_URL, provider: Optional[GenerationProvider] = None,
                        media_dir: str = config.MEDIA_DIR) -> Runtime:
    engine, session_factory = create_engine_and_sessionmaker(database_url)
    await init_models(engine)

    if provider is None:
        provider = GeminiProvider(
            api_key=config.GOOGLE_AI_API_KEY,
            api_base=config.GEMINI_API_BASE,
            timeout=config.PROVIDER_TIMEOUT,
            poll_interval=config.VIDEO_POLL_INTERVAL,
            poll_attempts=config.VIDEO_POLL_ATTEMPTS,
        )
    template_service = TemplateService()
    media_store = MediaStore(media_dir)
    module_registry = ModuleRegistry(allow_overwrite=config.MODULE_OVERWRITE)
    register_labs(module_registry, template_service, provider, media_store)

    executor_manager = ExecutorManager(
        module_registry,
        MemoryService(MemoryStore(session_factory), max_messages=config.MEMORY_MAX_MESSAGES),
        ExecutionHistory(session_factory),
        context_window=config.MEMORY_CONTEXT_WINDOW,
    )
    return Runtime(engine, provider, template_service, media_store, executor_manager)

async def main():
    parser = argparse.ArgumentParser(description="Lab Runner")
    parser.add_argument("--host", default="0.0.0.0", help="REST API host")
    parser.add_argument("--port", type=int, default=8000, help="REST API port")
    parser.add_argument("--database-url", default=config.DATABASE_URL, help="SQLAlchemy async database URL")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not config.GOOGLE_AI_API_KEY:
        logger.warning("GOOGLE_AI_API_KEY is not set; generation calls will fail")

    runtime = await build_runtime(args.database_url)
    app = create_app(runtime.executor_manager, runtime.template_service, runtime.media_store)
    server = uvicorn.Server(uvicorn.Config(app, host=args.host, port=args.port, log_level="info"))
    try:
        await server.serve()
    finally:
        logger.info("Shutting down...")
        await runtime.close()

if __name__ == "__main__":
    asyncio.run(main())
