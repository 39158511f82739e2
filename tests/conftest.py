import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import pytest
import pytest_asyncio
from core.db import create_engine_and_sessionmaker, init_models
from execution_history import ExecutionHistory
from executor_manager import ExecutorManager
from memory_service import MemoryService
from memory_store import MemoryStore
from module_registry import ModuleRegistry

@pytest.fixture
def temp_db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

@pytest_asyncio.fixture
async def session_factory(temp_db_url):
    engine, factory = create_engine_and_sessionmaker(temp_db_url)
    await init_models(engine)
    yield factory
    await engine.dispose()

@pytest.fixture
def execution_history(session_factory):
    return ExecutionHistory(session_factory)

@pytest.fixture
def memory_service(session_factory):
    return MemoryService(MemoryStore(session_factory), max_messages=50)

@pytest.fixture
def registry():
    return ModuleRegistry()

@pytest.fixture
def executor_manager(registry, memory_service, execution_history):
    return ExecutorManager(registry, memory_service, execution_history, context_window=10)
