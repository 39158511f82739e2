import asyncio
import logging
import weakref
from typing import Any, List, Tuple
from memory_store import MemoryStore
from module_models import ConversationMessage, MemoryContext, MessageRole

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 50

class MemoryService:
    """(user, module) 별 길이 제한이 있는 대화 기록.

    한 키에 대한 변경은 읽기-수정-쓰기 전체를 asyncio.Lock 으로 감싸 직렬화한다.
    같은 대화에 대한 동시 ``add_message`` 호출은 모든 메시지를 요청 순서대로 남기며,
    다른 키끼리는 경합하지 않는다. 락은 사용 중인 동안에만 유지된다.
    """

    def __init__(self, store: MemoryStore, max_messages: int = DEFAULT_MAX_MESSAGES):
        if max_messages < 1:
            raise ValueError("max_messages must be positive")
        self.store = store
        self.max_messages = max_messages
        # 대기자/보유자가 참조하는 동안만 남음
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str, module_id: str) -> asyncio.Lock:
        lock = self._locks.get((user_id, module_id))
        if lock is None:
            lock = asyncio.Lock()
            self._locks[(user_id, module_id)] = lock
        return lock

    async def get_context(self, user_id: str, module_id: str) -> MemoryContext:
        context = await self.store.load(user_id, module_id)
        if context is None:
            # 저장하지 않은 빈 컨텍스트
            return MemoryContext(user_id=user_id, module_id=module_id)
        return context

    async def add_message(self, user_id: str, module_id: str, role: MessageRole, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        async with self._lock_for(user_id, module_id):
            context = await self.get_context(user_id, module_id)
            context.messages.append(message)
            # FIFO: 오래된 메시지부터 제거
            if len(context.messages) > self.max_messages:
                context.messages = context.messages[-self.max_messages:]
            await self.store.save(context)
        return message

    async def get_recent_messages(self, user_id: str, module_id: str, limit: int = 10) -> List[ConversationMessage]:
        if limit <= 0:
            return []
        context = await self.get_context(user_id, module_id)
        return context.messages[-limit:]

    async def set_metadata(self, user_id: str, module_id: str, key: str, value: Any) -> None:
        async with self._lock_for(user_id, module_id):
            context = await self.get_context(user_id, module_id)
            context.metadata[key] = value
            await self.store.save(context)

    async def clear_context(self, user_id: str, module_id: str) -> None:
        async with self._lock_for(user_id, module_id):
            removed = await self.store.delete(user_id, module_id)
        if removed:
            logger.info("Cleared memory for user=%s module=%s", user_id, module_id)
