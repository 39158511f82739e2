import base64
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from media_store import MediaStore
from module_models import ModuleDefinition, ModuleInput, ModuleOutput, ModuleType
from providers.base import GenerationProvider
from template_service import TemplateService

class Lab(ABC):
    """Lab 모듈 공통 베이스. 하위 클래스는 메타데이터와 execute()를 정의"""

    id: str
    name: str
    type: ModuleType
    description: str = ""
    icon: str = ""
    template_id: Optional[str] = None
    capabilities: List[str] = []
    config: Dict[str, Any] = {}

    def __init__(self, templates: TemplateService, provider: GenerationProvider, media: Optional[MediaStore] = None):
        self.templates = templates
        self.provider = provider
        self.media = media

    @abstractmethod
    async def execute(self, input: ModuleInput) -> ModuleOutput:
        """입력을 받아 생성 결과를 반환"""
        pass

    def option(self, input: ModuleInput, key: str, default: Any) -> Any:
        # 빈 값은 기본값으로 취급
        value = input.options.get(key)
        return default if value in (None, "") else value

    async def store_media(self, user_id: str, kind: str, data: bytes, mime_type: str,
                    metadata: Optional[Dict[str, Any]] = None) -> str:
        """저장 경로 반환. MediaStore가 없으면 data URL로 인라인"""
        if self.media is None:
            return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        return await self.media.save(user_id, kind, data, {"module_id": self.id, **(metadata or {})})

    def definition(self) -> ModuleDefinition:
        return ModuleDefinition(
            id=self.id,
            name=self.name,
            type=self.type,
            execute=self.execute,
            description=self.description,
            icon=self.icon,
            template_id=self.template_id,
            capabilities=list(self.capabilities),
            config=dict(self.config),
        )
