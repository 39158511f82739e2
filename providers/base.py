from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class GenerateOptions(BaseModel):
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7

class SearchResult(BaseModel):
    text: str
    sources: List[Dict[str, Any]] = []

class GenerationProvider(ABC):
    """생성 API 경계. 모든 메서드는 실패 시 ProviderError를 던질 수 있음"""

    @abstractmethod
    async def generate_text(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        """프롬프트로 텍스트 생성"""
        pass

    @abstractmethod
    async def generate_with_thinking(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        """추론 모델로 생성, 실패 시 generate_text로 대체"""
        pass

    @abstractmethod
    async def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]:
        """이미지 바이트 반환, 생성되지 않으면 None"""
        pass

    @abstractmethod
    async def generate_video(self, prompt: str, aspect_ratio: str = "16:9", duration: int = 5) -> Optional[str]:
        """비디오 생성 작업을 시작하고 operation handle 반환"""
        pass

    @abstractmethod
    async def poll_video(self, handle: str) -> Optional[bytes]:
        """작업 완료까지 폴링 후 비디오 바이트 반환, 끝나지 않으면 None"""
        pass

    @abstractmethod
    async def generate_audio(self, prompt: str, duration: int = 30) -> Optional[bytes]:
        """오디오 바이트 반환, 생성되지 않으면 None"""
        pass

    @abstractmethod
    async def search(self, query: str) -> SearchResult:
        """검색 grounding 결과(text, sources) 반환"""
        pass

    async def close(self) -> None:
        pass
