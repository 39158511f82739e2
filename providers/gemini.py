"""Generative Language REST API 어댑터.

모든 호출은 공유 ``httpx.AsyncClient`` 위의 단일 HTTP 요청이며, 비디오 폴링만
``RetryPolicy``로 반복한다. 요청은 일반 await 이므로 호출 태스크를 취소하면
진행 중인 요청도 중단된다.
"""
import base64
import logging
from typing import Any, Dict, Optional
import httpx
from providers.base import GenerateOptions, GenerationProvider, SearchResult
from retry_policy import RetryPolicy
from utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini-2.0-flash"
THINKING_MODEL = "gemini-2.0-flash-thinking-exp"
IMAGE_MODEL = "imagen-3.0-generate-002"
IMAGE_FALLBACK_MODEL = "gemini-2.0-flash-exp-image-generation"
VIDEO_MODEL = "veo-2.0-generate-001"
AUDIO_MODEL = "musicfx"

class VideoNotReady(Exception):
    pass

def _first_part_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or [{}]
    parts = (candidates[0].get("content") or {}).get("parts") or [{}]
    return parts[0].get("text") or ""

def _error_message(response: httpx.Response, default: str) -> str:
    try:
        return (response.json().get("error") or {}).get("message") or default
    except ValueError:
        return default

class GeminiProvider(GenerationProvider):
    def __init__(self, api_key: str, api_base: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout: float = 120.0, poll_interval: float = 5.0, poll_attempts: int = 24,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.client = httpx.AsyncClient(base_url=api_base, timeout=timeout, transport=transport)
        self.poll_policy = RetryPolicy(
            max_retries=max(poll_attempts - 1, 0),
            delay=poll_interval,
            backoff_factor=1.0,
            retry_on=(VideoNotReady, httpx.HTTPError),
            initial_delay=True,
        )

    async def _request(self, method: str, url: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            return await self.client.request(method, url, params={"key": self.api_key}, json=body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Provider request failed: %s %s: %s", method, url, e)
            raise ProviderError(f"Provider request failed: {e}") from e

    async def _generate_content(self, model: str, body: Dict[str, Any]) -> httpx.Response:
        return await self._request("POST", f"/models/{model}:generateContent", body)

    async def generate_text(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        options = options or GenerateOptions()
        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": options.max_tokens,
                "temperature": options.temperature,
            },
        }
        if options.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}
        response = await self._generate_content(options.model or DEFAULT_TEXT_MODEL, body)
        if not response.is_success:
            raise ProviderError(_error_message(response, "AI generation failed"), status=response.status_code)
        return _first_part_text(response.json())

    async def generate_with_thinking(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        options = options or GenerateOptions()
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if options.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}
        try:
            response = await self._generate_content(THINKING_MODEL, body)
        except ProviderError:
            return await self.generate_text(prompt, options)
        if not response.is_success:
            logger.info("Thinking model unavailable (%s), falling back", response.status_code)
            return await self.generate_text(prompt, options)
        return _first_part_text(response.json())

    async def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]:
        response = await self._request("POST", f"/models/{IMAGE_MODEL}:predict", {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1, "aspectRatio": aspect_ratio},
        })
        if response.is_success:
            predictions = response.json().get("predictions") or [{}]
            encoded = predictions[0].get("bytesBase64Encoded")
            if encoded:
                return base64.b64decode(encoded)

        # Imagen 실패 시 멀티모달 모델로 대체
        response = await self._generate_content(IMAGE_FALLBACK_MODEL, {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
        })
        if response.is_success:
            candidates = response.json().get("candidates") or [{}]
            for part in (candidates[0].get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or {}
                if inline.get("data"):
                    return base64.b64decode(inline["data"])
        return None

    async def generate_video(self, prompt: str, aspect_ratio: str = "16:9", duration: int = 5) -> Optional[str]:
        response = await self._request("POST", f"/models/{VIDEO_MODEL}:generateVideos", {
            "prompt": prompt,
            "config": {
                "aspectRatio": aspect_ratio,
                "durationSeconds": duration,
                "numberOfVideos": 1,
            },
        })
        if not response.is_success:
            logger.warning("Video generation rejected: %s", _error_message(response, str(response.status_code)))
            return None
        return response.json().get("name")

    async def _poll_once(self, handle: str) -> Optional[str]:
        response = await self.client.get(f"/{handle}", params={"key": self.api_key})
        if not response.is_success:
            raise VideoNotReady(handle)
        try:
            data = response.json()
        except ValueError:
            # 게이트웨이 오류 페이지 등 JSON이 아닌 응답은 계속 폴링
            raise VideoNotReady(handle) from None
        if not isinstance(data, dict) or not data.get("done"):
            raise VideoNotReady(handle)
        try:
            videos = (data.get("response") or {}).get("generatedVideos") or [{}]
            return (videos[0].get("video") or {}).get("uri")
        except (AttributeError, IndexError, TypeError):
            logger.warning("Unexpected video operation payload for %s", handle)
            return None

    async def poll_video(self, handle: str) -> Optional[bytes]:
        try:
            uri = await self.poll_policy.execute_with_retry(self._poll_once, handle)
        except VideoNotReady:
            logger.warning("Video operation %s did not complete in time", handle)
            return None
        except httpx.HTTPError as e:
            raise ProviderError(f"Video polling failed: {e}") from e
        if not isinstance(uri, str) or not uri:
            return None
        response = await self._request("GET", uri)
        if not response.is_success:
            return None
        return response.content

    async def generate_audio(self, prompt: str, duration: int = 30) -> Optional[bytes]:
        response = await self._request("POST", f"/models/{AUDIO_MODEL}:generate", {
            "prompt": prompt,
            "config": {"durationSeconds": duration},
        })
        if not response.is_success:
            return None
        encoded = (response.json().get("audio") or {}).get("audioBytes")
        return base64.b64decode(encoded) if encoded else None

    async def search(self, query: str) -> SearchResult:
        response = await self._generate_content(DEFAULT_TEXT_MODEL, {
            "contents": [{"parts": [{"text": query}]}],
            "tools": [{"googleSearch": {}}],
        })
        if not response.is_success:
            raise ProviderError(_error_message(response, "Search failed"), status=response.status_code)
        data = response.json()
        candidates = data.get("candidates") or [{}]
        sources = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []
        return SearchResult(text=_first_part_text(data), sources=sources)

    async def close(self) -> None:
        await self.client.aclose()
