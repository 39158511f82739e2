from typing import Optional
from module_models import ModuleDefinition, ModuleInput, ModuleOutput
from providers.base import GenerateOptions, GenerationProvider, SearchResult

class ScriptedProvider(GenerationProvider):
    """미리 정한 응답을 돌려주고 호출을 기록하는 테스트용 provider"""

    def __init__(self, text="generated text", image=None, video_handle=None, video=None, audio=None,
                 search_result=None, error=None):
        self.text = text
        self.image = image
        self.video_handle = video_handle
        self.video = video
        self.audio = audio
        self.search_result = search_result or SearchResult(text="search text", sources=[{"web": {"uri": "https://a"}}])
        # {메서드 이름: 예외} 지정 시 해당 호출에서 raise
        self.error = error or {}
        self.calls = []
        self.closed = False

    def _record(self, method, *args):
        self.calls.append((method, args))
        if method in self.error:
            raise self.error[method]

    async def generate_text(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        self._record("generate_text", prompt, options)
        return self.text

    async def generate_with_thinking(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        self._record("generate_with_thinking", prompt, options)
        return self.text

    async def generate_image(self, prompt: str, aspect_ratio: str = "1:1"):
        self._record("generate_image", prompt, aspect_ratio)
        return self.image

    async def generate_video(self, prompt: str, aspect_ratio: str = "16:9", duration: int = 5):
        self._record("generate_video", prompt, aspect_ratio, duration)
        return self.video_handle

    async def poll_video(self, handle: str):
        self._record("poll_video", handle)
        return self.video

    async def generate_audio(self, prompt: str, duration: int = 30):
        self._record("generate_audio", prompt, duration)
        return self.audio

    async def search(self, query: str) -> SearchResult:
        self._record("search", query)
        return self.search_result

    async def close(self) -> None:
        self.closed = True

    def prompts(self, method):
        return [args[0] for name, args in self.calls if name == method]

def make_module(module_id, handler=None, module_type="text"):
    async def echo(input: ModuleInput) -> ModuleOutput:
        return ModuleOutput(content=f"echo: {input.content}", type="text")
    return ModuleDefinition(id=module_id, name=module_id.title(), type=module_type, execute=handler or echo)
