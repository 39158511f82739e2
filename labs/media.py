import base64
import json
import logging
import re
from labs.base import Lab
from module_models import ModuleInput, ModuleOutput
from providers.base import GenerateOptions
from utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

IMAGE_PROMPT_LINE = re.compile(r"(?:Optimized Prompt|Image Prompt|Final Prompt):\s*(.+)", re.IGNORECASE)
AUDIO_PROMPT_LINE = re.compile(r"(?:optimized prompt|generation prompt|final prompt):\s*(.+)", re.IGNORECASE)
SCENE_BLOCK = re.compile(r"(?:Scene \d+|Shot \d+|Frame \d+)[\s\S]*?(?=(?:Scene \d+|Shot \d+|Frame \d+)|$)", re.IGNORECASE)

def _int_option(value, default: int, maximum: int) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    # 1 ~ maximum 범위로 제한
    return max(1, min(value, maximum))

class NanoBananaLab(Lab):
    """프롬프트 개선 후 이미지 생성 (generate_image=False면 프롬프트만)"""

    id = "nano-banana"
    name = "Nano Banana"
    description = "Ultra-fast image synthesis with prompt-to-image pipeline"
    type = "image"
    icon = "fa-image"
    template_id = "nano_image"
    capabilities = ["image-generation", "prompt-engineering", "visual-assets", "creative-direction"]
    config = {"model": "gemini-2.0-flash-exp-image-generation", "default_aspect_ratio": "1:1"}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        style = self.option(input, "style", "professional")
        aspect_ratio = self.option(input, "aspect_ratio", "1:1")
        generate_image = input.options.get("generate_image", True) is not False

        enhanced_prompt = await self.provider.generate_text(
            self.templates.render(self.template_id, {"input": input.content, "style": style}),
            GenerateOptions(model="gemini-2.0-flash", max_tokens=1024, temperature=0.9),
        )

        image_url = None
        if generate_image:
            match = IMAGE_PROMPT_LINE.search(enhanced_prompt)
            image = await self.provider.generate_image(match.group(1) if match else input.content, aspect_ratio)
            if image:
                image_url = f"data:image/png;base64,{base64.b64encode(image).decode('ascii')}"

        return ModuleOutput(
            content=image_url or enhanced_prompt,
            type="image" if image_url else "text",
            data={
                "enhanced_prompt": enhanced_prompt,
                "image_data": image_url,
                "style": style,
                "aspect_ratio": aspect_ratio,
                "generated": image_url is not None,
            },
        )

class Imagen4Lab(Lab):
    id = "imagen4"
    name = "Imagen 4"
    description = "Advanced image generation with prompt-to-image pipeline, variations, and gallery storage"
    type = "image"
    icon = "fa-wand-magic-sparkles"
    template_id = "imagen_prompt"
    capabilities = ["image-generation", "variations", "gallery", "prompt-engineering"]
    config = {
        "model": "imagen-3.0-generate-002",
        "default_aspect_ratio": "1:1",
        "supported_ratios": ["1:1", "16:9", "9:16", "4:3", "3:4"],
        "max_count": 4,
    }

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        aspect_ratio = self.option(input, "aspect_ratio", "1:1")
        style = self.option(input, "style", "photorealistic")
        count = _int_option(input.options.get("count"), 1, self.config["max_count"])
        enhanced_prompt = f"{input.content}. Style: {style}. High quality, detailed, professional."

        images = []
        for _ in range(count):
            image = await self.provider.generate_image(enhanced_prompt, aspect_ratio)
            if image:
                images.append(await self.store_media(input.user_id, "images", image, "image/png", {
                    "prompt": input.content, "style": style, "aspect_ratio": aspect_ratio,
                }))

        if not images:
            return ModuleOutput(
                success=False,
                content="Failed to generate images. Please try again with a different prompt.",
                type="text",
            )
        return ModuleOutput(
            content=images[0],
            type="image",
            data={
                "images": images,
                "prompt": input.content,
                "enhanced_prompt": enhanced_prompt,
                "style": style,
                "aspect_ratio": aspect_ratio,
                "count": len(images),
            },
        )

class VidsStudioLab(Lab):
    id = "vids-studio"
    name = "Vids Studio"
    description = "Video pipeline with storyboard logic and asset orchestration"
    type = "video"
    icon = "fa-film"
    template_id = "vids_storyboard"
    capabilities = ["storyboard", "video-planning", "script-to-visual", "asset-orchestration"]
    config = {"model": "gemini-2.0-flash", "max_tokens": 3072, "temperature": 0.8}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        style = self.option(input, "style", "cinematic")
        prompt = self.templates.render(self.template_id, {"input": input.content, "style": style})
        response = await self.provider.generate_text(prompt, GenerateOptions(**self.config))
        scenes = [
            {"id": index, "content": scene.strip()}
            for index, scene in enumerate(SCENE_BLOCK.findall(response), start=1)
        ]
        return ModuleOutput(
            content=response,
            type="json",
            data={"storyboard": response, "scenes": scenes, "style": style, "scene_count": len(scenes)},
        )

class Veo31Lab(Lab):
    """스토리보드 생성 -> 비디오 생성 작업 -> 폴링. 비디오가 없으면 스토리보드만 반환"""

    id = "veo31"
    name = "Veo 3.1"
    description = "Cinematic video generation with storyboard logic and render progress tracking"
    type = "video"
    icon = "fa-film"
    template_id = "veo_storyboard"
    capabilities = ["video-generation", "storyboard", "cinematic", "progress-tracking"]
    config = {
        "model": "veo-2.0-generate-001",
        "default_duration": 5,
        "max_duration": 10,
        "supported_ratios": ["16:9", "9:16", "1:1"],
    }

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        aspect_ratio = self.option(input, "aspect_ratio", "16:9")
        duration = _int_option(input.options.get("duration"), self.config["default_duration"], self.config["max_duration"])
        style = self.option(input, "style", "cinematic")

        storyboard = await self.provider.generate_text(
            self.templates.render(self.template_id, {
                "input": input.content, "style": style, "aspectRatio": aspect_ratio, "duration": duration,
            }),
            GenerateOptions(temperature=0.8, max_tokens=2048),
        )
        video_prompt = (
            f"{input.content}. {style} style, cinematic quality, smooth motion, "
            f"{duration} seconds. {aspect_ratio} aspect ratio."
        )
        details = {"storyboard": storyboard, "prompt": input.content, "style": style,
                   "aspect_ratio": aspect_ratio, "duration": duration}

        try:
            handle = await self.provider.generate_video(video_prompt, aspect_ratio, duration)
            video = await self.provider.poll_video(handle) if handle else None
        except ProviderError as e:
            logger.warning("Video generation failed, returning storyboard only: %s", e)
            return ModuleOutput(content=storyboard, type="json",
                                data={**details, "error": str(e), "status": "storyboard_only"})

        if not video:
            return ModuleOutput(content=storyboard, type="json", data={
                **details,
                "status": "storyboard_only",
                "message": "Video generation not available. Storyboard generated for reference.",
            })
        video_url = await self.store_media(input.user_id, "videos", video, "video/mp4", details)
        return ModuleOutput(content=video_url, type="video", data={"video_url": video_url, **details})

class MusicFXLab(Lab):
    id = "musicfx"
    name = "MusicFX"
    description = "AI-powered music and audio generation with waveform preview and playback"
    type = "audio"
    icon = "fa-music"
    template_id = "musicfx_prompt"
    capabilities = ["music-generation", "sound-design", "ambient", "waveform-preview"]
    config = {"default_duration": 30, "max_duration": 120, "formats": ["mp3", "wav"]}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        duration = _int_option(input.options.get("duration"), self.config["default_duration"], self.config["max_duration"])
        genre = self.option(input, "genre", "ambient")
        mood = self.option(input, "mood", "neutral")
        tempo = self.option(input, "tempo", "medium")

        description = await self.provider.generate_text(
            self.templates.render(self.template_id, {
                "input": input.content, "genre": genre, "mood": mood, "tempo": tempo, "duration": duration,
            }),
            GenerateOptions(temperature=0.8, max_tokens=1024),
        )
        match = AUDIO_PROMPT_LINE.search(description)
        generation_prompt = match.group(1) if match else f"{genre} music, {mood} mood, {tempo} tempo. {input.content}"
        details = {"description": description, "prompt": input.content, "genre": genre,
                   "mood": mood, "tempo": tempo, "duration": duration}

        try:
            audio = await self.provider.generate_audio(generation_prompt, duration)
        except ProviderError as e:
            logger.warning("Audio generation failed, returning description only: %s", e)
            return ModuleOutput(content=description, type="json",
                                data={**details, "error": str(e), "status": "description_only"})

        if not audio:
            return ModuleOutput(content=description, type="json", data={
                **details,
                "generation_prompt": generation_prompt,
                "status": "description_only",
                "message": "Audio generation not available. Description generated for reference.",
            })
        audio_url = await self.store_media(input.user_id, "audio", audio, "audio/mp3", details)
        return ModuleOutput(content=audio_url, type="audio", data={"audio_url": audio_url, **details})

class GeminiLiveLab(Lab):
    # 실시간 음성은 websocket 서버 담당, 여기서는 접속 정보만 반환
    id = "gemini-live"
    name = "Gemini Live"
    description = "Real-time voice conversation with low-latency streaming and live transcription"
    type = "audio"
    icon = "fa-microphone-lines"
    template_id = "gemini_live"
    capabilities = ["voice-conversation", "realtime-streaming", "transcription", "low-latency"]
    config = {
        "model": "gemini-2.0-flash-live-001",
        "sample_rate": 16000,
        "output_sample_rate": 24000,
        "voices": ["Puck", "Charon", "Kore", "Fenrir", "Aoede", "Leda", "Orus", "Zephyr"],
        "default_voice": "Zephyr",
    }

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        voice = self.option(input, "voice", self.config["default_voice"])
        session = {
            "endpoint": "/api/live",
            "protocol": "websocket",
            "sample_rate": self.config["sample_rate"],
            "output_sample_rate": self.config["output_sample_rate"],
            "voice": voice,
            "system_instruction": self.templates.render(self.template_id, {"context": input.context, "voice": voice}),
        }
        return ModuleOutput(
            content=json.dumps({
                "type": "gemini-live-init",
                "message": "Gemini Live uses WebSocket for real-time voice. Connect to /api/live",
                "config": session,
            }),
            type="json",
            data={"type": "websocket-required", "endpoint": "/api/live"},
        )
