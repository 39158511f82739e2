import json
import os
import httpx
import pytest
from fakes import ScriptedProvider
from labs import LAB_CLASSES, TEMPLATES_PATH, register_labs
from labs.agents import HelpMeScriptLab, MarinerLab, NotebookLMLab, OpalLab, StitchLab, WhiskLab
from labs.media import GeminiLiveLab, Imagen4Lab, MusicFXLab, NanoBananaLab, Veo31Lab, VidsStudioLab
from media_store import MediaStore
from module_models import ModuleInput
from module_registry import ModuleRegistry
from providers.gemini import GeminiProvider
from template_service import TemplateService
from utils.exceptions import ProviderError

@pytest.fixture
def templates():
    service = TemplateService()
    service.load_yaml(TEMPLATES_PATH)
    return service

@pytest.fixture
def media(tmp_path):
    return MediaStore(str(tmp_path / "media"))

def make_input(content="make something", context="", **options):
    return ModuleInput(user_id="u1", content=content, options=options, context=context)

def test_register_labs_registers_all(templates):
    registry = ModuleRegistry(allow_overwrite=False)
    labs = register_labs(registry, templates, ScriptedProvider())
    assert len(labs) == len(LAB_CLASSES) == 12
    assert set(registry.list_ids()) == {
        "opal", "stitch", "whisk", "notebooklm", "mariner", "helpme-script",
        "vids-studio", "nano-banana", "imagen4", "veo31", "musicfx", "gemini-live",
    }
    assert [m.id for m in registry.get_by_type("image")] == ["nano-banana", "imagen4"]
    info = registry.get("veo31").info()
    assert info["type"] == "video"
    assert "video-generation" in info["capabilities"]

@pytest.mark.asyncio
async def test_opal_renders_input_and_context(templates):
    provider = ScriptedProvider(text="quick answer")
    output = await OpalLab(templates, provider).execute(make_input("what is 2+2", context="user: hi"))
    assert output.type == "text"
    assert output.content == "quick answer"
    prompt, options = provider.calls[0][1]
    assert "User request: what is 2+2" in prompt
    assert "user: hi" in prompt
    assert options.model == "gemini-2.0-flash"
    assert options.max_tokens == 1024

@pytest.mark.asyncio
async def test_stitch_uses_thinking(templates):
    provider = ScriptedProvider(text="deep answer")
    output = await StitchLab(templates, provider).execute(make_input())
    assert [c[0] for c in provider.calls] == ["generate_with_thinking"]
    assert output.metadata == {"model": "gemini-2.5-flash-preview-05-20", "used_thinking": True}

@pytest.mark.asyncio
async def test_whisk_extracts_workflow_steps(templates):
    provider = ScriptedProvider(text="Plan:\n1. Collect data\n2. Clean it\nnotes\n3. Report")
    output = await WhiskLab(templates, provider).execute(make_input())
    assert output.type == "json"
    assert output.data["workflow"] == ["1. Collect data", "2. Clean it", "3. Report"]
    assert output.data["raw_response"] == provider.text

@pytest.mark.asyncio
async def test_notebooklm_extracts_insights(templates):
    provider = ScriptedProvider(text="Summary\nKey point: cats sleep\nInsight: dogs bark\nTakeaway: pets")
    output = await NotebookLMLab(templates, provider).execute(make_input())
    assert output.data["insights"] == ["cats sleep", "dogs bark", "pets"]
    assert output.data["synthesis"] == provider.text

@pytest.mark.asyncio
async def test_mariner_grounds_report_in_search(templates):
    provider = ScriptedProvider(text="the report")
    output = await MarinerLab(templates, provider).execute(make_input("ev market", context="user: earlier"))
    assert provider.prompts("search") == ["ev market"]
    prompt = provider.prompts("generate_with_thinking")[0]
    assert "Search results:\nsearch text" in prompt
    assert "user: earlier" in prompt
    assert output.data == {"report": "the report", "sources": [{"web": {"uri": "https://a"}}], "query": "ev market"}

@pytest.mark.asyncio
async def test_helpme_script_splits_scripts(templates):
    provider = ScriptedProvider(text="Script 1: Say no politely.\nScript 2: Offer an alternative.")
    output = await HelpMeScriptLab(templates, provider).execute(make_input("decline meeting", tone="warm"))
    assert output.data["scripts"] == ["Script 1: Say no politely.", "Script 2: Offer an alternative."]
    assert output.data["count"] == 2
    assert output.data["tone"] == "warm"
    assert "Tone: warm" in provider.prompts("generate_text")[0]

@pytest.mark.asyncio
async def test_helpme_script_default_tone(templates):
    provider = ScriptedProvider(text="just one")
    output = await HelpMeScriptLab(templates, provider).execute(make_input(tone=""))
    assert output.data["tone"] == "professional"
    assert output.data["count"] == 1

@pytest.mark.asyncio
async def test_vids_studio_parses_scenes(templates):
    provider = ScriptedProvider(text="Scene 1: Sunrise over city\nScene 2: Street market")
    output = await VidsStudioLab(templates, provider).execute(make_input())
    assert output.data["scenes"] == [
        {"id": 1, "content": "Scene 1: Sunrise over city"},
        {"id": 2, "content": "Scene 2: Street market"},
    ]
    assert output.data["scene_count"] == 2
    assert output.data["style"] == "cinematic"

@pytest.mark.asyncio
async def test_nano_banana_generates_image_from_optimized_prompt(templates):
    provider = ScriptedProvider(text="Thoughts...\nOptimized Prompt: a neon cat", image=b"PNG")
    output = await NanoBananaLab(templates, provider).execute(make_input("cat", aspect_ratio="16:9"))
    assert provider.calls[1] == ("generate_image", ("a neon cat", "16:9"))
    assert output.type == "image"
    assert output.content == "data:image/png;base64,UE5H"
    assert output.data["generated"] is True
    assert output.data["image_data"] == output.content

@pytest.mark.asyncio
async def test_nano_banana_prompt_only(templates):
    provider = ScriptedProvider(text="an enhanced prompt")
    output = await NanoBananaLab(templates, provider).execute(make_input("cat", generate_image=False))
    assert [c[0] for c in provider.calls] == ["generate_text"]
    assert output.type == "text"
    assert output.content == "an enhanced prompt"
    assert output.data["generated"] is False
    assert output.data["image_data"] is None

@pytest.mark.asyncio
async def test_imagen4_stores_each_image(templates, media):
    provider = ScriptedProvider(image=b"IMG")
    output = await Imagen4Lab(templates, provider, media).execute(make_input("a fox", count=3, style="anime"))
    assert output.type == "image"
    assert output.data["count"] == 3
    assert len(provider.prompts("generate_image")) == 3
    assert provider.prompts("generate_image")[0] == "a fox. Style: anime. High quality, detailed, professional."
    for url in output.data["images"]:
        assert url.startswith("/api/media/images/")
        path = media.resolve("images", url.rsplit("/", 1)[1])
        with open(path, "rb") as f:
            assert f.read() == b"IMG"
        with open(path + ".json") as f:
            assert json.load(f)["module_id"] == "imagen4"
    assert output.content == output.data["images"][0]

@pytest.mark.asyncio
async def test_imagen4_count_is_capped(templates):
    provider = ScriptedProvider(image=b"IMG")
    output = await Imagen4Lab(templates, provider).execute(make_input(count=10))
    assert output.data["count"] == 4
    # MediaStore 없이 data URL로 반환
    assert output.content.startswith("data:image/png;base64,")

@pytest.mark.asyncio
async def test_imagen4_reports_no_images(templates):
    output = await Imagen4Lab(templates, ScriptedProvider(image=None)).execute(make_input())
    assert output.success is False
    assert output.type == "text"

@pytest.mark.asyncio
async def test_imagen4_propagates_provider_error(templates):
    provider = ScriptedProvider(error={"generate_image": ProviderError("quota", status=429)})
    with pytest.raises(ProviderError):
        await Imagen4Lab(templates, provider).execute(make_input())

@pytest.mark.asyncio
async def test_veo_returns_stored_video(templates, media):
    provider = ScriptedProvider(text="storyboard", video_handle="operations/1", video=b"MP4")
    output = await Veo31Lab(templates, provider, media).execute(make_input("ocean", duration=30))
    assert provider.prompts("poll_video") == ["operations/1"]
    assert output.type == "video"
    assert output.content.startswith("/api/media/videos/")
    assert output.data["duration"] == 10
    assert output.data["storyboard"] == "storyboard"
    assert "Duration: 10 seconds" in provider.prompts("generate_text")[0]

@pytest.mark.asyncio
async def test_veo_storyboard_only_without_handle(templates):
    provider = ScriptedProvider(text="storyboard", video_handle=None)
    output = await Veo31Lab(templates, provider).execute(make_input())
    assert provider.prompts("poll_video") == []
    assert output.type == "json"
    assert output.content == "storyboard"
    assert output.data["status"] == "storyboard_only"
    assert output.data["duration"] == 5

@pytest.mark.asyncio
async def test_veo_storyboard_only_on_provider_error(templates):
    provider = ScriptedProvider(text="storyboard", error={"generate_video": ProviderError("not allowed", status=403)})
    output = await Veo31Lab(templates, provider).execute(make_input())
    assert output.data["status"] == "storyboard_only"
    assert output.data["error"] == "not allowed"

@pytest.mark.asyncio
async def test_musicfx_uses_extracted_generation_prompt(templates, media):
    provider = ScriptedProvider(text="Nice track\nGeneration prompt: soft piano rain", audio=b"MP3")
    output = await MusicFXLab(templates, provider, media).execute(make_input("rainy day", mood="calm"))
    assert provider.calls[1] == ("generate_audio", ("soft piano rain", 30))
    assert output.type == "audio"
    assert output.content.startswith("/api/media/audio/")
    assert output.data["mood"] == "calm"

@pytest.mark.asyncio
async def test_musicfx_description_only(templates):
    provider = ScriptedProvider(text="A description", audio=None)
    output = await MusicFXLab(templates, provider).execute(make_input("rainy day", duration="abc"))
    assert provider.calls[1] == ("generate_audio", ("ambient music, neutral mood, medium tempo. rainy day", 30))
    assert output.type == "json"
    assert output.data["status"] == "description_only"
    assert output.data["generation_prompt"] == "ambient music, neutral mood, medium tempo. rainy day"

@pytest.mark.asyncio
async def test_musicfx_degrades_on_provider_error(templates):
    provider = ScriptedProvider(text="A description", error={"generate_audio": ProviderError("Audio generation failed")})
    output = await MusicFXLab(templates, provider).execute(make_input())
    assert output.data["status"] == "description_only"
    assert output.data["error"] == "Audio generation failed"

@pytest.mark.asyncio
async def test_gemini_live_descriptor(templates):
    provider = ScriptedProvider()
    output = await GeminiLiveLab(templates, provider).execute(make_input(voice="Kore"))
    assert provider.calls == []
    payload = json.loads(output.content)
    assert payload["type"] == "gemini-live-init"
    assert payload["config"]["voice"] == "Kore"
    assert "Voice: Kore" in payload["config"]["system_instruction"]
    assert output.data == {"type": "websocket-required", "endpoint": "/api/live"}

@pytest.mark.asyncio
async def test_media_store_rejects_unknown_kind_and_traversal(media):
    with pytest.raises(ValueError):
        await media.save("u1", "docs", b"x")
    url = await media.save("u1", "audio", b"abc", {"prompt": "p"})
    filename = url.rsplit("/", 1)[1]
    assert os.path.isfile(media.resolve("audio", filename))
    assert media.resolve("images", filename) is None
    assert media.resolve("audio", "../" + filename) is None
    assert media.resolve("audio", "missing.mp3") is None

@pytest.mark.asyncio
async def test_media_store_writes_metadata_sidecar(media):
    url = await media.save("u1", "videos", b"MP4", {"prompt": "ocean"})
    path = media.resolve("videos", url.rsplit("/", 1)[1])
    with open(path + ".json") as f:
        assert json.load(f) == {"user_id": "u1", "size_bytes": 3, "prompt": "ocean"}

@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [-3, 0])
async def test_veo_duration_has_lower_bound(templates, duration):
    provider = ScriptedProvider(text="storyboard", video_handle=None)
    output = await Veo31Lab(templates, provider).execute(make_input(duration=duration))
    name, (prompt, aspect_ratio, sent_duration) = provider.calls[1]
    assert (name, aspect_ratio, sent_duration) == ("generate_video", "16:9", 1)
    assert output.data["duration"] == 1

@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [-3, 0])
async def test_musicfx_duration_has_lower_bound(templates, duration):
    provider = ScriptedProvider(text="A description", audio=None)
    output = await MusicFXLab(templates, provider).execute(make_input(duration=duration))
    assert provider.calls[1][1][1] == 1
    assert output.data["duration"] == 1

@pytest.mark.asyncio
@pytest.mark.parametrize("count", [-2, 0])
async def test_imagen4_count_has_lower_bound(templates, count):
    provider = ScriptedProvider(image=b"IMG")
    output = await Imagen4Lab(templates, provider).execute(make_input(count=count))
    assert len(provider.prompts("generate_image")) == 1
    assert output.data["count"] == 1

@pytest.mark.asyncio
async def test_veo_non_json_poll_response_degrades_to_storyboard():
    def handler(request):
        path = request.url.path
        if path.endswith(":generateContent"):
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "storyboard"}]}}]})
        if path.endswith(":generateVideos"):
            return httpx.Response(200, json={"name": "operations/op1"})
        return httpx.Response(200, text="<html>gateway</html>")
    provider = GeminiProvider(api_key="k", api_base="https://gen.test/v1beta", poll_interval=0, poll_attempts=2,
                              transport=httpx.MockTransport(handler))
    service = TemplateService()
    service.load_yaml(TEMPLATES_PATH)
    output = await Veo31Lab(service, provider).execute(make_input("ocean"))
    await provider.close()
    assert output.type == "json"
    assert output.content == "storyboard"
    assert output.data["status"] == "storyboard_only"
