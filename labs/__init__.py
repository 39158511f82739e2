import logging
import os
from typing import List, Optional
from labs.agents import HelpMeScriptLab, MarinerLab, NotebookLMLab, OpalLab, StitchLab, WhiskLab
from labs.base import Lab
from labs.media import GeminiLiveLab, Imagen4Lab, MusicFXLab, NanoBananaLab, Veo31Lab, VidsStudioLab
from media_store import MediaStore
from module_registry import ModuleRegistry
from providers.base import GenerationProvider
from template_service import TemplateService

logger = logging.getLogger(__name__)

TEMPLATES_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates.yaml")

LAB_CLASSES = [
    # 텍스트/에이전트
    OpalLab,
    StitchLab,
    WhiskLab,
    NotebookLMLab,
    MarinerLab,
    HelpMeScriptLab,
    VidsStudioLab,
    NanoBananaLab,
    # 미디어
    Imagen4Lab,
    Veo31Lab,
    MusicFXLab,
    GeminiLiveLab,
]

def register_labs(registry: ModuleRegistry, templates: TemplateService, provider: GenerationProvider,
                  media: Optional[MediaStore] = None) -> List[Lab]:
    templates.load_yaml(TEMPLATES_PATH)
    labs = [lab_class(templates, provider, media) for lab_class in LAB_CLASSES]
    for lab in labs:
        registry.register(lab.definition())
    logger.info("All lab modules loaded (%d total)", len(labs))
    return labs

__all__ = ["Lab", "LAB_CLASSES", "TEMPLATES_PATH", "register_labs"]
