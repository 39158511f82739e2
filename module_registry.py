import logging
from typing import Dict, List, Optional
from module_models import ModuleDefinition, ModuleType
from utils.exceptions import DuplicateModule

logger = logging.getLogger(__name__)

class ModuleRegistry:
    """모듈 id -> ModuleDefinition 매핑 (프로세스 시작 시 등록, executor에 주입)"""

    def __init__(self, allow_overwrite: bool = True):
        # allow_overwrite=False면 같은 id 재등록을 거부
        self.allow_overwrite = allow_overwrite
        self._modules: Dict[str, ModuleDefinition] = {}

    def register(self, module: ModuleDefinition) -> None:
        if module.id in self._modules:
            if not self.allow_overwrite:
                raise DuplicateModule(module.id)
            logger.warning("Overwriting module registration: %s", module.id)
        self._modules[module.id] = module
        logger.info("Registered module: %s", module.id)

    def get(self, module_id: str) -> Optional[ModuleDefinition]:
        return self._modules.get(module_id)

    def has(self, module_id: str) -> bool:
        return module_id in self._modules

    def get_all(self) -> List[ModuleDefinition]:
        return list(self._modules.values())

    def get_by_type(self, module_type: ModuleType) -> List[ModuleDefinition]:
        return [m for m in self._modules.values() if m.type == module_type]

    def list_ids(self) -> List[str]:
        return list(self._modules.keys())

    def unregister(self, module_id: str) -> bool:
        # 개발 중 hot-reload 용도
        if self._modules.pop(module_id, None) is None:
            return False
        logger.info("Unregistered module: %s", module_id)
        return True
