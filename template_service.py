import logging
import re
from typing import Any, Dict, List, Optional
import yaml
from module_models import PromptTemplate
from utils.exceptions import TemplateNotFound

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

class TemplateService:
    """이름 있는 프롬프트 템플릿 저장 및 {{variable}} 치환"""

    def __init__(self):
        self._templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self._templates[template.id] = template
        logger.debug("Registered template: %s", template.id)

    def get(self, template_id: str) -> Optional[PromptTemplate]:
        return self._templates.get(template_id)

    def list(self) -> List[PromptTemplate]:
        return list(self._templates.values())

    def render(self, template_id: str, variables: Dict[str, Any]) -> str:
        """템플릿의 모든 ``{{name}}`` 을 ``variables[name]`` 으로 치환.

        값이 없거나 None 인 자리표시자는 빈 문자열이 된다. 치환은 한 번의 리터럴
        패스이며, 값 안에 있는 ``{{...}}`` 는 그대로 들어가고 다시 치환되지 않는다.
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)

        def substitute(match):
            value = variables.get(match.group(1))
            return "" if value is None else str(value)

        return PLACEHOLDER.sub(substitute, template.content)

    def load_yaml(self, path: str) -> int:
        # 파일 형식: {template_id: {name, content, variables}}
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        for template_id, info in data.items():
            self.register(PromptTemplate(
                id=template_id,
                name=info.get("name", ""),
                content=info["content"],
                variables=info.get("variables", []),
            ))
        return len(data)
