from pydantic import BaseModel, ConfigDict, Field, StrictStr
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

ModuleType = Literal["text", "image", "video", "audio", "multimodal"]
OutputType = Literal["text", "image", "video", "audio", "json"]
MessageRole = Literal["user", "assistant", "system"]

# Execution.status 값
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED)

class ModuleInput(BaseModel):
    user_id: StrictStr
    content: str
    options: Dict[str, Any] = Field(default_factory=dict)
    # executor가 메모리에서 채움 (호출자가 넣지 않음)
    context: str = ""

class ModuleOutput(BaseModel):
    success: bool = True
    content: str
    type: OutputType = "text"
    data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None

ModuleHandler = Callable[[ModuleInput], Awaitable[ModuleOutput]]

class ModuleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: StrictStr
    name: str
    type: ModuleType
    execute: ModuleHandler
    description: str = ""
    icon: str = ""
    template_id: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)
    config: Dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"Module({self.id}, {self.type})"

    def info(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"execute", "config", "template_id"})

class ExecutionResult(BaseModel):
    execution_id: str
    module_id: str
    output: ModuleOutput
    duration_ms: int

class ConversationMessage(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)

class MemoryContext(BaseModel):
    user_id: str
    module_id: str
    messages: List[ConversationMessage] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

class PromptTemplate(BaseModel):
    id: StrictStr
    content: str
    name: str = ""
    variables: List[str] = Field(default_factory=list)  # 참고용, 검증하지 않음
