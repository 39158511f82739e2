from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

class ExecuteRequest(BaseModel):
    content: str = Field(..., min_length=1)
    options: Optional[Dict[str, Any]] = None

class ModuleInfo(BaseModel):
    id: str
    name: str
    description: str = ""
    type: str
    icon: str = ""
    capabilities: List[str] = []

class CancelResponse(BaseModel):
    cancelled: bool
