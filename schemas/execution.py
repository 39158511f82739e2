from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

class ExecutionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    module_id: str
    input: str
    output: Optional[str] = None
    status: str
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
