from datetime import datetime
from typing import Any, Optional
import uuid

from pydantic import BaseModel, Field

class AuditEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    action: str
    user_id: Optional[str] = None
    details: Optional[Any] = None
    timestamp: datetime
