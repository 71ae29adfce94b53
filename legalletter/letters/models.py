from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field

class LetterStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class LetterMetadata(BaseModel):
    ai_model: str = "template-v1"
    processing_time: float = 0
    word_count: int = 0
    complexity: str = Field(default="simple", pattern="^(simple|moderate|complex)$")
    legal_categories: list[str] = Field(default_factory=list)
    confidence_score: float = 0
    review_required: bool = False

class Letter(BaseModel):
    """
    A requested letter. ``status`` reflects generation progress only while the
    letter is live: once ``is_deleted`` is set, scheduled steps skip it, so a
    deleted letter keeps whatever status it had when it was removed. Readers
    treat any deleted letter as withdrawn regardless of status.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    sender_name: str
    sender_address: str
    recipient_name: str
    recipient_address: str
    matter: str
    resolution: str
    content: str = ""
    status: LetterStatus = LetterStatus.PENDING
    generated_at: datetime
    completed_at: Optional[datetime] = None
    version: int = 1
    download_count: int = 0
    is_deleted: bool = False
    metadata: LetterMetadata = Field(default_factory=LetterMetadata)
