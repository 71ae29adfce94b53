from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field

def _id32() -> str:
    return uuid.uuid4().hex

class Role(str, Enum):
    USER = "user"
    EMPLOYEE = "employee"
    ADMIN = "admin"

class Notifications(BaseModel):
    email: bool = True
    push: bool = False
    marketing: bool = False

class Privacy(BaseModel):
    profile_visible: bool = True
    analytics_opt_out: bool = False

class UserPreferences(BaseModel):
    theme: str = Field(default="system", pattern="^(light|dark|system)$")
    notifications: Notifications = Field(default_factory=Notifications)
    privacy: Privacy = Field(default_factory=Privacy)

class User(BaseModel):
    id: str = Field(default_factory=_id32)
    email: str
    full_name: str
    password_hash: str
    role: Role = Role.USER
    is_active: bool = True
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None
    # employee-only
    coupon_code: Optional[str] = None
    referrals: int = 0
    earnings: float = 0.0
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @property
    def is_employee(self) -> bool:
        return self.role == Role.EMPLOYEE
