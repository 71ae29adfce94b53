from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional

from legalletter.auth.models import Role, UserPreferences

class SignUpIn(BaseModel):
    email: str
    password: str
    full_name: str
    role: str = "user"
    admin_secret: Optional[str] = None

class SignInIn(BaseModel):
    email: str
    password: str

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    full_name: str
    role: Role
    is_active: bool
    email_verified: bool
    created_at: datetime
    last_login_at: datetime | None = None
    coupon_code: str | None = None
    referrals: int = 0
    earnings: float = 0.0
    preferences: UserPreferences
