from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field

class PlanId(str, Enum):
    SINGLE = "single"
    ANNUAL4 = "annual4"
    ANNUAL8 = "annual8"

class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

class Plan(BaseModel):
    id: PlanId
    name: str
    price: float
    letters_allowed: int
    annual: bool

PLANS: dict[PlanId, Plan] = {
    PlanId.SINGLE: Plan(id=PlanId.SINGLE, name="Single Letter", price=299.0, letters_allowed=1, annual=False),
    PlanId.ANNUAL4: Plan(id=PlanId.ANNUAL4, name="Annual 4 Letters", price=299.0, letters_allowed=4, annual=True),
    PlanId.ANNUAL8: Plan(id=PlanId.ANNUAL8, name="Annual 8 Letters", price=599.0, letters_allowed=8, annual=True),
}

class Subscription(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    plan: PlanId
    price: float                 # after discount
    original_price: float
    discount: float = 0          # percent
    coupon_code: Optional[str] = None
    employee_id: Optional[str] = None
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime
    expires_at: Optional[datetime] = None
    letters_used: int = 0
    letters_allowed: int

    @property
    def letters_remaining(self) -> int:
        return max(self.letters_allowed - self.letters_used, 0)

    def is_current(self, now: datetime) -> bool:
        return self.status == SubscriptionStatus.ACTIVE and (self.expires_at is None or self.expires_at > now)
