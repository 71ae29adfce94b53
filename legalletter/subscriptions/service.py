import logging
from datetime import timedelta
from typing import Optional

from legalletter.audit.service import AuditLog
from legalletter.auth.models import User
from legalletter.auth.service import IdentityStore
from legalletter.shared.clock import Clock
from legalletter.shared.config import Settings
from legalletter.shared.db import KeyValueStore
from legalletter.shared.errors import (
    InvalidPlan, LegalLetterError, NoSubscription, NotFound, OperationFailed, QuotaExceeded,
    SubscriptionFailed,
)
from legalletter.subscriptions.models import PLANS, Plan, PlanId, Subscription

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_KEY = "subscriptions"


class SubscriptionStore:
    def __init__(self, kv: KeyValueStore, identity: IdentityStore, audit: AuditLog, clock: Clock,
                 settings: Settings):
        self.kv = kv
        self.identity = identity
        self.audit = audit
        self.clock = clock
        self.settings = settings

    def _load(self) -> list[Subscription]:
        return [Subscription.model_validate(r) for r in self.kv.get_json(SUBSCRIPTIONS_KEY, [])]

    def _save(self, subs: list[Subscription]) -> None:
        self.kv.set_json(SUBSCRIPTIONS_KEY, [s.model_dump(mode="json") for s in subs])

    def plans(self) -> list[Plan]:
        return list(PLANS.values())

    def resolve_coupon(self, code: Optional[str]) -> Optional[User]:
        """Active employee owning ``code``; None means "no discount", not an error."""
        return self.identity.find_active_employee_by_coupon(code)

    def create_subscription(self, user_id: str, plan: str | PlanId, coupon_code: Optional[str] = None) -> Subscription:
        sub = None
        try:
            try:
                plan_def = PLANS[PlanId(plan)]
            except ValueError:
                raise InvalidPlan(f"Unknown plan: {plan}", details={"plan": str(plan)})
            if not self.identity.get_user(user_id):
                raise NotFound("User not found", details={"user_id": user_id})

            employee = self.resolve_coupon(coupon_code) if coupon_code else None
            discount = self.settings.COUPON_DISCOUNT_PERCENT if employee else 0
            price = round(plan_def.price * (1 - discount / 100), 2)
            now = self.clock.now()

            pending = Subscription(
                user_id=user_id,
                plan=plan_def.id,
                price=price,
                original_price=price / (1 - discount / 100),
                discount=discount,
                coupon_code=employee.coupon_code if employee else None,
                employee_id=employee.id if employee else None,
                created_at=now,
                expires_at=now + timedelta(days=self.settings.SUBSCRIPTION_DAYS) if plan_def.annual else None,
                letters_allowed=plan_def.letters_allowed,
            )
            subs = self._load()
            subs.append(pending)
            self._save(subs)
            sub = pending

            if employee:
                self.identity.credit_employee(employee.id, round(price * self.settings.COMMISSION_RATE, 2))
        except Exception as e:
            if sub is not None:
                self._discard(sub.id)
            if isinstance(e, LegalLetterError) and not isinstance(e, OperationFailed):
                raise
            logger.exception("subscription checkout failed for user %s", user_id)
            raise SubscriptionFailed("Failed to create subscription") from e

        self.audit.record("SUBSCRIPTION_CREATED", user_id, {
            "subscriptionId": sub.id, "plan": sub.plan.value, "price": sub.price,
        })
        logger.info("subscription created", extra={"user_id": user_id, "plan": sub.plan.value})
        return sub

    def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        """Most recently created active, unexpired subscription (later entry wins a tie)."""
        now = self.clock.now()
        current = None
        for s in self._load():
            if s.user_id == user_id and s.is_current(now):
                if current is None or s.created_at >= current.created_at:
                    current = s
        return current

    def consume_letter(self, subscription_id: str) -> Subscription:
        subs = self._load()
        for i, s in enumerate(subs):
            if s.id == subscription_id:
                break
        else:
            raise NoSubscription("Active subscription required")
        if not s.is_current(self.clock.now()):
            raise NoSubscription("Active subscription required")
        if s.letters_used >= s.letters_allowed:
            raise QuotaExceeded("Letter limit exceeded for current subscription")
        subs[i] = s.model_copy(update={"letters_used": s.letters_used + 1})
        self._save(subs)
        return subs[i]

    def list_subscriptions_for_user(self, user_id: str) -> list[Subscription]:
        return sorted((s for s in self._load() if s.user_id == user_id), key=lambda s: s.created_at, reverse=True)

    def list_all_subscriptions(self) -> list[Subscription]:
        return self._load()

    def list_referrals(self, employee_id: str) -> list[Subscription]:
        return [s for s in self._load() if s.employee_id == employee_id]

    # ---- rollback ----
    def _discard(self, subscription_id: str) -> None:
        try:
            self._save([s for s in self._load() if s.id != subscription_id])
        except Exception:
            logger.exception("could not roll back subscription %s", subscription_id)

    def release_letter(self, subscription_id: str) -> None:
        """Give back one letter taken by consume_letter() when creation did not complete."""
        try:
            subs = self._load()
            for i, s in enumerate(subs):
                if s.id == subscription_id and s.letters_used > 0:
                    subs[i] = s.model_copy(update={"letters_used": s.letters_used - 1})
                    self._save(subs)
                    return
        except Exception:
            logger.exception("could not release letter quota on %s", subscription_id)
