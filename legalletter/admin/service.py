import logging
from typing import Any

from legalletter.audit.service import AuditLog
from legalletter.auth.models import Role
from legalletter.auth.service import IdentityStore
from legalletter.letters.models import LetterStatus
from legalletter.letters.service import LetterStore
from legalletter.shared.clock import Clock
from legalletter.shared.errors import NotFound
from legalletter.subscriptions.service import SubscriptionStore

logger = logging.getLogger(__name__)


def empty_metrics() -> dict[str, Any]:
    return {
        "total_users": 0,
        "total_employees": 0,
        "total_admins": 0,
        "users_by_role": {r.value: 0 for r in Role},
        "total_letters": 0,
        "completed_letters": 0,
        "total_revenue": 0.0,
        "active_subscriptions": 0,
        "conversion_rate": 0.0,
    }


class MetricsReporter:
    """Read-only aggregation for the admin and employee dashboards."""

    def __init__(self, identity: IdentityStore, letters: LetterStore, subscriptions: SubscriptionStore,
                 audit: AuditLog, clock: Clock):
        self.identity = identity
        self.letters = letters
        self.subscriptions = subscriptions
        self.audit = audit
        self.clock = clock

    def system_metrics(self) -> dict[str, Any]:
        users = self.identity.list_users()
        letters = self.letters.list_all_letters()
        subs = self.subscriptions.list_all_subscriptions()
        now = self.clock.now()

        by_role = {r.value: 0 for r in Role}
        for u in users:
            by_role[u.role.value] += 1

        m = empty_metrics()
        m.update(
            total_users=by_role[Role.USER.value],
            total_employees=by_role[Role.EMPLOYEE.value],
            total_admins=by_role[Role.ADMIN.value],
            users_by_role=by_role,
            total_letters=len(letters),
            completed_letters=sum(1 for l in letters if l.status == LetterStatus.COMPLETED),
            total_revenue=round(sum(s.price for s in subs), 2),
            active_subscriptions=sum(1 for s in subs if s.is_current(now)),
            # percent of all accounts
            conversion_rate=(len(subs) / len(users) * 100) if users else 0.0,
        )
        return m

    def health_check(self) -> dict[str, Any]:
        timestamp = self.clock.now().isoformat()
        try:
            return {"status": "healthy", "timestamp": timestamp, "metrics": self.system_metrics()}
        except Exception:
            logger.exception("metrics read failed")
            return {"status": "degraded", "timestamp": timestamp, "metrics": empty_metrics()}

    def employee_summary(self, employee_id: str) -> dict[str, Any]:
        emp = self.identity.get_user(employee_id)
        if not emp or emp.role != Role.EMPLOYEE:
            raise NotFound("Employee not found", details={"employee_id": employee_id})
        referred = self.subscriptions.list_referrals(employee_id)
        return {
            "employee_id": emp.id,
            "coupon_code": emp.coupon_code,
            "referrals": emp.referrals,
            "earnings": emp.earnings,
            "referred_revenue": round(sum(s.price for s in referred), 2),
            "subscriptions": [s.model_dump(mode="json") for s in referred],
        }

    def export_data(self) -> dict[str, list]:
        return {
            "users": [u.model_dump(mode="json", exclude={"password_hash"}) for u in self.identity.list_users()],
            "letters": [l.model_dump(mode="json") for l in self.letters.list_all_letters(include_deleted=True)],
            "subscriptions": [s.model_dump(mode="json") for s in self.subscriptions.list_all_subscriptions()],
            "activities": [a.model_dump(mode="json") for a in self.audit.entries()],
        }
