import pytest

from legalletter.auth.models import Role
PASSWORD = "Secret123"


def test_empty_dataset_is_all_zero(svc):
    m = svc.metrics.system_metrics()
    assert m["total_users"] == m["total_letters"] == m["active_subscriptions"] == 0
    assert m["total_revenue"] == 0
    assert m["conversion_rate"] == 0
    assert m["users_by_role"] == {"user": 0, "employee": 0, "admin": 0}

def test_counts_revenue_and_conversion(svc, jane, customer, scheduler, fields, cfg):
    svc.identity.seed_user("admin@legalletter.ai", PASSWORD, "System Administrator", Role.ADMIN)
    svc.identity.seed_user("mary@example.com", PASSWORD, "Mary Major", Role.USER)
    svc.subscriptions.create_subscription(customer.id, "annual8", coupon_code="JANE20")
    svc.letters.create_letter(customer.id, **fields())
    svc.letters.create_letter(customer.id, **fields(matter="Unpaid invoice"))
    scheduler.advance(cfg.LETTER_PROCESSING_SECONDS)

    m = svc.metrics.system_metrics()
    assert m["total_users"] == 2
    assert m["total_employees"] == 1
    assert m["total_admins"] == 1
    assert m["total_letters"] == 2
    assert m["completed_letters"] == 2
    assert m["total_revenue"] == pytest.approx(479.2)
    assert m["active_subscriptions"] == 1
    # one subscription across four accounts
    assert m["conversion_rate"] == pytest.approx(25.0)

def test_expired_subscriptions_are_not_active(svc, customer, clock):
    svc.subscriptions.create_subscription(customer.id, "annual4")
    svc.subscriptions.create_subscription(customer.id, "single")
    clock.advance(days=400)
    m = svc.metrics.system_metrics()
    assert m["active_subscriptions"] == 1
    assert m["total_revenue"] == pytest.approx(598)

def test_deleted_letters_are_not_counted(svc, customer, fields):
    svc.subscriptions.create_subscription(customer.id, "annual4")
    letter = svc.letters.create_letter(customer.id, **fields())
    svc.letters.delete_letter(customer.id, letter.id)
    assert svc.metrics.system_metrics()["total_letters"] == 0

def test_health_check(svc, monkeypatch):
    assert svc.metrics.health_check()["status"] == "healthy"

    def boom(*a, **kw):
        raise RuntimeError("storage unreadable")
    monkeypatch.setattr(svc.identity, "list_users", boom)
    report = svc.metrics.health_check()
    assert report["status"] == "degraded"
    assert report["metrics"]["total_users"] == 0

def test_employee_summary(svc, jane, customer):
    svc.subscriptions.create_subscription(customer.id, "annual4", coupon_code="JANE20")
    summary = svc.metrics.employee_summary(jane.id)
    assert summary["coupon_code"] == "JANE20"
    assert summary["referrals"] == 1
    assert summary["earnings"] == pytest.approx(11.96)
    assert summary["referred_revenue"] == pytest.approx(239.2)
    assert len(summary["subscriptions"]) == 1

def test_export_strips_password_hashes(svc, jane, customer):
    data = svc.metrics.export_data()
    assert set(data) == {"users", "letters", "subscriptions", "activities"}
    assert len(data["users"]) == 2
    assert all("password_hash" not in u for u in data["users"])
    assert data["activities"][0]["action"] == "USER_SIGNUP"
