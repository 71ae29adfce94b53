from datetime import timedelta

import pytest

from legalletter.shared.errors import CreditFailed, InvalidPlan, NotFound, QuotaExceeded, SubscriptionFailed
from legalletter.subscriptions.models import PlanId, SubscriptionStatus


def test_annual8_with_employee_coupon(svc, jane, customer):
    sub = svc.subscriptions.create_subscription(customer.id, "annual8", coupon_code="JANE20")
    assert sub.discount == 20
    assert sub.price == pytest.approx(479.2)
    assert sub.original_price == pytest.approx(599)
    assert sub.employee_id == jane.id
    assert sub.coupon_code == "JANE20"
    assert sub.letters_allowed == 8 and sub.letters_used == 0
    assert sub.status == SubscriptionStatus.ACTIVE

    emp = svc.identity.get_user(jane.id)
    assert emp.earnings == pytest.approx(23.96)
    assert emp.referrals == 1
    actions = [e.action for e in svc.audit.entries()]
    assert actions[-2:] == ["EMPLOYEE_EARNINGS_UPDATED", "SUBSCRIPTION_CREATED"]

def test_lowercase_coupon_still_resolves(svc, jane, customer):
    sub = svc.subscriptions.create_subscription(customer.id, PlanId.ANNUAL4, coupon_code="jane20")
    assert sub.employee_id == jane.id
    assert sub.price == pytest.approx(239.2)

def test_unknown_coupon_means_no_discount(svc, jane, customer):
    assert svc.subscriptions.resolve_coupon("NOPE99") is None
    sub = svc.subscriptions.create_subscription(customer.id, "single", coupon_code="NOPE99")
    assert sub.discount == 0
    assert sub.price == sub.original_price == 299
    assert sub.employee_id is None and sub.coupon_code is None
    assert svc.identity.get_user(jane.id).referrals == 0

def test_expiry_by_plan(svc, customer, clock):
    single = svc.subscriptions.create_subscription(customer.id, "single")
    annual = svc.subscriptions.create_subscription(customer.id, "annual4")
    assert single.expires_at is None
    assert annual.expires_at == clock.now() + timedelta(days=365)

def test_invalid_plan(svc, customer):
    with pytest.raises(InvalidPlan):
        svc.subscriptions.create_subscription(customer.id, "lifetime")
    assert svc.subscriptions.list_all_subscriptions() == []

def test_unknown_user(svc):
    with pytest.raises(NotFound):
        svc.subscriptions.create_subscription("missing", "single")

def test_active_subscription_picks_most_recent(svc, customer, clock):
    assert svc.subscriptions.get_active_subscription(customer.id) is None
    older = svc.subscriptions.create_subscription(customer.id, "annual4")
    clock.advance(60)
    newer = svc.subscriptions.create_subscription(customer.id, "single")
    assert svc.subscriptions.get_active_subscription(customer.id).id == newer.id
    assert [s.id for s in svc.subscriptions.list_subscriptions_for_user(customer.id)] == [newer.id, older.id]

def test_expired_subscription_is_not_active(svc, customer, clock):
    svc.subscriptions.create_subscription(customer.id, "annual8")
    clock.advance(days=366)
    assert svc.subscriptions.get_active_subscription(customer.id) is None

def test_consume_letter_respects_quota(svc, customer):
    sub = svc.subscriptions.create_subscription(customer.id, "single")
    assert svc.subscriptions.consume_letter(sub.id).letters_used == 1
    with pytest.raises(QuotaExceeded):
        svc.subscriptions.consume_letter(sub.id)
    assert svc.subscriptions.get_active_subscription(customer.id).letters_used == 1

def test_unexpected_failure_is_wrapped(svc, customer, monkeypatch):
    def boom(*a, **kw):
        raise OSError("storage full")
    monkeypatch.setattr(svc.subscriptions, "_save", boom)
    with pytest.raises(SubscriptionFailed):
        svc.subscriptions.create_subscription(customer.id, "single")

def test_plans_catalog(svc):
    plans = {p.id.value: p for p in svc.subscriptions.plans()}
    assert plans["single"].letters_allowed == 1
    assert plans["annual4"].letters_allowed == 4
    assert plans["annual8"].price == 599

def test_failed_commission_removes_subscription(svc, jane, customer, backend, monkeypatch):
    real_set = backend.set
    def refuse_user_writes(key, value):
        if key.endswith("users"):
            raise OSError("write refused")
        real_set(key, value)
    monkeypatch.setattr(backend, "set", refuse_user_writes)

    with pytest.raises(SubscriptionFailed) as ei:
        svc.subscriptions.create_subscription(customer.id, "annual8", coupon_code="JANE20")
    assert isinstance(ei.value.__cause__, CreditFailed)
    monkeypatch.undo()

    assert svc.subscriptions.list_all_subscriptions() == []
    assert svc.subscriptions.get_active_subscription(customer.id) is None
    assert svc.identity.get_user(jane.id).referrals == 0

def test_release_letter(svc, customer):
    sub = svc.subscriptions.create_subscription(customer.id, "annual4")
    svc.subscriptions.consume_letter(sub.id)
    svc.subscriptions.release_letter(sub.id)
    svc.subscriptions.release_letter(sub.id)
    assert svc.subscriptions.get_active_subscription(customer.id).letters_used == 0
