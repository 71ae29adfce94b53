import random

import pytest

from legalletter.auth.models import Role
from legalletter.container import build_services
from legalletter.shared.clock import ManualClock
from legalletter.shared.config import Settings
from legalletter.shared.db import MemoryBackend
from legalletter.shared.scheduler import ManualScheduler

PASSWORD = "Secret123"


@pytest.fixture
def cfg():
    return Settings(ENV="test", BCRYPT_ROUNDS=4, SEED_DEMO_DATA=False, LETTER_FAILURE_RATE=0.0)

@pytest.fixture
def clock():
    return ManualClock()

@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)

@pytest.fixture
def backend():
    return MemoryBackend()

@pytest.fixture
def svc(cfg, backend, clock, scheduler):
    return build_services(cfg, backend=backend, clock=clock, scheduler=scheduler, rng=random.Random(7))

@pytest.fixture
def jane(svc):
    return svc.identity.seed_user("employee@legalletter.ai", PASSWORD, "Jane Smith", Role.EMPLOYEE, coupon_code="JANE20")

@pytest.fixture
def customer(svc):
    """Signed-up user holding the current session."""
    return svc.identity.sign_up("john@example.com", PASSWORD, "John Doe", "user")

def letter_fields(**over):
    fields = dict(
        sender_name="John Doe",
        sender_address="123 Main St, Anytown",
        recipient_name="ABC Corporation",
        recipient_address="456 Business Ave, Corporate City",
        matter="Breach of Contract",
        resolution="Refund the deposit of $500 within 14 days.",
    )
    fields.update(over)
    return fields

@pytest.fixture
def fields():
    return letter_fields
