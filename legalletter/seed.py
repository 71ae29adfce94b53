# Demo accounts matching the sample data the web client ships with.
import logging

from legalletter.auth.models import Role
from legalletter.container import Services

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "Password123"

def seed_demo_data(services: Services) -> None:
    identity = services.identity
    identity.seed_user("admin@legalletter.ai", DEMO_PASSWORD, "System Administrator", Role.ADMIN)
    identity.seed_user("employee@legalletter.ai", DEMO_PASSWORD, "Jane Smith", Role.EMPLOYEE, coupon_code="JANE20")
    identity.seed_user("user@example.com", DEMO_PASSWORD, "John Doe", Role.USER)
    logger.info("demo accounts seeded")
