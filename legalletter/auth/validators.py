import hmac
import re

from legalletter.shared.config import settings
from legalletter.shared.errors import ValidationError, AuthorizationError

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
NAME_RE = re.compile(r"[A-Za-z\s]+")
MIN_PASSWORD = 8

def validate_email(email: str | None) -> str:
    if not email or not EMAIL_RE.fullmatch(email):
        raise ValidationError("Invalid email format", "email", code="INVALID_FORMAT")
    return email

def validate_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD} characters long", "password", code="TOO_SHORT"
        )
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"[0-9]", password)):
        raise ValidationError(
            "Password must contain uppercase, lowercase, and number", "password", code="WEAK_PASSWORD"
        )
    return password

def validate_name(name: str | None) -> str:
    trimmed = (name or "").strip()
    if len(trimmed) < 2 or not NAME_RE.fullmatch(trimmed):
        raise ValidationError("Invalid name format", "fullName", code="INVALID_FORMAT")
    return trimmed

def validate_admin_secret(secret: str | None, expected: str | None = None) -> None:
    expected = settings.ADMIN_SECRET if expected is None else expected
    if not hmac.compare_digest((secret or "").encode(), expected.encode()):
        raise AuthorizationError("Invalid admin secret key", code="UNAUTHORIZED")
