import logging
import random
import re
import string
from datetime import datetime, timedelta
from typing import Optional

import bcrypt

from legalletter.audit.service import AuditLog
from legalletter.auth.models import Role, User
from legalletter.auth.validators import (
    validate_admin_secret, validate_email, validate_name, validate_password,
)
from legalletter.shared.clock import Clock
from legalletter.shared.config import Settings
from legalletter.shared.db import KeyValueStore
from legalletter.shared.errors import (
    AuthenticationError, AuthorizationError, CreditFailed, DuplicateEmail,
    LegalLetterError, NotFound, SignInFailed, SignUpFailed, ValidationError,
)

logger = logging.getLogger(__name__)

USERS_KEY = "users"
CURRENT_USER_KEY = "currentUser"
LAST_LOGIN_KEY = "lastLogin"

COUPON_ALPHABET = string.ascii_uppercase + string.digits
COUPON_SUFFIX_LEN = 4
COUPON_RE = re.compile(r"^[A-Z]{1,4}[A-Z0-9]{4}$")

def _hash(pw: str, rounds: int = 12) -> str:
    # bcrypt only looks at the first 72 bytes
    return bcrypt.hashpw(pw.encode()[:72], bcrypt.gensalt(rounds=rounds)).decode()

def _verify(pw: str, ph: str) -> bool:
    try: return bcrypt.checkpw(pw.encode()[:72], ph.encode())
    except Exception: return False


class IdentityStore:
    """Owns user records and the single local session (currentUser + lastLogin)."""

    def __init__(self, kv: KeyValueStore, audit: AuditLog, clock: Clock, settings: Settings,
                 rng: Optional[random.Random] = None):
        self.kv = kv
        self.audit = audit
        self.clock = clock
        self.settings = settings
        self._rng = rng or random.SystemRandom()

    # ---- persistence ----
    def _load(self) -> list[User]:
        return [User.model_validate(r) for r in self.kv.get_json(USERS_KEY, [])]

    def _save(self, users: list[User]) -> None:
        self.kv.set_json(USERS_KEY, [u.model_dump(mode="json") for u in users])

    def _replace(self, updated: User) -> User:
        users = self._load()
        for i, u in enumerate(users):
            if u.id == updated.id:
                users[i] = updated
                break
        else:
            raise NotFound("User not found", details={"user_id": updated.id})
        self._save(users)
        return updated

    def _find_by_email(self, users: list[User], email: str) -> Optional[User]:
        needle = email.strip().lower()
        return next((u for u in users if u.email.lower() == needle), None)

    # ---- reads ----
    def get_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self._load() if u.id == user_id), None)

    def list_users(self, role: Optional[Role] = None) -> list[User]:
        users = self._load()
        if role is not None:
            users = [u for u in users if u.role == role]
        return users

    def find_active_employee_by_coupon(self, code: Optional[str]) -> Optional[User]:
        needle = (code or "").strip().upper()
        if not needle:
            return None
        for u in self._load():
            if u.role == Role.EMPLOYEE and u.is_active and (u.coupon_code or "").upper() == needle:
                return u
        return None

    # ---- coupon codes ----
    def _new_coupon_code(self, full_name: str, users: list[User]) -> str:
        first = full_name.split()[0] if full_name.split() else ""
        prefix = re.sub(r"[^A-Z]", "", first.upper())[:4] or "EMP"
        taken = {(u.coupon_code or "").upper() for u in users if u.coupon_code}
        while True:
            suffix = "".join(self._rng.choice(COUPON_ALPHABET) for _ in range(COUPON_SUFFIX_LEN))
            code = f"{prefix}{suffix}"
            if code not in taken:
                return code

    # ---- session ----
    def _start_session(self, user: User) -> None:
        self.kv.set_json(CURRENT_USER_KEY, user.model_dump(mode="json", exclude={"password_hash"}))
        self.kv.set_json(LAST_LOGIN_KEY, self.clock.now().isoformat())

    def _clear_session(self) -> None:
        self.kv.remove(CURRENT_USER_KEY)
        self.kv.remove(LAST_LOGIN_KEY)

    def sign_up(self, email: str, password: str, full_name: str, role: str | Role = Role.USER,
                admin_secret: Optional[str] = None) -> User:
        try:
            return self._sign_up(email, password, full_name, role, admin_secret)
        except LegalLetterError:
            raise
        except Exception as e:
            logger.exception("sign-up failed")
            raise SignUpFailed("An unexpected error occurred during signup") from e

    def _sign_up(self, email, password, full_name, role, admin_secret) -> User:
        email = validate_email((email or "").strip()).lower()
        validate_password(password)
        name = validate_name(full_name)
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError("Invalid role", "role")
        if role == Role.ADMIN:
            validate_admin_secret(admin_secret, self.settings.ADMIN_SECRET)

        users = self._load()
        if self._find_by_email(users, email):
            raise DuplicateEmail("User already exists with this email", details={"field": "email"})

        now = self.clock.now()
        user = User(
            email=email,
            full_name=name,
            password_hash=_hash(password, self.settings.BCRYPT_ROUNDS),
            role=role,
            created_at=now,
            updated_at=now,
            last_login_at=now,
        )
        if role == Role.EMPLOYEE:
            user.coupon_code = self._new_coupon_code(name, users)

        users.append(user)
        self._save(users)
        self._start_session(user)
        self.audit.record("USER_SIGNUP", user.id, {"role": role.value, "email": email})
        logger.info("user signed up", extra={"user_id": user.id, "role": role.value})
        return user

    def sign_in(self, email: str, password: str) -> User:
        try:
            return self._sign_in(email, password)
        except LegalLetterError:
            raise
        except Exception as e:
            logger.exception("sign-in failed")
            raise SignInFailed("An unexpected error occurred during signin") from e

    def _sign_in(self, email, password) -> User:
        validate_email((email or "").strip())
        if not password or not password.strip():
            raise ValidationError("Password is required", "password", code="MISSING_PASSWORD")

        user = self._find_by_email(self._load(), email)
        if not user or not user.is_active or not _verify(password, user.password_hash):
            raise AuthenticationError("Invalid credentials or account deactivated", code="INVALID_CREDENTIALS")
        if self.settings.REQUIRE_EMAIL_VERIFICATION and not user.email_verified:
            raise AuthenticationError("Email not verified", code="EMAIL_NOT_VERIFIED")

        now = self.clock.now()
        user = self._replace(user.model_copy(update={"last_login_at": now, "updated_at": now}))
        self._start_session(user)
        self.audit.record("USER_SIGNIN", user.id, {"email": user.email})
        return user

    def sign_out(self) -> None:
        current = self.kv.get_json(CURRENT_USER_KEY)
        self._clear_session()
        if current:
            self.audit.record("USER_SIGNOUT", current.get("id"))

    def get_current_user(self) -> Optional[User]:
        """Session user, or None. Expiry is checked lazily on every call."""
        session = self.kv.get_json(CURRENT_USER_KEY)
        if not session:
            return None
        last = self.kv.get_json(LAST_LOGIN_KEY)
        timeout = timedelta(hours=self.settings.SESSION_TIMEOUT_HOURS)
        if not last or self.clock.now() - datetime.fromisoformat(last) > timeout:
            self._clear_session()
            self.audit.record("SESSION_EXPIRED", session.get("id"))
            return None
        user = self.get_user(session.get("id"))
        if not user or not user.is_active:
            self._clear_session()
            self.audit.record("USER_SIGNOUT", session.get("id"), {"reason": "inactive"})
            return None
        return user

    def require_user(self, *roles: Role) -> User:
        user = self.get_current_user()
        if not user:
            raise AuthenticationError("User not authenticated")
        if roles and user.role not in roles:
            raise AuthorizationError(
                f"Requires role: {', '.join(r.value for r in roles)}", code="INSUFFICIENT_PERMISSIONS"
            )
        return user

    # ---- mutations used by other stores / admin ----
    def credit_employee(self, employee_id: str, amount: float) -> User:
        """Add one referral and ``amount`` commission to an employee."""
        try:
            if amount < 0:
                raise ValidationError("Commission cannot be negative", "amount")
            emp = self.get_user(employee_id)
            if not emp or emp.role != Role.EMPLOYEE:
                raise NotFound("Employee not found", details={"employee_id": employee_id})
            emp = self._replace(emp.model_copy(update={
                "referrals": emp.referrals + 1,
                "earnings": round(emp.earnings + amount, 2),
                "updated_at": self.clock.now(),
            }))
        except LegalLetterError:
            raise
        except Exception as e:
            logger.exception("crediting employee %s failed", employee_id)
            raise CreditFailed("Failed to credit employee") from e
        self.audit.record("EMPLOYEE_EARNINGS_UPDATED", emp.id, {"earnings": amount, "totalEarnings": emp.earnings})
        return emp

    def verify_email(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFound("User not found", details={"user_id": user_id})
        if user.email_verified:
            return user
        user = self._replace(user.model_copy(update={"email_verified": True, "updated_at": self.clock.now()}))
        self.audit.record("EMAIL_VERIFIED", user.id)
        return user

    def set_active(self, user_id: str, active: bool) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFound("User not found", details={"user_id": user_id})
        user = self._replace(user.model_copy(update={"is_active": active, "updated_at": self.clock.now()}))
        self.audit.record("USER_STATUS_CHANGED", user.id, {"is_active": active})
        return user

    def seed_user(self, email: str, password: str, full_name: str, role: Role = Role.USER,
                  coupon_code: Optional[str] = None, referrals: int = 0, earnings: float = 0.0) -> User:
        """Create a demo account without touching the session. Returns the existing one if present."""
        users = self._load()
        existing = self._find_by_email(users, email)
        if existing:
            return existing
        now = self.clock.now()
        user = User(
            email=email.strip().lower(),
            full_name=full_name,
            password_hash=_hash(password, self.settings.BCRYPT_ROUNDS),
            role=role,
            email_verified=True,
            created_at=now,
            updated_at=now,
            referrals=referrals,
            earnings=earnings,
        )
        if role == Role.EMPLOYEE:
            user.coupon_code = (coupon_code or self._new_coupon_code(full_name, users)).upper()
        users.append(user)
        self._save(users)
        return user
