"""Error kinds raised by the stores.

Callers branch on the class (or on ``code``); the HTTP layer maps each class to a
status in ``legalletter.shared.http``.
"""
from typing import Any, Optional


class LegalLetterError(Exception):
    code: str = "LEGALLETTER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(LegalLetterError):
    code = "INVALID_INPUT"

    def __init__(self, message: str, field: str, code: Optional[str] = None):
        super().__init__(message, code=code, details={"field": field})
        self.field = field


class DuplicateEmail(LegalLetterError):
    code = "USER_EXISTS"


class AuthenticationError(LegalLetterError):
    code = "NOT_AUTHENTICATED"


class AuthorizationError(LegalLetterError):
    code = "FORBIDDEN"


class NoSubscription(LegalLetterError):
    code = "NO_SUBSCRIPTION"


class QuotaExceeded(LegalLetterError):
    code = "LIMIT_EXCEEDED"


class InvalidPlan(LegalLetterError):
    code = "INVALID_PLAN"


class NotFound(LegalLetterError):
    code = "NOT_FOUND"


# catch-alls: unexpected internal failures get wrapped in one of these
class OperationFailed(LegalLetterError):
    code = "OPERATION_FAILED"


class SignUpFailed(OperationFailed):
    code = "SIGNUP_FAILED"


class SignInFailed(OperationFailed):
    code = "SIGNIN_FAILED"


class CreationFailed(OperationFailed):
    code = "CREATION_FAILED"


class SubscriptionFailed(OperationFailed):
    code = "SUBSCRIPTION_FAILED"


class CreditFailed(OperationFailed):
    code = "CREDIT_FAILED"
