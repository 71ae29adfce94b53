from fastapi import Request
from fastapi.responses import JSONResponse
from typing import Any

from legalletter.container import Services
from legalletter.shared.errors import (
    AuthenticationError, AuthorizationError, DuplicateEmail, InvalidPlan, LegalLetterError,
    NoSubscription, NotFound, QuotaExceeded, ValidationError,
)

# most specific first
STATUS_BY_ERROR: list[tuple[type, int]] = [
    (ValidationError, 400),
    (InvalidPlan, 400),
    (DuplicateEmail, 409),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NoSubscription, 402),
    (QuotaExceeded, 402),
    (NotFound, 404),
]

def ok(data: Any = None, **extra):
    return {"ok": True, "data": data, **extra}

def status_for(exc: LegalLetterError) -> int:
    return next((status for cls, status in STATUS_BY_ERROR if isinstance(exc, cls)), 500)

async def legalletter_error_handler(request: Request, exc: LegalLetterError):
    return JSONResponse(status_code=status_for(exc), content={"ok": False, "error": exc.to_dict()})

# FastAPI dep
def get_services(request: Request) -> Services:
    return request.app.state.services
