from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse

from legalletter.container import Services, build_services
from legalletter.seed import seed_demo_data
from legalletter.shared.config import settings
from legalletter.shared.errors import LegalLetterError
from legalletter.shared.http import get_services, legalletter_error_handler
from legalletter.shared.logger import setup_logging

# Routers Import
from legalletter.auth.api import router as auth_router
from legalletter.letters.api import router as letters_router
from legalletter.subscriptions.api import router as subscriptions_router
from legalletter.admin.api import router as admin_router, employee_router

TAGS_METADATA = [
    {"name": "Auth", "description": "Sign up, sign in, session"},
    {"name": "Letters", "description": "Request, poll, download legal letters"},
    {"name": "Subscriptions", "description": "Plans, coupons, checkout"},
    {"name": "Employees", "description": "Coupon code and commission"},
    {"name": "Admin", "description": "Aggregate metrics and data export"},
    {"name": "Health", "description": "Service health"},
]

def create_app(services: Services | None = None) -> FastAPI:
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    if services is None:
        services = build_services(settings)
    if services.settings.SEED_DEMO_DATA:
        seed_demo_data(services)

    app = FastAPI(
        title="LegalLetter",
        version="0.1.0",
        description="Legal letter requests, subscriptions and referral commissions.",
        openapi_tags=TAGS_METADATA,
    )
    app.state.services = services
    app.add_exception_handler(LegalLetterError, legalletter_error_handler)

    # ---- DEV-ONLY error handler (shows unexpected errors in Swagger) ----
    if services.settings.ENV == "dev":
        @app.exception_handler(Exception)
        async def _dev_ex_handler(request: Request, exc: Exception):
            return JSONResponse(status_code=500, content={"ok": False, "error": {"code": "INTERNAL", "message": str(exc)}})

    @app.get("/healthz", tags=["Health"])
    async def healthz(svc: Services = Depends(get_services)):
        return svc.metrics.health_check()

    # Routers
    app.include_router(auth_router)
    app.include_router(letters_router)
    app.include_router(subscriptions_router)
    app.include_router(employee_router)
    app.include_router(admin_router)
    return app
