from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from legalletter.auth.models import Role
from legalletter.auth.schemas import UserOut
from legalletter.container import Services
from legalletter.shared.http import get_services, ok

router = APIRouter(prefix="/admin", tags=["Admin"])
employee_router = APIRouter(prefix="/employees", tags=["Employees"])

class ActiveIn(BaseModel):
    active: bool

@employee_router.get("/me")
async def api_employee_me(svc: Services = Depends(get_services)):
    emp = svc.identity.require_user(Role.EMPLOYEE)
    return ok(svc.metrics.employee_summary(emp.id))

@router.get("/metrics")
async def api_metrics(svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    # degraded report instead of a 500 when a store read fails
    return ok(svc.metrics.health_check())

@router.get("/users")
async def api_users(svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    return ok([UserOut.model_validate(u).model_dump(mode="json") for u in svc.identity.list_users()])

@router.post("/users/{user_id}/active")
async def api_set_active(user_id: str, inb: ActiveIn, svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    user = svc.identity.set_active(user_id, inb.active)
    return ok(UserOut.model_validate(user).model_dump(mode="json"))

@router.get("/letters")
async def api_letters(svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    return ok([l.model_dump(mode="json") for l in svc.letters.list_all_letters()])

@router.get("/subscriptions")
async def api_subscriptions(svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    return ok([s.model_dump(mode="json") for s in svc.subscriptions.list_all_subscriptions()])

@router.get("/activities")
async def api_activities(
    limit: int = Query(100, ge=1, le=1000),
    svc: Services = Depends(get_services),
):
    svc.identity.require_user(Role.ADMIN)
    items = svc.audit.entries()[-limit:]
    return ok([a.model_dump(mode="json") for a in reversed(items)])

@router.get("/export")
async def api_export(svc: Services = Depends(get_services)):
    svc.identity.require_user(Role.ADMIN)
    return ok(svc.metrics.export_data())
