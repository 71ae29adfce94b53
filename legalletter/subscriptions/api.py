from fastapi import APIRouter, Depends
from pydantic import BaseModel

from legalletter.container import Services
from legalletter.shared.http import get_services, ok

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])

class CouponIn(BaseModel):
    code: str

class CheckoutIn(BaseModel):
    plan: str
    coupon_code: str | None = None

@router.get("/plans")
async def api_plans(svc: Services = Depends(get_services)):
    return ok([p.model_dump(mode="json") for p in svc.subscriptions.plans()])

@router.post("/coupons/check")
async def api_check_coupon(inb: CouponIn, svc: Services = Depends(get_services)):
    emp = svc.subscriptions.resolve_coupon(inb.code)
    if not emp:
        return ok({"valid": False, "discount": 0})
    return ok({"valid": True, "code": emp.coupon_code, "discount": svc.settings.COUPON_DISCOUNT_PERCENT})

@router.post("", status_code=201)
async def api_checkout(inb: CheckoutIn, svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    sub = svc.subscriptions.create_subscription(user.id, inb.plan, inb.coupon_code)
    return ok(sub.model_dump(mode="json"))

@router.get("")
async def api_my_subscriptions(svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    return ok([s.model_dump(mode="json") for s in svc.subscriptions.list_subscriptions_for_user(user.id)])

@router.get("/active")
async def api_active_subscription(svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    sub = svc.subscriptions.get_active_subscription(user.id)
    if not sub:
        return ok(None)
    return ok({**sub.model_dump(mode="json"), "letters_remaining": sub.letters_remaining})
