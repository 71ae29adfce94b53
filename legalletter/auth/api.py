# legalletter/auth/api.py
from fastapi import APIRouter, Depends

from legalletter.auth.schemas import SignInIn, SignUpIn, UserOut
from legalletter.container import Services
from legalletter.shared.http import get_services, ok

router = APIRouter(prefix="/auth", tags=["Auth"])

def _out(user) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")

@router.post("/signup", status_code=201)
async def api_signup(inb: SignUpIn, svc: Services = Depends(get_services)):
    user = svc.identity.sign_up(inb.email, inb.password, inb.full_name, inb.role, inb.admin_secret)
    return ok(_out(user))

@router.post("/signin")
async def api_signin(inb: SignInIn, svc: Services = Depends(get_services)):
    user = svc.identity.sign_in(inb.email, inb.password)
    return ok(_out(user))

@router.post("/signout")
async def api_signout(svc: Services = Depends(get_services)):
    svc.identity.sign_out()
    return ok()

@router.get("/me")
async def api_me(svc: Services = Depends(get_services)):
    user = svc.identity.get_current_user()
    return ok(_out(user) if user else None)
