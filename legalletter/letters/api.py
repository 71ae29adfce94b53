from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from legalletter.auth.models import Role
from legalletter.container import Services
from legalletter.shared.errors import NotFound
from legalletter.shared.http import get_services, ok

router = APIRouter(prefix="/letters", tags=["Letters"])

class LetterCreateIn(BaseModel):
    sender_name: str = Field(default="", max_length=200)
    sender_address: str = Field(default="", max_length=500)
    recipient_name: str = Field(default="", max_length=200)
    recipient_address: str = Field(default="", max_length=500)
    matter: str = Field(default="", max_length=500)
    resolution: str = Field(default="", max_length=5000)

@router.post("", status_code=202)
async def api_create_letter(inb: LetterCreateIn, svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    letter = svc.letters.create_letter(user.id, **inb.model_dump())
    return ok(letter.model_dump(mode="json"))

@router.get("")
async def api_list_letters(svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    items = svc.letters.list_letters_for_user(user.id)
    return ok({"items": [l.model_dump(mode="json") for l in items]})

@router.get("/{letter_id}")
async def api_get_letter(letter_id: str, svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    letter = svc.letters.get_letter(letter_id)
    if not letter or letter.is_deleted or (letter.user_id != user.id and user.role != Role.ADMIN):
        raise NotFound("Letter not found")
    return ok(letter.model_dump(mode="json"))

@router.post("/{letter_id}/download")
async def api_download_letter(letter_id: str, svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    letter = svc.letters.download_letter(user.id, letter_id)
    return ok({"id": letter.id, "filename": f"legal-letter-{letter.id[:8]}.txt", "content": letter.content})

@router.delete("/{letter_id}", status_code=204)
async def api_delete_letter(letter_id: str, svc: Services = Depends(get_services)):
    user = svc.identity.require_user()
    svc.letters.delete_letter(user.id, letter_id)
    return
