from typing import Optional

from fastapi import APIRouter, Depends

from app.auth.deps import get_optional_user
from app.db import get_db
from app.deps import get_profile_store
from app.errors import ValidationError
from app.stores.profiles import ProfileStore
from app.stores.users import get_or_create_user
from models.common import ok
from models.profile import ProfileCreateRequest

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", status_code=201)
async def create_profile(
    body: ProfileCreateRequest,
    db=Depends(get_db),
    profiles: ProfileStore = Depends(get_profile_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    """Save an intake profile; the owner is the token subject, else the user behind `email`."""
    owner = user["id"] if user else await get_or_create_user(db, body.email, body.name)
    profile = await profiles.create(owner, body)
    return ok({"user_id": owner, "profile": profile.model_dump(mode="json")})


@router.get("")
async def list_profiles(
    user_id: Optional[str] = None,
    profiles: ProfileStore = Depends(get_profile_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    owner = user["id"] if user else user_id
    if not owner:
        raise ValidationError("user_id is required")
    items = await profiles.list_for_user(owner)
    return ok([p.model_dump(mode="json") for p in items], count=len(items))
