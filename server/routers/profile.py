"""Business profile routes."""

from fastapi import APIRouter, Depends

from core.container import container
from middleware.auth import current_user_id
from models.api import ProfileCreate, ProfileUpdate
from services.business_profile import BusinessProfileService

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("")
async def get_profile(
    user_id: str = Depends(current_user_id),
    profiles: BusinessProfileService = Depends(lambda: container.business_profile_service())
):
    profile = await profiles.get(user_id)
    return {"success": True, "data": profile.to_dict()}


@router.post("", status_code=201)
async def create_profile(
    request: ProfileCreate,
    user_id: str = Depends(current_user_id),
    profiles: BusinessProfileService = Depends(lambda: container.business_profile_service())
):
    profile = await profiles.create(user_id, request.changes())
    return {"success": True, "data": profile.to_dict()}


@router.put("")
async def update_profile(
    request: ProfileUpdate,
    user_id: str = Depends(current_user_id),
    profiles: BusinessProfileService = Depends(lambda: container.business_profile_service())
):
    profile = await profiles.update(user_id, request.changes())
    return {"success": True, "data": profile.to_dict()}
