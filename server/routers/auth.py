"""Authentication routes for user registration, login and the current user."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr

from core.container import container
from core.exceptions import AuthenticationError
from services.user_auth import UserAuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


def get_user_auth_service() -> UserAuthService:
    return container.user_auth_service()


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    user = await user_auth.register(email=request.email, password=request.password)
    token = user_auth.create_access_token(user)
    return {"success": True, "data": {"token": token, "user": user.to_public()}}


@router.post("/login")
async def login(
    request: LoginRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    user = await user_auth.login(email=request.email, password=request.password)
    token = user_auth.create_access_token(user)
    return {"success": True, "data": {"token": token, "user": user.to_public()}}


@router.get("/me")
async def get_current_user(
    request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Get the user the bearer token belongs to."""
    user = await user_auth.get_user_by_id(request.state.user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User no longer exists", code="UNAUTHORIZED")
    return {"success": True, "data": user.to_public()}
