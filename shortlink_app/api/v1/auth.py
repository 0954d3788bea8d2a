from fastapi import APIRouter, Depends, status

from shortlink_app.dependencies import get_auth_service, get_current_user
from shortlink_app.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    ProfileResponse,
    SignupRequest,
)
from shortlink_app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create an account and return an access/refresh token pair"""
    return await auth_service.signup(payload.email, payload.password)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.login(payload.email, payload.password)


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """The caller's account; a token for a since-removed user is a 404"""
    return await auth_service.get_user(user.id)
