"""
Authentication endpoints: registration, login, profile and password flows.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.security import Identity, get_current_identity
from eventflow.db.session import get_db
from eventflow.schemas.common import Envelope, ok
from eventflow.schemas.user import (
    AuthPayload,
    ForgotPasswordRequest,
    PasswordChange,
    ResetPasswordRequest,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)
from eventflow.services import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_payload(user) -> AuthPayload:
    return AuthPayload(user=UserResponse.model_validate(user), token=auth_service.issue_token(user))


@router.post("/register", response_model=Envelope[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user account and sign it in."""
    user = await auth_service.register_user(db, user_data)
    return ok(_auth_payload(user), "User registered successfully")


@router.post("/login", response_model=Envelope[AuthPayload])
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    user = await auth_service.authenticate_user(db, login_data)
    return ok(_auth_payload(user), "Login successful")


@router.get("/profile", response_model=Envelope[UserResponse])
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.get_user(db, identity.user_id)
    return ok(user)


@router.put("/profile", response_model=Envelope[UserResponse])
async def update_profile(
    updates: UserUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.update_profile(db, identity.user_id, updates)
    return ok(user, "Profile updated successfully")


@router.delete("/profile", response_model=Envelope[None])
async def deactivate_account(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate the caller's account. Accounts are never hard-deleted."""
    await auth_service.deactivate_account(db, identity.user_id)
    return ok(message="Account deactivated successfully")


@router.put("/change-password", response_model=Envelope[None])
async def change_password(
    payload: PasswordChange,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(
        db, identity.user_id, payload.current_password, payload.new_password
    )
    return ok(message="Password changed successfully")


@router.post("/logout", response_model=Envelope[None])
async def logout(identity: Identity = Depends(get_current_identity)):
    """Tokens are stateless; the client discards its copy."""
    return ok(message="Logged out successfully")


@router.post("/forgot-password", response_model=Envelope[None])
async def forgot_password(payload: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.request_password_reset(db, payload.email)
    return ok(message=auth_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=Envelope[None])
async def reset_password(payload: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.reset_password(db, payload.token, payload.new_password)
    return ok(message="Password reset successful")
