"""
Authentication service: registration, login, profile and password flows.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.config import get_settings
from eventflow.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from eventflow.core.logging import get_logger
from eventflow.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from eventflow.models.password_reset import PasswordReset
from eventflow.models.user import User, UserRole
from eventflow.schemas.user import UserCreate, UserLogin, UserUpdate
from eventflow.services import email_service

logger = get_logger(__name__)
settings = get_settings()

FORGOT_PASSWORD_MESSAGE = "If a user exists with this email, a reset link will be sent"


def issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, email=user.email, role=user.role)


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises 409 if the email is already registered.
    """
    email = user_data.email.lower()
    if await get_user_by_email(db, email):
        logger.warning("registration_failed", reason="email_exists")
        raise ConflictError("User already exists with this email")

    user = User(
        name=user_data.name,
        email=email,
        phone=user_data.phone,
        role=UserRole.USER,
        hashed_password=hash_password(user_data.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> User:
    """
    Check credentials and return the user.
    Unknown email and wrong password produce the same 401.
    """
    user = await get_user_by_email(db, login_data.email)

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed")
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    logger.info("user_logged_in", user_id=user.id)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def update_profile(db: AsyncSession, user_id: int, updates: UserUpdate) -> User:
    user = await get_user(db, user_id)
    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    logger.info("profile_updated", user_id=user.id)
    return user


async def change_password(db: AsyncSession, user_id: int, current_password: str, new_password: str) -> None:
    user = await get_user(db, user_id)
    if not verify_password(current_password, user.hashed_password):
        raise AuthenticationError("Current password is incorrect")
    user.hashed_password = hash_password(new_password)
    await db.flush()
    logger.info("password_changed", user_id=user.id)


async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Issue a reset token if the account exists.

    The caller always gets the same answer; whether a token was issued is
    only visible in the mailbox.
    """
    user = await get_user_by_email(db, email)
    if not user or not user.is_active:
        logger.info("password_reset_requested", issued=False)
        return

    # Only the newest token is valid
    await db.execute(delete(PasswordReset).where(PasswordReset.email == user.email))

    token = generate_reset_token()
    db.add(
        PasswordReset(
            email=user.email,
            token=hash_token(token),
            expires_at=datetime.now(timezone.utc)
            + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        )
    )
    await db.flush()

    await email_service.send_password_reset_email(user.email, token)
    logger.info("password_reset_requested", issued=True, user_id=user.id)


async def reset_password(db: AsyncSession, token: str, new_password: str) -> None:
    hashed = hash_token(token)
    result = await db.execute(
        select(PasswordReset).where(
            PasswordReset.token == hashed,
            PasswordReset.expires_at > datetime.now(timezone.utc),
        )
    )
    reset = result.scalar_one_or_none()
    if not reset:
        raise ValidationError("Invalid or expired token")

    user = await get_user_by_email(db, reset.email)
    if not user:
        raise ValidationError("Invalid or expired token")

    user.hashed_password = hash_password(new_password)
    await db.execute(delete(PasswordReset).where(PasswordReset.token == hashed))
    await db.flush()
    logger.info("password_reset_completed", user_id=user.id)


async def deactivate_account(db: AsyncSession, user_id: int) -> User:
    """Soft-delete: the row and its bookings stay, login is refused from now on."""
    user = await get_user(db, user_id)
    user.is_active = False
    await db.flush()
    await db.refresh(user)
    logger.info("account_deactivated", user_id=user.id)
    return user
