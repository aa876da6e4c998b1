"""
Token issuance, password hashing and the request identity dependencies.

Tokens are HS256 JWTs carrying the user id (`sub`), email and role with an
`exp` claim. Any token that is missing, malformed, tampered with or expired
yields the same 401 so callers learn nothing about why it was rejected.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eventflow.core.config import get_settings
from eventflow.core.exceptions import AuthenticationError, ForbiddenError
from eventflow.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

UNAUTHORIZED_MESSAGE = "Not authorized to access this route"


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Identity]:
    """Return the identity a token carries, or None if it is not acceptable."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
        return Identity(
            user_id=int(payload["sub"]),
            email=payload.get("email", ""),
            role=payload.get("role", "user"),
        )
    except jwt.ExpiredSignatureError:
        logger.info("token_expired")
    except (jwt.PyJWTError, KeyError, ValueError, TypeError):
        logger.info("token_invalid")
    return None


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def authenticate(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[Identity]:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        return None
    return decode_access_token(credentials.credentials)


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    """Identity for public routes that render differently for signed-in users."""
    return authenticate(credentials)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    identity = authenticate(credentials)
    if identity is None:
        raise AuthenticationError(UNAUTHORIZED_MESSAGE)
    return identity


def require_role(*roles: str):
    """Dependency factory restricting a route to the given roles."""

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            raise ForbiddenError("You do not have permission to perform this action")
        return identity

    return dependency
