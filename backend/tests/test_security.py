"""
Tests for password hashing and access tokens.
"""

from datetime import timedelta

import jwt
import pytest

from eventflow.core.config import get_settings
from eventflow.core.exceptions import ForbiddenError
from eventflow.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    Identity,
    require_role,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_verify_against_garbage_hash():
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_token_carries_identity():
    token = create_access_token(user_id=42, email="fan@example.com", role="admin")
    identity = decode_access_token(token)
    assert identity.user_id == 42
    assert identity.email == "fan@example.com"
    assert identity.is_admin


def test_expired_token_rejected():
    token = create_access_token(
        user_id=1, email="fan@example.com", role="user", expires_delta=timedelta(seconds=-5)
    )
    assert decode_access_token(token) is None


def test_tampered_token_rejected():
    token = create_access_token(user_id=1, email="fan@example.com", role="user")
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[::-1]])
    assert decode_access_token(forged) is None
    assert decode_access_token("not.a.token") is None


def test_token_signed_with_other_key_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "1", "role": "admin", "exp": 4102444800},
        "some-other-key",
        algorithm=settings.ALGORITHM,
    )
    assert decode_access_token(token) is None


def test_token_without_subject_rejected():
    settings = get_settings()
    token = jwt.encode({"role": "admin", "exp": 4102444800}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert decode_access_token(token) is None


def test_reset_tokens_are_stored_hashed():
    token = generate_reset_token()
    assert len(token) == 64
    assert hash_token(token) == hash_token(token)
    assert hash_token(token) != token
    assert generate_reset_token() != token


@pytest.mark.asyncio
async def test_require_role():
    admins_only = require_role("admin")
    admin = Identity(user_id=1, email="admin@example.com", role="admin")
    user = Identity(user_id=2, email="fan@example.com", role="user")

    assert await admins_only(identity=admin) is admin
    with pytest.raises(ForbiddenError):
        await admins_only(identity=user)

    assert await require_role("admin", "user")(identity=user) is user
