"""
Pydantic schemas for user and authentication request/response validation.
"""

from datetime import datetime
from typing import Annotated, Optional
from pydantic import BaseModel, EmailStr, Field

# bcrypt only looks at the first 72 bytes of a password
Password = Annotated[str, Field(min_length=8, max_length=72)]


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: Password
    phone: Optional[str] = Field(None, max_length=20)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    avatar: Optional[str] = Field(None, max_length=255)


class PasswordChange(BaseModel):
    current_password: str
    new_password: Password


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: Password


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str]
    avatar: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthPayload(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
