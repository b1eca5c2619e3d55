"""
Pydantic models for user data.

Defines schemas for registering users, updating profiles, logging in
and reading user information.  Passwords only ever travel inwards;
``UserRead`` never exposes the stored digest.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 6


class Role(str, Enum):
    STANDARD = "STANDARD"
    ADMIN = "ADMIN"


class UserBase(BaseModel):
    email: str = Field(..., max_length=254, examples=["ash@example.com"])
    first_name: Optional[str] = Field(None, max_length=100, examples=["Ash"])
    last_name: Optional[str] = Field(None, max_length=100, examples=["Ketchum"])

    @field_validator("email")
    @classmethod
    def email_format(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("must be a valid e-mail address")
        return value


class UserCreate(UserBase):
    """Schema for registering a user.

    There is deliberately no ``role`` field: unknown keys are ignored,
    so a client cannot register itself as an administrator.
    """

    username: str = Field(..., min_length=1, max_length=50, examples=["ash"])
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128, examples=["pikachu123"])

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserUpdate(UserBase):
    """Schema for updating a user's profile.

    Names and e‑mail are overwritten.  ``password`` is only changed
    when a non-empty value is supplied.
    """

    password: Optional[str] = Field(None, max_length=128)

    @field_validator("password")
    @classmethod
    def password_length(cls, value: Optional[str]) -> Optional[str]:
        if value and len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"must be at least {PASSWORD_MIN_LENGTH} characters")
        return value


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    username: str
    role: Role = Role.STANDARD
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, examples=["ash"])
    password: str = Field(..., examples=["pikachu123"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
