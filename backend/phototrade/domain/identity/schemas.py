"""Pydantic schemas for registration and login."""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]{3,30}$"


class RegisterRequest(BaseModel):
	username: Annotated[str, Field(pattern=USERNAME_PATTERN)]
	email: EmailStr
	password: Annotated[str, Field(min_length=6, max_length=256)]


class LoginRequest(BaseModel):
	username: Annotated[str, Field(min_length=1, max_length=30)]
	password: str


class UserOut(BaseModel):
	id: UUID
	username: str
	email: str


class AuthResponse(BaseModel):
	token: str
	token_type: Literal["bearer"] = "bearer"
	user: UserOut
