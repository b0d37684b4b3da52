"""Admin login schemas."""

from __future__ import annotations

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class LoginUserModel(BaseModel):
    username: str
    role: str


class LoginResponse(BaseModel):
    ok: bool
    user: LoginUserModel
