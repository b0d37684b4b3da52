"""Admin console login."""

from __future__ import annotations

import secrets

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...schemas.auth import LoginRequest, LoginResponse, LoginUserModel

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(payload: LoginRequest) -> LoginResponse:
    if not payload.username or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing username or password")

    if not settings.admin_username or not settings.admin_password:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server misconfiguration")

    username_ok = secrets.compare_digest(payload.username, settings.admin_username)
    password_ok = secrets.compare_digest(payload.password, settings.admin_password)
    if not (username_ok and password_ok):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return LoginResponse(ok=True, user=LoginUserModel(username=settings.admin_username, role="admin"))
