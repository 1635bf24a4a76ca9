from __future__ import annotations

import os
from typing import Optional

import jwt
from fastapi import Header

from picture_organiser.core.errors import AuthorizationError
from picture_organiser.core.models import Principal

JWT_ALG = "HS256"


def jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "change-me")


def decode_token(token: str, secret: Optional[str] = None) -> Principal:
    """Verify a bearer token and return the principal it names."""
    try:
        payload = jwt.decode(token, secret or jwt_secret(), algorithms=[JWT_ALG])
    except jwt.InvalidTokenError as exc:
        raise AuthorizationError("Invalid token") from exc
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise AuthorizationError("Invalid token")
    return Principal(user_id=str(user_id), email=payload.get("email"))


async def current_principal(authorization: Optional[str] = Header(None)) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthorizationError("Access denied. No valid token provided.")
    return decode_token(authorization.split(" ", 1)[1].strip())
