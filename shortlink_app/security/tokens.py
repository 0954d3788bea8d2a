"""
JWT issuance and verification (python-jose, HS256).

Access and refresh tokens carry the same identity claims and differ in their
``type`` claim and lifetime. Only access tokens authenticate API requests.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

from shortlink_app.config import settings
from shortlink_app.errors import AuthError

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenClaims(BaseModel):
    sub: str
    email: str
    type: str
    exp: int
    iat: int
    jti: Optional[str] = None


def _create_token(user_id: str, email: str, token_type: str, expires_in: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, email: str) -> str:
    return _create_token(
        user_id,
        email,
        ACCESS_TOKEN,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, email: str) -> str:
    return _create_token(
        user_id,
        email,
        REFRESH_TOKEN,
        timedelta(minutes=settings.refresh_token_expire_minutes),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> TokenClaims:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthError: token is malformed, expired, tampered with, or of the
            wrong type
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        claims = TokenClaims(**payload)
    except (JWTError, PydanticValidationError):
        raise AuthError("Invalid or expired token")

    if claims.type != expected_type:
        raise AuthError("Invalid or expired token")
    return claims
