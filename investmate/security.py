"""
Password hashing and signed session tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

import bcrypt
import jwt

from investmate.config import Settings
from investmate.db import INVESTOR, STARTUP

GENERIC_COOKIE = "token"
ROLE_COOKIES = {
    STARTUP: "startup_token",
    INVESTOR: "investor_token",
}

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


class InvalidTokenError(Exception):
    """Raised when a session token is missing claims, tampered with or expired."""


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    role: str


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def cookie_name_for_role(role: str) -> str:
    return ROLE_COOKIES.get(role, GENERIC_COOKIE)


def create_session_token(
    settings: Settings, *, user_id: str, email: str, role: str
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=settings.session_max_age_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(settings: Settings, token: str) -> SessionClaims:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Session expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError("Invalid token") from e

    user_id = payload.get("userId")
    role = payload.get("role")
    if not user_id or not role:
        raise InvalidTokenError("Invalid token")
    return SessionClaims(user_id=str(user_id), email=payload.get("email", ""), role=role)


def read_session_token(
    cookies: Mapping[str, str], role: Optional[str] = None
) -> Optional[str]:
    """
    Pick the session cookie for a role, falling back to the generic cookie.

    Without a role, the startup cookie wins over the investor cookie.
    """
    if role in ROLE_COOKIES:
        names = (ROLE_COOKIES[role], GENERIC_COOKIE)
    else:
        names = (ROLE_COOKIES[STARTUP], ROLE_COOKIES[INVESTOR], GENERIC_COOKIE)
    for name in names:
        token = cookies.get(name)
        if token:
            return token
    return None
