"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Mapping, Optional

from fastapi import Depends, HTTPException, Query, Request

from investmate.ai_client import AiClient
from investmate.config import Settings, get_settings
from investmate.db import DbClient, InMemoryDbClient, PostgresDbClient
from investmate.media import (
    CloudinaryMediaClient,
    InMemoryMediaClient,
    MediaClient,
    S3MediaClient,
    cloudinary_configured,
)
from investmate.security import (
    InvalidTokenError,
    SessionClaims,
    decode_session_token,
    read_session_token,
)

_db_client: DbClient | None = None
_media_client: MediaClient | None = None
_ai_client: AiClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_media_client() -> MediaClient:
    global _media_client
    if _media_client:
        return _media_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _media_client = InMemoryMediaClient()
    elif settings.cloudinary_cloud_name:
        _media_client = CloudinaryMediaClient(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key or "",
            api_secret=settings.cloudinary_api_secret or "",
            timeout=settings.media_timeout_seconds,
        )
    elif cloudinary_configured():
        _media_client = CloudinaryMediaClient(timeout=settings.media_timeout_seconds)
    elif settings.media_bucket:
        _media_client = S3MediaClient(
            bucket=settings.media_bucket,
            region=settings.media_region or "",
            endpoint=settings.media_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.media_public_base_url,
        )
    else:
        _media_client = InMemoryMediaClient()
    return _media_client


def get_ai_client() -> AiClient:
    global _ai_client
    if _ai_client:
        return _ai_client

    settings = get_settings()
    _ai_client = AiClient(settings.ai_api_url, timeout=settings.ai_timeout_seconds)
    return _ai_client


def authenticate(
    cookies: Mapping[str, str],
    settings: Settings,
    *,
    requested_role: Optional[str] = None,
    required_role: Optional[str] = None,
) -> SessionClaims:
    """
    Resolve the caller's session from cookies.

    Raises 401 for a missing/invalid token or a token whose role differs from
    ``requested_role``, and 403 when the role differs from ``required_role``.
    """
    token = read_session_token(cookies, required_role or requested_role)
    if not token and required_role:
        # Signed in under the other role: answer 403 rather than 401.
        token = read_session_token(cookies)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        claims = decode_session_token(settings, token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    if requested_role and claims.role != requested_role:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if required_role and claims.role != required_role:
        raise HTTPException(
            status_code=403, detail=f"Only {required_role}s can use this feature"
        )
    return claims


def require_role(role: str):
    """Dependency factory gating an endpoint to a single role."""

    def dependency(
        request: Request, settings: Settings = Depends(get_settings)
    ) -> SessionClaims:
        return authenticate(request.cookies, settings, required_role=role)

    return dependency


def get_session(
    request: Request,
    role: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
) -> SessionClaims:
    """Session for role-agnostic endpoints; ``?role=`` selects the cookie."""
    return authenticate(request.cookies, settings, requested_role=role)
