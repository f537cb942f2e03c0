"""
Registration, login/logout and account routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from investmate.config import Settings, get_settings
from investmate.db import (
    INVESTOR,
    ROLES,
    STARTUP,
    DbClient,
    DuplicateEmailError,
    strip_protected_fields,
)
from investmate.dependencies import get_db_client, get_session
from investmate.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    SessionUser,
)
from investmate.security import (
    SessionClaims,
    cookie_name_for_role,
    create_session_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _initial_profile(payload: RegisterRequest) -> dict:
    fields = strip_protected_fields(payload.profile_fields())
    if payload.role == STARTUP:
        defaults = {
            "startupName": payload.name,
            "tagline": "No tagline",
            "founderName": payload.name,
            "problem": "To be updated",
            "solution": "To be updated",
        }
    else:
        if "sectors" in fields and "preferredSectors" not in fields:
            fields["preferredSectors"] = fields.pop("sectors")
        defaults = {"fullName": payload.name}

    for key, value in defaults.items():
        if _is_blank(fields.get(key)):
            fields[key] = value
    return fields


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    payload: RegisterRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    email = _normalize_email(payload.email)
    if db.get_user_by_email(email):
        raise HTTPException(status_code=400, detail="User already exists")

    password_hash = hash_password(payload.password, settings.password_hash_rounds)
    try:
        user = db.create_user(payload.name, email, password_hash, payload.role)
    except DuplicateEmailError:
        raise HTTPException(status_code=400, detail="User already exists")

    db.create_profile(payload.role, user.user_id, _initial_profile(payload))
    logger.info("Registered %s user %s", payload.role, user.user_id)
    return RegisterResponse(message="User registered successfully", userId=user.user_id)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    user = db.get_user_by_email(_normalize_email(payload.email))
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_session_token(
        settings, user_id=user.user_id, email=user.email, role=user.role
    )
    # One cookie per role; both roles may be signed in at once.
    response.set_cookie(
        cookie_name_for_role(user.role),
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return LoginResponse(
        message="Login successful",
        user=SessionUser(
            id=user.user_id, name=user.name, email=user.email, role=user.role
        ),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, role: str = Query(STARTUP)):
    cookie_name = cookie_name_for_role(INVESTOR if role == INVESTOR else STARTUP)
    response.delete_cookie(cookie_name, httponly=True)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
def me(
    session: SessionClaims = Depends(get_session),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(session.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    profile = db.get_profile(user.role, user.user_id) if user.role in ROLES else None
    return MeResponse(user=user.as_dict(), profile=profile)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    session: SessionClaims = Depends(get_session),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    if not payload.currentPassword or not payload.newPassword:
        raise HTTPException(
            status_code=400, detail="Current and new passwords are required"
        )
    if len(payload.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    user = db.get_user(session.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(payload.currentPassword, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    db.update_user_password(
        user.user_id, hash_password(payload.newPassword, settings.password_hash_rounds)
    )
    logger.info("Password changed for user %s", user.user_id)
    return MessageResponse(message="Password changed successfully")
