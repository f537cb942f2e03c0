"""
Pydantic schemas for the InvestMate API.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Registration payload; extra keys become profile fields."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    role: Literal["startup", "investor"]

    def profile_fields(self) -> dict:
        return dict(self.model_extra or {})


class RegisterResponse(BaseModel):
    message: str
    userId: str


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionUser(BaseModel):
    id: str
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    message: str
    user: SessionUser


class MessageResponse(BaseModel):
    message: str


class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class MeResponse(BaseModel):
    user: dict
    profile: Optional[dict] = None


class CreateConnectionRequest(BaseModel):
    startupId: str
    message: Optional[str] = Field(default=None, max_length=2000)


class UpdateConnectionRequest(BaseModel):
    status: str


class UploadResponse(BaseModel):
    message: str
    imageUrl: str
    type: Literal["profile", "cover"]


class CoachingResponse(BaseModel):
    success: bool
    coaching: Any
