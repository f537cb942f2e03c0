"""
Profile and cover image uploads to the media host.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from investmate.config import Settings, get_settings
from investmate.db import DbClient
from investmate.dependencies import authenticate, get_db_client, get_media_client
from investmate.media import MediaClient, to_data_uri
from investmate.schemas import UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")

MAX_BYTES = {
    "profile": 2 * 1024 * 1024,
    "cover": 5 * 1024 * 1024,
}

TRANSFORMATIONS = {
    "cover": [
        {"width": 800, "height": 300, "crop": "fill"},
        {"quality": "auto", "fetch_format": "auto"},
    ],
    "profile": [
        {"width": 200, "height": 200, "crop": "fill", "gravity": "face"},
        {"quality": "auto", "fetch_format": "auto"},
    ],
}

PROFILE_FIELDS = {
    "cover": "coverImage",
    "profile": "profilePicture",
}


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    request: Request,
    file: Optional[UploadFile] = File(None),
    image_type: str = Form("profile", alias="type"),
    role: Optional[str] = Form(None),
    db: DbClient = Depends(get_db_client),
    media: MediaClient = Depends(get_media_client),
    settings: Settings = Depends(get_settings),
):
    session = authenticate(request.cookies, settings, requested_role=role or None)

    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if image_type not in MAX_BYTES:
        raise HTTPException(status_code=400, detail="Image type must be profile or cover")
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only JPEG, PNG, and WebP are allowed.",
        )

    max_bytes = MAX_BYTES[image_type]
    too_large = HTTPException(
        status_code=400,
        detail=f"File size exceeds {max_bytes // (1024 * 1024)}MB limit",
    )
    if file.size is not None and file.size > max_bytes:
        raise too_large
    # Read one byte past the cap so oversized bodies are never loaded whole.
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise too_large

    image_url = await run_in_threadpool(
        media.upload_image,
        to_data_uri(content, file.content_type),
        folder=f"investmate/{session.role}s/{image_type}",
        transformation=TRANSFORMATIONS[image_type],
    )
    db.update_profile(
        session.role, session.user_id, {PROFILE_FIELDS[image_type]: image_url}
    )
    logger.info("Stored %s image for user %s", image_type, session.user_id)

    return UploadResponse(
        message="Image uploaded successfully", imageUrl=image_url, type=image_type
    )
