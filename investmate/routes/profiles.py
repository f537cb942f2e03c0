"""
Profile updates and the public startup directory.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from investmate.db import INVESTOR, STARTUP, DbClient, StartupFilter
from investmate.dependencies import get_db_client, require_role
from investmate.security import SessionClaims

router = APIRouter(tags=["profiles"])


def _apply_update(db: DbClient, role: str, user_id: str, updates: dict) -> dict:
    profile = db.update_profile(role, user_id, updates)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"{role.capitalize()} not found")
    return profile


@router.patch("/startup/profile")
def update_startup_profile(
    updates: dict = Body(...),
    session: SessionClaims = Depends(require_role(STARTUP)),
    db: DbClient = Depends(get_db_client),
):
    """Merge a partial update into the caller's startup profile."""
    return _apply_update(db, STARTUP, session.user_id, updates)


@router.patch("/investor/profile")
def update_investor_profile(
    updates: dict = Body(...),
    session: SessionClaims = Depends(require_role(INVESTOR)),
    db: DbClient = Depends(get_db_client),
):
    """Merge a partial update into the caller's investor profile."""
    return _apply_update(db, INVESTOR, session.user_id, updates)


@router.get("/startups")
def list_startups(
    response: Response,
    industry: Optional[str] = Query(None),
    stage: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    filters = StartupFilter(
        industry=industry, stage=stage, location=location, search=search
    )
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return db.list_startups(filters)
