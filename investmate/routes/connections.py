"""
Investor interest ("connections") in startups.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from investmate.db import (
    INVESTOR,
    STARTUP,
    ConnectionRecord,
    ConnectionStatus,
    DbClient,
    DuplicateConnectionError,
)
from investmate.dependencies import get_db_client, get_session, require_role
from investmate.schemas import CreateConnectionRequest, UpdateConnectionRequest
from investmate.security import SessionClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])

_STARTUP_REF_FIELDS = (
    "_id",
    "startupName",
    "tagline",
    "industry",
    "stage",
    "location",
    "profilePicture",
)
_INVESTOR_REF_FIELDS = (
    "_id",
    "fullName",
    "firm",
    "preferredSectors",
    "location",
    "profilePicture",
)


def _populate(db: DbClient, record: ConnectionRecord, role: str) -> dict:
    """Replace the counterpart's id with a short summary of its profile."""
    doc = record.as_dict()
    if role == STARTUP:
        key, profile_id, fields = "startupId", record.startup_id, _STARTUP_REF_FIELDS
    else:
        key, profile_id, fields = "investorId", record.investor_id, _INVESTOR_REF_FIELDS
    profile = db.get_profile_by_id(role, profile_id)
    if profile:
        doc[key] = {field: profile.get(field) for field in fields}
    return doc


def _own_profile(db: DbClient, role: str, user_id: str) -> dict:
    profile = db.get_profile(role, user_id)
    if not profile:
        raise HTTPException(
            status_code=404, detail=f"{role.capitalize()} profile not found"
        )
    return profile


@router.get("")
def list_connections(
    session: SessionClaims = Depends(get_session),
    db: DbClient = Depends(get_db_client),
):
    if session.role not in (STARTUP, INVESTOR):
        return []
    profile = db.get_profile(session.role, session.user_id)
    if not profile:
        return []

    if session.role == INVESTOR:
        records = db.list_connections(investor_id=profile["_id"])
        return [_populate(db, r, STARTUP) for r in records]
    records = db.list_connections(startup_id=profile["_id"])
    return [_populate(db, r, INVESTOR) for r in records]


@router.post("", status_code=201)
def create_connection(
    payload: CreateConnectionRequest,
    session: SessionClaims = Depends(require_role(INVESTOR)),
    db: DbClient = Depends(get_db_client),
):
    investor = _own_profile(db, INVESTOR, session.user_id)
    startup = db.get_profile_by_id(STARTUP, payload.startupId)
    if not startup:
        raise HTTPException(status_code=404, detail="Startup not found")

    try:
        record = db.create_connection(investor["_id"], startup["_id"], payload.message)
    except DuplicateConnectionError:
        raise HTTPException(status_code=400, detail="Interest already expressed")

    logger.info("Investor %s expressed interest in %s", investor["_id"], startup["_id"])
    return _populate(db, record, STARTUP)


@router.patch("/{connection_id}")
def update_connection(
    connection_id: str,
    payload: UpdateConnectionRequest,
    session: SessionClaims = Depends(require_role(STARTUP)),
    db: DbClient = Depends(get_db_client),
):
    try:
        status = ConnectionStatus(payload.status)
    except ValueError:
        status = None
    if status not in (ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED):
        raise HTTPException(
            status_code=400, detail="Status must be 'accepted' or 'rejected'"
        )

    startup = _own_profile(db, STARTUP, session.user_id)
    record = db.get_connection(connection_id)
    if not record:
        raise HTTPException(status_code=404, detail="Connection not found")
    if record.startup_id != startup["_id"]:
        raise HTTPException(
            status_code=403, detail="Connection belongs to another startup"
        )

    updated = db.update_connection_status(connection_id, status)
    return _populate(db, updated, INVESTOR)
