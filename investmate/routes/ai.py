"""
AI coaching and matchmaking routes.

The AI service is best effort: when it is down or unconfigured these routes
still answer, from static templates (coaching) or the database (matchmaking).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from investmate import coaching, matchmaking
from investmate.ai_client import (
    INVESTOR_COACH,
    MATCHMAKING_INVESTOR,
    MATCHMAKING_STARTUP,
    STARTUP_COACH,
    AiClient,
    parse_ai_response,
)
from investmate.db import INVESTOR, STARTUP, DbClient
from investmate.dependencies import get_ai_client, get_db_client, require_role
from investmate.schemas import CoachingResponse
from investmate.security import SessionClaims

router = APIRouter(prefix="/ai", tags=["ai"])


def _profile_or_404(db: DbClient, role: str, user_id: str) -> dict:
    profile = db.get_profile(role, user_id)
    if not profile:
        raise HTTPException(
            status_code=404, detail=f"{role.capitalize()} profile not found"
        )
    return profile


def _matches_payload(matches: list[dict], note: Optional[str]) -> dict:
    payload = {"success": True, "matches": matches}
    if note:
        payload["note"] = note
    return payload


@router.post("/coach/investor", response_model=CoachingResponse)
def coach_investor(
    session: SessionClaims = Depends(require_role(INVESTOR)),
    db: DbClient = Depends(get_db_client),
    ai: AiClient = Depends(get_ai_client),
):
    investor = _profile_or_404(db, INVESTOR, session.user_id)
    advice = parse_ai_response(ai.call(INVESTOR_COACH, {"investorData": investor}))
    if not advice:
        advice = coaching.investor_coaching(investor)
    return CoachingResponse(success=True, coaching=advice)


@router.post("/coach/startup", response_model=CoachingResponse)
def coach_startup(
    session: SessionClaims = Depends(require_role(STARTUP)),
    db: DbClient = Depends(get_db_client),
    ai: AiClient = Depends(get_ai_client),
):
    startup = _profile_or_404(db, STARTUP, session.user_id)
    advice = parse_ai_response(ai.call(STARTUP_COACH, {"startupData": startup}))
    if not advice:
        advice = coaching.startup_coaching(startup)
    return CoachingResponse(success=True, coaching=advice)


@router.post("/matchmaking/investor")
def matchmaking_investor(
    session: SessionClaims = Depends(require_role(INVESTOR)),
    db: DbClient = Depends(get_db_client),
    ai: AiClient = Depends(get_ai_client),
):
    investor = _profile_or_404(db, INVESTOR, session.user_id)
    answer = ai.call(MATCHMAKING_INVESTOR, {"investorData": investor})
    matches, note = matchmaking.match_for_investor(db, investor, answer)
    return _matches_payload(matches, note)


@router.post("/matchmaking/startup")
def matchmaking_startup(
    session: SessionClaims = Depends(require_role(STARTUP)),
    db: DbClient = Depends(get_db_client),
    ai: AiClient = Depends(get_ai_client),
):
    startup = _profile_or_404(db, STARTUP, session.user_id)
    answer = ai.call(MATCHMAKING_STARTUP, {"startupData": startup})
    matches, note = matchmaking.match_for_startup(db, startup, answer)
    return _matches_payload(matches, note)
