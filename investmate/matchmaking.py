"""
Enrich AI matchmaking answers against the database, with a database-only
fallback when the AI has nothing usable.
"""

from __future__ import annotations

import logging
from typing import Optional

from investmate.ai_client import normalize_matches
from investmate.db import INVESTOR, STARTUP, DbClient, investor_sectors

logger = logging.getLogger(__name__)

FALLBACK_LIMIT = 5
FALLBACK_NOTE = "Showing alternative matches from our database"
DEFAULT_AVATAR = "/default-avatar.png"


def _match_user_id(match: dict) -> Optional[str]:
    user_id = match.get("userId") or match.get("userid") or match.get("user_id")
    return str(user_id) if user_id else None


def _match_reason(match: dict, default: str) -> str:
    return match.get("explanation") or match.get("reason") or default


def startup_summary(startup: dict, reason: str, index: int) -> dict:
    return {
        "_id": startup["_id"],
        "type": STARTUP,
        "name": startup.get("startupName"),
        "tagline": startup.get("tagline"),
        "founderName": startup.get("founderName"),
        "industry": startup.get("industry"),
        "stage": startup.get("stage"),
        "location": startup.get("location"),
        "profilePicture": startup.get("profilePicture") or DEFAULT_AVATAR,
        "aiReason": reason,
        "matchIndex": index + 1,
    }


def investor_summary(investor: dict, reason: str, index: int) -> dict:
    return {
        "_id": investor["_id"],
        "type": INVESTOR,
        "name": investor.get("fullName"),
        "firm": investor.get("firm"),
        "sectors": investor_sectors(investor),
        "location": investor.get("location"),
        "profilePicture": investor.get("profilePicture") or DEFAULT_AVATAR,
        "aiReason": reason,
        "matchIndex": index + 1,
    }


def _not_found(match, index: int) -> dict:
    reason = match.get("explanation") if isinstance(match, dict) else None
    return {
        "name": f"Partner {index + 1}",
        "aiReason": reason or "AI matched suggestion",
        "matchIndex": index + 1,
        "notFound": True,
        "rawData": match,
    }


def enrich_startup_matches(db: DbClient, matches: list) -> list[dict]:
    """Resolve matches for a startup: partner startups first, then investors."""
    enriched = []
    for index, match in enumerate(matches):
        user_id = _match_user_id(match) if isinstance(match, dict) else None
        if user_id:
            partner = db.get_profile(STARTUP, user_id)
            if partner:
                reason = _match_reason(match, "AI matched as potential partner")
                enriched.append(startup_summary(partner, reason, index))
                continue
            investor = db.get_profile(INVESTOR, user_id)
            if investor:
                reason = _match_reason(match, "AI matched as potential investor")
                enriched.append(investor_summary(investor, reason, index))
                continue
        enriched.append(_not_found(match, index))
    return enriched


def enrich_investor_matches(db: DbClient, matches: list) -> list[dict]:
    """Resolve matches for an investor against startup profiles."""
    enriched = []
    for index, match in enumerate(matches):
        user_id = _match_user_id(match) if isinstance(match, dict) else None
        startup = db.get_profile(STARTUP, user_id) if user_id else None
        if startup:
            reason = _match_reason(match, "AI matched as potential investment")
            enriched.append(startup_summary(startup, reason, index))
        else:
            enriched.append(_not_found(match, index))
    return enriched


def found_count(enriched: list[dict]) -> int:
    return sum(1 for m in enriched if not m.get("notFound"))


def fallback_investors(
    db: DbClient, startup: dict, enriched: list[dict]
) -> list[dict]:
    """Investors in the startup's sector, else any investors."""
    investors = []
    industry = startup.get("industry")
    if industry:
        investors = db.find_investors(sector=str(industry), limit=FALLBACK_LIMIT)
    if not investors:
        investors = db.find_investors(limit=FALLBACK_LIMIT)

    results = []
    for index, investor in enumerate(investors):
        sectors = ", ".join(investor_sectors(investor)) or "various sectors"
        reason = _reason_at(enriched, index) or f"Investor interested in {sectors}"
        results.append(investor_summary(investor, reason, index))
    return results


def fallback_startups(
    db: DbClient, investor: dict, enriched: list[dict]
) -> list[dict]:
    """Startups in one of the investor's sectors, else any startups."""
    startups = []
    sectors = investor_sectors(investor)
    if sectors:
        startups = db.find_startups(industries=sectors, limit=FALLBACK_LIMIT)
    if not startups:
        startups = db.find_startups(limit=FALLBACK_LIMIT)

    results = []
    for index, startup in enumerate(startups):
        industry = startup.get("industry") or "an emerging sector"
        stage = startup.get("stage") or "early"
        reason = (
            _reason_at(enriched, index)
            or f"Startup building in {industry} at the {stage} stage"
        )
        results.append(startup_summary(startup, reason, index))
    return results


def _reason_at(enriched: list[dict], index: int) -> Optional[str]:
    if index < len(enriched):
        return enriched[index].get("aiReason")
    return None


def match_for_startup(
    db: DbClient, startup: dict, ai_answer
) -> tuple[list[dict], Optional[str]]:
    """
    Return (matches, note) for a startup. ``ai_answer`` is the decoded AI
    response, or None when the AI could not answer.
    """
    enriched = enrich_startup_matches(db, normalize_matches(ai_answer))
    if found_count(enriched):
        return enriched, None

    logger.info(
        "No AI matches resolved for startup %s; using fallback", startup.get("_id")
    )
    return fallback_investors(db, startup, enriched), FALLBACK_NOTE


def match_for_investor(
    db: DbClient, investor: dict, ai_answer
) -> tuple[list[dict], Optional[str]]:
    enriched = enrich_investor_matches(db, normalize_matches(ai_answer))
    if found_count(enriched):
        return enriched, None

    logger.info(
        "No AI matches resolved for investor %s; using fallback", investor.get("_id")
    )
    return fallback_startups(db, investor, enriched), FALLBACK_NOTE
