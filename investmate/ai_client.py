"""
Client for the external InvestMate AI service.

The service is optional. Every failure (missing configuration, network
error, timeout, non-2xx status, non-JSON body) is logged and reported as
``None`` so callers can fall back to local results.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

INVESTOR_COACH = "investor-coach"
STARTUP_COACH = "startup-coach"
MATCHMAKING_INVESTOR = "matchmaking-investor"
MATCHMAKING_STARTUP = "matchmaking-startup"

MATCH_WRAPPER_KEYS = ("value", "matches", "results", "data")

_FENCED_JSON = re.compile(r"```json\n?([\s\S]*?)\n?```")


class AiClient:
    def __init__(self, base_url: Optional[str], timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def call(self, operation: str, payload: dict) -> Optional[Any]:
        """
        POST ``payload`` to ``{base_url}/{operation}`` and return the decoded JSON.

        Args:
            operation (str): One of the AI operation names, e.g. "startup-coach".
            payload (dict): JSON body, e.g. {"startupData": {...}}.

        Returns:
            The decoded JSON body, or None if the service could not answer.
        """
        if not self.base_url:
            logger.info("AI service not configured; skipping %s", operation)
            return None

        url = f"{self.base_url}/{operation}"
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("AI %s call failed: %s", operation, e)
            return None

        if not response.ok:
            logger.warning("AI %s returned error: %s", operation, response.status_code)
            return None

        try:
            return response.json()
        except ValueError:
            logger.warning("AI %s returned a non-JSON body", operation)
            return None


def _parse_raw(raw: str) -> Optional[Any]:
    match = _FENCED_JSON.search(raw)
    candidate = match.group(1) if match else raw
    try:
        return json.loads(candidate)
    except ValueError:
        return None


def parse_ai_response(data: Any) -> Any:
    """
    Unwrap the ad-hoc shapes the AI service answers with.

    ``{"value": [...]}`` yields the list, ``{"raw": "```json ...```"}`` yields
    the parsed JSON. Anything else is returned unchanged.
    """
    if not isinstance(data, dict):
        return data
    if isinstance(data.get("value"), list):
        return data["value"]
    raw = data.get("raw")
    if isinstance(raw, str):
        parsed = _parse_raw(raw)
        if parsed is not None:
            return parsed
    return data


def normalize_matches(data: Any) -> list:
    """Coerce an AI matchmaking answer into a list of match entries."""
    parsed = parse_ai_response(data)
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        for key in MATCH_WRAPPER_KEYS:
            if isinstance(parsed.get(key), list):
                return parsed[key]
    return []
