"""Client for the RapidAPI live-golf-data leaderboard service."""

from __future__ import annotations

import os
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import requests

DEFAULT_HOST = "live-golf-data.p.rapidapi.com"

# Used only when the schedule lookup finds no tournament by name.
FALLBACK_TOURNAMENT_IDS = {
    "masters": "014",
    "pga": "003",
    "us": "006",
    "british": "100",
    "open": "100",
}

_STATUS_MESSAGES = {
    429: "API rate limit exceeded. Please wait before trying again.",
    401: "Invalid API key. Please check your RapidAPI key.",
}


class LiveScoresError(RuntimeError):
    """Raised when the live leaderboard cannot be fetched or understood."""


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _host() -> str:
    return os.environ.get("GOLF_API_HOST") or DEFAULT_HOST


def _headers() -> Dict[str, str]:
    key = os.environ.get("GOLF_API_KEY", "")
    if not key:
        raise LiveScoresError("GOLF_API_KEY is not configured")
    return {
        "X-RapidAPI-Key": key,
        "X-RapidAPI-Host": _host(),
        "Content-Type": "application/json",
    }


def _get(endpoint: str, params: Dict[str, Any], context: str = "") -> Any:
    url = f"https://{_host()}/{endpoint}"
    params = {**params, "orgId": str(_env_int("GOLF_API_ORG_ID", 1))}
    try:
        resp = requests.get(url, params=params, headers=_headers(), timeout=_env_int("GOLF_API_TIMEOUT", 10))
    except requests.RequestException as e:
        raise LiveScoresError(f"Could not reach live scores API: {e}") from e

    if resp.status_code in _STATUS_MESSAGES:
        raise LiveScoresError(_STATUS_MESSAGES[resp.status_code])
    if resp.status_code == 400:
        raise LiveScoresError(f"Invalid parameters: {context}. Check if this tournament exists.")
    if resp.status_code == 404:
        raise LiveScoresError(f"Tournament not found: {context}. Try a different tournament ID.")
    if not resp.ok:
        raise LiveScoresError(f"API Error: {resp.status_code} {resp.reason} - {resp.text[:200]}")
    try:
        return resp.json()
    except ValueError as e:
        raise LiveScoresError("Live scores API returned invalid JSON") from e


def parse_tournament_id(value: str) -> Tuple[str, str]:
    """Split ``"<tournament>-<year>"`` into its parts.

    ``"014-2025"`` yields a numeric id; ``"us-open-2025"`` yields the name
    ``"us open"`` to be resolved through the schedule. A missing year falls
    back to the current one.
    """
    text = (value or "").strip().lower()
    if "-" not in text:
        raise LiveScoresError(
            'Invalid format. Use "tournament-year" (e.g. "us-open-2025") or "tournId-year" (e.g. "006-2025")'
        )
    m = re.match(r"^(.+?)-(\d{4})$", text)
    if m:
        tournament, year = m.group(1), m.group(2)
    else:
        tournament, year = text.rstrip("-"), str(datetime.utcnow().year)
    return tournament.replace("-", " ").strip(), year


def fetch_schedule(year: str) -> Dict:
    return _get("schedule", {"year": str(year)}, context=f'year="{year}"')


def resolve_tournament_id(name: str, year: str) -> str:
    """Find the API tournament id for a tournament name."""
    if re.fullmatch(r"\d+", name or ""):
        return name
    schedule = fetch_schedule(year) or {}
    events = schedule.get("schedule") or []
    for event in events:
        if name in str(event.get("name", "")).lower():
            return str(event.get("tournId"))
    for key, tourn_id in FALLBACK_TOURNAMENT_IDS.items():
        if key in name:
            return tourn_id
    available = ", ".join(str(e.get("name")) for e in events)
    raise LiveScoresError(f'Tournament "{name}" not found in schedule. Available tournaments: {available}')


def fetch_leaderboard(tourn_id: str, year: str) -> Dict:
    """Fetch the leaderboard payload (``{"leaderboardRows": [...]}``)."""
    return _get(
        "leaderboard",
        {"tournId": str(tourn_id), "year": str(year)},
        context=f'tournId="{tourn_id}", year="{year}"',
    )


def fetch_leaderboard_for(tournament_api_id: str) -> Tuple[Dict, Optional[str]]:
    """Resolve a ``"<tournament>-<year>"`` id and fetch its leaderboard.

    Returns the payload and the resolved API tournament id.
    """
    name, year = parse_tournament_id(tournament_api_id)
    tourn_id = resolve_tournament_id(name, year)
    return fetch_leaderboard(tourn_id, year), tourn_id


__all__ = [
    "LiveScoresError",
    "fetch_leaderboard",
    "fetch_leaderboard_for",
    "fetch_schedule",
    "parse_tournament_id",
    "resolve_tournament_id",
]
