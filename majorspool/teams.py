"""Pool team (player) validation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .roster import TIER_KEYS, golfer_names


def clean_picks(picks: Optional[Dict]) -> Dict[str, str]:
    """Strip whitespace from pick values and drop empty entries."""
    cleaned: Dict[str, str] = {}
    for tier, golfer in (picks or {}).items():
        name = str(golfer or "").strip()
        if name:
            cleaned[str(tier)] = name
    return cleaned


def validate_picks(picks: Dict[str, str], tiers: Dict[str, List[Dict]]) -> List[str]:
    """Return a list of problems with a team's picks; empty when complete.

    A complete team has exactly one golfer per tier, each drawn from that
    tier. When the tournament has no tiers yet only the shape is checked.
    """
    problems: List[str] = []
    unknown = sorted(k for k in picks if k not in TIER_KEYS)
    if unknown:
        problems.append(f"Unknown tiers: {', '.join(unknown)}")
    for key in TIER_KEYS:
        golfer = picks.get(key)
        if not golfer:
            problems.append(f"Missing pick for {key}")
            continue
        tier_golfers = golfer_names((tiers or {}).get(key) or [])
        if tier_golfers and golfer not in tier_golfers:
            problems.append(f"{golfer} is not in {key}")
    return problems


def is_duplicate_team(picks: Dict[str, str], players: Iterable[Dict]) -> bool:
    """True when an existing team drafted exactly the same golfer in every tier."""
    target = clean_picks(picks)
    return any(clean_picks(p.get("picks")) == target for p in players or [])


__all__ = ["clean_picks", "is_duplicate_team", "validate_picks"]
