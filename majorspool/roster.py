"""Golfer field upload and tier partitioning."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Union

TIER_SIZE = 10
TIER_KEYS = ("tier1", "tier2", "tier3", "tier4", "tier5", "tier6")

_HEADER_KEYWORDS = ("name", "golfer")


def golfer_names(golfers: Iterable[Union[Dict, str]]) -> List[str]:
    """Return roster names in order, first occurrence only.

    Accepts golfer dicts (``{"name": ...}``) or bare names.
    """
    names: List[str] = []
    seen = set()
    for g in golfers or []:
        name = g.get("name") if isinstance(g, dict) else g
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def parse_roster_csv(text: str) -> List[Dict]:
    """Parse an uploaded field list.

    The first column of each non-blank line is a golfer name; order of
    appearance is the ingestion order. A first row mentioning ``name`` or
    ``golfer`` is treated as a header.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if lines:
        first = lines[0].split(",")[0].strip().lower()
        if any(k in first for k in _HEADER_KEYWORDS):
            lines = lines[1:]

    golfers: List[Dict] = []
    for line in lines:
        name = line.split(",")[0].strip().strip('"').strip()
        if name:
            golfers.append({"name": name, "order": len(golfers)})
    return golfers


def dedupe_golfers(golfers: Iterable[Dict]) -> List[Dict]:
    seen = set()
    unique: List[Dict] = []
    for g in golfers or []:
        name = g.get("name")
        if not name or name in seen:
            continue
        seen.add(name)
        unique.append(g)
    return unique


def organize_tiers(golfers: Iterable[Dict]) -> Dict[str, List[Dict]]:
    """Partition the deduplicated roster into six tiers of ten; tier6 is open-ended."""
    unique = dedupe_golfers(golfers)
    tiers: Dict[str, List[Dict]] = {}
    for idx, key in enumerate(TIER_KEYS):
        start = idx * TIER_SIZE
        end = None if key == TIER_KEYS[-1] else start + TIER_SIZE
        tiers[key] = unique[start:end]
    return tiers


def empty_tiers() -> Dict[str, List[Dict]]:
    return {key: [] for key in TIER_KEYS}


def tier_for(golfer_name: str, tiers: Dict[str, List[Dict]]) -> Optional[str]:
    for key in TIER_KEYS:
        if golfer_name in golfer_names(tiers.get(key) or []):
            return key
    return None


__all__ = [
    "TIER_KEYS",
    "TIER_SIZE",
    "dedupe_golfers",
    "empty_tiers",
    "golfer_names",
    "organize_tiers",
    "parse_roster_csv",
    "tier_for",
]
