"""Resolve free-text leaderboard names against a tournament roster.

The resolution runs as a cascade of increasingly loose heuristics. Every
stage that finds more than one candidate refuses to pick between them and
reports the name as ambiguous: an incorrect silent match corrupts a team
score, while an unmatched name only needs a manual score entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .names import normalize, tokens
from .roster import golfer_names

logger = logging.getLogger(__name__)

MATCHED = "matched"
NO_MATCH = "no_match"
AMBIGUOUS = "ambiguous"

# Known problematic spellings (normalized form) mapped to the roster spelling.
NAME_OVERRIDES: Dict[str, str] = {
    "jordan smith": "Jordan L. Smith",
    "jordan l smith": "Jordan L. Smith",
    "jordan l. smith": "Jordan L. Smith",
    "hao tong li": "Hao-Tong Li",
    "haotong li": "Hao-Tong Li",
    "hao-tong li": "Hao-Tong Li",
}

RosterLike = Iterable[Union[Dict, str]]


@dataclass(frozen=True)
class MatchResult:
    status: str
    golfer: Optional[str] = None
    stage: Optional[str] = None
    candidates: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def matched(cls, golfer: str, stage: str) -> "MatchResult":
        return cls(MATCHED, golfer=golfer, stage=stage, candidates=(golfer,))

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(NO_MATCH)

    @classmethod
    def ambiguous(cls, candidates: Iterable[str], stage: str) -> "MatchResult":
        return cls(AMBIGUOUS, stage=stage, candidates=tuple(candidates))

    @property
    def is_match(self) -> bool:
        return self.status == MATCHED


def _decide(candidates: List[str], stage: str) -> Optional[MatchResult]:
    if len(candidates) == 1:
        return MatchResult.matched(candidates[0], stage)
    if len(candidates) > 1:
        return MatchResult.ambiguous(candidates, stage)
    return None


def _overlap_count(api_parts: List[str], golfer_norm: str) -> int:
    """Count API tokens overlapping the roster name in either direction."""
    golfer_parts = [p for p in golfer_norm.split(" ") if len(p) > 2]
    count = 0
    for part in api_parts:
        if len(part) <= 2:
            continue
        if part in golfer_norm or any(gp in part for gp in golfer_parts):
            count += 1
    return count


def match_golfer(api_name: str, roster: RosterLike) -> MatchResult:
    """Resolve ``api_name`` to a single roster golfer.

    Stages, each returning early on a decisive outcome:

    1. curated overrides (only when the target is on the roster)
    2. exact normalized name
    3. first and last token
    4. unique last name
    5. partial token overlap
    6. reversed given/family name order

    Returns a :class:`MatchResult`. A matched result always carries a name
    taken verbatim from ``roster``.
    """
    names = golfer_names(roster)
    if not api_name or not names:
        return MatchResult.no_match()

    api_norm = normalize(api_name)
    if not api_norm:
        return MatchResult.no_match()
    normalized = {name: normalize(name) for name in names}

    override = NAME_OVERRIDES.get(api_norm)
    if override and override in normalized:
        return MatchResult.matched(override, "override")

    result = _decide([n for n in names if normalized[n] == api_norm], "exact")
    if result:
        return result

    api_parts = tokens(api_name)
    api_last = api_parts[-1] if api_parts else ""

    if len(api_parts) >= 2:
        api_first = api_parts[0]
        first_last = []
        for name in names:
            parts = tokens(name)
            if len(parts) >= 2 and parts[0] == api_first and parts[-1] == api_last:
                first_last.append(name)
        result = _decide(first_last, "first_last")
        if result:
            return result

    if len(api_last) > 2:
        same_last = []
        for name in names:
            parts = tokens(name)
            if parts and parts[-1] == api_last:
                same_last.append(name)
        result = _decide(same_last, "last_name")
        if result:
            return result

    if api_parts:
        needed = min(2, len(api_parts))
        partial = [n for n in names if _overlap_count(api_parts, normalized[n]) >= needed]
        result = _decide(partial, "partial")
        if result:
            return result

    if len(api_parts) >= 2:
        reversed_name = f"{api_last} {api_parts[0]}"
        flipped = [
            n for n in names
            if reversed_name in normalized[n] or (normalized[n] and normalized[n] in reversed_name)
        ]
        result = _decide(flipped, "reversed")
        if result:
            return result

    similar = [n for n in names if any(len(p) > 2 and p in normalized[n] for p in api_parts)][:3]
    logger.debug("no_match name=%r normalized=%r similar=%s", api_name, api_norm, similar)
    return MatchResult.no_match()


def match_many(api_names: Iterable[str], roster: RosterLike) -> Dict[str, MatchResult]:
    roster_list = list(roster or [])
    return {name: match_golfer(name, roster_list) for name in api_names}


__all__ = [
    "AMBIGUOUS",
    "MATCHED",
    "NAME_OVERRIDES",
    "NO_MATCH",
    "MatchResult",
    "match_golfer",
    "match_many",
]
