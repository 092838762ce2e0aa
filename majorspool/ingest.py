"""Turn a live leaderboard payload into per-golfer score updates."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .matching import AMBIGUOUS, match_golfer
from .roster import golfer_names
from .scoring import ROUNDS_PER_TOURNAMENT, missed_cut_penalty

logger = logging.getLogger(__name__)

# Leaderboard status codes for golfers out of the tournament after round 2.
OUT_STATUSES = frozenset({"cut", "wd", "dq", "withdrawn", "disqualified"})

_NUMBER_ENVELOPES = ("$numberInt", "$numberLong", "$numberDouble", "$numberDecimal")
_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def extract_number(value: Any) -> Optional[int]:
    """Unwrap a leaderboard number.

    Accepts plain numbers, numeric strings (leading digits, as in
    ``"72"`` or ``"-3"``) and extended-JSON envelopes such as
    ``{"$numberInt": "72"}``. Anything else is ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    if isinstance(value, dict):
        for key in _NUMBER_ENVELOPES:
            if key in value:
                raw = value[key]
                if isinstance(raw, str) and "." in raw:
                    try:
                        return extract_number(float(raw))
                    except ValueError:
                        return None
                return extract_number(raw)
    return None


@dataclass
class IngestResult:
    updates: List[Dict] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    ambiguous: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    missing_golfers: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "matched": len(self.updates),
            "unmatched": len(self.unmatched),
            "ambiguous": len(self.ambiguous),
            "duplicates": len(self.duplicates),
            "missing_golfers": len(self.missing_golfers),
        }


def _leaderboard_rows(payload: Any) -> List[Dict]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return list(payload.get("leaderboardRows") or [])
    return []


def _round_strokes(rows: Iterable[Dict]) -> List[Optional[int]]:
    rounds: List[Optional[int]] = [None] * ROUNDS_PER_TOURNAMENT
    for rnd in rows or []:
        if not isinstance(rnd, dict):
            continue
        round_id = extract_number(rnd.get("roundId") or 1)
        if round_id is None:
            continue
        slot = round_id - 1
        if 0 <= slot < ROUNDS_PER_TOURNAMENT:
            rounds[slot] = extract_number(rnd.get("strokes"))
    return rounds


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, dict):
        return bool(extract_number(value))
    return bool(value)


def build_score_update(row: Dict, golfer_name: str, par: int) -> Dict:
    """Build the full replacement score record for one leaderboard row."""
    rounds = _round_strokes(row.get("rounds"))
    status = str(row.get("status") or "").strip().lower()
    made_cut = status not in OUT_STATUSES
    if not made_cut:
        penalty = missed_cut_penalty(par)
        # Only empty slots here; score_record applies the full override on read.
        for slot in (2, 3):
            if rounds[slot] is None:
                rounds[slot] = penalty

    current_hole = extract_number(row.get("currentHole"))
    thru = None
    if current_hole is not None and 1 <= current_hole <= 17 and not _is_true(row.get("roundComplete")):
        thru = current_hole

    return {
        "golfer_name": golfer_name,
        "rounds": rounds,
        "made_cut": made_cut,
        "thru": thru,
        "current_round": extract_number(row.get("currentRoundScore")),
    }


def ingest_leaderboard(payload: Any, roster: List[Dict], par: int) -> IngestResult:
    """Match leaderboard rows to roster golfers and build score updates.

    Rows whose name cannot be resolved, or resolves ambiguously, produce no
    update and are listed in the result. A golfer is updated at most once per
    batch: the first row resolving to it wins.
    """
    result = IngestResult()
    processed = set()
    for row in _leaderboard_rows(payload):
        if not isinstance(row, dict):
            continue
        full_name = f"{row.get('firstName') or ''} {row.get('lastName') or ''}".strip()
        match = match_golfer(full_name, roster)
        if not match.is_match:
            if match.status == AMBIGUOUS:
                logger.info("ambiguous_name name=%r candidates=%s", full_name, list(match.candidates))
                result.ambiguous.append(full_name)
            else:
                result.unmatched.append(full_name)
            continue
        golfer = match.golfer
        if golfer in processed:
            logger.warning("duplicate_row name=%r golfer=%r skipped", full_name, golfer)
            result.duplicates.append(full_name)
            continue
        processed.add(golfer)
        logger.debug("matched name=%r golfer=%r stage=%s", full_name, golfer, match.stage)
        result.updates.append(build_score_update(row, golfer, par))

    result.missing_golfers = [name for name in golfer_names(roster) if name not in processed]
    return result


__all__ = ["IngestResult", "OUT_STATUSES", "build_score_update", "extract_number", "ingest_leaderboard"]
