"""Scoring utilities implementing the majors pool to-par and best-four rules."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

ROUNDS_PER_TOURNAMENT = 4
BEST_OF = 4

# Missed-cut golfers are charged par + 8 for each of rounds 3 and 4.
MISSED_CUT_PENALTY_OVER_PAR = 8

# A current-round figure inside this range reads as a partial-round to-par delta.
IN_PROGRESS_TO_PAR_RANGE = (-10, 10)
LAST_HOLE = 18


def missed_cut_penalty(par: int) -> int:
    """Return the stroke count charged for each round a missed-cut golfer skips."""
    return par + MISSED_CUT_PENALTY_OVER_PAR


def _pad_rounds(rounds: Optional[Sequence[Optional[int]]]) -> List[Optional[int]]:
    padded = list(rounds or [])[:ROUNDS_PER_TOURNAMENT]
    padded.extend([None] * (ROUNDS_PER_TOURNAMENT - len(padded)))
    return padded


def compute_to_par(rounds: Sequence[Optional[int]], made_cut: bool, par: int) -> Dict:
    """Convert per-round strokes into a to-par figure.

    Args:
        rounds: Up to four stroke counts; ``None`` marks a round not yet played.
        made_cut: Whether the golfer survived the cut.
        par: Par for one round.

    Returns:
        Dictionary containing rounds (with the missed-cut penalty applied),
        total, to_par and completed_rounds.

    A golfer who missed the cut has rounds 3 and 4 overwritten with the
    penalty and is measured against four full rounds. Otherwise only the
    rounds played count towards par. Stroke values are not validated.
    """
    scored = _pad_rounds(rounds)
    if not made_cut:
        penalty = missed_cut_penalty(par)
        scored[2] = penalty
        scored[3] = penalty

    played = [r for r in scored if r is not None]
    completed = len(played)
    total = sum(played)
    if not made_cut:
        to_par = total - par * ROUNDS_PER_TOURNAMENT
    elif completed > 0:
        to_par = total - par * completed
    else:
        to_par = 0
    return {
        "rounds": scored,
        "total": total,
        "to_par": to_par,
        "completed_rounds": completed,
    }


def in_progress_indicators(
    completed_rounds: int, thru: Optional[int], current_round: Optional[int]
) -> Tuple[Optional[int], Optional[int]]:
    """Decide whether a golfer is visibly mid-round.

    Returns ``(thru, current_round)`` when fewer than four rounds are
    complete, ``thru`` is a hole in 1-17 and the current-round figure looks
    like a partial-round to-par delta rather than an 18-hole stroke total.
    Otherwise returns ``(None, None)``. Neither value feeds the to-par maths.
    """
    if completed_rounds >= ROUNDS_PER_TOURNAMENT:
        return None, None
    if thru is None or not 0 < thru < LAST_HOLE:
        return None, None
    low, high = IN_PROGRESS_TO_PAR_RANGE
    if current_round is None or not low <= current_round <= high:
        return None, None
    return thru, current_round


def score_record(record: Dict, par: int) -> Dict:
    """Return the display form of one stored score record."""
    made_cut = record.get("made_cut", True) is not False
    result = compute_to_par(record.get("rounds") or [], made_cut, par)
    thru, current = in_progress_indicators(
        result["completed_rounds"], record.get("thru"), record.get("current_round")
    )
    result.update({"made_cut": made_cut, "thru": thru, "current_round": current})
    return result


def _team_rank_key(entry: Dict) -> Tuple[int, int, int]:
    lowest = entry["lowest_individual_score"]
    return (entry["total_score"], 1 if lowest is None else 0, lowest if lowest is not None else 0)


def compute_pool_standings(players: Iterable[Dict], scores: Dict[str, Dict], par: int) -> List[Dict]:
    """Rank pool teams by their best four golfers.

    Args:
        players: Team dictionaries with ``id``, ``name`` and a ``picks``
            mapping of tier key to golfer name.
        scores: Stored score records keyed by golfer name.
        par: Par for one round.

    Returns:
        List of standings sorted by ascending ``total_score``, ties broken by
        ascending ``lowest_individual_score`` with teams that have no scored
        golfer last. Teams whose sort keys are equal share a place and keep
        their input order.
    """
    standings: List[Dict] = []
    for player in players:
        golfer_scores: List[Dict] = []
        for tier, golfer in (player.get("picks") or {}).items():
            record = scores.get(golfer)
            if record is None:
                # Not on the leaderboard yet; excluded rather than penalised.
                continue
            golfer_scores.append({"tier": tier, "name": golfer, **score_record(record, par)})

        golfer_scores.sort(key=lambda g: g["to_par"])
        best_four = golfer_scores[:BEST_OF]
        standings.append(
            {
                "id": player.get("id"),
                "name": player.get("name"),
                "picks": dict(player.get("picks") or {}),
                "golfer_scores": golfer_scores,
                "best_four": best_four,
                "total_score": sum(g["to_par"] for g in best_four),
                "lowest_individual_score": golfer_scores[0]["to_par"] if golfer_scores else None,
            }
        )

    standings.sort(key=_team_rank_key)

    last_key = None
    place = 0
    for idx, entry in enumerate(standings, start=1):
        key = _team_rank_key(entry)
        if last_key is None or key != last_key:
            place = idx
            last_key = key
        entry["place"] = place

    return standings


# Scorecard columns and the score field each sorts on.
_GOLFER_SORT_FIELDS = {
    "name": None,
    "to_par": "to_par",
    "thru": "thru",
    "current": "current_round",
    "r1": 0,
    "r2": 1,
    "r3": 2,
    "r4": 3,
    "made_cut": "made_cut",
}


def _golfer_sort_value(row: Dict, sort_by: str):
    if sort_by == "name":
        return row["name"].lower()
    score = row.get("score")
    if score is None:
        return None
    fld = _GOLFER_SORT_FIELDS[sort_by]
    if isinstance(fld, int):
        return score["rounds"][fld]
    if fld == "made_cut":
        return 1 if score["made_cut"] else 0
    return score.get(fld)


def compute_golfer_table(
    golfers: Iterable[Dict],
    scores: Dict[str, Dict],
    par: int,
    sort_by: str = "to_par",
    descending: bool = False,
) -> List[Dict]:
    """Build the per-golfer scorecard for the whole roster.

    Golfers without a value in the sort column are listed after the others
    regardless of direction, in roster order.
    """
    if sort_by not in _GOLFER_SORT_FIELDS:
        raise ValueError(f"Unknown sort column: {sort_by}")

    rows: List[Dict] = []
    seen = set()
    for golfer in golfers:
        name = golfer.get("name")
        if not name or name in seen:
            continue
        seen.add(name)
        record = scores.get(name)
        rows.append({"name": name, "score": score_record(record, par) if record is not None else None})

    present = [r for r in rows if _golfer_sort_value(r, sort_by) is not None]
    missing = [r for r in rows if _golfer_sort_value(r, sort_by) is None]
    present.sort(key=lambda r: _golfer_sort_value(r, sort_by), reverse=descending)
    return present + missing


__all__ = [
    "MISSED_CUT_PENALTY_OVER_PAR",
    "compute_golfer_table",
    "compute_pool_standings",
    "compute_to_par",
    "in_progress_indicators",
    "missed_cut_penalty",
    "score_record",
]
