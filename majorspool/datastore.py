from typing import Any, Dict, List, Optional

# PostgreSQL datastore proxy.
# Routes import from here so tests can swap the datastore_pg functions for
# in-memory stand-ins without touching the route module.

from . import datastore_pg as _pg
from .datastore_pg import StorageError  # noqa: F401  (re-exported for routes)


def list_tournaments() -> List[Dict[str, Any]]:
    return _pg.list_tournaments()


def get_tournament(tournament_key: str) -> Optional[Dict[str, Any]]:
    return _pg.get_tournament(tournament_key)


def upsert_tournament(tournament: Dict[str, Any]) -> Dict[str, Any]:
    return _pg.upsert_tournament(tournament)


def list_players(tournament_key: str) -> List[Dict[str, Any]]:
    return _pg.list_players(tournament_key)


def insert_player(tournament_key: str, name: str, picks: Dict[str, str]) -> Dict[str, Any]:
    return _pg.insert_player(tournament_key, name, picks)


def delete_player(tournament_key: str, player_id: str) -> bool:
    return _pg.delete_player(tournament_key, player_id)


def list_scores(tournament_key: str) -> Dict[str, Dict[str, Any]]:
    return _pg.list_scores(tournament_key)


def upsert_scores(tournament_key: str, updates: List[Dict[str, Any]]) -> int:
    return _pg.upsert_scores(tournament_key, updates)


def delete_scores(tournament_key: str, golfer_names: Optional[List[str]] = None) -> int:
    return _pg.delete_scores(tournament_key, golfer_names)


def load_snapshot(tournament_key: str) -> Optional[Dict[str, Any]]:
    """Return the tournament with its players and scores, or None if unknown.

    Derived scores are never stored; callers compute them from this snapshot.
    """
    tournament = _pg.get_tournament(tournament_key)
    if tournament is None:
        return None
    return {
        **tournament,
        "players": _pg.list_players(tournament_key),
        "scores": _pg.list_scores(tournament_key),
    }
