import os
import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor, execute_values
from contextlib import contextmanager


_POOL: Optional[pg_pool.AbstractConnectionPool] = None

DEFAULT_PAR = 72


class StorageError(RuntimeError):
    """A write to PostgreSQL was rejected; nothing from the operation was committed."""


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS tournaments (
        tournament_key VARCHAR(100) PRIMARY KEY,
        name VARCHAR(200) NOT NULL,
        logo TEXT,
        par INTEGER NOT NULL DEFAULT 72,
        golfers JSONB NOT NULL DEFAULT '[]'::jsonb,
        tiers JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMP NOT NULL DEFAULT now(),
        updated_at TIMESTAMP NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS players (
        id VARCHAR(40) PRIMARY KEY,
        tournament_key VARCHAR(100) NOT NULL REFERENCES tournaments(tournament_key) ON DELETE CASCADE,
        name VARCHAR(200) NOT NULL,
        picks JSONB NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scores (
        tournament_key VARCHAR(100) NOT NULL REFERENCES tournaments(tournament_key) ON DELETE CASCADE,
        golfer_name VARCHAR(200) NOT NULL,
        rounds JSONB NOT NULL DEFAULT '[null, null, null, null]'::jsonb,
        made_cut BOOLEAN NOT NULL DEFAULT TRUE,
        thru INTEGER,
        current_round INTEGER,
        updated_at TIMESTAMP NOT NULL DEFAULT now(),
        PRIMARY KEY (tournament_key, golfer_name)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_players_tournament ON players(tournament_key, created_at)",
)


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except Exception:
        return default


def _connect_kwargs() -> Dict[str, Any]:
    """Common connection kwargs: connect_timeout + TCP keepalives.

    Defaults:
      - connect_timeout: 10 seconds (overridable via DB_CONNECT_TIMEOUT)
      - keepalives: enabled by default; can be disabled by DB_KEEPALIVES=0
      - keepalive tunables applied if provided (IDLE/INTERVAL/COUNT)
    """
    kwargs: Dict[str, Any] = {}
    ct_env = _env_int("DB_CONNECT_TIMEOUT")
    kwargs["connect_timeout"] = ct_env if ct_env is not None else 10

    ka_env = os.environ.get("DB_KEEPALIVES")
    if ka_env is None:
        kwargs["keepalives"] = 1
    else:
        kwargs["keepalives"] = 0 if str(ka_env).lower() in ("0", "false") else 1

    for env_name, key in (
        ("DB_KEEPALIVES_IDLE", "keepalives_idle"),
        ("DB_KEEPALIVES_INTERVAL", "keepalives_interval"),
        ("DB_KEEPALIVES_COUNT", "keepalives_count"),
    ):
        value = _env_int(env_name)
        if value is not None:
            kwargs[key] = value
    return kwargs


def init_pool(minconn: int = 1, maxconn: int = 10) -> None:
    """Initialize a global connection pool using DATABASE_URL.

    Safe to call multiple times; subsequent calls are ignored once a pool exists.
    """
    global _POOL
    if _POOL is not None:
        return
    url = os.environ.get("DATABASE_URL")
    if not url:
        return
    _POOL = pg_pool.ThreadedConnectionPool(minconn, maxconn, dsn=url, **_connect_kwargs())


def _ping(conn) -> bool:
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
        if not getattr(conn, "autocommit", False):
            conn.rollback()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        return False


@contextmanager
def _get_conn():
    """Yield a database connection from the pool if available, else direct.

    Pooled connections get a ``SELECT 1`` liveness check; a stale one is
    discarded and checkout is retried once. Any exception inside the block
    rolls the transaction back before it propagates.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set; configure a PostgreSQL connection string")
    if _POOL is None:
        conn = psycopg2.connect(url, **_connect_kwargs())
        try:
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
        finally:
            conn.close()
        return

    conn = _POOL.getconn()
    if not _ping(conn):
        _POOL.putconn(conn, close=True)
        conn = _POOL.getconn()
        if not _ping(conn):
            _POOL.putconn(conn, close=True)
            raise psycopg2.OperationalError("Failed to acquire healthy DB connection after retry")
    try:
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
    finally:
        # status 1 = active, 2 = intrans, 3 = inerror
        if getattr(conn, "closed", 0) == 0 and getattr(conn, "status", 0) in (1, 2, 3):
            conn.rollback()
        _POOL.putconn(conn)


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _ts_to_str(val) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.isoformat()
    return str(val)


def create_tables() -> None:
    with _get_conn() as conn, conn.cursor() as cur:
        for stmt in SCHEMA_STATEMENTS:
            cur.execute(stmt)
        conn.commit()


def _tournament_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "tournament_key": row["tournament_key"],
        "name": row.get("name"),
        "logo": row.get("logo"),
        "par": row.get("par") or DEFAULT_PAR,
        "golfers": row.get("golfers") or [],
        "tiers": row.get("tiers") or {},
        "created_at": _ts_to_str(row.get("created_at")),
        "updated_at": _ts_to_str(row.get("updated_at")),
    }


def list_tournaments() -> List[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT * FROM tournaments ORDER BY created_at, tournament_key")
        return [_tournament_from_row(r) for r in cur.fetchall()]


def get_tournament(tournament_key: str) -> Optional[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT * FROM tournaments WHERE tournament_key = %s", (tournament_key,))
        row = cur.fetchone()
    return _tournament_from_row(row) if row else None


def upsert_tournament(tournament: Dict[str, Any]) -> Dict[str, Any]:
    """Insert or replace a tournament row keyed by ``tournament_key``."""
    params = (
        tournament["tournament_key"],
        tournament.get("name") or "Untitled Tournament",
        tournament.get("logo"),
        int(tournament.get("par") or DEFAULT_PAR),
        json.dumps(tournament.get("golfers") or []),
        json.dumps(tournament.get("tiers") or {}),
        _now(),
    )
    try:
        with _get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO tournaments (tournament_key, name, logo, par, golfers, tiers, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (tournament_key) DO UPDATE SET
                    name = EXCLUDED.name,
                    logo = EXCLUDED.logo,
                    par = EXCLUDED.par,
                    golfers = EXCLUDED.golfers,
                    tiers = EXCLUDED.tiers,
                    updated_at = EXCLUDED.updated_at
                """,
                params,
            )
            conn.commit()
    except psycopg2.Error as e:
        raise StorageError(f"Could not save tournament {tournament['tournament_key']}: {e}") from e
    return tournament


def list_players(tournament_key: str) -> List[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT id, tournament_key, name, picks, created_at FROM players WHERE tournament_key = %s ORDER BY created_at, id",
            (tournament_key,),
        )
        rows = cur.fetchall()
    return [
        {
            "id": r["id"],
            "tournament_key": r["tournament_key"],
            "name": r["name"],
            "picks": r.get("picks") or {},
            "created_at": _ts_to_str(r.get("created_at")),
        }
        for r in rows
    ]


def insert_player(tournament_key: str, name: str, picks: Dict[str, str]) -> Dict[str, Any]:
    player = {
        "id": uuid.uuid4().hex,
        "tournament_key": tournament_key,
        "name": name,
        "picks": dict(picks),
        "created_at": _now(),
    }
    try:
        with _get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                "INSERT INTO players (id, tournament_key, name, picks, created_at) VALUES (%s, %s, %s, %s, %s)",
                (player["id"], tournament_key, name, json.dumps(player["picks"]), player["created_at"]),
            )
            conn.commit()
    except psycopg2.Error as e:
        raise StorageError(f"Could not add player {name}: {e}") from e
    return player


def delete_player(tournament_key: str, player_id: str) -> bool:
    try:
        with _get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                "DELETE FROM players WHERE tournament_key = %s AND id = %s",
                (tournament_key, player_id),
            )
            deleted = cur.rowcount
            conn.commit()
    except psycopg2.Error as e:
        raise StorageError(f"Could not delete player {player_id}: {e}") from e
    return bool(deleted)


def list_scores(tournament_key: str) -> Dict[str, Dict[str, Any]]:
    """Return stored score records keyed by golfer name."""
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT golfer_name, rounds, made_cut, thru, current_round FROM scores WHERE tournament_key = %s",
            (tournament_key,),
        )
        rows = cur.fetchall()
    return {
        r["golfer_name"]: {
            "rounds": r.get("rounds") or [None, None, None, None],
            "made_cut": r.get("made_cut") is not False,
            "thru": r.get("thru"),
            "current_round": r.get("current_round"),
        }
        for r in rows
    }


def upsert_scores(tournament_key: str, updates: List[Dict[str, Any]]) -> int:
    """Replace the score records of every golfer in ``updates``.

    All rows are written in a single transaction: either every golfer's
    record is replaced or none is. Returns the number of rows written.
    """
    if not updates:
        return 0
    stamp = _now()
    rows = [
        (
            tournament_key,
            u["golfer_name"],
            json.dumps(list(u.get("rounds") or [None, None, None, None])),
            u.get("made_cut") is not False,
            u.get("thru"),
            u.get("current_round"),
            stamp,
        )
        for u in updates
    ]
    try:
        with _get_conn() as conn, conn.cursor() as cur:
            execute_values(
                cur,
                """
                INSERT INTO scores (tournament_key, golfer_name, rounds, made_cut, thru, current_round, updated_at)
                VALUES %s
                ON CONFLICT (tournament_key, golfer_name) DO UPDATE SET
                    rounds = EXCLUDED.rounds,
                    made_cut = EXCLUDED.made_cut,
                    thru = EXCLUDED.thru,
                    current_round = EXCLUDED.current_round,
                    updated_at = EXCLUDED.updated_at
                """,
                rows,
            )
            conn.commit()
    except psycopg2.Error as e:
        raise StorageError(f"Could not save scores for {tournament_key}: {e}") from e
    return len(rows)


def delete_scores(tournament_key: str, golfer_names: Optional[List[str]] = None) -> int:
    """Delete score rows for a tournament, optionally limited to some golfers."""
    try:
        with _get_conn() as conn, conn.cursor() as cur:
            if golfer_names is None:
                cur.execute("DELETE FROM scores WHERE tournament_key = %s", (tournament_key,))
            else:
                cur.execute(
                    "DELETE FROM scores WHERE tournament_key = %s AND golfer_name = ANY(%s)",
                    (tournament_key, list(golfer_names)),
                )
            deleted = cur.rowcount
            conn.commit()
    except psycopg2.Error as e:
        raise StorageError(f"Could not delete scores for {tournament_key}: {e}") from e
    return deleted
