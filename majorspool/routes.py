from flask import Blueprint, abort, current_app, request
from werkzeug.exceptions import HTTPException
import hmac
import os
import threading

from .datastore import (
    StorageError,
    list_tournaments as ds_list_tournaments,
    get_tournament as ds_get_tournament,
    upsert_tournament as ds_upsert_tournament,
    list_players as ds_list_players,
    insert_player as ds_insert_player,
    delete_player as ds_delete_player,
    list_scores as ds_list_scores,
    upsert_scores as ds_upsert_scores,
    delete_scores as ds_delete_scores,
    load_snapshot as ds_load_snapshot,
)
from .ingest import ingest_leaderboard
from .livescores import LiveScoresError, fetch_leaderboard_for
from .roster import dedupe_golfers, empty_tiers, golfer_names, organize_tiers, parse_roster_csv
from .scoring import compute_golfer_table, compute_pool_standings, compute_to_par
from .teams import clean_picks, is_duplicate_team, validate_picks


bp = Blueprint('main', __name__)

PAR_MIN = 68
PAR_MAX = 76

# Tournaments with a live fetch in flight; a second trigger is refused.
_LIVE_FETCHES: set[str] = set()
_LIVE_LOCK = threading.Lock()


@bp.errorhandler(StorageError)
def _storage_failed(e):
    current_app.logger.error("storage_error %s", e)
    return {'error': str(e)}, 503


@bp.errorhandler(LiveScoresError)
def _live_scores_failed(e):
    current_app.logger.warning("live_scores_error %s", e)
    return {'error': str(e)}, 502


@bp.errorhandler(HTTPException)
def _http_error(e):
    return {'error': e.description}, e.code


def _default_par() -> int:
    try:
        return int(os.environ.get('DEFAULT_PAR', '72'))
    except ValueError:
        return 72


def _require_admin() -> None:
    """Refuse the request unless it carries the shared admin password."""
    expected = os.environ.get('ADMIN_PASSWORD')
    supplied = request.headers.get('X-Admin-Password', '')
    if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
        abort(403, description='Admin password required.')


def _load_tournament(tournament_key: str) -> dict:
    tournament = ds_get_tournament(tournament_key)
    if not tournament:
        abort(404, description=f"Unknown tournament: {tournament_key}")
    return tournament


def _whole_number(value) -> int:
    """``int(value)`` that refuses booleans and fractional floats."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"not a whole number: {value!r}")
    return int(value)


def _parse_par(value) -> int:
    try:
        par = _whole_number(value)
    except (TypeError, ValueError, OverflowError):
        abort(400, description=f"Invalid par '{value}'. Expected a whole number.")
    if not PAR_MIN <= par <= PAR_MAX:
        abort(400, description=f"Par must be between {PAR_MIN} and {PAR_MAX}.")
    return par


def _parse_strokes(value, golfer: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        strokes = _whole_number(value)
    except (TypeError, ValueError, OverflowError):
        abort(400, description=f"Invalid round score '{value}' for {golfer}.")
    if strokes <= 0:
        abort(400, description=f"Invalid round score '{value}' for {golfer}.")
    return strokes


def _parse_optional_int(value, label: str, golfer: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return _whole_number(value)
    except (TypeError, ValueError, OverflowError):
        abort(400, description=f"Invalid {label} '{value}' for {golfer}.")


@bp.route('/health/db')
def health_db():
    """Database connectivity health check.

    Always returns HTTP 200 with a JSON body describing connection status.
    """
    url = os.environ.get('DATABASE_URL')
    if not url:
        return {'connected': False, 'status': 'no_database_url'}
    try:
        import psycopg2  # type: ignore
        with psycopg2.connect(url, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute('SELECT current_user, current_database(), version()')
                user, db, ver = cur.fetchone()
            return {
                'connected': True,
                'status': 'ok',
                'user': user,
                'database': db,
                'server_version': (ver or '').split('\n')[0],
            }
    except Exception as e:  # pragma: no cover - best-effort health output
        return {'connected': False, 'status': 'error', 'error': str(e)}


@bp.route('/api/tournaments')
def tournaments():
    rows = ds_list_tournaments()
    return {
        'tournaments': [
            {
                'tournament_key': t['tournament_key'],
                'name': t.get('name'),
                'logo': t.get('logo'),
                'par': t.get('par'),
                'golfer_count': len(golfer_names(t.get('golfers') or [])),
            }
            for t in rows
        ]
    }


@bp.route('/api/tournaments/<tournament_key>')
def tournament_detail(tournament_key):
    tournament = _load_tournament(tournament_key)
    return {**tournament, 'players': ds_list_players(tournament_key)}


@bp.route('/api/tournaments/<tournament_key>', methods=['POST'])
def save_tournament(tournament_key):
    """Create a tournament or update its name, logo and par."""
    _require_admin()
    payload = request.get_json(silent=True) or {}
    existing = ds_get_tournament(tournament_key) or {
        'tournament_key': tournament_key,
        'name': 'Untitled Tournament',
        'logo': None,
        'par': _default_par(),
        'golfers': [],
        'tiers': empty_tiers(),
    }
    tournament = dict(existing)
    if 'name' in payload:
        name = (payload.get('name') or '').strip()
        if not name:
            abort(400, description='Tournament name cannot be empty.')
        tournament['name'] = name
    if 'logo' in payload:
        tournament['logo'] = payload.get('logo') or None
    if 'par' in payload:
        tournament['par'] = _parse_par(payload.get('par'))
    ds_upsert_tournament(tournament)
    current_app.logger.info("tournament_saved key=%s par=%s", tournament_key, tournament['par'])
    return {'status': 'ok', 'tournament': tournament}


@bp.route('/api/tournaments/<tournament_key>/roster', methods=['POST'])
def upload_roster(tournament_key):
    """Replace the golfer field and rebuild the six tiers.

    Accepts ``{"csv": "..."}``, ``{"golfers": ["name", ...]}`` or a raw CSV
    request body.
    """
    _require_admin()
    tournament = _load_tournament(tournament_key)
    payload = request.get_json(silent=True)
    if isinstance(payload, dict) and isinstance(payload.get('golfers'), list):
        names = [str(n).strip() for n in payload['golfers'] if str(n or '').strip()]
        golfers = [{'name': name, 'order': idx} for idx, name in enumerate(names)]
    elif isinstance(payload, dict) and 'csv' in payload:
        golfers = parse_roster_csv(payload.get('csv') or '')
    else:
        golfers = parse_roster_csv(request.get_data(as_text=True))
    if not golfers:
        abort(400, description='No golfer names found in upload.')

    unique = dedupe_golfers(golfers)
    dropped = set(golfer_names(tournament.get('golfers') or [])) - set(golfer_names(unique))
    tournament['golfers'] = unique
    tournament['tiers'] = organize_tiers(unique)
    ds_upsert_tournament(tournament)
    pruned = ds_delete_scores(tournament_key, sorted(dropped)) if dropped else 0
    current_app.logger.info(
        "roster_uploaded key=%s parsed=%d unique=%d scores_pruned=%d",
        tournament_key, len(golfers), len(unique), pruned,
    )
    return {
        'status': 'ok',
        'golfer_count': len(unique),
        'duplicates_removed': len(golfers) - len(unique),
        'tiers': {k: golfer_names(v) for k, v in tournament['tiers'].items()},
    }


@bp.route('/api/tournaments/<tournament_key>/roster/dedupe', methods=['POST'])
def dedupe_roster(tournament_key):
    _require_admin()
    tournament = _load_tournament(tournament_key)
    golfers = tournament.get('golfers') or []
    unique = dedupe_golfers(golfers)
    removed = len(golfers) - len(unique)
    if removed:
        tournament['golfers'] = unique
        tournament['tiers'] = organize_tiers(unique)
        ds_upsert_tournament(tournament)
    return {'status': 'ok', 'removed': removed}


@bp.route('/api/tournaments/<tournament_key>/players', methods=['POST'])
def add_player(tournament_key):
    """Register a pool team: a name plus one golfer per tier."""
    tournament = _load_tournament(tournament_key)
    payload = request.get_json(silent=True) or {}
    name = (payload.get('name') or '').strip()
    if not name:
        abort(400, description='Player name is required.')
    picks = clean_picks(payload.get('picks'))
    problems = validate_picks(picks, tournament.get('tiers') or {})
    if problems:
        return {'error': 'Incomplete team', 'problems': problems}, 400

    existing = ds_list_players(tournament_key)
    if is_duplicate_team(picks, existing):
        return {'error': 'This exact team combination already exists. Please choose different golfers.'}, 409

    player = ds_insert_player(tournament_key, name, picks)
    current_app.logger.info("player_added key=%s id=%s", tournament_key, player['id'])
    return {'status': 'ok', 'player': player}


@bp.route('/api/tournaments/<tournament_key>/players/<player_id>', methods=['DELETE'])
def remove_player(tournament_key, player_id):
    _require_admin()
    _load_tournament(tournament_key)
    if not ds_delete_player(tournament_key, player_id):
        abort(404, description=f"Unknown player: {player_id}")
    return {'status': 'ok'}


@bp.route('/api/tournaments/<tournament_key>/scores')
def scorecard(tournament_key):
    """Per-golfer scorecard, sortable by ``sort`` and ``dir`` query args."""
    tournament = _load_tournament(tournament_key)
    sort_by = request.args.get('sort', 'to_par')
    descending = request.args.get('dir', 'asc').lower() == 'desc'
    try:
        rows = compute_golfer_table(
            tournament.get('golfers') or [],
            ds_list_scores(tournament_key),
            tournament['par'],
            sort_by=sort_by,
            descending=descending,
        )
    except ValueError as e:
        abort(400, description=str(e))
    return {'par': tournament['par'], 'golfers': rows}


@bp.route('/api/tournaments/<tournament_key>/scores', methods=['POST'])
def save_scores(tournament_key):
    """Manually enter scores; each golfer's stored record is replaced in full."""
    _require_admin()
    tournament = _load_tournament(tournament_key)
    par = tournament['par']
    roster = set(golfer_names(tournament.get('golfers') or []))
    payload = request.get_json(silent=True)
    entries = payload.get('scores') if isinstance(payload, dict) else None
    if not isinstance(entries, list) or not entries:
        abort(400, description='Expected a non-empty "scores" list.')

    updates = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            abort(400, description=f"Invalid score entry: {entry!r}")
        golfer = entry.get('golfer_name')
        if not isinstance(golfer, str) or golfer not in roster:
            abort(400, description=f"Unknown golfer: {golfer}")
        if golfer in seen:
            abort(400, description=f"Duplicate score entry for {golfer}.")
        seen.add(golfer)
        raw_rounds = entry.get('rounds') or []
        if not isinstance(raw_rounds, list) or len(raw_rounds) > 4:
            abort(400, description=f"Expected up to four rounds for {golfer}.")
        made_cut = entry.get('made_cut', True) is not False
        rounds = [_parse_strokes(r, golfer) for r in raw_rounds]
        updates.append({
            'golfer_name': golfer,
            'rounds': compute_to_par(rounds, made_cut, par)['rounds'],
            'made_cut': made_cut,
            'thru': _parse_optional_int(entry.get('thru'), 'thru', golfer),
            'current_round': _parse_optional_int(entry.get('current_round'), 'current round', golfer),
        })

    written = ds_upsert_scores(tournament_key, updates)
    current_app.logger.info("scores_saved key=%s golfers=%d", tournament_key, written)
    return {'status': 'ok', 'updated': written}


def _fetch_and_match(tournament_key: str, tournament: dict):
    payload = request.get_json(silent=True) or {}
    api_id = (payload.get('tournament_api_id') or '').strip()
    if not api_id:
        abort(400, description='tournament_api_id is required (e.g. "014-2025").')
    leaderboard, tourn_id = fetch_leaderboard_for(api_id)
    result = ingest_leaderboard(leaderboard, tournament.get('golfers') or [], tournament['par'])
    counts = result.summary()
    current_app.logger.info(
        "ingest_counts key=%s api_id=%s matched=%d unmatched=%d ambiguous=%d duplicates=%d",
        tournament_key,
        tourn_id,
        counts['matched'],
        counts['unmatched'],
        counts['ambiguous'],
        counts['duplicates'],
    )
    return result, counts


def _claim_live_fetch(tournament_key: str) -> None:
    with _LIVE_LOCK:
        if tournament_key in _LIVE_FETCHES:
            abort(409, description='A live score fetch is already running for this tournament.')
        _LIVE_FETCHES.add(tournament_key)


def _release_live_fetch(tournament_key: str) -> None:
    with _LIVE_LOCK:
        _LIVE_FETCHES.discard(tournament_key)


@bp.route('/api/tournaments/<tournament_key>/live/preview', methods=['POST'])
def preview_live_scores(tournament_key):
    """Fetch and match live scores without writing; shows a sample for review."""
    _require_admin()
    tournament = _load_tournament(tournament_key)
    _claim_live_fetch(tournament_key)
    try:
        result, counts = _fetch_and_match(tournament_key, tournament)
    finally:
        _release_live_fetch(tournament_key)
    return {
        'counts': counts,
        'sample': result.updates[:3],
        'unmatched': result.unmatched,
        'ambiguous': result.ambiguous,
    }


@bp.route('/api/tournaments/<tournament_key>/live', methods=['POST'])
def apply_live_scores(tournament_key):
    """Fetch live scores and replace the records of every matched golfer."""
    _require_admin()
    tournament = _load_tournament(tournament_key)
    _claim_live_fetch(tournament_key)
    try:
        result, counts = _fetch_and_match(tournament_key, tournament)
        written = ds_upsert_scores(tournament_key, result.updates) if result.updates else 0
    finally:
        _release_live_fetch(tournament_key)
    if not result.updates:
        current_app.logger.warning("ingest_no_matches key=%s", tournament_key)
    return {
        'status': 'ok',
        'updated': written,
        'counts': counts,
        'unmatched': result.unmatched,
        'ambiguous': result.ambiguous,
        'duplicates': result.duplicates,
        'missing_golfers': result.missing_golfers,
    }


@bp.route('/api/tournaments/<tournament_key>/leaderboard')
def leaderboard(tournament_key):
    """Pool standings recomputed from the stored snapshot on every request."""
    snapshot = ds_load_snapshot(tournament_key)
    if snapshot is None:
        abort(404, description=f"Unknown tournament: {tournament_key}")
    standings = compute_pool_standings(snapshot['players'], snapshot['scores'], snapshot['par'])
    return {'par': snapshot['par'], 'standings': standings}
