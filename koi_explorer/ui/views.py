from __future__ import annotations

import io
import threading
import time
import uuid
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from flask import Blueprint, abort, current_app, redirect, render_template, request, send_file, session, url_for

from ..client import fetch_exoplanet_data
from ..constants import DISPOSITION_VALUES
from ..export import EXPORTERS
from ..query_builder import Disposition, FilterState, PlanetType
from ..table_engine import TableViewState, derive_page, row_key, toggle_sort
from .columns import RESULT_TABLE_COLUMNS, overview_url, score_class
from .state import AI_MODE, MODES, AppState, initial_state, run_search, set_mode, show_exports, start_search, status_message, update_filters

ui_bp = Blueprint('ui', __name__, template_folder='templates')

SESSION_LIMIT = 256
SESSION_TTL_SECONDS = 30 * 60


class SessionStore:
    """In-memory AppState per browser session. Nothing outlives the process.

    Entries expire `ttl_seconds` after their last write, and at most
    `maxsize` sessions are kept; when full, the entry closest to expiry is
    evicted.
    """

    def __init__(self, maxsize: int = SESSION_LIMIT, ttl_seconds: float = SESSION_TTL_SECONDS) -> None:
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # sid -> (state, expires_at)
        self._states: Dict[str, Tuple[AppState, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._states)

    def get(self, sid: str) -> AppState:
        with self._lock:
            return self._get(sid)

    def put(self, sid: str, state: AppState) -> None:
        with self._lock:
            self._put(sid, state)

    def begin_search(self, sid: str) -> Optional[AppState]:
        """Mark the session as loading; None if a search is already running."""
        with self._lock:
            state = self._get(sid)
            if state.is_loading:
                return None
            self._put(sid, start_search(state))
            return state

    def clear(self) -> None:
        with self._lock:
            self._states.clear()

    def _get(self, sid: str) -> AppState:
        entry = self._states.get(sid)
        if entry is None:
            return initial_state()
        state, expires_at = entry
        if time.monotonic() > expires_at:
            del self._states[sid]
            return initial_state()
        return state

    def _put(self, sid: str, state: AppState) -> None:
        self._purge_expired()
        if sid not in self._states and len(self._states) >= self._maxsize:
            oldest = min(self._states, key=lambda k: self._states[k][1])
            del self._states[oldest]
        self._states[sid] = (state, time.monotonic() + self._ttl)

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [sid for sid, (_, expires_at) in self._states.items() if now > expires_at]
        for sid in expired:
            del self._states[sid]


store = SessionStore()


def _session_id() -> str:
    sid = session.get('sid')
    if sid is None:
        sid = uuid.uuid4().hex
        session['sid'] = sid
    return sid


def _table_state_from_args() -> TableViewState:
    column = request.args.get('sort') or None
    direction = request.args.get('dir')
    if column is None or direction not in ('asc', 'desc'):
        column, direction = None, None
    return TableViewState(
        search_term=request.args.get('q', ''),
        sort_column=column,
        sort_direction=direction,
        current_page=request.args.get('page', 1, type=int),
    )


def _table_url(view: TableViewState, **changes) -> str:
    args = {
        'q': view.search_term or None,
        'sort': view.sort_column,
        'dir': view.sort_direction,
        'page': view.current_page,
    }
    args.update(changes)
    return url_for('ui.index', **{k: v for k, v in args.items() if v is not None})


def _sort_url(view: TableViewState, column: str) -> str:
    toggled = toggle_sort(view, column)
    return _table_url(toggled, sort=toggled.sort_column, dir=toggled.sort_direction)


def _merge_selection(current: Sequence, checked: List[str]) -> Tuple:
    """Keep the existing selection order, append new picks, drop unchecked ones."""
    kept = [value for value in current if value in checked]
    added = [value for value in checked if value not in kept]
    return tuple(kept + added)


def _filters_from_form(current: FilterState) -> FilterState:
    ai_only: Optional[bool] = current.ai_only
    if 'ai_only_present' in request.form:
        ai_only = request.form.get('ai_only') == 'on'
    return FilterState(
        dispositions=_merge_selection(current.dispositions, request.form.getlist('dispositions')),
        planet_types=_merge_selection(current.planet_types, request.form.getlist('planet_types')),
        host_name=request.form.get('host_name', ''),
        detection_method=request.form.get('detection_method', ''),
        ai_only=ai_only,
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------
@ui_bp.route('/', methods=['GET'])
def index():
    state = store.get(_session_id())
    view = _table_state_from_args()
    page = derive_page(state.results, view)

    return render_template(
        'index.html',
        state=state,
        view=view,
        page=page,
        columns=RESULT_TABLE_COLUMNS,
        dispositions=list(Disposition),
        disposition_labels=DISPOSITION_VALUES,
        planet_types=list(PlanetType),
        modes=MODES,
        ai_mode=AI_MODE,
        status=status_message(state),
        exports_visible=show_exports(state),
        row_key=row_key,
        overview_url=overview_url,
        score_class=score_class,
        table_url=partial(_table_url, view),
        sort_url=partial(_sort_url, view),
    )


@ui_bp.route('/filters', methods=['POST'])
def apply_filters():
    sid = _session_id()
    state = store.get(sid)

    mode = request.form.get('mode', state.mode)
    if mode != state.mode and mode in MODES:
        state = set_mode(state, mode)

    store.put(sid, update_filters(state, _filters_from_form(state.filters)))
    return redirect(url_for('ui.index'))


@ui_bp.route('/search', methods=['POST'])
def search():
    sid = _session_id()

    # One search per session at a time
    state = store.begin_search(sid)
    if state is None:
        return redirect(url_for('ui.index'))

    settings = current_app.config['KOI_SETTINGS']
    fetch = partial(fetch_exoplanet_data, api_url=settings.api_url)

    final = state
    try:
        final = run_search(state, fetch)
    finally:
        store.put(sid, final)
    return redirect(url_for('ui.index'))


def _send_download(data: bytes, filename: str, mime_type: str):
    return send_file(io.BytesIO(data), mimetype=mime_type, as_attachment=True, download_name=filename)


@ui_bp.route('/export/<fmt>', methods=['GET'])
def export(fmt: str):
    exporter = EXPORTERS.get(fmt)
    if exporter is None:
        abort(404)

    state = store.get(_session_id())
    response = exporter(list(state.results), _send_download)
    if response is None:
        return redirect(url_for('ui.index'))
    return response
