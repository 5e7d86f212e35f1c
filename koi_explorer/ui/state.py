from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..exceptions import FetchError
from ..query_builder import Disposition, FilterState, build_adql_query

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Fetch = Callable[[str], List[Row]]

NASA_MODE = "NASA"
AI_MODE = "IA"
MODES = (NASA_MODE, AI_MODE)

FETCH_FAILURE_PREFIX = "Failed to fetch data. Please check your query and network connection. Details: "


def default_filters() -> FilterState:
    return FilterState(dispositions=(Disposition.CANDIDATE, Disposition.CONFIRMED))


@dataclass(frozen=True)
class AppState:
    """
    Top-level state of one explorer session.

    The query is derived from the filters and is recomputed by every update
    function; results are replaced wholesale by each search.
    """

    filters: FilterState = field(default_factory=default_filters)
    query: str = ""
    results: Tuple[Row, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None
    has_searched: bool = False
    mode: str = NASA_MODE


def initial_state() -> AppState:
    filters = default_filters()
    return AppState(filters=filters, query=build_adql_query(filters))


def update_filters(state: AppState, filters: FilterState) -> AppState:
    return replace(state, filters=filters, query=build_adql_query(filters))


def update_filter(state: AppState, key: str, value: Any) -> AppState:
    return update_filters(state, state.filters.with_value(key, value))


def set_mode(state: AppState, mode: str) -> AppState:
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}")
    filters = state.filters
    if mode == AI_MODE and filters.ai_only is None:
        filters = filters.with_value("ai_only", False)
    return replace(update_filters(state, filters), mode=mode)


def start_search(state: AppState) -> AppState:
    return replace(state, is_loading=True, error=None, results=())


def search_succeeded(state: AppState, rows: List[Row]) -> AppState:
    return replace(state, is_loading=False, results=tuple(rows), has_searched=True)


def search_failed(state: AppState, message: str) -> AppState:
    return replace(state, is_loading=False, error=message, results=(), has_searched=True)


def run_search(state: AppState, fetch: Fetch) -> AppState:
    """Fetch rows for the current query. Failures end up in `error`."""
    if state.is_loading:
        return state

    state = start_search(state)
    try:
        rows = fetch(state.query)
    except FetchError as exc:
        logger.error("Search failed: %s", exc.message)
        return search_failed(state, FETCH_FAILURE_PREFIX + exc.message)

    logger.info("Search returned %d rows", len(rows))
    return search_succeeded(state, rows)


def status_message(state: AppState) -> str:
    if state.results:
        return f"{len(state.results)} records found."
    if state.has_searched and not state.error:
        return "No records found."
    return "Ready to search the stars."


def show_exports(state: AppState) -> bool:
    return bool(state.results) and not state.is_loading
