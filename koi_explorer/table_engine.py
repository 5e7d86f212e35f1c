from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .constants import MAX_VISIBLE_PAGES, RESULTS_PAGE_SIZE
from .text import is_number, number_text

Row = Dict[str, Any]

ASC = "asc"
DESC = "desc"


@dataclass(frozen=True)
class TableViewState:
    """Search, sort and page knobs of a results table.

    sort_direction is "asc", "desc" or None (unsorted).
    """

    search_term: str = ""
    sort_column: Optional[str] = None
    sort_direction: Optional[str] = None
    current_page: int = 1


def set_search_term(state: TableViewState, term: str) -> TableViewState:
    # A new term always starts back at the first page
    return replace(state, search_term=term, current_page=1)


def toggle_sort(state: TableViewState, column: str) -> TableViewState:
    """Cycle a column through unsorted -> asc -> desc -> unsorted."""
    if state.sort_column != column or state.sort_direction is None:
        return replace(state, sort_column=column, sort_direction=ASC)
    if state.sort_direction == ASC:
        return replace(state, sort_direction=DESC)
    return replace(state, sort_column=None, sort_direction=None)


def go_to_page(state: TableViewState, page: int) -> TableViewState:
    return replace(state, current_page=page)


# ---------------------------------------------------------------------------
# Derivation: search -> sort -> paginate
# ---------------------------------------------------------------------------
def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def filter_rows(rows: Sequence[Row], term: str) -> List[Row]:
    """Keep rows where any field's text contains `term`, ignoring case."""
    if not term:
        return list(rows)

    needle = term.lower()
    return [
        row for row in rows
        if any(
            needle in _search_text(value)
            for value in row.values()
            if not _is_missing(value)
        )
    ]


def _search_text(value: Any) -> str:
    return number_text(value).lower()


def sort_rows(rows: Sequence[Row], column: Optional[str], direction: Optional[str]) -> List[Row]:
    """Stable single-column sort with missing values always at the end.

    A column whose present values are all numbers is compared numerically;
    anything else is compared as lower-cased text.
    """
    if not column or direction not in (ASC, DESC):
        return list(rows)

    values = [row.get(column) for row in rows]
    present = [v for v in values if not _is_missing(v)]

    if present and all(is_number(v) for v in present):
        keys = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce")
    else:
        keys = pd.Series(
            [None if _is_missing(v) else str(v).lower() for v in values],
            dtype=object,
        )

    order = keys.sort_values(
        ascending=direction == ASC,
        kind="mergesort",
        na_position="last",
    ).index
    return [rows[i] for i in order]


def total_pages(row_count: int, page_size: int = RESULTS_PAGE_SIZE) -> int:
    return math.ceil(row_count / page_size)


def paginate(rows: Sequence[Row], page: int, page_size: int = RESULTS_PAGE_SIZE) -> List[Row]:
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(rows[start:start + page_size])


def page_window(current_page: int, page_count: int, max_visible: int = MAX_VISIBLE_PAGES) -> List[int]:
    """Page numbers to offer as buttons, centred on the current page."""
    start = max(1, current_page - max_visible // 2)
    end = min(page_count, start + max_visible - 1)
    if end - start < max_visible - 1:
        start = max(1, end - max_visible + 1)
    return list(range(start, end + 1))


def row_key(row: Row, index: int) -> str:
    name = row.get("kepoi_name")
    return str(name) if name else str(index)


@dataclass
class TablePage:
    rows: List[Row]
    total_count: int
    filtered_count: int
    current_page: int
    page_count: int
    start_index: int
    end_index: int
    page_numbers: List[int]

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.page_count


def derive_page(rows: Sequence[Row], state: TableViewState, page_size: int = RESULTS_PAGE_SIZE) -> TablePage:
    """Apply search, then sort, then pagination to the full result set.

    Out-of-range pages are not clamped; they simply yield no rows.
    """
    filtered = filter_rows(rows, state.search_term)
    ordered = sort_rows(filtered, state.sort_column, state.sort_direction)
    pages = total_pages(len(ordered), page_size)
    page_rows = paginate(ordered, state.current_page, page_size)
    start = (state.current_page - 1) * page_size if page_rows else 0

    return TablePage(
        rows=page_rows,
        total_count=len(rows),
        filtered_count=len(filtered),
        current_page=state.current_page,
        page_count=pages,
        start_index=start + 1 if page_rows else 0,
        end_index=start + len(page_rows),
        page_numbers=page_window(state.current_page, pages),
    )
