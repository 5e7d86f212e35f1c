from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from ..constants import OVERVIEW_URL
from ..text import is_number

Row = Dict[str, Any]

MISSING = "N/A"


def _fixed(digits: int) -> Callable[[Any], str]:
    def fmt(value: Any) -> str:
        if not is_number(value):
            return _text(value)
        return f"{value:.{digits}f}"
    return fmt


def _rounded(value: Any) -> str:
    if not is_number(value):
        return _text(value)
    return str(int(math.floor(value + 0.5)))


def _text(value: Any) -> str:
    return MISSING if value in (None, "") else str(value)


def _present(value: Any) -> str:
    # zero counts as missing here
    return str(value) if value else MISSING


def _period_error(row: Row) -> Optional[str]:
    err = row.get("koi_period_err1")
    if not is_number(err) or not err:
        return None
    return f"±{err:.5f}"


def _radius_error(row: Row) -> Optional[str]:
    upper, lower = row.get("koi_prad_err1"), row.get("koi_prad_err2")
    if not is_number(upper) or not upper:
        return None
    lower_text = f"{lower:.2f}" if is_number(lower) else MISSING
    return f"+{upper:.2f}/{lower_text}"


@dataclass(frozen=True)
class ResultColumn:
    key: str
    label: str
    formatter: Callable[[Any], str] = _text
    detail: Optional[Callable[[Row], Optional[str]]] = None

    def render(self, row: Row) -> str:
        return self.formatter(row.get(self.key))

    def render_detail(self, row: Row) -> Optional[str]:
        """Secondary line under the value, e.g. its uncertainty."""
        return self.detail(row) if self.detail else None


RESULT_TABLE_COLUMNS: List[ResultColumn] = [
    ResultColumn("kepoi_name", "KOI Name"),
    ResultColumn("kepler_name", "Kepler Name", _present),
    ResultColumn("koi_disposition", "Disposition"),
    ResultColumn("koi_score", "Score", _fixed(2)),
    ResultColumn("koi_period", "Period (d)", _fixed(3), _period_error),
    ResultColumn("koi_prad", "Radius (R⊕)", _fixed(2), _radius_error),
    ResultColumn("koi_teq", "Temp (K)", _rounded),
    ResultColumn("koi_insol", "Insolation", _fixed(1)),
    ResultColumn("koi_smass", "M★ (M☉)", _fixed(2)),
    ResultColumn("koi_steff", "T★ (K)", _rounded),
    ResultColumn("koi_num_transits", "Transits", _present),
    ResultColumn("ra_str", "RA", _present),
    ResultColumn("dec_str", "Dec", _present),
    ResultColumn("koi_kepmag", "Kep Mag", _fixed(2)),
]


def overview_url(row: Row) -> Optional[str]:
    """Archive overview page for a named planet."""
    name = row.get("kepler_name")
    if not name:
        return None
    return OVERVIEW_URL + quote(str(name), safe="")


def score_class(value: Any) -> str:
    if not is_number(value):
        return "missing"
    if value >= 0.8:
        return "high"
    if value >= 0.5:
        return "medium"
    return "low"
