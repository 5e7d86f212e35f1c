from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .constants import DISPOSITION_VALUES, KOI_TABLE, PLANET_TYPE_PREDICATES, RESULT_COLUMNS


class Disposition(str, Enum):
    CANDIDATE = "CANDIDATE"
    CONFIRMED = "CONFIRMED"
    FALSE_POSITIVE = "FALSE_POSITIVE"

    @property
    def catalog_value(self) -> str:
        return DISPOSITION_VALUES[self.name]


class PlanetType(str, Enum):
    ROCKY = "ROCKY"
    SUPER_EARTH = "SUPER_EARTH"
    GAS_GIANT = "GAS_GIANT"

    @property
    def predicate(self) -> str:
        return PLANET_TYPE_PREDICATES[self.name]


FilterValue = Union[str, Enum]


@dataclass(frozen=True)
class FilterState:
    """
    The user's current catalog filters.

    - dispositions: koi_disposition values, in the order they were selected.
    - planet_types: radius bands, in the order they were selected.
    - host_name: substring matched against kepler_name.
    - detection_method: accepted but never turned into a clause; every KOI
      is a Kepler transit detection.
    - ai_only: only meaningful in the AI view; None when that view is not in use.

    Empty tuples mean "no filter", not "exclude everything".
    """

    dispositions: Tuple[FilterValue, ...] = ()
    planet_types: Tuple[FilterValue, ...] = ()
    host_name: str = ""
    detection_method: str = ""
    ai_only: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["dispositions"] = [_enum_name(d) for d in self.dispositions]
        data["planet_types"] = [_enum_name(p) for p in self.planet_types]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FilterState:
        ai_only = data.get("ai_only")
        return cls(
            dispositions=tuple(data.get("dispositions", ())),
            planet_types=tuple(data.get("planet_types", ())),
            host_name=data.get("host_name") or "",
            detection_method=data.get("detection_method") or "",
            ai_only=None if ai_only is None else bool(ai_only),
        )

    def with_value(self, key: str, value: Any) -> FilterState:
        if key in ("dispositions", "planet_types"):
            value = tuple(value)
        return replace(self, **{key: value})


def _enum_name(value: FilterValue) -> str:
    return value.name if isinstance(value, Enum) else str(value)


def _coerce(enum_cls, value: FilterValue):
    """Map a raw selection to an enum member, or None if it is unknown."""
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().upper().replace(" ", "_")
    try:
        return enum_cls[key]
    except KeyError:
        return None


def _coerce_all(enum_cls, values: Iterable[FilterValue]) -> List[Any]:
    members = (_coerce(enum_cls, v) for v in values)
    return [m for m in members if m is not None]


def build_select_clause() -> str:
    return f"SELECT {', '.join(RESULT_COLUMNS)} FROM {KOI_TABLE}"


def build_where_clauses(filters: FilterState) -> List[str]:
    """Translate filters into ADQL predicates, in a fixed order.

    Values are embedded as quoted literals without escaping; the query
    string is trusted as-is.
    """
    clauses: List[str] = []

    dispositions = _coerce_all(Disposition, filters.dispositions)
    if dispositions:
        quoted = ", ".join(f"'{d.catalog_value}'" for d in dispositions)
        clauses.append(f"koi_disposition IN ({quoted})")

    # filters.detection_method intentionally has no clause

    host_name = (filters.host_name or "").strip()
    if host_name:
        clauses.append(f"kepler_name LIKE '%{host_name}%'")

    planet_types = _coerce_all(PlanetType, filters.planet_types)
    if planet_types:
        clauses.append(f"({' OR '.join(p.predicate for p in planet_types)})")

    return clauses


def build_adql_query(filters: FilterState) -> str:
    select_clause = build_select_clause()
    where_clauses = build_where_clauses(filters)
    if not where_clauses:
        return select_clause
    return f"{select_clause} WHERE {' AND '.join(where_clauses)}"
