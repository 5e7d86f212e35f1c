from __future__ import annotations

import csv
import io
import json
import logging
import math
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from .constants import (
    COMPLETE_CSV_FILENAME,
    FORMATTED_COLUMNS,
    FORMATTED_CSV_FILENAME,
    JSON_EXPORT_FILENAME,
)
from .text import is_number, number_text

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# (data, filename, mime_type) -> whatever the platform hands back
SaveFile = Callable[[bytes, str, str], Any]

CSV_MIME_TYPE = "text/csv;charset=utf-8"
JSON_MIME_TYPE = "application/json"


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _plain_value(value: Any) -> Any:
    """Field value for the csv writer: None -> '', JSON-style booleans."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return number_text(value)
    return value


def _write_csv(header: Sequence[str], records: Iterable[Sequence[Any]]) -> str:
    # Fields with a comma, quote or newline are quoted; quotes are doubled.
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    for record in records:
        if len(record) == 1 and record[0] == "":
            # csv.writer would quote a lone empty field
            buffer.write("\n")
        else:
            writer.writerow(record)
    return buffer.getvalue()[:-1]


def convert_to_csv(rows: Sequence[Row]) -> str:
    """Every column of the first row, in that row's key order."""
    if not rows:
        return ""

    header = list(rows[0].keys())
    records = ([_plain_value(row.get(key)) for key in header] for row in rows)
    return _write_csv(header, records)


def format_number(column: str, value: Any) -> str:
    """Render a numeric field with the precision used for its column group."""
    if "period" in column and "err" not in column:
        return f"{value:.6f}"
    if "prad" in column or "srad" in column or "smass" in column:
        return f"{value:.3f}"
    if "teq" in column or "steff" in column:
        # half-up, not banker's rounding
        return str(int(math.floor(value + 0.5)))
    if "mag" in column:
        return f"{value:.3f}"
    if "err" in column:
        return f"{value:.6f}"
    return number_text(value)


def _formatted_value(column: str, value: Any) -> Any:
    if is_number(value):
        return format_number(column, value)
    return _plain_value(value)


def convert_to_formatted_csv(rows: Sequence[Row]) -> str:
    """Curated columns with readable headers and per-column precision."""
    if not rows:
        return ""

    header = [label for _, label in FORMATTED_COLUMNS]
    records = (
        [_formatted_value(key, row.get(key)) for key, _ in FORMATTED_COLUMNS]
        for row in rows
    )
    return _write_csv(header, records)


def convert_to_json(rows: Sequence[Row]) -> str:
    if not rows:
        return ""
    return json.dumps(list(rows), ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------
def export_to_file(save_file: SaveFile, content: str, filename: str, mime_type: str) -> Optional[Any]:
    """Hand serialized content to the platform's save capability.

    Empty content is not an error: a warning is logged and nothing is saved.
    """
    if not content:
        logger.warning("No data to export", extra={"export_filename": filename})
        return None
    return save_file(content.encode("utf-8"), filename, mime_type)


def download_json(rows: Sequence[Row], save_file: SaveFile, filename: str = JSON_EXPORT_FILENAME):
    return export_to_file(save_file, convert_to_json(rows), filename, JSON_MIME_TYPE)


def download_csv(rows: Sequence[Row], save_file: SaveFile, filename: str = COMPLETE_CSV_FILENAME):
    return export_to_file(save_file, convert_to_csv(rows), filename, CSV_MIME_TYPE)


def download_formatted_csv(rows: Sequence[Row], save_file: SaveFile, filename: str = FORMATTED_CSV_FILENAME):
    return export_to_file(save_file, convert_to_formatted_csv(rows), filename, CSV_MIME_TYPE)


EXPORTERS: Dict[str, Callable[..., Any]] = {
    "json": download_json,
    "complete": download_csv,
    "formatted": download_formatted_csv,
}
