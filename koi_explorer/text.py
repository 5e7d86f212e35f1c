from __future__ import annotations

import math
from decimal import Decimal
from numbers import Number
from typing import Any

# Below this magnitude a float is written in exponent form
_SMALL_EXPONENT = 1e-6
# At or above this magnitude a float is written in exponent form
_LARGE_EXPONENT = 1e21


def is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def number_text(value: Any) -> str:
    """Shortest text for a catalog number.

    Whole floats drop their ".0" (793.0 -> "793"), and plain decimal
    notation is used between 1e-6 and 1e21 (2.775e-05 -> "0.00002775").
    Outside that range the exponent carries a sign and no padding ("1e-7").
    Non-floats are passed through str().
    """
    if not isinstance(value, float):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    magnitude = abs(value)
    if _SMALL_EXPONENT <= magnitude < _LARGE_EXPONENT:
        if value.is_integer() and magnitude < 1e16:
            return str(int(value))
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text

    mantissa, exponent = repr(value).split("e")
    if mantissa.endswith(".0"):
        mantissa = mantissa[:-2]
    power = int(exponent)
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"
