"""
Parameter value coercion.

Request parameters arrive as decoded JSON. Before they reach a driver they
are narrowed to ParamValue: null, bool, int, float or str. Integral numbers
become ints, nested arrays/objects are passed on as their JSON text.
"""

from __future__ import annotations

import json
from typing import Any, Union

ParamValue = Union[None, bool, int, float, str]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ParamTypeError(ValueError):
    """Raised when a parameter value cannot be coerced."""

    pass


def _coerce_number(value: float) -> int | float:
    if value.is_integer() and _INT64_MIN <= value <= _INT64_MAX:
        return int(value)
    return value


def coerce_param_value(value: Any) -> ParamValue | Any:
    """
    Narrow one decoded JSON value to a driver-friendly scalar.

    - None, bool, str pass through (bool is checked before int).
    - int passes through; float with no fractional part becomes int.
    - list / dict become compact JSON text.
    - Other native values (datetime, Decimal, ...) pass through unchanged.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _coerce_number(value)
    if isinstance(value, (list, dict)):
        try:
            return json.dumps(value, separators=(",", ":"), default=str)
        except (TypeError, ValueError) as e:
            raise ParamTypeError(f"Cannot serialise value: {e}") from e
    return value


def coerce_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Coerce every value of *params*; errors name the offending parameter."""
    out: dict[str, Any] = {}
    for name, raw in (params or {}).items():
        try:
            out[name] = coerce_param_value(raw)
        except ParamTypeError as e:
            raise ParamTypeError(f"Parameter '{name}' {e}") from e
    return out
