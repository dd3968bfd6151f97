"""Typed access to fields of decoded JSON configuration.

Feature and experiment definitions come from a remote, independently
versioned schema. A field with an unexpected type must not abort evaluation,
so each helper here returns a ``(value, ok)`` pair instead of raising::

    coverage, ok = json_float(raw.get("coverage"), "Experiment", "coverage")
    if not ok:
        coverage = 1.0

On a mismatch the helper logs the type and field names, counts the failure
and returns the zero value of the requested type with ``ok`` set to False.

Decoded JSON numbers may be ``int`` or ``float``; both are accepted where a
number is expected. ``bool`` is never accepted as a number.

"""
import logging
import math

from typing import Any
from typing import List
from typing import Optional
from typing import Tuple

from prometheus_client import Counter


logger = logging.getLogger(__name__)

PROM_PREFIX = "flagcore"

INVALID_FIELDS_TOTAL = Counter(
    f"{PROM_PREFIX}_invalid_fields_total",
    "Total number of configuration fields that had an unexpected type",
    [f"{PROM_PREFIX}_type_name", f"{PROM_PREFIX}_field_name"],
)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _as_float(v: Any) -> Optional[float]:
    # ints beyond float range decode fine from JSON but have no float form
    if not _is_number(v):
        return None
    try:
        return float(v)
    except OverflowError:
        return None


def _invalid(type_name: str, field_name: str, v: Any) -> None:
    logger.error("Invalid JSON data type for %s.%s: %s", type_name, field_name, type(v).__name__)
    INVALID_FIELDS_TOTAL.labels(type_name, field_name).inc()


def json_string(v: Any, type_name: str, field_name: str) -> Tuple[str, bool]:
    if isinstance(v, str):
        return v, True
    _invalid(type_name, field_name, v)
    return "", False


def json_bool(v: Any, type_name: str, field_name: str) -> Tuple[bool, bool]:
    if isinstance(v, bool):
        return v, True
    _invalid(type_name, field_name, v)
    return False, False


def json_int(v: Any, type_name: str, field_name: str) -> Tuple[int, bool]:
    """Return a JSON number as an integer, truncating any fraction."""
    # infinities and NaN have no integer form
    if _is_number(v) and not (isinstance(v, float) and not math.isfinite(v)):
        return int(v), True
    _invalid(type_name, field_name, v)
    return 0, False


def json_float(v: Any, type_name: str, field_name: str) -> Tuple[float, bool]:
    number = _as_float(v)
    if number is not None:
        return number, True
    _invalid(type_name, field_name, v)
    return 0.0, False


def json_maybe_float(v: Any, type_name: str, field_name: str) -> Tuple[Optional[float], bool]:
    """Return a JSON number for a field whose absence is meaningful.

    Unlike :py:func:`json_float`, the zero value on failure is None.

    """
    number = _as_float(v)
    if number is not None:
        return number, True
    _invalid(type_name, field_name, v)
    return None, False


def json_float_array(v: Any, type_name: str, field_name: str) -> Tuple[List[float], bool]:
    """Return a JSON array of numbers.

    A single non-number element fails the whole array.

    """
    if not isinstance(v, list):
        _invalid(type_name, field_name, v)
        return [], False

    floats = []
    for item in v:
        number = _as_float(item)
        if number is None:
            _invalid(type_name, field_name, item)
            return [], False
        floats.append(number)
    return floats, True
