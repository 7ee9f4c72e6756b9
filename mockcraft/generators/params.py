"""Typed access to generator parameter bags and post-processing of values."""

from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple, Union

from mockcraft.core.errors import EmptyEnumError, InvalidParamError, RangeViolationError

Number = Union[int, float]


def get_int(params: Dict[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    """Return ``params[key]`` as an int, accepting integral floats and numeric strings."""
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidParamError(f"parameter '{key}' must be an integer, got boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidParamError(f"parameter '{key}' must be an integer, got {value!r}")


def get_float(params: Dict[str, Any], key: str, default: Optional[float] = None) -> Optional[float]:
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidParamError(f"parameter '{key}' must be a number, got boolean")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise InvalidParamError(f"parameter '{key}' must be a number, got {value!r}")


def get_str(params: Dict[str, Any], key: str, default: Optional[str] = None,
            options: Optional[List[str]] = None) -> Optional[str]:
    value = params.get(key)
    if value is None:
        return default
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise InvalidParamError(f"parameter '{key}' must be a string, got {value!r}")
    value = str(value)
    if options is not None and value not in options:
        raise InvalidParamError(
            f"parameter '{key}' must be one of {', '.join(map(str, options))}, got '{value}'"
        )
    return value


def get_bool(params: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false", "yes", "no", "1", "0"):
        return value.lower() in ("true", "yes", "1")
    raise InvalidParamError(f"parameter '{key}' must be a boolean, got {value!r}")


def get_list(params: Dict[str, Any], key: str) -> Optional[List[Any]]:
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    raise InvalidParamError(f"parameter '{key}' must be a list, got {value!r}")


def get_enum_values(params: Dict[str, Any], key: str = "values") -> List[Any]:
    values = get_list(params, key)
    if not values:
        raise EmptyEnumError(f"parameter '{key}' must be a non-empty list")
    return values


def int_range(params: Dict[str, Any], default_min: int, default_max: int,
              min_key: str = "min", max_key: str = "max") -> Tuple[int, int]:
    """Return inclusive (low, high) integer bounds, rejecting low > high."""
    low = get_int(params, min_key, default_min)
    high = get_int(params, max_key, default_max)
    check_range(low, high, min_key, max_key)
    return low, high


def float_range(params: Dict[str, Any], default_min: float, default_max: float,
                min_key: str = "min", max_key: str = "max") -> Tuple[float, float]:
    low = get_float(params, min_key, default_min)
    high = get_float(params, max_key, default_max)
    check_range(low, high, min_key, max_key)
    return low, high


def check_range(low: Any, high: Any, min_key: str = "min", max_key: str = "max") -> None:
    if low > high:
        raise RangeViolationError(
            f"'{min_key}' ({low}) must not be greater than '{max_key}' ({high})"
        )


def round_half_up(value: float, precision: int) -> float:
    """Round to ``precision`` places with halves going away from zero."""
    if precision < 0:
        raise InvalidParamError(f"parameter 'precision' must be non-negative, got {precision}")
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_date(params: Dict[str, Any], key: str, default: date) -> date:
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidParamError(f"parameter '{key}' must be an ISO-8601 date, got {value!r}")


def parse_datetime(params: Dict[str, Any], key: str, default: datetime) -> datetime:
    """Parse an RFC-3339 datetime (or bare date) into a naive UTC datetime."""
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidParamError(
                f"parameter '{key}' must be an RFC-3339 datetime, got {value!r}"
            )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def apply_text_transformations(value: Any, params: Dict[str, Any]) -> Any:
    """Apply case, prefix/suffix and ``max_length`` post-processing to strings."""
    if not isinstance(value, str):
        return value
    if get_bool(params, "uppercase"):
        value = value.upper()
    elif get_bool(params, "lowercase"):
        value = value.lower()
    elif get_bool(params, "capitalize"):
        value = value.capitalize()
    prefix = get_str(params, "prefix")
    if prefix:
        value = prefix + value
    suffix = get_str(params, "suffix")
    if suffix:
        value = value + suffix
    max_length = get_int(params, "max_length")
    if max_length is not None:
        if max_length < 0:
            raise InvalidParamError(f"parameter 'max_length' must be non-negative, got {max_length}")
        value = value[:max_length]
    return value
