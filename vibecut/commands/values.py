"""Argument value parsers shared by the slash commands.

Each ``parse_*`` helper takes the option name (for error messages) and the raw
token, and raises a ``ValidationError`` subclass when the token is unusable.
"""

import math
import re

from vibecut.exceptions import InvalidFieldValueError, OutOfBoundsError

COLOR_PATTERN = re.compile(r"^(#[0-9a-fA-F]{3,8}|rgb\(.*\)|rgba\(.*\)|[a-zA-Z]+)$")
_PLAIN_NUMBER = re.compile(r"^\d+(\.\d+)?$")
_DURATION = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m)$", re.IGNORECASE)
_UNIT_MS = {"ms": 1, "s": 1000, "m": 60_000}


def parse_duration(text: str) -> int | None:
    """Parse ``1500``, ``1500ms``, ``1.5s`` or ``2m`` into whole milliseconds.

    Returns None for malformed or non-positive input.
    """
    trimmed = text.strip()
    if _PLAIN_NUMBER.match(trimmed):
        ms = float(trimmed)
    else:
        match = _DURATION.match(trimmed)
        if not match:
            return None
        ms = float(match.group(1)) * _UNIT_MS[match.group(2).lower()]
    if ms <= 0:
        return None
    return int(round(ms))


def format_duration(ms: float) -> str:
    """``120000`` -> ``2m``, ``2000`` -> ``2s``, ``2500`` -> ``2500ms``."""
    if ms >= 60_000 and ms % 60_000 == 0:
        return f"{int(ms // 60_000)}m"
    if ms >= 1000 and ms % 1000 == 0:
        return f"{int(ms // 1000)}s"
    return f"{int(ms) if float(ms).is_integer() else ms}ms"


def parse_time_value(option: str, text: str) -> int:
    """Timeline position: ``1500`` / ``1500ms`` are ms, ``1.5s`` is seconds."""
    trimmed = text.strip().lower()
    try:
        if trimmed.endswith("ms"):
            value = float(trimmed[:-2])
        elif trimmed.endswith("s"):
            value = float(trimmed[:-1]) * 1000
        else:
            value = float(trimmed)
    except ValueError:
        raise InvalidFieldValueError(option, text, "use milliseconds or seconds like 1.5s")
    if not math.isfinite(value) or value < 0:
        raise InvalidFieldValueError(option, text, "time must be a non-negative number")
    return int(round(value))


def require_duration(option: str, text: str) -> int:
    ms = parse_duration(text)
    if ms is None:
        raise InvalidFieldValueError(option, text, "use a positive duration like 1500, 2s or 1m")
    return ms


def validate_color(option: str, text: str) -> str:
    if not COLOR_PATTERN.match(text):
        raise InvalidFieldValueError(option, text, "use #hex, rgb(), rgba() or a color name")
    return text


def parse_int(
    option: str,
    text: str,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    try:
        value = int(text)
    except ValueError:
        raise InvalidFieldValueError(option, text, "expected a whole number")
    _check_bounds(option, value, minimum, maximum)
    return value


def parse_float(
    option: str,
    text: str,
    minimum: float | None = None,
    maximum: float | None = None,
    *,
    exclusive_minimum: bool = False,
) -> float:
    try:
        value = float(text)
    except ValueError:
        raise InvalidFieldValueError(option, text, "expected a number")
    if not math.isfinite(value):
        raise InvalidFieldValueError(option, text, "expected a finite number")
    if exclusive_minimum and minimum is not None and value <= minimum:
        raise InvalidFieldValueError(option, text, f"must be greater than {minimum:g}")
    _check_bounds(option, value, None if exclusive_minimum else minimum, maximum)
    return value


def parse_number(option: str, text: str) -> int | float:
    """A pixel/degree value; whole numbers stay ints."""
    value = parse_float(option, text)
    return int(value) if value.is_integer() else value


def parse_percentage(option: str, text: str) -> float:
    """``150`` or ``150%`` -> 150.0; must be positive."""
    raw = text[:-1] if text.endswith("%") else text
    try:
        value = float(raw)
    except ValueError:
        raise InvalidFieldValueError(option, text, "expected a percentage like 150 or 150%")
    if not math.isfinite(value) or value <= 0:
        raise InvalidFieldValueError(option, text, "percentage must be positive")
    return value


def _check_bounds(option: str, value: float, minimum: float | None, maximum: float | None) -> None:
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise OutOfBoundsError(option, value, minimum, maximum)


def parse_bool(option: str, text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in ("true", "yes", "on", "1"):
        return True
    if lowered in ("false", "no", "off", "0"):
        return False
    raise InvalidFieldValueError(option, text, "expected true or false")
