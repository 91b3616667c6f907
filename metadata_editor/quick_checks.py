"""Lightweight field checks for live feedback while typing.

Each check returns ``None`` when the value is acceptable and a :class:`Hint`
otherwise. Hints are advisory: they never block an import or export, the
schema pass does that. Apart from :func:`required`, every check treats an
empty value as "not filled in yet" and returns ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Pattern, Sequence, Union

from .schema import FieldDescriptor
from .yaml_io import MISSING


@dataclass(frozen=True)
class Hint:
    message: str
    severity: str = "hint"


# Lexical shape only: month 13 or day 45 pass here
ISO_DATETIME_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?$"
)


def _is_empty(value: Any) -> bool:
    if value is None or value is MISSING:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _not_provided(value: Any) -> bool:
    return value is None or value is MISSING or (isinstance(value, str) and value.strip() == "")


def required(path: str, value: Any) -> Optional[Hint]:
    if _is_empty(value):
        return Hint("This field is required")
    return None


def date_format(path: str, value: Any) -> Optional[Hint]:
    if _not_provided(value):
        return None
    if not isinstance(value, str) or not ISO_DATETIME_PATTERN.match(value):
        return Hint("Date must be in ISO 8601 format (YYYY-MM-DDTHH:MM:SS, e.g., 2023-06-22T14:30:00)")
    return None


def enum(path: str, value: Any, allowed: Sequence[Any]) -> Optional[Hint]:
    if _not_provided(value):
        return None
    if value not in allowed:
        return Hint(f"Must be one of: {', '.join(str(a) for a in allowed)}")
    return None


def number_range(
    path: str,
    value: Any,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    unit: Optional[str] = None,
) -> Optional[Hint]:
    if _not_provided(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        # Still being typed
        return None

    suffix = f" {unit}" if unit else ""
    if minimum is not None and number < minimum:
        return Hint(f"Must be at least {minimum}{suffix}")
    if maximum is not None and number > maximum:
        return Hint(f"Must be at most {maximum}{suffix}")
    return None


def pattern(
    path: str,
    value: Any,
    regex: Union[str, Pattern[str]],
    message: Optional[str] = None,
) -> Optional[Hint]:
    # Whitespace-only input is checked: the user typed something
    if value is None or value is MISSING or value == "":
        return None
    compiled = re.compile(regex) if isinstance(regex, str) else regex
    if not compiled.search(str(value)):
        return Hint(message or "Value has invalid format")
    return None


def check_field(descriptor: FieldDescriptor, value: Any, path: Optional[str] = None) -> Optional[Hint]:
    """Run the checks a schema field calls for and return the first hint."""
    path = path or ".".join(descriptor.path)
    if descriptor.required:
        hint = required(path, value)
        if hint:
            return hint
    if descriptor.format == "date-time":
        hint = date_format(path, value)
        if hint:
            return hint
    if descriptor.enum is not None:
        hint = enum(path, value, descriptor.enum)
        if hint:
            return hint
    if descriptor.minimum is not None or descriptor.maximum is not None:
        hint = number_range(path, value, descriptor.minimum, descriptor.maximum)
        if hint:
            return hint
    if descriptor.pattern is not None and isinstance(value, str):
        hint = pattern(path, value, descriptor.pattern, "Must contain at least one non-whitespace character")
        if hint:
            return hint
    return None
