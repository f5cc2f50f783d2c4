# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Field-level parsing and validation for BizOps Console.

Forms (CLI ``--set key=value`` pairs, spreadsheet rows, dictionaries passed by
a UI) deliver mostly text. This module converts those raw values into the
Python types stored in documents and performs the plausibility checks every
record module relies on:

- required text fields,
- non-negative numbers (blank input counts as 0 where a form allows it),
- ISO dates (YYYY-MM-DD),
- email format,
- membership in a fixed list of choices,
- comma-separated lists.

Every failure raises :class:`ValidationError` with a message meant to be shown
to the user as-is.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "no", "n", "0", "off", ""}


class ValidationError(ValueError):
    """
    Invalid user input.

    Attributes
    ----------
    field:
        Label of the offending field, when known.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def is_blank(value: Any) -> bool:
    """Return True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def require_text(value: Any, field: str) -> str:
    """Return `value` as a stripped string, or raise if it is blank."""
    if is_blank(value):
        raise ValidationError(f"{field} is required.", field)
    return str(value).strip()


def optional_text(value: Any, default: str = "") -> str:
    """Return `value` as a stripped string, or `default` if it is blank."""
    if is_blank(value):
        return default
    return str(value).strip()


def coerce_number(
    value: Any,
    field: str,
    *,
    default: float = 0.0,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    """
    Convert a form value to a float.

    Blank input yields `default`. Non-numeric input is rejected instead of
    being silently turned into zero.

    Parameters
    ----------
    value:
        Raw form value (str, int, float or None).
    field:
        Field label used in error messages.
    default:
        Value used when the input is blank.
    minimum, maximum:
        Optional inclusive bounds.

    Returns
    -------
    float
        Parsed value.

    Raises
    ------
    ValidationError
        If the value is not a finite number or is out of bounds.
    """
    if is_blank(value):
        number = float(default)
    elif isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.", field)
    else:
        try:
            text = str(value).strip() if isinstance(value, str) else value
            number = float(text)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"{field} must be a number.", field) from exc
        if not math.isfinite(number):
            raise ValidationError(f"{field} must be a number.", field)

    if minimum is not None and number < minimum:
        if minimum == 0:
            raise ValidationError(f"{field} cannot be negative.", field)
        raise ValidationError(f"{field} must be at least {minimum:g}.", field)
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum:g}.", field)
    return number


def parse_amount(value: Any, field: str = "Amount") -> float:
    """Parse a required, non-negative monetary amount."""
    if is_blank(value):
        raise ValidationError(f"{field} is required.", field)
    return coerce_number(value, field, minimum=0)


def parse_iso_date(value: Any, field: str, *, required: bool = True) -> Optional[str]:
    """
    Parse a date and return it as an ISO string (YYYY-MM-DD).

    Accepts ``date``/``datetime`` objects (including pandas Timestamps read
    from spreadsheets) and strings in ISO format. A full ISO datetime string
    is truncated to its date part.

    Returns
    -------
    str or None
        The ISO date, or None when the value is blank and not required.

    Raises
    ------
    ValidationError
        If the value is required and blank, or cannot be parsed.
    """
    if is_blank(value):
        if required:
            raise ValidationError(f"{field} is required.", field)
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a date in YYYY-MM-DD format.", field
        ) from exc


def is_valid_email(value: Any) -> bool:
    """Return True if `value` looks like an email address."""
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def require_email(value: Any, field: str = "Email") -> str:
    """Return a stripped, valid email address or raise."""
    text = require_text(value, field)
    if not is_valid_email(text):
        raise ValidationError(f"{field} must be a valid email address.", field)
    return text


def require_choice(
    value: Any,
    choices: Iterable[str],
    field: str,
    *,
    default: Optional[str] = None,
) -> str:
    """
    Return `value` if it is one of `choices`.

    Matching ignores case and surrounding whitespace; the canonical spelling
    from `choices` is returned. Blank input yields `default` when given.
    """
    options = list(choices)
    if is_blank(value):
        if default is not None:
            return default
        raise ValidationError(f"{field} is required.", field)

    text = str(value).strip()
    for option in options:
        if option.lower() == text.lower():
            return option
    raise ValidationError(
        f"{field} must be one of: {', '.join(options)}.",
        field,
    )


def split_list(value: Any) -> list[str]:
    """
    Normalize a list-like form value.

    A list keeps its non-blank items; a string is split on commas. Blank input
    yields an empty list.
    """
    if is_blank(value):
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(item).strip() for item in value if not is_blank(item)]
    else:
        items = [part.strip() for part in str(value).split(",")]
    return [item for item in items if item]


def parse_bool(value: Any, field: str) -> bool:
    """Parse a yes/no form value."""
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return False
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValidationError(f"{field} must be yes or no.", field)
