import math
from datetime import date, datetime

import pytest

from bizops_console.validation import (
    ValidationError,
    coerce_number,
    is_blank,
    optional_text,
    parse_amount,
    parse_bool,
    parse_iso_date,
    require_choice,
    require_email,
    require_text,
    split_list,
)


def test_is_blank():
    assert is_blank(None)
    assert is_blank(math.nan)
    assert is_blank("   ")
    assert not is_blank(0)
    assert not is_blank("x")


def test_require_text_and_optional_text():
    assert require_text("  Acme  ", "Name") == "Acme"
    with pytest.raises(ValidationError) as excinfo:
        require_text("", "Name")
    assert excinfo.value.field == "Name"
    assert str(excinfo.value) == "Name is required."

    assert optional_text(None, "N/A") == "N/A"
    assert optional_text(" x ") == "x"


def test_coerce_number_blank_defaults_and_rejects_text():
    """Blank input counts as the default; garbage is rejected, not zeroed."""
    assert coerce_number("", "Budget") == 0.0
    assert coerce_number(None, "Budget", default=5) == 5.0
    assert coerce_number(" 12.5 ", "Budget") == 12.5
    assert coerce_number(3, "Budget") == 3.0

    for bad in ("abc", True, "inf", "nan"):
        with pytest.raises(ValidationError):
            coerce_number(bad, "Budget")


def test_coerce_number_bounds():
    with pytest.raises(ValidationError, match="cannot be negative"):
        coerce_number("-1", "Cost", minimum=0)
    with pytest.raises(ValidationError, match="at least 1"):
        coerce_number(0, "Quantity", minimum=1)
    with pytest.raises(ValidationError, match="at most 100"):
        coerce_number(101, "CTR", maximum=100)


def test_parse_amount_requires_a_value():
    assert parse_amount("10") == 10.0
    with pytest.raises(ValidationError, match="Amount is required"):
        parse_amount("")
    with pytest.raises(ValidationError):
        parse_amount("-3")


def test_parse_iso_date():
    assert parse_iso_date("2025-03-04", "Date") == "2025-03-04"
    assert parse_iso_date("2025-03-04T10:00:00", "Date") == "2025-03-04"
    assert parse_iso_date(date(2025, 1, 2), "Date") == "2025-01-02"
    assert parse_iso_date(datetime(2025, 1, 2, 8, 30), "Date") == "2025-01-02"
    assert parse_iso_date("", "Date", required=False) is None

    with pytest.raises(ValidationError):
        parse_iso_date("", "Date")
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        parse_iso_date("04/03/2025", "Date")


def test_require_email():
    assert require_email(" jane@example.com ") == "jane@example.com"
    for bad in ("jane", "jane@example", "ja ne@example.com"):
        with pytest.raises(ValidationError):
            require_email(bad)


def test_require_choice_returns_canonical_spelling():
    choices = ("Active", "Inactive")
    assert require_choice("active", choices, "Status") == "Active"
    assert require_choice("", choices, "Status", default="Active") == "Active"

    with pytest.raises(ValidationError, match="one of: Active, Inactive"):
        require_choice("Retired", choices, "Status")
    with pytest.raises(ValidationError, match="required"):
        require_choice(None, choices, "Status")


def test_split_list():
    assert split_list("Rent, Utilities ,,") == ["Rent", "Utilities"]
    assert split_list(["a", " ", None, "b"]) == ["a", "b"]
    assert split_list(None) == []


def test_parse_bool():
    assert parse_bool("Yes", "Flag") is True
    assert parse_bool("off", "Flag") is False
    assert parse_bool(None, "Flag") is False
    assert parse_bool(1, "Flag") is True
    with pytest.raises(ValidationError):
        parse_bool("maybe", "Flag")
