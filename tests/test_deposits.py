from datetime import date
from decimal import Decimal

import pytest
from werkzeug.datastructures import MultiDict

from invoice_desk.deposits import (
    has_errors,
    parse_amount,
    parse_date,
    parse_deposit_form,
    validate_amount,
    validate_deposit_date,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12.50", Decimal("12.50")),
        (" 7 ", Decimal("7")),
        ("1e2", Decimal("100")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("twelve", None),
        ("NaN", None),
        ("Infinity", None),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize(
    ("amount", "message"),
    [
        (Decimal("0"), "Must be greater than 0"),
        (Decimal("-5"), "Must be greater than 0"),
        (Decimal("10.123"), "Must only have two decimal places"),
        (Decimal("0.001"), "Must only have two decimal places"),
        (None, "Must be a number"),
        (Decimal("10.10"), None),
        (Decimal("10.100"), None),
        (Decimal("1E+30"), "Must be less than $1,000,000,000"),
        (Decimal("1E+400"), "Must be less than $1,000,000,000"),
        (Decimal("1000000000"), "Must be less than $1,000,000,000"),
        (Decimal("999999999.99"), None),
        (Decimal("0.01"), None),
    ],
)
def test_validate_amount(amount, message):
    assert validate_amount(amount) == message


def test_parse_date():
    assert parse_date("2024-01-10") == date(2024, 1, 10)
    assert parse_date("2024-02-30") is None
    assert parse_date("") is None
    assert parse_date("not a date") is None


def test_validate_deposit_date():
    assert validate_deposit_date(None) == "Please enter a valid date"
    assert validate_deposit_date(date(2024, 1, 1)) is None


def test_parse_deposit_form_valid():
    values, errors = parse_deposit_form(
        MultiDict({"amount": "25.00", "depositDate": "2024-01-10", "note": "  cheque "})
    )

    assert values == {"amount": Decimal("25.00"), "deposit_date": date(2024, 1, 10), "note": "cheque"}
    assert errors == {"amount": None, "depositDate": None}
    assert not has_errors(errors)


def test_parse_deposit_form_reports_every_field():
    values, errors = parse_deposit_form(MultiDict({"amount": "0", "depositDate": "nope"}))

    assert values["note"] == ""
    assert errors == {
        "amount": "Must be greater than 0",
        "depositDate": "Please enter a valid date",
    }
    assert has_errors(errors)
