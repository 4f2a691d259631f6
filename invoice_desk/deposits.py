from datetime import date
from decimal import Decimal, InvalidOperation

MAX_AMOUNT = Decimal("1000000000")


def parse_amount(value):
    raw_value = (value or "").strip()
    if raw_value == "":
        return Decimal("0")
    try:
        amount = Decimal(raw_value)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_date(value):
    raw_value = (value or "").strip()
    try:
        return date.fromisoformat(raw_value)
    except ValueError:
        return None


def validate_amount(amount):
    if amount is None:
        return "Must be a number"
    if amount <= 0:
        return "Must be greater than 0"
    if amount >= MAX_AMOUNT:
        return "Must be less than $1,000,000,000"
    if amount.normalize().as_tuple().exponent < -2:
        return "Must only have two decimal places"
    return None


def validate_deposit_date(deposit_date):
    if deposit_date is None:
        return "Please enter a valid date"
    return None


def parse_deposit_form(form):
    """Read a create-deposit submission.

    Returns the cleaned values and a mapping of field name to error message
    (``None`` for fields that passed).
    """
    amount = parse_amount(form.get("amount"))
    deposit_date = parse_date(form.get("depositDate"))
    note = (form.get("note") or "").strip()

    values = {"amount": amount, "deposit_date": deposit_date, "note": note}
    errors = {
        "amount": validate_amount(amount),
        "depositDate": validate_deposit_date(deposit_date),
    }
    return values, errors


def has_errors(errors):
    return any(message for message in errors.values())
