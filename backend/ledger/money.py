# ledger/money.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ledger.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, field: str = "amount") -> Decimal:
    """Parse user input into a Decimal, raising ValidationError on garbage."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required.", field=field)
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number.", field=field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number.", field=field)
    return result


def to_amount(value, field: str = "amount") -> Decimal:
    """Parse a strictly positive money amount, quantized to cents."""
    amount = quantize(to_decimal(value, field))
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.", field=field)
    return amount
