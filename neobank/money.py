"""
Monetary Amount Helpers

All balances and amounts are Decimal with 2 fractional digits.
NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union

from .errors import ValidationError

# Set global decimal context for financial precision
getcontext().prec = 28

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

# Largest magnitude a balance or amount may hold: a decimal(18,2) column
MAX_AMOUNT = Decimal('9999999999999999.99')


def to_amount(value: Union[Decimal, str, int]) -> Decimal:
    """
    Normalise a value to a 2-place Decimal

    Args:
        value: Decimal, decimal string or int

    Returns:
        Decimal quantized to cents (ROUND_HALF_UP)

    Raises:
        ValidationError: If value is a float, not a valid number, or its
            magnitude exceeds MAX_AMOUNT
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"Monetary values must be Decimal or string, got {type(value).__name__}")

    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"Cannot convert '{value}' to a monetary amount")

    if not value.is_finite():
        raise ValidationError(f"Monetary amount must be finite, got {value}")

    if abs(value) > MAX_AMOUNT:
        raise ValidationError(f"Monetary amount exceeds the maximum of {MAX_AMOUNT}")

    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Cannot represent '{value}' as a monetary amount")


def positive_amount(value: Union[Decimal, str, int]) -> Decimal:
    """Normalise and require amount > 0"""
    amount = to_amount(value)
    if amount <= ZERO:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display"""
    return f"{amount:,.2f}"
