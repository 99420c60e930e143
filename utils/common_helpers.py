from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Any, Optional

# every persisted amount (cash, quantity, price) has 8 fractional digits
SCALE = Decimal("0.00000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
# Numeric(20, 8) leaves 12 integer digits
MAX_AMOUNT = Decimal("1000000000000")


def to_decimal(x: Any) -> Optional[Decimal]:
    """Convert ints, strings, floats and Decimals; None for anything unparseable."""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, Decimal):
        return x
    try:
        # str() keeps 0.1 as 0.1 instead of its binary float expansion
        return Decimal(str(x))
    except (InvalidOperation, ValueError, TypeError):
        return None


def quantize(x: Decimal) -> Decimal:
    return x.quantize(SCALE, rounding=ROUND_HALF_EVEN)


def is_positive_finite(x: Optional[Decimal]) -> bool:
    return x is not None and x.is_finite() and x > ZERO


def safe_pct(n: Decimal, d: Decimal) -> Decimal:
    """n / d * 100, or 0 when the denominator is zero."""
    if d == ZERO:
        return ZERO
    return quantize(n / d * HUNDRED)


def normalize_symbol(value: str) -> str:
    return (value or "").strip().upper()
