# storefront/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal

CENT = Decimal("0.01")
AMOUNT_TOLERANCE = Decimal("0.01")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def parse_money(x) -> Money | None:
    """Lenient parse for request input; None when the value is not a number."""
    if x is None or isinstance(x, bool):
        return None
    try:
        value = D(x)
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None

def round_money(x: Money) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def to_minor_units(x: Money) -> int:
    # cents for two-decimal currencies
    return int((D(x) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def amounts_match(a: Money, b: Money, tolerance: Money = AMOUNT_TOLERANCE) -> bool:
    return abs(D(a) - D(b)) <= tolerance

def to_float(x) -> float:
    return float(x or 0)
