# payroll_api/services/money.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")
# proration ratios, hour fractions and derived rates keep 4 places
RATIO = Decimal("0.0001")


def dec(x: Any) -> Optional[Decimal]:
    """Coerce numbers/strings to Decimal via str() so floats keep their printed value."""
    if x is None or x == "":
        return None
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x))
    except Exception:
        return None


def money(x: Any) -> Decimal:
    """Finalize a monetary amount: 2 places, round-half-up."""
    return (dec(x) or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def ratio(x: Any) -> Decimal:
    return (dec(x) or ZERO).quantize(RATIO, rounding=ROUND_HALF_UP)

