# payroll_api/services/statutory.py
"""
Government contributions and withholding tax.

Every function takes a *monthly* amount. Scaling to a shorter pay period
happens once, in ``statutory_deductions``, through ``period_share``.
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from payroll_api.services.money import ONE, ZERO, dec, money, ratio
from payroll_api.services.payroll_errors import InvalidDeductionTable
from payroll_api.services.payroll_rules import (
    ClampedPercentScheme,
    SalaryCreditScheme,
    StatutoryRules,
    TieredPercentScheme,
)

log = logging.getLogger(__name__)

Scheme = Union[SalaryCreditScheme, ClampedPercentScheme, TieredPercentScheme]


@dataclass(frozen=True)
class DeductionBracket:
    lower: Decimal
    upper: Optional[Decimal]
    base: Decimal
    rate: Decimal

    def contains(self, salary: Decimal) -> bool:
        # boundary belongs to the lower bracket
        return salary > self.lower and (self.upper is None or salary <= self.upper)


@dataclass(frozen=True)
class StatutoryLine:
    code: str
    base: Decimal
    monthly_amount: Decimal
    amount: Decimal


# ---------- contribution schemes ----------

def salary_credit(salary: Decimal, scheme: SalaryCreditScheme) -> Decimal:
    if salary <= scheme.floor_salary:
        return scheme.floor_credit
    if salary >= scheme.ceiling_salary:
        return scheme.ceiling_credit
    steps = (salary / scheme.step).quantize(ONE, rounding=ROUND_HALF_UP)
    return steps * scheme.step


def salary_credit_contribution(salary, scheme: SalaryCreditScheme) -> Decimal:
    s = dec(salary) or ZERO
    if s <= 0:
        return ZERO
    return money(salary_credit(s, scheme) * scheme.rate)


def clamped_percent_contribution(salary, scheme: ClampedPercentScheme) -> Decimal:
    s = dec(salary) or ZERO
    if s <= 0:
        return ZERO
    premium = s * scheme.rate
    premium = min(max(premium, scheme.minimum), scheme.maximum)
    return money(premium * scheme.employee_share)


def tiered_percent_contribution(salary, scheme: TieredPercentScheme) -> Decimal:
    s = dec(salary) or ZERO
    if s <= 0:
        return ZERO
    rate = scheme.low_rate if s <= scheme.threshold else scheme.high_rate
    return money(min(s * rate, scheme.cap))


def contribution(salary, scheme: Scheme) -> Decimal:
    if isinstance(scheme, SalaryCreditScheme):
        return salary_credit_contribution(salary, scheme)
    if isinstance(scheme, ClampedPercentScheme):
        return clamped_percent_contribution(salary, scheme)
    if isinstance(scheme, TieredPercentScheme):
        return tiered_percent_contribution(salary, scheme)
    raise TypeError(f"unsupported contribution scheme {type(scheme).__name__}")


# ---------- withholding tax ----------

def validate_brackets(raw: Sequence[Tuple[Optional[Decimal], Decimal, Decimal]]) -> List[DeductionBracket]:
    """
    Turn ``(upper, rate, base)`` rows into contiguous brackets.

    Upper bounds must strictly increase, only the last row may be open-ended
    (and it must be), and rates/bases must be non-negative.
    """
    if not raw:
        raise InvalidDeductionTable("Tax bracket table is empty")
    out: List[DeductionBracket] = []
    lower = ZERO
    last = len(raw) - 1
    for i, (upper, rate, base) in enumerate(raw):
        if rate is None or rate < 0 or base is None or base < 0:
            raise InvalidDeductionTable(f"Bracket {i}: rate and base must be non-negative")
        if upper is None and i != last:
            raise InvalidDeductionTable(f"Bracket {i}: only the top bracket may be open-ended")
        if upper is not None and i == last:
            raise InvalidDeductionTable("The top bracket must be open-ended")
        if upper is not None and upper <= lower:
            raise InvalidDeductionTable(f"Bracket {i}: upper bound {upper} is not above {lower}")
        out.append(DeductionBracket(lower=lower, upper=upper, base=base, rate=rate))
        if upper is not None:
            lower = upper
    return out


def progressive_tax(salary, brackets: Iterable[DeductionBracket]) -> Decimal:
    s = dec(salary) or ZERO
    if s <= 0:
        return ZERO
    for b in brackets:
        if b.contains(s):
            return money(b.base + (s - b.lower) * b.rate)
    raise InvalidDeductionTable(f"No tax bracket covers {s}")


# ---------- period scaling ----------

def period_share(start: date, end: date) -> Decimal:
    """Fraction of the month of ``start`` covered by the period, capped at 1."""
    days = (end - start).days + 1
    month_days = calendar.monthrange(start.year, start.month)[1]
    return min(ONE, ratio(Decimal(days) / Decimal(month_days)))


def statutory_deductions(monthly_salary, rules: StatutoryRules,
                         share: Decimal = ONE) -> List[StatutoryLine]:
    """Per-scheme monthly amounts scaled by ``share``, in a fixed order."""
    base = dec(monthly_salary) or ZERO
    brackets = validate_brackets(rules.tax_brackets)
    monthly = (
        ("SSS", contribution(base, rules.sss)),
        ("PHILHEALTH", contribution(base, rules.philhealth)),
        ("PAGIBIG", contribution(base, rules.pagibig)),
        ("WTAX", progressive_tax(base, brackets)),
    )
    lines = [StatutoryLine(code=c, base=money(base), monthly_amount=m, amount=money(m * share))
             for c, m in monthly]
    log.debug("statutory on %s (share %s): %s", base, share,
              ", ".join(f"{ln.code}={ln.amount}" for ln in lines))
    return lines
