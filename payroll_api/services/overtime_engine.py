# payroll_api/services/overtime_engine.py
"""
Overtime pricing and submission checks.

Pricing buckets every approved interval into exactly one category:

  holiday-calendar date  -> HOLIDAY (regular or special-holiday multiplier)
  Saturday / Sunday      -> WEEKEND
  special/emergency tag  -> SPECIAL (record override rate, else rules.special_rate)
  anything else          -> REGULAR

A ``night`` tag does not create its own bucket: night hours inside the
interval are priced through the shared night-differential bucket instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from payroll_api.services.interval_math import intervals_overlap, night_overlap_hours
from payroll_api.services.money import ZERO, dec, ratio
from payroll_api.services.payroll_errors import OvertimeRuleViolation
from payroll_api.services.payroll_rules import OvertimeRules, PayrollRules
from payroll_api.services.payroll_types import (
    ApprovalStatus,
    HolidayEntry,
    OvertimeCategory,
    OvertimeInterval,
    PayPeriod,
)

log = logging.getLogger(__name__)

BUCKETS = (
    OvertimeCategory.REGULAR,
    OvertimeCategory.HOLIDAY,
    OvertimeCategory.WEEKEND,
    OvertimeCategory.SPECIAL,
)


def classify_overtime(work_date: date,
                      tag: OvertimeCategory,
                      holidays: Mapping[date, HolidayEntry],
                      rules: OvertimeRules,
                      override_rate: Optional[Decimal] = None) -> Tuple[OvertimeCategory, Decimal]:
    """Bucket and multiplier for overtime worked on ``work_date``."""
    h = holidays.get(work_date)
    if h is not None:
        return OvertimeCategory.HOLIDAY, (rules.holiday if h.is_regular else rules.special_holiday)
    if work_date.weekday() >= 5:
        return OvertimeCategory.WEEKEND, rules.weekend
    if tag is OvertimeCategory.SPECIAL:
        if override_rate is not None and override_rate > 0:
            return OvertimeCategory.SPECIAL, override_rate
        return OvertimeCategory.SPECIAL, rules.special_rate
    return OvertimeCategory.REGULAR, rules.regular


@dataclass
class OvertimeBucket:
    hours: Decimal = ZERO
    pay: Decimal = ZERO     # unrounded; finalized by the aggregator

    def add(self, hours: Decimal, pay: Decimal) -> None:
        self.hours += hours
        self.pay += pay


@dataclass
class OvertimeSummary:
    buckets: Dict[OvertimeCategory, OvertimeBucket] = field(
        default_factory=lambda: {c: OvertimeBucket() for c in BUCKETS}
    )
    night_hours: Decimal = ZERO
    night_pay: Decimal = ZERO
    allowance_total: Decimal = ZERO
    allowance_count: int = 0
    dates: Set[date] = field(default_factory=set)

    @property
    def total_hours(self) -> Decimal:
        return sum((b.hours for b in self.buckets.values()), ZERO)

    @property
    def total_pay(self) -> Decimal:
        return sum((b.pay for b in self.buckets.values()), ZERO) + self.allowance_total


def approved_overtime_dates(intervals: Iterable[OvertimeInterval], period: PayPeriod) -> Set[date]:
    return {
        iv.work_date for iv in intervals
        if iv.status.is_approved and period.contains(iv.work_date)
    }


def compute_overtime(intervals: Sequence[OvertimeInterval],
                     period: PayPeriod,
                     hourly_rate: Decimal,
                     rules: PayrollRules,
                     holidays: Mapping[date, HolidayEntry]) -> OvertimeSummary:
    out = OvertimeSummary()
    ndr = rules.time.night_differential_rate
    for iv in intervals:
        if not iv.status.is_approved or not period.contains(iv.work_date):
            continue
        category, mult = classify_overtime(iv.work_date, iv.category, holidays,
                                           rules.overtime, iv.override_rate)
        hours = iv.hours
        out.buckets[category].add(hours, hours * hourly_rate * mult)
        night = night_overlap_hours(iv.start_time, iv.end_time,
                                    rules.time.night_start, rules.time.night_end)
        if night > 0:
            out.night_hours += night
            out.night_pay += night * hourly_rate * mult * ndr
        allowance = dec(iv.allowance) or ZERO
        if allowance > 0:
            out.allowance_total += allowance
            out.allowance_count += 1
        out.dates.add(iv.work_date)
        log.debug("overtime %s on %s: %sh %s x%s", iv.id, iv.work_date, hours, category.value, mult)
    return out


# ---------- submission checks ----------

def week_bounds(d: date) -> Tuple[date, date]:
    """Monday..Sunday week containing ``d``."""
    monday = d - timedelta(days=d.weekday())
    return monday, monday + timedelta(days=6)


def overtime_violations(candidate: OvertimeInterval,
                        existing: Iterable[OvertimeInterval],
                        rules: OvertimeRules) -> List[str]:
    """
    Rule breaches for ``candidate`` against the employee's other requests.

    Only pending and approved requests count; the candidate itself (same id)
    is ignored so a request can be re-checked when it is approved.
    """
    problems: List[str] = []
    hours = candidate.hours
    if hours <= 0:
        problems.append("Overtime interval has zero length")

    others = [
        iv for iv in existing
        if iv.employee_id == candidate.employee_id
        and iv.status.is_open
        and (candidate.id is None or iv.id != candidate.id)
    ]

    same_day = [iv for iv in others if iv.work_date == candidate.work_date]
    day_total = sum((iv.hours for iv in same_day), ZERO) + hours
    if day_total > rules.max_daily_hours:
        problems.append(
            f"Daily overtime would be {ratio(day_total)}h, above the {rules.max_daily_hours}h limit"
        )

    if not candidate.is_emergency:
        lo, hi = week_bounds(candidate.work_date)
        week_total = sum((iv.hours for iv in others if lo <= iv.work_date <= hi), ZERO) + hours
        if week_total > rules.max_weekly_hours:
            problems.append(
                f"Weekly overtime would be {ratio(week_total)}h, above the {rules.max_weekly_hours}h limit"
            )

    for iv in same_day:
        if intervals_overlap(candidate.start_time, candidate.end_time, iv.start_time, iv.end_time):
            problems.append(
                f"Overlaps overtime request {iv.id} "
                f"({iv.start_time.strftime('%H:%M')}-{iv.end_time.strftime('%H:%M')})"
            )
    return problems


def validate_overtime_request(candidate: OvertimeInterval,
                              existing: Iterable[OvertimeInterval],
                              rules: OvertimeRules) -> None:
    problems = overtime_violations(candidate, existing, rules)
    if problems:
        raise OvertimeRuleViolation("Overtime request violates policy", problems)


def check_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    if not current.can_move_to(target):
        raise OvertimeRuleViolation(
            f"Cannot move an overtime request from {current.value} to {target.value}",
            [f"{current.value} -> {target.value} is not allowed"],
        )
