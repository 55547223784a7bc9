# payroll_api/services/attendance_engine.py
"""
Fold a period's attendance days into hours and money.

Per complete day (both clock-in and clock-out present):

  regular = min(hours_worked, standard_hours_per_day)
  excess  = hours_worked - regular

The excess becomes attendance-derived overtime only when no approved
overtime record exists for that date; an approved record replaces it.
Night hours are split at the end of the regular segment so the premium
rides on the rate that actually applied to those hours.

Absences come from attendance status alone: a Monday-Friday date with no
Present or On Leave record is absent, whatever leave was approved for it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Sequence, Set

from payroll_api.services.interval_math import night_overlap_split
from payroll_api.services.money import ONE, ZERO, ratio
from payroll_api.services.overtime_engine import BUCKETS, OvertimeBucket, classify_overtime
from payroll_api.services.payroll_rules import PayrollRules
from payroll_api.services.payroll_types import (
    AttendanceDay,
    AttendanceStatus,
    HolidayEntry,
    OvertimeCategory,
    PayPeriod,
)

log = logging.getLogger(__name__)

_COUNTED = (AttendanceStatus.PRESENT, AttendanceStatus.ON_LEAVE)


@dataclass
class AttendanceSummary:
    days_present: int = 0
    regular_hours: Decimal = ZERO
    regular_pay: Decimal = ZERO
    auto_overtime: Dict[OvertimeCategory, OvertimeBucket] = field(
        default_factory=lambda: {c: OvertimeBucket() for c in BUCKETS}
    )
    night_hours: Decimal = ZERO
    night_pay: Decimal = ZERO
    holiday_hours: Decimal = ZERO
    holiday_premium: Decimal = ZERO
    late_days: int = 0
    late_minutes: int = 0
    late_deduction: Decimal = ZERO
    absence_days: int = 0
    absence_deduction: Decimal = ZERO

    @property
    def auto_overtime_hours(self) -> Decimal:
        return sum((b.hours for b in self.auto_overtime.values()), ZERO)


def working_days(start: date, end: date) -> Iterable[date]:
    d = start
    while d <= end:
        if d.weekday() < 5:
            yield d
        d += timedelta(days=1)


def accumulate_attendance(days: Sequence[AttendanceDay],
                          period: PayPeriod,
                          hourly_rate: Decimal,
                          rules: PayrollRules,
                          holidays: Mapping[date, HolidayEntry],
                          overtime_dates: Set[date] = frozenset()) -> AttendanceSummary:
    t = rules.time
    std = t.standard_hours_per_day
    ndr = t.night_differential_rate
    out = AttendanceSummary()

    by_date: Dict[date, AttendanceDay] = {}
    for day in days:
        if period.contains(day.work_date):
            by_date[day.work_date] = day

    for d in sorted(by_date):
        day = by_date[d]
        status = day.effective_status
        if status is not AttendanceStatus.PRESENT:
            continue
        out.days_present += 1

        minutes = day.minutes_late(t.standard_start_time, t.late_cap_minutes)
        if minutes > t.late_grace_minutes:
            out.late_days += 1
            out.late_minutes += minutes

        worked = day.hours_worked
        if worked <= 0:
            continue
        regular = min(worked, std)
        excess = worked - regular
        out.regular_hours += regular

        night_reg, night_excess = night_overlap_split(day.clock_in, day.clock_out, regular,
                                                      t.night_start, t.night_end)
        out.night_hours += night_reg
        out.night_pay += night_reg * hourly_rate * ndr

        if d in holidays:
            out.holiday_hours += regular
            out.holiday_premium += regular * hourly_rate * (t.attendance_holiday_multiplier - ONE)

        if excess > 0 and d not in overtime_dates:
            category, mult = classify_overtime(d, OvertimeCategory.REGULAR, holidays, rules.overtime)
            out.auto_overtime[category].add(excess, excess * hourly_rate * mult)
            if night_excess > 0:
                out.night_hours += night_excess
                out.night_pay += night_excess * hourly_rate * mult * ndr
            log.debug("auto overtime on %s: %sh %s", d, excess, category.value)

    out.regular_pay = out.regular_hours * hourly_rate
    out.late_deduction = ratio(Decimal(out.late_minutes) / Decimal(60)) * hourly_rate

    for d in working_days(period.start_date, period.end_date):
        rec = by_date.get(d)
        if rec is not None and rec.effective_status in _COUNTED:
            continue
        if t.exclude_holidays_from_absence and d in holidays:
            continue
        out.absence_days += 1
    out.absence_deduction = Decimal(out.absence_days) * std * hourly_rate
    return out
