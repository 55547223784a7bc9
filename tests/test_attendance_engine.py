from dataclasses import replace
from datetime import date, time
from decimal import Decimal

import pytest

from payroll_api.services.attendance_engine import accumulate_attendance
from payroll_api.services.payroll_rules import PayrollRules
from payroll_api.services.payroll_types import (
    AttendanceStatus,
    HolidayEntry,
    OvertimeCategory,
    PayPeriod,
)
from payroll_fakes import day

RATE = Decimal("100")
RULES = PayrollRules()
MON, TUE, WED, THU, FRI, SAT = (date(2025, 6, d) for d in (2, 3, 4, 5, 6, 7))
WEEK = PayPeriod(id=1, start_date=MON, end_date=FRI)


def one_day(d):
    return PayPeriod(id=1, start_date=d, end_date=d)


def run(days, period=WEEK, rules=RULES, holidays=None, **kw):
    return accumulate_attendance(days, period, RATE, rules, holidays or {}, **kw)


@pytest.mark.parametrize("cout,hours", [("12:00", "4"), ("15:30", "7.5"), ("16:00", "8")])
def test_days_within_standard_are_all_regular(cout, hours):
    out = run([day(MON, "08:00", cout)], period=one_day(MON))
    assert out.regular_hours == Decimal(hours)
    assert out.auto_overtime_hours == 0


def test_full_week_of_standard_days():
    out = run([day(d) for d in (MON, TUE, WED, THU, FRI)])
    assert out.days_present == 5
    assert out.regular_hours == Decimal("40")
    assert out.regular_pay == Decimal("4000")
    assert out.absence_days == 0
    assert out.late_minutes == 0
    assert out.night_hours == 0


def test_excess_hours_become_auto_overtime():
    out = run([day(MON, "08:00", "18:00")], period=one_day(MON))
    assert out.regular_hours == Decimal("8")
    bucket = out.auto_overtime[OvertimeCategory.REGULAR]
    assert bucket.hours == Decimal("2")
    assert bucket.pay == Decimal("250")


def test_approved_overtime_date_suppresses_auto_overtime():
    out = run([day(MON, "08:00", "18:00")], period=one_day(MON), overtime_dates={MON})
    assert out.regular_hours == Decimal("8")
    assert out.auto_overtime_hours == 0


def test_auto_overtime_on_holiday_and_weekend():
    hol = {MON: HolidayEntry(day=MON, is_regular=True)}
    out = run([day(MON, "08:00", "18:00")], period=one_day(MON), holidays=hol)
    assert out.auto_overtime[OvertimeCategory.HOLIDAY].pay == Decimal("520")
    assert out.holiday_hours == Decimal("8")
    assert out.holiday_premium == Decimal("800")

    out = run([day(SAT, "08:00", "18:00")], period=one_day(SAT))
    assert out.auto_overtime[OvertimeCategory.WEEKEND].pay == Decimal("260")


def test_late_minutes_and_deduction():
    out = run([day(MON, "08:20", "16:20")], period=one_day(MON))
    assert out.late_days == 1
    assert out.late_minutes == 20
    assert out.late_deduction == Decimal("33.33")


def test_grace_and_shift_start_prevent_lateness():
    rules = replace(RULES, time=replace(RULES.time, late_grace_minutes=30))
    assert run([day(MON, "08:20", "16:20")], period=one_day(MON), rules=rules).late_minutes == 0
    shifted = day(MON, "08:20", "16:20", scheduled_start=time(8, 30))
    assert run([shifted], period=one_day(MON)).late_minutes == 0


def test_absence_counts_weekdays_without_attendance():
    days = [day(d) for d in (MON, TUE, WED)]
    out = run(days)
    assert out.absence_days == 2
    assert out.absence_deduction == Decimal("1600")


def test_absence_follows_attendance_status_only():
    days = [day(MON), day(TUE), day(WED, None, None, status=AttendanceStatus.ON_LEAVE), day(THU)]
    out = run(days, holidays={FRI: HolidayEntry(day=FRI)})
    assert out.absence_days == 1


def test_holidays_can_be_excluded_from_absence():
    rules = replace(RULES, time=replace(RULES.time, exclude_holidays_from_absence=True))
    days = [day(d) for d in (MON, TUE, WED, THU)]
    out = run(days, rules=rules, holidays={FRI: HolidayEntry(day=FRI)})
    assert out.absence_days == 0


def test_absent_status_with_times_is_not_paid():
    out = run([day(MON, status=AttendanceStatus.ABSENT)], period=one_day(MON))
    assert out.regular_hours == 0
    assert out.absence_days == 1


def test_night_shift_differential():
    out = run([day(MON, "22:00", "06:00")], period=one_day(MON))
    assert out.regular_hours == Decimal("8")
    assert out.night_hours == Decimal("8")
    assert out.night_pay == Decimal("80")


def test_night_hours_in_excess_segment_ride_on_overtime_rate():
    out = run([day(MON, "20:00", "06:00")], period=one_day(MON))
    assert out.auto_overtime[OvertimeCategory.REGULAR].hours == Decimal("2")
    assert out.night_hours == Decimal("8")
    # 6h at 100 x 10% + 2h at 125 x 10%
    assert out.night_pay == Decimal("85")


def test_missing_clock_out_is_present_but_not_worked():
    out = run([day(MON, "08:00", None)], period=one_day(MON))
    assert out.days_present == 1
    assert out.regular_hours == 0
    assert out.absence_days == 0


def test_days_outside_period_are_ignored():
    out = run([day(date(2025, 5, 30)), day(MON)], period=one_day(MON))
    assert out.regular_hours == Decimal("8")
