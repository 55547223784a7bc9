from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from payroll_api.services.payroll_engine import (
    build_payroll_result,
    compute_and_save,
    compute_payroll,
    compute_period,
    resolve_hourly_rate,
)
from payroll_api.services.payroll_errors import InvalidCompensationProfile
from payroll_api.services.payroll_rules import PayrollRules, SalaryCreditScheme
from payroll_api.services.payroll_types import CompensationProfile, PayPeriod, PayrollResult
from payroll_fakes import FakeSource, FakeStore, day, leave, ot, single_day_source

RULES = PayrollRules()
MON = date(2025, 6, 2)
SAT = date(2025, 6, 7)
SUN = date(2025, 6, 8)


def test_hourly_rate_derivation():
    assert resolve_hourly_rate(CompensationProfile(1, monthly_salary=Decimal("20000")), RULES) == Decimal("113.6364")
    assert resolve_hourly_rate(CompensationProfile(1, Decimal("20000"), Decimal("150")), RULES) == Decimal("150")
    with pytest.raises(InvalidCompensationProfile):
        resolve_hourly_rate(CompensationProfile(1, Decimal("0"), None), RULES)


def test_ten_hour_day_example():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON, "08:00", "18:00")]
    outcome = compute_payroll(1, 1, src, RULES)
    assert outcome.success
    r = outcome.result
    assert r.hourly_rate == Decimal("113.6364")
    assert r.quantity("REGULAR") == Decimal("8")
    assert r.amount("REGULAR") == Decimal("909.09")
    assert r.quantity("OT_REGULAR") == Decimal("2")
    assert r.amount("OT_REGULAR") == Decimal("284.09")
    assert r.gross_pay == Decimal("1193.18")
    # one day of a 30-day month
    assert [r.amount(c) for c in ("SSS", "PHILHEALTH", "PAGIBIG", "WTAX")] == [
        Decimal("29.97"), Decimal("16.65"), Decimal("3.33"), Decimal("0.00")]
    assert r.net_pay == Decimal("1143.23")


def test_approved_overtime_replaces_auto_overtime_for_that_date():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON, "08:00", "18:00")]
    src.overtime[1] = [ot(MON, "16:00", "18:00")]
    r = compute_payroll(1, 1, src, RULES).result
    assert r.quantity("OT_REGULAR") == Decimal("2")
    assert r.amount("OT_REGULAR") == Decimal("284.09")


def test_gross_and_net_follow_component_kinds():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON, "08:20", "18:00")]
    src.overtime[1] = [ot(MON, "19:00", "21:00", allowance=Decimal("100"))]
    r = compute_payroll(1, 1, src, RULES).result
    assert r.amount("LATE") > 0
    assert r.gross_pay == r.sum_kind("earning") - r.sum_kind("deduction")
    assert r.net_pay == r.gross_pay - r.sum_kind("statutory")
    assert r.amount("OT_ALLOWANCE") == Decimal("100.00")


def test_recomputation_is_identical():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON, "20:00", "06:00")]
    src.leave[1] = [leave("Sick Leave", MON)]
    a = compute_payroll(1, 1, src, RULES).result
    b = compute_payroll(1, 1, src, RULES).result
    assert a == b
    assert a.to_dict() == b.to_dict()
    assert PayrollResult.from_dict(a.to_dict()) == a


def test_unpaid_leave_reduces_net_by_daily_rate():
    src = FakeSource()
    src.profiles[1] = CompensationProfile(employee_id=1, monthly_salary=Decimal("20000"))
    src.periods[1] = PayPeriod(id=1, start_date=MON, end_date=SUN)
    src.attendance[1] = [day(date(2025, 6, d)) for d in range(2, 7)]
    before = compute_payroll(1, 1, src, RULES).result

    src.leave[1] = [leave("Leave Without Pay", SAT)]
    after = compute_payroll(1, 1, src, RULES).result

    assert after.quantity("LEAVE_UNPAID") == Decimal("1")
    assert before.net_pay - after.net_pay == Decimal("909.09")


def test_unpaid_leave_on_an_absent_weekday_still_reduces_net():
    src = FakeSource()
    src.profiles[1] = CompensationProfile(employee_id=1, monthly_salary=Decimal("20000"))
    src.periods[1] = PayPeriod(id=1, start_date=MON, end_date=SUN)
    src.attendance[1] = [day(date(2025, 6, d)) for d in range(2, 6)]
    before = compute_payroll(1, 1, src, RULES).result
    assert before.quantity("ABSENCE") == Decimal("1")

    src.leave[1] = [leave("Leave Without Pay", date(2025, 6, 6))]
    after = compute_payroll(1, 1, src, RULES).result

    assert after.quantity("ABSENCE") == Decimal("1")
    assert after.quantity("LEAVE_UNPAID") == Decimal("1")
    assert before.net_pay - after.net_pay == Decimal("909.09")


def test_hourly_only_profile_uses_176_hour_statutory_base():
    src = single_day_source(MON)
    src.profiles[1] = CompensationProfile(employee_id=1, hourly_rate=Decimal("95.5"))
    src.attendance[1] = [day(MON)]
    r = compute_payroll(1, 1, src, RULES).result
    assert r.hourly_rate == Decimal("95.5")
    assert r.quantity("SSS") == Decimal("16808")


@pytest.mark.parametrize("mutate,code", [
    (lambda s: s.profiles.clear(), "EMPLOYEE_NOT_FOUND"),
    (lambda s: s.periods.clear(), "PAY_PERIOD_NOT_FOUND"),
    (lambda s: s.profiles.update({1: CompensationProfile(employee_id=1)}), "INVALID_COMPENSATION_PROFILE"),
    (lambda s: s.leave.update({1: [leave("Sabbatical", MON)]}), "UNKNOWN_LEAVE_TYPE"),
])
def test_failures_abort_without_saving(mutate, code):
    src = single_day_source(MON)
    src.attendance[1] = [day(MON)]
    mutate(src)
    store = FakeStore()
    outcome = compute_and_save(1, 1, src, store, RULES)
    assert not outcome.success
    assert outcome.code == code
    assert outcome.reason
    assert outcome.result is None
    assert store.writes == 0


class BrokenSource(FakeSource):
    def get_attendance(self, employee_id, start, end):
        raise OperationalError("SELECT * FROM secret_table", {}, Exception("connection reset"))


def test_data_access_errors_are_not_leaked():
    src = single_day_source(MON)
    broken = BrokenSource(profiles=src.profiles, periods=src.periods)
    outcome = compute_payroll(1, 1, broken, RULES)
    assert not outcome.success
    assert outcome.code == "DATA_ACCESS_ERROR"
    assert "secret_table" not in outcome.reason


def test_batch_reports_each_employee_independently():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON)]
    src.profiles[2] = CompensationProfile(employee_id=2)
    store = FakeStore()

    summary = compute_period(1, src, store, RULES)
    assert summary.processed == 1
    assert summary.failed == 1
    assert summary.errors == [{"employee_id": 2, "code": "INVALID_COMPENSATION_PROFILE",
                               "reason": summary.errors[0]["reason"]}]
    assert store.writes == 1
    assert summary.gross_total == store.saved[(1, 1)].gross_pay
    assert summary.to_dict()["processed"] == 1


def test_rules_resolver_is_applied_per_employee():
    src = single_day_source(MON)
    src.attendance[1] = [day(MON)]

    def no_sss(profile, period, rules):
        return rules.with_statutory(sss=SalaryCreditScheme(rate=Decimal("0")))

    r = build_payroll_result(1, 1, src, RULES, rules_resolver=no_sss)
    assert r.amount("SSS") == 0
