# payroll_api/services/payroll_engine.py
"""
Payroll aggregator.

``build_payroll_result`` is the strictly ordered pipeline:

  1. pay period, compensation profile, hourly rate
  2. attendance accumulator (regular, auto overtime, night, holiday, late, absence)
  3. approved overtime
  4. leave
  5. statutory deductions on the period's share of the monthly base
  6. gross / net

It raises ``PayrollError`` subclasses. ``compute_payroll`` and friends wrap it
into a ``PayrollOutcome`` so callers never receive a partial result or a raw
data-access exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from payroll_api.services.attendance_engine import accumulate_attendance
from payroll_api.services.leave_engine import compute_leave, leave_accruals
from payroll_api.services.money import ZERO, money, ratio
from payroll_api.services.overtime_engine import BUCKETS, approved_overtime_dates, compute_overtime
from payroll_api.services.payroll_errors import DataAccessError, InvalidCompensationProfile, PayrollError
from payroll_api.services.payroll_rules import DEFAULT_RULES, PayrollRules
from payroll_api.services.payroll_sources import PayrollDataSource, PayrollResultStore
from payroll_api.services.payroll_types import (
    CompensationProfile,
    PayComponent,
    PayPeriod,
    PayrollResult,
)
from payroll_api.services.statutory import period_share, statutory_deductions

log = logging.getLogger(__name__)

RulesResolver = Callable[[CompensationProfile, PayPeriod, PayrollRules], PayrollRules]

_GENERIC_DATA_ERROR = "Payroll data could not be read or written; try again later"


@dataclass(frozen=True)
class PayrollOutcome:
    success: bool
    result: Optional[PayrollResult] = None
    reason: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, result: PayrollResult) -> "PayrollOutcome":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, err: PayrollError) -> "PayrollOutcome":
        return cls(success=False, reason=err.message, code=err.code)


def resolve_hourly_rate(profile: CompensationProfile, rules: PayrollRules) -> Decimal:
    if profile.hourly_rate is not None and profile.hourly_rate > 0:
        return ratio(profile.hourly_rate)
    if profile.monthly_salary is not None and profile.monthly_salary > 0:
        return ratio(profile.monthly_salary / rules.time.monthly_hours)
    raise InvalidCompensationProfile(
        f"Employee {profile.employee_id} has neither a positive monthly salary nor an hourly rate"
    )


def statutory_base(profile: CompensationProfile, hourly_rate: Decimal, rules: PayrollRules) -> Decimal:
    if profile.monthly_salary is not None and profile.monthly_salary > 0:
        return money(profile.monthly_salary)
    return money(hourly_rate * rules.time.monthly_hours)


def _line(code: str, kind: str, quantity, amount, unit: str = "hours") -> PayComponent:
    return PayComponent(code=code, kind=kind, quantity=ratio(quantity), amount=money(amount), unit=unit)


def build_payroll_result(employee_id: int,
                         pay_period_id: int,
                         source: PayrollDataSource,
                         rules: PayrollRules = DEFAULT_RULES,
                         rules_resolver: Optional[RulesResolver] = None) -> PayrollResult:
    period = source.get_pay_period(pay_period_id)
    profile = source.get_compensation_profile(employee_id, period.end_date)
    if rules_resolver is not None:
        rules = rules_resolver(profile, period, rules)
    rate = resolve_hourly_rate(profile, rules)

    start, end = period.start_date, period.end_date
    holidays = {h.day: h for h in source.get_holiday_calendar(start, end)}
    overtime = source.get_approved_overtime(employee_id, start, end)
    leave = source.get_approved_leave(employee_id, start, end)

    att = accumulate_attendance(
        source.get_attendance(employee_id, start, end), period, rate, rules, holidays,
        overtime_dates=approved_overtime_dates(overtime, period),
    )
    ot = compute_overtime(overtime, period, rate, rules, holidays)
    lv = compute_leave(leave, source.get_leave_balances(employee_id, start.year), period, rate, rules)

    share = period_share(start, end)
    stat = statutory_deductions(statutory_base(profile, rate, rules), rules.statutory, share)

    lines: List[PayComponent] = [_line("REGULAR", "earning", att.regular_hours, att.regular_pay)]
    for category in BUCKETS:
        auto, approved = att.auto_overtime[category], ot.buckets[category]
        lines.append(_line(f"OT_{category.name}", "earning",
                           auto.hours + approved.hours, auto.pay + approved.pay))
    lines += [
        _line("OT_ALLOWANCE", "earning", ot.allowance_count, ot.allowance_total, unit="records"),
        _line("NIGHT_DIFF", "earning", att.night_hours + ot.night_hours, att.night_pay + ot.night_pay),
        _line("HOLIDAY_PREMIUM", "earning", att.holiday_hours, att.holiday_premium),
        _line("LEAVE_PAID", "earning", lv.paid_days, lv.paid_pay, unit="days"),
        _line("LEAVE_SICK", "memo", lv.sick_days, lv.sick_pay, unit="days"),
        _line("LEAVE_MATERNITY", "earning", lv.maternity_days, lv.maternity_pay, unit="days"),
        _line("LATE", "deduction", att.late_minutes, att.late_deduction, unit="minutes"),
        _line("ABSENCE", "deduction", att.absence_days, att.absence_deduction, unit="days"),
        _line("LEAVE_UNPAID", "deduction", lv.unpaid_days, lv.unpaid_deduction, unit="days"),
        _line("LEAVE_EXCESS", "deduction", lv.excess_days, lv.excess_deduction, unit="days"),
    ]
    lines += [_line(s.code, "statutory", s.base, s.amount, unit="base") for s in stat]

    earnings = sum((c.amount for c in lines if c.kind == "earning"), ZERO)
    deductions = sum((c.amount for c in lines if c.kind == "deduction"), ZERO)
    statutory = sum((c.amount for c in lines if c.kind == "statutory"), ZERO)
    gross = money(earnings - deductions)
    net = money(gross - statutory)

    return PayrollResult(
        employee_id=employee_id,
        pay_period_id=period.id,
        period_start=start,
        period_end=end,
        hourly_rate=rate,
        components=tuple(lines),
        gross_pay=gross,
        net_pay=net,
        accruals=leave_accruals(rules.leave, share),
    )


def _guard(employee_id: int, pay_period_id: int, fn: Callable[[], PayrollResult]) -> PayrollOutcome:
    log.info("payroll start employee=%s period=%s", employee_id, pay_period_id)
    try:
        result = fn()
    except PayrollError as e:
        log.warning("payroll aborted employee=%s period=%s code=%s: %s",
                    employee_id, pay_period_id, e.code, e.message)
        return PayrollOutcome.failed(e)
    except SQLAlchemyError:
        log.exception("payroll data access failed employee=%s period=%s", employee_id, pay_period_id)
        return PayrollOutcome.failed(DataAccessError(_GENERIC_DATA_ERROR))
    log.info("payroll done employee=%s period=%s gross=%s net=%s",
             employee_id, pay_period_id, result.gross_pay, result.net_pay)
    return PayrollOutcome.ok(result)


def compute_payroll(employee_id: int,
                    pay_period_id: int,
                    source: PayrollDataSource,
                    rules: PayrollRules = DEFAULT_RULES,
                    rules_resolver: Optional[RulesResolver] = None) -> PayrollOutcome:
    return _guard(employee_id, pay_period_id,
                  lambda: build_payroll_result(employee_id, pay_period_id, source, rules, rules_resolver))


def compute_and_save(employee_id: int,
                     pay_period_id: int,
                     source: PayrollDataSource,
                     store: PayrollResultStore,
                     rules: PayrollRules = DEFAULT_RULES,
                     rules_resolver: Optional[RulesResolver] = None) -> PayrollOutcome:
    def run() -> PayrollResult:
        result = build_payroll_result(employee_id, pay_period_id, source, rules, rules_resolver)
        store.save_payroll_result(result)
        return result

    return _guard(employee_id, pay_period_id, run)


@dataclass
class BatchSummary:
    pay_period_id: int
    processed: int = 0
    failed: int = 0
    gross_total: Decimal = ZERO
    net_total: Decimal = ZERO
    errors: List[Dict[str, Any]] = field(default_factory=list)
    results: List[PayrollResult] = field(default_factory=list)

    def to_dict(self, include_results: bool = False) -> Dict[str, Any]:
        out = {
            "pay_period_id": self.pay_period_id,
            "processed": self.processed,
            "failed": self.failed,
            "gross_total": str(money(self.gross_total)),
            "net_total": str(money(self.net_total)),
            "errors": list(self.errors),
        }
        if include_results:
            out["results"] = [r.to_dict() for r in self.results]
        return out


def compute_period(pay_period_id: int,
                   source: PayrollDataSource,
                   store: Optional[PayrollResultStore] = None,
                   rules: PayrollRules = DEFAULT_RULES,
                   rules_resolver: Optional[RulesResolver] = None,
                   employee_ids: Optional[List[int]] = None) -> BatchSummary:
    """
    Compute (and save, when a store is given) every active employee for one
    pay period. One employee failing never stops the others.
    """
    period = source.get_pay_period(pay_period_id)
    ids = employee_ids if employee_ids is not None else source.list_active_employee_ids()
    summary = BatchSummary(pay_period_id=period.id)
    log.info("payroll batch period=%s employees=%d", period.id, len(ids))

    for emp_id in ids:
        if store is not None:
            outcome = compute_and_save(emp_id, period.id, source, store, rules, rules_resolver)
        else:
            outcome = compute_payroll(emp_id, period.id, source, rules, rules_resolver)
        if outcome.success:
            summary.processed += 1
            summary.gross_total += outcome.result.gross_pay
            summary.net_total += outcome.result.net_pay
            summary.results.append(outcome.result)
        else:
            summary.failed += 1
            summary.errors.append({"employee_id": emp_id, "code": outcome.code, "reason": outcome.reason})

    log.info("payroll batch period=%s processed=%d failed=%d",
             period.id, summary.processed, summary.failed)
    return summary
