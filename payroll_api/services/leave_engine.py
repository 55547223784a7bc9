# payroll_api/services/leave_engine.py
"""
Leave pay credits, deductions and accrual figures.

Leave days are calendar days (no weekend filtering) clipped to the pay
period. The daily rate is ``standard_hours_per_day * hourly_rate``.
Every negative balance is deducted in full at the daily rate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from payroll_api.services.money import ZERO, ratio
from payroll_api.services.payroll_errors import LeaveRuleViolation, UnknownLeaveType
from payroll_api.services.payroll_rules import LeaveRules, PayrollRules
from payroll_api.services.payroll_types import (
    ApprovalStatus,
    LeaveBalance,
    LeaveCategory,
    LeaveInterval,
    PayPeriod,
)

log = logging.getLogger(__name__)


def classify_leave(leave_type: str, rules: LeaveRules) -> LeaveCategory:
    name = " ".join((leave_type or "").lower().split())
    for category, words in rules.keywords:
        if any(w in name for w in words):
            return LeaveCategory(category)
    raise UnknownLeaveType(f"Leave type {leave_type!r} does not match any known leave category")


@dataclass
class LeaveSummary:
    paid_days: int = 0
    paid_pay: Decimal = ZERO            # includes sick leave
    sick_days: int = 0
    sick_pay: Decimal = ZERO            # reporting only, already inside paid_pay
    maternity_days: int = 0
    maternity_pay: Decimal = ZERO
    unpaid_days: int = 0
    unpaid_deduction: Decimal = ZERO
    excess_days: Decimal = ZERO
    excess_deduction: Decimal = ZERO


def compute_leave(intervals: Sequence[LeaveInterval],
                  balances: Sequence[LeaveBalance],
                  period: PayPeriod,
                  hourly_rate: Decimal,
                  rules: PayrollRules) -> LeaveSummary:
    """
    Every approved interval is classified first; an unknown type aborts the
    whole computation before any figure is produced.
    """
    approved = [iv for iv in intervals if iv.status.is_approved]
    classified = [(iv, classify_leave(iv.leave_type, rules.leave)) for iv in approved]

    daily = rules.time.standard_hours_per_day * hourly_rate
    out = LeaveSummary()

    for iv, category in classified:
        days = iv.days_within(period.start_date, period.end_date)
        if days <= 0:
            continue
        amount = Decimal(days) * daily
        if category is LeaveCategory.UNPAID:
            out.unpaid_days += days
            out.unpaid_deduction += amount
        elif category is LeaveCategory.MATERNITY_PATERNITY:
            out.maternity_days += days
            out.maternity_pay += amount * rules.leave.maternity_pay_fraction
        else:
            out.paid_days += days
            out.paid_pay += amount
            if category is LeaveCategory.SICK:
                out.sick_days += days
                out.sick_pay += amount
        log.debug("leave %s %r: %s day(s) as %s", iv.id, iv.leave_type, days, category.value)

    for bal in balances:
        if bal.remaining_days >= 0:
            continue
        over = -bal.remaining_days
        log.debug("leave balance %r overdrawn by %s day(s)", bal.leave_type, over)
        out.excess_days += over
        out.excess_deduction += over * daily
    return out


def leave_accruals(rules: LeaveRules, share: Decimal) -> Tuple[Tuple[str, Decimal], ...]:
    """Monthly accrual credits scaled to the period; reported, never posted."""
    return tuple((name, ratio(days * share)) for name, days in rules.monthly_accruals)


# ---------- request workflow ----------

def leave_violations(candidate: LeaveInterval,
                     existing: Iterable[LeaveInterval],
                     remaining_days: Optional[Decimal] = None) -> List[str]:
    """
    Checks run on submission and again on approval. ``remaining_days`` is the
    balance for the candidate's type and year, or None when no balance is
    tracked for it.
    """
    problems: List[str] = []
    if remaining_days is not None and Decimal(candidate.days) > remaining_days:
        problems.append(
            f"Insufficient leave balance: {remaining_days} day(s) remaining, {candidate.days} requested"
        )
    for other in existing:
        if candidate.id is not None and other.id == candidate.id:
            continue
        if other.employee_id != candidate.employee_id or not other.status.is_open:
            continue
        if other.start_date <= candidate.end_date and candidate.start_date <= other.end_date:
            problems.append(
                f"Overlaps leave request {other.id} ({other.start_date.isoformat()} to {other.end_date.isoformat()})"
            )
    return problems


def validate_leave_request(candidate: LeaveInterval,
                           existing: Iterable[LeaveInterval],
                           rules: LeaveRules,
                           remaining_days: Optional[Decimal] = None) -> LeaveCategory:
    category = classify_leave(candidate.leave_type, rules)
    if category is LeaveCategory.UNPAID:
        remaining_days = None
    problems = leave_violations(candidate, existing, remaining_days)
    if problems:
        raise LeaveRuleViolation("Leave request violates policy", problems)
    return category


def check_leave_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    if not current.can_move_to(target):
        raise LeaveRuleViolation(
            f"Cannot move a leave request from {current.value} to {target.value}",
            [f"{current.value} -> {target.value} is not allowed"],
        )
