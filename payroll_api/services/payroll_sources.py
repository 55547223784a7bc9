# payroll_api/services/payroll_sources.py
"""Collaborator boundaries for the payroll aggregator."""
from __future__ import annotations

from datetime import date
from typing import List, Protocol

from payroll_api.services.payroll_types import (
    AttendanceDay,
    CompensationProfile,
    HolidayEntry,
    LeaveBalance,
    LeaveInterval,
    OvertimeInterval,
    PayPeriod,
    PayrollResult,
)


class PayrollDataSource(Protocol):
    """Read side. Lookups raise EmployeeNotFound / PayPeriodNotFound."""

    def get_compensation_profile(self, employee_id: int, on_date: date) -> CompensationProfile: ...

    def get_attendance(self, employee_id: int, start: date, end: date) -> List[AttendanceDay]: ...

    def get_approved_overtime(self, employee_id: int, start: date, end: date) -> List[OvertimeInterval]: ...

    def get_approved_leave(self, employee_id: int, start: date, end: date) -> List[LeaveInterval]: ...

    def get_leave_balances(self, employee_id: int, year: int) -> List[LeaveBalance]: ...

    def get_holiday_calendar(self, start: date, end: date) -> List[HolidayEntry]: ...

    def get_pay_period(self, pay_period_id: int) -> PayPeriod: ...

    def list_active_employee_ids(self) -> List[int]: ...


class PayrollResultStore(Protocol):
    """Write side: upsert keyed by (employee_id, pay_period_id)."""

    def save_payroll_result(self, result: PayrollResult) -> None: ...
