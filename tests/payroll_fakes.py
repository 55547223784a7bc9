"""In-memory collaborators for exercising the engines without a database."""
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Dict, List

from payroll_api.services.payroll_errors import EmployeeNotFound, PayPeriodNotFound
from payroll_api.services.payroll_types import (
    ApprovalStatus,
    AttendanceDay,
    CompensationProfile,
    HolidayEntry,
    LeaveBalance,
    LeaveInterval,
    OvertimeInterval,
    PayPeriod,
    PayrollResult,
)


@dataclass
class FakeSource:
    profiles: Dict[int, CompensationProfile] = field(default_factory=dict)
    periods: Dict[int, PayPeriod] = field(default_factory=dict)
    attendance: Dict[int, List[AttendanceDay]] = field(default_factory=dict)
    overtime: Dict[int, List[OvertimeInterval]] = field(default_factory=dict)
    leave: Dict[int, List[LeaveInterval]] = field(default_factory=dict)
    balances: Dict[int, List[LeaveBalance]] = field(default_factory=dict)
    holidays: List[HolidayEntry] = field(default_factory=list)

    def get_compensation_profile(self, employee_id, on_date):
        if employee_id not in self.profiles:
            raise EmployeeNotFound(f"Employee {employee_id} not found")
        return self.profiles[employee_id]

    def get_attendance(self, employee_id, start, end):
        return [d for d in self.attendance.get(employee_id, []) if start <= d.work_date <= end]

    def get_approved_overtime(self, employee_id, start, end):
        return [iv for iv in self.overtime.get(employee_id, [])
                if iv.status is ApprovalStatus.APPROVED and start <= iv.work_date <= end]

    def get_approved_leave(self, employee_id, start, end):
        return [lv for lv in self.leave.get(employee_id, [])
                if lv.status is ApprovalStatus.APPROVED and lv.start_date <= end and lv.end_date >= start]

    def get_leave_balances(self, employee_id, year):
        return list(self.balances.get(employee_id, []))

    def get_holiday_calendar(self, start, end):
        return [h for h in self.holidays if start <= h.day <= end]

    def get_pay_period(self, pay_period_id):
        if pay_period_id not in self.periods:
            raise PayPeriodNotFound(f"Pay period {pay_period_id} not found")
        return self.periods[pay_period_id]

    def list_active_employee_ids(self):
        return sorted(self.profiles)


@dataclass
class FakeStore:
    saved: Dict[tuple, PayrollResult] = field(default_factory=dict)
    writes: int = 0

    def save_payroll_result(self, result):
        self.writes += 1
        self.saved[(result.employee_id, result.pay_period_id)] = result


def day(d, cin="08:00", cout="16:00", **kw):
    return AttendanceDay(
        work_date=d,
        clock_in=time.fromisoformat(cin) if cin else None,
        clock_out=time.fromisoformat(cout) if cout else None,
        **kw,
    )


def ot(d, start, end, emp=1, **kw):
    return OvertimeInterval(employee_id=emp, work_date=d, start_time=time.fromisoformat(start),
                            end_time=time.fromisoformat(end), **kw)


def leave(name, start, end=None, emp=1, **kw):
    return LeaveInterval(employee_id=emp, leave_type=name, start_date=start, end_date=end or start, **kw)


def single_day_source(d: date, salary="20000", **kw) -> FakeSource:
    """One employee, one pay period covering exactly ``d``."""
    src = FakeSource(**kw)
    src.profiles[1] = CompensationProfile(employee_id=1, monthly_salary=Decimal(salary))
    src.periods[1] = PayPeriod(id=1, start_date=d, end_date=d)
    return src
