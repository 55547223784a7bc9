# payroll_api/services/payroll_repository.py
"""
Flask-SQLAlchemy implementations of the payroll collaborators.

Rows are converted into the immutable records of ``payroll_types`` here and
nowhere else.
"""
from __future__ import annotations

from datetime import date
import logging
from typing import List

from sqlalchemy import and_, or_

from payroll_api.extensions import db
from payroll_api.models.attendance import AttendanceRecord, Holiday
from payroll_api.models.employee import Employee, EmployeePayProfile
from payroll_api.models.leave import EmployeeLeaveBalance, LeaveRequest, LeaveType
from payroll_api.models.overtime import OvertimeRequest
from payroll_api.models.payroll.pay_period import PayPeriod as PayPeriodRow
from payroll_api.models.payroll.payroll_result import PayrollResultRecord
from payroll_api.services.money import ZERO, dec
from payroll_api.services.payroll_errors import EmployeeNotFound, PayPeriodNotFound
from payroll_api.services.payroll_types import (
    ApprovalStatus,
    AttendanceDay,
    AttendanceStatus,
    CompensationProfile,
    HolidayEntry,
    LeaveBalance,
    LeaveInterval,
    OvertimeCategory,
    OvertimeInterval,
    PayPeriod,
    PayrollResult,
)

log = logging.getLogger(__name__)

_APPROVED = ApprovalStatus.APPROVED.value


def _status(raw):
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return AttendanceStatus.parse(raw)
    except ValueError:
        log.warning("ignoring unknown attendance status %r", raw)
        return None


def overtime_from_row(r: OvertimeRequest) -> OvertimeInterval:
    tag = (r.category or "").strip().lower()
    return OvertimeInterval(
        employee_id=r.employee_id,
        work_date=r.work_date,
        start_time=r.start_time,
        end_time=r.end_time,
        category=OvertimeCategory.parse(tag),
        status=ApprovalStatus.parse(r.status),
        override_rate=dec(r.override_rate),
        allowance=dec(r.allowance) or ZERO,
        is_emergency=(tag == "emergency"),
        id=r.id,
    )


def leave_from_row(r: LeaveRequest, leave_type: LeaveType) -> LeaveInterval:
    return LeaveInterval(
        employee_id=r.employee_id,
        leave_type=leave_type.name,
        start_date=r.start_date,
        end_date=r.end_date,
        status=ApprovalStatus.parse(r.status),
        id=r.id,
    )


class SqlPayrollSource:
    def get_pay_period(self, pay_period_id: int) -> PayPeriod:
        row = db.session.get(PayPeriodRow, pay_period_id)
        if not row:
            raise PayPeriodNotFound(f"Pay period {pay_period_id} not found")
        return PayPeriod(id=row.id, start_date=row.start_date, end_date=row.end_date,
                         description=row.description)

    def get_compensation_profile(self, employee_id: int, on_date: date) -> CompensationProfile:
        emp = db.session.get(Employee, employee_id)
        if not emp:
            raise EmployeeNotFound(f"Employee {employee_id} not found")
        prof = (
            EmployeePayProfile.query
            .filter(EmployeePayProfile.employee_id == employee_id)
            .filter(EmployeePayProfile.effective_from <= on_date)
            .filter(or_(EmployeePayProfile.effective_to.is_(None), EmployeePayProfile.effective_to >= on_date))
            .order_by(EmployeePayProfile.effective_from.desc())
            .first()
        )
        return CompensationProfile(
            employee_id=employee_id,
            monthly_salary=dec(prof.monthly_salary) if prof else None,
            hourly_rate=dec(prof.hourly_rate) if prof else None,
            company_id=emp.company_id,
        )

    def get_attendance(self, employee_id: int, start: date, end: date) -> List[AttendanceDay]:
        rows = (
            AttendanceRecord.query
            .filter(AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.work_date >= start,
                    AttendanceRecord.work_date <= end)
            .order_by(AttendanceRecord.work_date.asc())
            .all()
        )
        return [
            AttendanceDay(work_date=r.work_date, clock_in=r.clock_in, clock_out=r.clock_out,
                          status=_status(r.status), scheduled_start=r.scheduled_start)
            for r in rows
        ]

    def get_approved_overtime(self, employee_id: int, start: date, end: date) -> List[OvertimeInterval]:
        rows = (
            OvertimeRequest.query
            .filter(OvertimeRequest.employee_id == employee_id,
                    OvertimeRequest.work_date >= start,
                    OvertimeRequest.work_date <= end,
                    db.func.lower(OvertimeRequest.status) == _APPROVED.lower())
            .order_by(OvertimeRequest.work_date.asc(), OvertimeRequest.start_time.asc(), OvertimeRequest.id.asc())
            .all()
        )
        return [overtime_from_row(r) for r in rows]

    def get_approved_leave(self, employee_id: int, start: date, end: date) -> List[LeaveInterval]:
        rows = (
            db.session.query(LeaveRequest, LeaveType)
            .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
            .filter(LeaveRequest.employee_id == employee_id,
                    and_(LeaveRequest.start_date <= end, LeaveRequest.end_date >= start),
                    db.func.lower(LeaveRequest.status) == _APPROVED.lower())
            .order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
            .all()
        )
        return [leave_from_row(lr, lt) for lr, lt in rows]

    def get_leave_balances(self, employee_id: int, year: int) -> List[LeaveBalance]:
        rows = (
            EmployeeLeaveBalance.query
            .filter(EmployeeLeaveBalance.employee_id == employee_id, EmployeeLeaveBalance.year == year)
            .order_by(EmployeeLeaveBalance.leave_type_id.asc())
            .all()
        )
        return [LeaveBalance(leave_type=b.leave_type.name, remaining_days=dec(b.available) or ZERO)
                for b in rows]

    def get_holiday_calendar(self, start: date, end: date) -> List[HolidayEntry]:
        rows = (
            Holiday.query
            .filter(Holiday.date >= start, Holiday.date <= end)
            .order_by(Holiday.date.asc())
            .all()
        )
        return [HolidayEntry(day=h.date, is_regular=bool(h.is_regular)) for h in rows]

    def list_active_employee_ids(self) -> List[int]:
        rows = (
            db.session.query(Employee.id)
            .filter(Employee.status == "active")
            .order_by(Employee.id.asc())
            .all()
        )
        return [r[0] for r in rows]


class SqlPayrollResultStore:
    def save_payroll_result(self, result: PayrollResult) -> None:
        """
        Idempotently create/update the row keyed by (employee_id, pay_period_id).
        The whole write is one transaction; any failure rolls back.
        """
        try:
            row = PayrollResultRecord.query.filter_by(
                employee_id=result.employee_id, pay_period_id=result.pay_period_id
            ).first()
            if row is None:
                row = PayrollResultRecord(employee_id=result.employee_id, pay_period_id=result.pay_period_id)
                db.session.add(row)
            row.period_start = result.period_start
            row.period_end = result.period_end
            row.hourly_rate = result.hourly_rate
            row.earnings = result.sum_kind("earning")
            row.deductions = result.sum_kind("deduction")
            row.statutory = result.sum_kind("statutory")
            row.gross_pay = result.gross_pay
            row.net_pay = result.net_pay
            row.breakdown = result.to_dict()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("payroll result saved employee=%s period=%s row=%s",
                 result.employee_id, result.pay_period_id, row.id)
