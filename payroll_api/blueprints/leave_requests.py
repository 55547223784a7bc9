from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request, current_app

from payroll_api.extensions import db
from payroll_api.common.http import ok, fail, page_args, as_date, as_int
from payroll_api.models.employee import Employee
from payroll_api.models.leave import EmployeeLeaveBalance, LeaveRequest, LeaveType
from payroll_api.services.leave_engine import check_leave_transition, classify_leave, validate_leave_request
from payroll_api.services.money import dec
from payroll_api.services.payroll_errors import EmployeeNotFound
from payroll_api.services.payroll_repository import leave_from_row
from payroll_api.services.payroll_rules import DEFAULT_RULES
from payroll_api.services.payroll_types import ApprovalStatus, LeaveCategory

bp = Blueprint("leave_requests", __name__, url_prefix="/api/v1/leave-requests")


def _rules():
    return current_app.extensions.get("payroll_rules", DEFAULT_RULES)


def _row(r: LeaveRequest):
    iv = leave_from_row(r, r.leave_type)
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "leave_type_id": r.leave_type_id,
        "leave_type": r.leave_type.name,
        "start_date": r.start_date.isoformat(),
        "end_date": r.end_date.isoformat(),
        "days": iv.days,
        "status": iv.status.value,
        "reason": r.reason,
        "approved_at": r.approved_at.isoformat() if r.approved_at else None,
        "rejection_reason": r.rejection_reason,
    }


def _overlapping(employee_id: int, start, end, exclude_id=None):
    q = (
        db.session.query(LeaveRequest, LeaveType)
        .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
        .filter(LeaveRequest.employee_id == employee_id,
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start)
    )
    if exclude_id is not None:
        q = q.filter(LeaveRequest.id != exclude_id)
    return [leave_from_row(lr, lt) for lr, lt in q.all()]


def _balance(r: LeaveRequest) -> EmployeeLeaveBalance | None:
    return EmployeeLeaveBalance.query.filter_by(
        employee_id=r.employee_id, leave_type_id=r.leave_type_id, year=r.start_date.year
    ).first()


def _remaining(r: LeaveRequest):
    bal = _balance(r)
    return dec(bal.available) if bal else None


def _adjust_used(r: LeaveRequest, days: int):
    """Move ``used`` on the request's balance row; unpaid leave has no balance."""
    if classify_leave(r.leave_type.name, _rules().leave) is LeaveCategory.UNPAID:
        return
    bal = _balance(r)
    if bal is None:
        bal = EmployeeLeaveBalance(employee_id=r.employee_id, leave_type_id=r.leave_type_id,
                                   year=r.start_date.year, opening_balance=0, accrued=0, used=0, adjusted=0)
        db.session.add(bal)
    bal.used = (dec(bal.used) or dec(0)) + days


@bp.post("")
def submit_request():
    j = request.get_json(silent=True) or {}
    emp_id = as_int(j.get("employee_id"))
    lt_id = as_int(j.get("leave_type_id"))
    start = as_date(j.get("start_date"))
    end = as_date(j.get("end_date")) or start
    if not emp_id or not lt_id or not start:
        return fail("employee_id, leave_type_id and start_date are required", 400, code="VALIDATION_ERROR")
    if not db.session.get(Employee, emp_id):
        raise EmployeeNotFound(f"Employee {emp_id} not found")
    lt = db.session.get(LeaveType, lt_id)
    if not lt or not lt.is_active:
        return fail("Leave type not found", 404, code="NOT_FOUND")

    r = LeaveRequest(
        employee_id=emp_id,
        leave_type_id=lt.id,
        start_date=start,
        end_date=end,
        status=ApprovalStatus.PENDING.value,
        reason=(j.get("reason") or None),
    )
    candidate = leave_from_row(r, lt)  # raises InconsistentInterval
    validate_leave_request(candidate, _overlapping(emp_id, start, end), _rules().leave, _remaining(r))

    db.session.add(r)
    db.session.commit()
    return ok(_row(r), 201)


@bp.get("")
def list_requests():
    q = LeaveRequest.query
    emp_id = request.args.get("employee_id", type=int)
    status = request.args.get("status")
    dfrom = as_date(request.args.get("from"))
    dto = as_date(request.args.get("to"))
    if emp_id:
        q = q.filter(LeaveRequest.employee_id == emp_id)
    if status:
        try:
            st = ApprovalStatus.parse(status)
        except ValueError:
            return fail(f"Unknown status {status!r}", 400, code="VALIDATION_ERROR")
        q = q.filter(db.func.lower(LeaveRequest.status) == st.value.lower())
    if dfrom:
        q = q.filter(LeaveRequest.end_date >= dfrom)
    if dto:
        q = q.filter(LeaveRequest.start_date <= dto)

    page, size = page_args()
    total = q.count()
    items = (
        q.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc())
        .offset((page - 1) * size).limit(size).all()
    )
    return ok([_row(r) for r in items], page=page, size=size, total=total)


def _load(req_id: int) -> LeaveRequest | None:
    return db.session.get(LeaveRequest, req_id)


@bp.post("/<int:req_id>/approve")
def approve_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Leave request not found", 404, code="NOT_FOUND")
    current = leave_from_row(r, r.leave_type)
    check_leave_transition(current.status, ApprovalStatus.APPROVED)
    validate_leave_request(current, _overlapping(r.employee_id, r.start_date, r.end_date, exclude_id=r.id),
                           _rules().leave, _remaining(r))

    _adjust_used(r, current.days)
    r.status = ApprovalStatus.APPROVED.value
    r.approved_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info("leave request %s approved (%s day(s))", r.id, current.days)
    return ok(_row(r))


@bp.post("/<int:req_id>/reject")
def reject_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Leave request not found", 404, code="NOT_FOUND")
    j = request.get_json(silent=True) or {}
    check_leave_transition(leave_from_row(r, r.leave_type).status, ApprovalStatus.REJECTED)

    r.status = ApprovalStatus.REJECTED.value
    r.rejection_reason = (j.get("reason") or None)
    db.session.commit()
    current_app.logger.info("leave request %s rejected", r.id)
    return ok(_row(r))


@bp.post("/<int:req_id>/cancel")
def cancel_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Leave request not found", 404, code="NOT_FOUND")
    current = leave_from_row(r, r.leave_type)
    check_leave_transition(current.status, ApprovalStatus.CANCELLED)
    if current.status.is_approved:
        _adjust_used(r, -current.days)
    r.status = ApprovalStatus.CANCELLED.value
    db.session.commit()
    return ok(_row(r))
