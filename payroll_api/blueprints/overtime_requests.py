from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request, current_app

from payroll_api.extensions import db
from payroll_api.common.http import ok, fail, page_args, as_date, as_int, as_time
from payroll_api.models.employee import Employee
from payroll_api.models.overtime import OvertimeRequest
from payroll_api.services.money import dec
from payroll_api.services.overtime_engine import check_transition, validate_overtime_request, week_bounds
from payroll_api.services.payroll_errors import EmployeeNotFound
from payroll_api.services.payroll_repository import overtime_from_row
from payroll_api.services.payroll_rules import DEFAULT_RULES
from payroll_api.services.payroll_types import ApprovalStatus, OvertimeCategory

bp = Blueprint("overtime_requests", __name__, url_prefix="/api/v1/overtime-requests")


def _rules():
    return current_app.extensions.get("payroll_rules", DEFAULT_RULES)


def _row(r: OvertimeRequest):
    iv = overtime_from_row(r)
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "work_date": r.work_date.isoformat(),
        "start_time": r.start_time.strftime("%H:%M"),
        "end_time": r.end_time.strftime("%H:%M"),
        "hours": str(iv.hours),
        "category": r.category,
        "status": iv.status.value,
        "override_rate": str(r.override_rate) if r.override_rate is not None else None,
        "allowance": str(r.allowance) if r.allowance is not None else "0.00",
        "reason": r.reason,
        "approved_at": r.approved_at.isoformat() if r.approved_at else None,
        "rejection_reason": r.rejection_reason,
    }


def _week_rows(employee_id: int, work_date, exclude_id=None):
    lo, hi = week_bounds(work_date)
    q = OvertimeRequest.query.filter(
        OvertimeRequest.employee_id == employee_id,
        OvertimeRequest.work_date >= lo,
        OvertimeRequest.work_date <= hi,
    )
    if exclude_id is not None:
        q = q.filter(OvertimeRequest.id != exclude_id)
    return [overtime_from_row(r) for r in q.all()]


@bp.post("")
def create_request():
    j = request.get_json(silent=True) or {}
    emp_id = as_int(j.get("employee_id"))
    work_date = as_date(j.get("work_date"))
    start = as_time(j.get("start_time"))
    end = as_time(j.get("end_time"))
    if not emp_id or not work_date or not start or not end:
        return fail("employee_id, work_date, start_time and end_time are required", 400, code="VALIDATION_ERROR")
    if not db.session.get(Employee, emp_id):
        raise EmployeeNotFound(f"Employee {emp_id} not found")

    category = (j.get("category") or "regular").strip().lower()
    OvertimeCategory.parse(category)  # raises UnknownOvertimeCategory

    override = dec(j.get("override_rate"))
    allowance = dec(j.get("allowance")) or dec(0)
    if (override is not None and override <= 0) or allowance < 0:
        return fail("override_rate must be positive and allowance non-negative", 400, code="VALIDATION_ERROR")

    r = OvertimeRequest(
        employee_id=emp_id,
        work_date=work_date,
        start_time=start,
        end_time=end,
        category=category,
        status=ApprovalStatus.PENDING.value,
        override_rate=override,
        allowance=allowance,
        reason=(j.get("reason") or None),
    )
    validate_overtime_request(overtime_from_row(r), _week_rows(emp_id, work_date), _rules().overtime)

    db.session.add(r)
    db.session.commit()
    return ok(_row(r), 201)


@bp.get("")
def list_requests():
    q = OvertimeRequest.query
    emp_id = request.args.get("employee_id", type=int)
    status = request.args.get("status")
    dfrom = as_date(request.args.get("from"))
    dto = as_date(request.args.get("to"))
    if emp_id:
        q = q.filter(OvertimeRequest.employee_id == emp_id)
    if status:
        try:
            st = ApprovalStatus.parse(status)
        except ValueError:
            return fail(f"Unknown status {status!r}", 400, code="VALIDATION_ERROR")
        q = q.filter(db.func.lower(OvertimeRequest.status) == st.value.lower())
    if dfrom:
        q = q.filter(OvertimeRequest.work_date >= dfrom)
    if dto:
        q = q.filter(OvertimeRequest.work_date <= dto)

    page, size = page_args()
    total = q.count()
    items = (
        q.order_by(OvertimeRequest.work_date.desc(), OvertimeRequest.start_time.asc(), OvertimeRequest.id.desc())
        .offset((page - 1) * size).limit(size).all()
    )
    return ok([_row(r) for r in items], page=page, size=size, total=total)


def _load(req_id: int) -> OvertimeRequest | None:
    return db.session.get(OvertimeRequest, req_id)


@bp.post("/<int:req_id>/approve")
def approve_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Overtime request not found", 404, code="NOT_FOUND")
    current = overtime_from_row(r)
    check_transition(current.status, ApprovalStatus.APPROVED)
    # re-check against whatever was approved since submission
    validate_overtime_request(current, _week_rows(r.employee_id, r.work_date, exclude_id=r.id),
                              _rules().overtime)

    r.status = ApprovalStatus.APPROVED.value
    r.approved_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info("overtime request %s approved", r.id)
    return ok(_row(r))


@bp.post("/<int:req_id>/reject")
def reject_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Overtime request not found", 404, code="NOT_FOUND")
    j = request.get_json(silent=True) or {}
    check_transition(overtime_from_row(r).status, ApprovalStatus.REJECTED)

    r.status = ApprovalStatus.REJECTED.value
    r.rejection_reason = (j.get("reason") or None)
    db.session.commit()
    current_app.logger.info("overtime request %s rejected", r.id)
    return ok(_row(r))


@bp.post("/<int:req_id>/cancel")
def cancel_request(req_id: int):
    r = _load(req_id)
    if not r:
        return fail("Overtime request not found", 404, code="NOT_FOUND")
    check_transition(overtime_from_row(r).status, ApprovalStatus.CANCELLED)
    r.status = ApprovalStatus.CANCELLED.value
    db.session.commit()
    return ok(_row(r))
