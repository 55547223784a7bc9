from __future__ import annotations

from flask import Blueprint, request, current_app

from payroll_api.extensions import db
from payroll_api.common.errors import status_for
from payroll_api.common.http import ok, fail, page_args, as_int
from payroll_api.models.payroll.payroll_result import PayrollResultRecord
from payroll_api.services.compliance_scope import rules_for_profile
from payroll_api.services.payroll_engine import compute_and_save, compute_payroll, compute_period
from payroll_api.services.payroll_repository import SqlPayrollResultStore, SqlPayrollSource
from payroll_api.services.payroll_rules import DEFAULT_RULES

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


def _rules():
    return current_app.extensions.get("payroll_rules", DEFAULT_RULES)


def _bool(v, default=True):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in ("1", "true", "yes", "y")


def _row(r: PayrollResultRecord):
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "pay_period_id": r.pay_period_id,
        "period_start": r.period_start.isoformat() if r.period_start else None,
        "period_end": r.period_end.isoformat() if r.period_end else None,
        "hourly_rate": str(r.hourly_rate) if r.hourly_rate is not None else None,
        "gross_pay": str(r.gross_pay) if r.gross_pay is not None else None,
        "net_pay": str(r.net_pay) if r.net_pay is not None else None,
        "computed_at": r.computed_at.isoformat() if r.computed_at else None,
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
    }


# ---------- compute ----------

@bp.post("/compute")
def compute_one():
    j = request.get_json(silent=True) or {}
    emp_id = as_int(j.get("employee_id"))
    period_id = as_int(j.get("pay_period_id"))
    if not emp_id or not period_id:
        return fail("employee_id and pay_period_id are required", 400, code="VALIDATION_ERROR")

    save = _bool(j.get("save"), True)
    source = SqlPayrollSource()
    if save:
        outcome = compute_and_save(emp_id, period_id, source, SqlPayrollResultStore(),
                                   _rules(), rules_for_profile)
    else:
        outcome = compute_payroll(emp_id, period_id, source, _rules(), rules_for_profile)

    if not outcome.success:
        return fail(outcome.reason, status_for(outcome.code), code=outcome.code)
    return ok(outcome.result.to_dict(), saved=save)


@bp.post("/periods/<int:period_id>/compute")
def compute_batch(period_id: int):
    j = request.get_json(silent=True) or {}
    ids = j.get("employee_ids")
    if ids is not None:
        if not isinstance(ids, list) or any(as_int(x) is None for x in ids):
            return fail("employee_ids must be a list of integers", 400, code="VALIDATION_ERROR")
        ids = [as_int(x) for x in ids]
    save = _bool(j.get("save"), True)

    summary = compute_period(
        period_id,
        SqlPayrollSource(),
        SqlPayrollResultStore() if save else None,
        _rules(),
        rules_for_profile,
        employee_ids=ids,
    )
    return ok(summary.to_dict(include_results=_bool(j.get("include_results"), False)), saved=save)


# ---------- results ----------

@bp.get("/results")
def list_results():
    q = PayrollResultRecord.query
    emp_id = request.args.get("employee_id", type=int)
    period_id = request.args.get("pay_period_id", type=int)
    if emp_id:
        q = q.filter(PayrollResultRecord.employee_id == emp_id)
    if period_id:
        q = q.filter(PayrollResultRecord.pay_period_id == period_id)

    page, size = page_args()
    total = q.count()
    items = (
        q.order_by(PayrollResultRecord.pay_period_id.desc(), PayrollResultRecord.employee_id.asc())
        .offset((page - 1) * size).limit(size).all()
    )
    return ok([_row(r) for r in items], page=page, size=size, total=total)


@bp.get("/results/<int:employee_id>/<int:pay_period_id>")
def get_result(employee_id: int, pay_period_id: int):
    r = PayrollResultRecord.query.filter_by(employee_id=employee_id, pay_period_id=pay_period_id).first()
    if not r:
        return fail("Payroll result not found", 404, code="RESULT_NOT_FOUND")
    return ok({**_row(r), "breakdown": r.breakdown})


@bp.delete("/results/<int:employee_id>/<int:pay_period_id>")
def delete_result(employee_id: int, pay_period_id: int):
    r = PayrollResultRecord.query.filter_by(employee_id=employee_id, pay_period_id=pay_period_id).first()
    if not r:
        return fail("Payroll result not found", 404, code="RESULT_NOT_FOUND")
    db.session.delete(r)
    db.session.commit()
    return ok({"deleted": True})
