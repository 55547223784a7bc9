from __future__ import annotations

from flask import Blueprint, request

from payroll_api.extensions import db
from payroll_api.common.http import ok, fail, page_args, as_date
from payroll_api.models.payroll.pay_period import PayPeriod

bp = Blueprint("pay_periods", __name__, url_prefix="/api/v1/pay-periods")


def _row(p: PayPeriod):
    return {
        "id": p.id,
        "start_date": p.start_date.isoformat(),
        "end_date": p.end_date.isoformat(),
        "days": (p.end_date - p.start_date).days + 1,
        "description": p.description,
        "status": p.status,
    }


@bp.post("")
def create_period():
    j = request.get_json(silent=True) or {}
    start = as_date(j.get("start_date"))
    end = as_date(j.get("end_date"))
    if not start or not end:
        return fail("start_date and end_date are required (YYYY-MM-DD)", 400, code="VALIDATION_ERROR")
    if end < start:
        return fail("end_date must be on or after start_date", 422, code="INCONSISTENT_INTERVAL")

    p = PayPeriod(start_date=start, end_date=end, description=(j.get("description") or None), status="open")
    db.session.add(p)
    db.session.commit()
    return ok(_row(p), 201)


@bp.get("")
def list_periods():
    q = PayPeriod.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(PayPeriod.status == status)
    page, size = page_args()
    total = q.count()
    items = q.order_by(PayPeriod.start_date.desc(), PayPeriod.id.desc()).offset((page - 1) * size).limit(size).all()
    return ok([_row(p) for p in items], page=page, size=size, total=total)


@bp.get("/<int:period_id>")
def get_period(period_id: int):
    p = db.session.get(PayPeriod, period_id)
    if not p:
        return fail("Pay period not found", 404, code="PAY_PERIOD_NOT_FOUND")
    return ok(_row(p))
