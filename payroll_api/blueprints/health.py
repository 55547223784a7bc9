from flask import Blueprint
from sqlalchemy import text

from payroll_api.extensions import db
from payroll_api.common.http import ok, fail

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        db.session.rollback()
        return fail(f"database unavailable: {e.__class__.__name__}", status=503, code="DB_UNAVAILABLE")
    return ok({"status": "ok"})
