# payroll_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from payroll_api.common.http import fail
from payroll_api.services.payroll_errors import PayrollError, NOT_FOUND_CODES


def status_for(code: str) -> int:
    """HTTP status for a PayrollError code: 404 for lookups, 422 otherwise."""
    return 404 if code in NOT_FOUND_CODES else 422


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(PayrollError)
    def _payroll(e: PayrollError):
        return fail(e.message, status=status_for(e.code), code=e.code,
                    errors=getattr(e, "violations", None))

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
