# payroll_api/services/payroll_errors.py
"""
Errors raised by the payroll engines.

Every error carries a stable ``code`` so callers (HTTP layer, CLI, batch
runner) can report it without inspecting the exception type, and a
human-readable ``message`` that never includes raw data-access details.
"""
from __future__ import annotations


class PayrollError(Exception):
    code = "PAYROLL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class EmployeeNotFound(PayrollError):
    code = "EMPLOYEE_NOT_FOUND"


class PayPeriodNotFound(PayrollError):
    code = "PAY_PERIOD_NOT_FOUND"


class InvalidCompensationProfile(PayrollError):
    code = "INVALID_COMPENSATION_PROFILE"


class InconsistentInterval(PayrollError):
    code = "INCONSISTENT_INTERVAL"


class UnknownLeaveType(PayrollError):
    code = "UNKNOWN_LEAVE_TYPE"


class UnknownOvertimeCategory(PayrollError):
    code = "UNKNOWN_OVERTIME_CATEGORY"


class InvalidDeductionTable(PayrollError):
    code = "INVALID_DEDUCTION_TABLE"


class OvertimeRuleViolation(PayrollError):
    code = "OVERTIME_RULE_VIOLATION"

    def __init__(self, message: str, violations: list[str] | None = None):
        super().__init__(message)
        self.violations = list(violations or [])


class LeaveRuleViolation(PayrollError):
    code = "LEAVE_RULE_VIOLATION"

    def __init__(self, message: str, violations: list[str] | None = None):
        super().__init__(message)
        self.violations = list(violations or [])


class DataAccessError(PayrollError):
    code = "DATA_ACCESS_ERROR"


NOT_FOUND_CODES = frozenset({EmployeeNotFound.code, PayPeriodNotFound.code})
