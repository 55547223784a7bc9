# payroll_api/models/payroll/__init__.py
from payroll_api.extensions import db  # noqa

from .pay_period import PayPeriod
from .stat_config import StatConfig
from .payroll_result import PayrollResultRecord

__all__ = ["PayPeriod", "StatConfig", "PayrollResultRecord"]
