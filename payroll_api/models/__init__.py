# payroll_api/models/__init__.py


def load_all():
    """Import every model module so create_all and migrations see the full schema."""
    from payroll_api.models import attendance, employee, leave, overtime  # noqa: F401
    from payroll_api.models.payroll import pay_period, payroll_result, stat_config  # noqa: F401
