from datetime import datetime
from payroll_api.extensions import db


class PayrollResultRecord(db.Model):
    __tablename__ = "payroll_results"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    pay_period_id = db.Column(db.Integer, db.ForeignKey("pay_periods.id", ondelete="CASCADE"), nullable=False, index=True)

    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    hourly_rate = db.Column(db.Numeric(12, 4), nullable=False)

    earnings = db.Column(db.Numeric(14, 2), default=0)
    deductions = db.Column(db.Numeric(14, 2), default=0)
    statutory = db.Column(db.Numeric(14, 2), default=0)
    gross_pay = db.Column(db.Numeric(14, 2), default=0)
    net_pay = db.Column(db.Numeric(14, 2), default=0)

    breakdown = db.Column(db.JSON, nullable=False)  # PayrollResult.to_dict()

    computed_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "pay_period_id", name="uq_payroll_result_emp_period"),
    )

    employee = db.relationship("Employee", lazy="joined")
    pay_period = db.relationship("PayPeriod", lazy="joined")
