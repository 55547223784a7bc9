from datetime import datetime
from payroll_api.extensions import db


class PayPeriod(db.Model):
    __tablename__ = "pay_periods"

    id = db.Column(db.Integer, primary_key=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.String(120))
    status = db.Column(db.Enum("open", "closed", name="pay_period_status_enum"), default="open")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("start_date", "end_date", name="uq_pay_period_range"),
    )
