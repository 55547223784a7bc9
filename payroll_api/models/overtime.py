from datetime import datetime
from payroll_api.extensions import db


class OvertimeRequest(db.Model):
    __tablename__ = "overtime_requests"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date   = db.Column(db.Date, nullable=False)
    start_time  = db.Column(db.Time, nullable=False)
    end_time    = db.Column(db.Time, nullable=False)
    # regular|holiday|weekend|night|special|emergency|project
    category    = db.Column(db.String(20), nullable=False, default="regular")
    status      = db.Column(db.String(16), nullable=False, default="Pending")  # Pending|Approved|Rejected|Cancelled
    override_rate = db.Column(db.Numeric(6, 4))
    allowance   = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    reason      = db.Column(db.Text)
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at  = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_ot_emp_date", "employee_id", "work_date"),
    )

    employee = db.relationship("Employee", backref="overtime_requests")
