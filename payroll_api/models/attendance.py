from datetime import datetime
from payroll_api.extensions import db


class Holiday(db.Model):
    __tablename__ = "holidays"
    id = db.Column(db.Integer, primary_key=True)
    date        = db.Column(db.Date, nullable=False, unique=True)
    name        = db.Column(db.String(120), nullable=False)
    is_regular  = db.Column(db.Boolean, nullable=False, default=True)  # false => special non-working day
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date   = db.Column(db.Date, nullable=False)
    clock_in    = db.Column(db.Time, nullable=True)
    clock_out   = db.Column(db.Time, nullable=True)
    status      = db.Column(db.String(16), nullable=True)   # Present | On Leave | Absent
    scheduled_start = db.Column(db.Time, nullable=True)     # shift start, overrides the default
    notes       = db.Column(db.Text)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at  = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "work_date", name="uq_attendance_emp_date"),
    )
