from datetime import datetime
from payroll_api.extensions import db


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, nullable=True, index=True)

    code  = db.Column(db.String(32), nullable=False, unique=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)

    doj = db.Column(db.Date, nullable=True)   # date of joining
    dol = db.Column(db.Date, nullable=True)   # date of leaving (null if active)
    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class EmployeePayProfile(db.Model):
    __tablename__ = "employee_pay_profile"

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True)

    # effective-dated profile (composite key)
    effective_from = db.Column(db.Date, primary_key=True)
    effective_to = db.Column(db.Date)

    # either may be null; the hourly rate wins when both are set
    monthly_salary = db.Column(db.Numeric(12, 2))
    hourly_rate = db.Column(db.Numeric(12, 4))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
