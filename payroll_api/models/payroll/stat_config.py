from datetime import datetime, date
from payroll_api.extensions import db


class StatConfig(db.Model):
    __tablename__ = "stat_configs"

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.Enum("SSS", "PHILHEALTH", "PAGIBIG", "WTAX", name="statconfig_type"), nullable=False)
    key = db.Column(db.String(80), nullable=False)
    # scheme fields, e.g. {"rate": "0.05", "minimum": "500"}; WTAX: {"brackets": [...]}
    value_json = db.Column(db.JSON, nullable=False)

    # company scope; NULL means global
    scope_company_id = db.Column(db.Integer, nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=100)

    effective_from = db.Column(db.Date, nullable=False, default=date.today)
    effective_to = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    closed_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index(
            "ix_statcfg_resolve",
            "type",
            "scope_company_id",
            "effective_from",
            "effective_to",
            "priority",
        ),
    )
