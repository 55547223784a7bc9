import os
from datetime import date
from decimal import Decimal

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.payroll.stat_config import StatConfig
from payroll_api.services.compliance_scope import resolve_configs, rules_for_profile, statutory_overrides
from payroll_api.services.payroll_errors import InvalidDeductionTable
from payroll_api.services.payroll_rules import PayrollRules
from payroll_api.services.payroll_types import CompensationProfile, PayPeriod


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


def _add(session, **kw):
    kw.setdefault("key", "TEST")
    kw.setdefault("value_json", {})
    sc = StatConfig(**kw)
    session.add(sc)
    return sc


def test_resolve_ordering_company_before_global(session):
    on = date(2024, 6, 1)
    g = _add(session, type="SSS", scope_company_id=None, priority=5, effective_from=on)
    co = _add(session, type="SSS", scope_company_id=1, priority=50, effective_from=on)
    _add(session, type="SSS", scope_company_id=2, priority=1, effective_from=on)
    session.commit()

    out = resolve_configs("SSS", company_id=1, on_date=on)
    assert [x.id for x in out] == [co.id, g.id]


def test_priority_tie_breaks_by_effective_from(session):
    on = date(2024, 6, 1)
    a = _add(session, type="PHILHEALTH", scope_company_id=2, priority=10, effective_from=date(2024, 1, 1))
    b = _add(session, type="PHILHEALTH", scope_company_id=2, priority=10, effective_from=date(2024, 5, 1))
    _add(session, type="PHILHEALTH", scope_company_id=2, priority=1, effective_from=date(2024, 7, 1))  # not yet
    _add(session, type="PHILHEALTH", scope_company_id=2, priority=1, effective_from=date(2023, 1, 1),
         effective_to=date(2023, 12, 31))                                                           # expired
    session.commit()

    out = resolve_configs("PHILHEALTH", company_id=2, on_date=on)
    assert [x.id for x in out] == [b.id, a.id]


def test_overrides_shape_rules(session):
    on = date(2025, 6, 1)
    _add(session, type="PAGIBIG", scope_company_id=None, effective_from=on, value_json={"cap": 200})
    _add(session, type="WTAX", scope_company_id=None, effective_from=on, value_json={"brackets": [
        {"upper": 10000, "rate": 0, "base": 0},
        {"upper": None, "rate": 0.1, "base": 0},
    ]})
    session.commit()

    raw = statutory_overrides(None, on)
    assert raw["pagibig"] == {"cap": 200}
    assert len(raw["tax_brackets"]) == 2

    period = PayPeriod(id=1, start_date=on, end_date=date(2025, 6, 15))
    rules = rules_for_profile(CompensationProfile(employee_id=1, company_id=None), period, PayrollRules())
    assert rules.statutory.pagibig.cap == Decimal("200")
    assert rules.statutory.tax_brackets == ((Decimal("10000"), Decimal("0"), Decimal("0")),
                                            (None, Decimal("0.1"), Decimal("0")))
    assert rules.overtime == PayrollRules().overtime


def test_malformed_override_is_rejected(session):
    on = date(2025, 6, 1)
    _add(session, type="SSS", scope_company_id=None, effective_from=on, value_json={"percent": 5})
    session.commit()
    period = PayPeriod(id=1, start_date=on, end_date=on)
    with pytest.raises(InvalidDeductionTable):
        rules_for_profile(CompensationProfile(employee_id=1), period, PayrollRules())


def test_no_rows_keeps_rules(session):
    base = PayrollRules()
    period = PayPeriod(id=1, start_date=date(2025, 6, 1), end_date=date(2025, 6, 1))
    assert rules_for_profile(CompensationProfile(employee_id=1, company_id=3), period, base) is base
