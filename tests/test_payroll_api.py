import os
from datetime import date, time
from decimal import Decimal

import pytest

from payroll_api import create_app
from payroll_api.extensions import db, normalize_db_url
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.employee import Employee, EmployeePayProfile
from payroll_api.models.leave import LeaveRequest, LeaveType
from payroll_api.models.payroll.pay_period import PayPeriod
from payroll_api.models.payroll.payroll_result import PayrollResultRecord

MON = date(2025, 6, 2)


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


def _employee(code="E100", salary="20000", hourly=None):
    emp = Employee(code=code, first_name="Test", last_name=code, status="active")
    db.session.add(emp)
    db.session.flush()
    db.session.add(EmployeePayProfile(employee_id=emp.id, effective_from=date(2024, 1, 1),
                                      monthly_salary=Decimal(salary) if salary else None,
                                      hourly_rate=Decimal(hourly) if hourly else None))
    return emp


def _period(start=MON, end=MON):
    p = PayPeriod(start_date=start, end_date=end, status="open")
    db.session.add(p)
    db.session.flush()
    return p


def _ten_hour_day():
    emp = _employee()
    period = _period()
    rec = AttendanceRecord(employee_id=emp.id, work_date=MON, clock_in=time(8, 0),
                           clock_out=time(18, 0), status="Present")
    db.session.add(rec)
    db.session.commit()
    return emp, period, rec


def _amounts(data):
    return {c["code"]: c["amount"] for c in data["components"]}


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["data"] == {"status": "ok"}


def test_database_url_normalization(app):
    assert normalize_db_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_db_url("postgresql://h/db") == "postgresql+psycopg://h/db"
    assert normalize_db_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert "payroll_results" in db.metadata.tables
    assert "leave_requests" in db.metadata.tables


def test_compute_saves_and_recompute_overwrites(client):
    emp, period, rec = _ten_hour_day()

    r = client.post("/api/v1/payroll/compute", json={"employee_id": emp.id, "pay_period_id": period.id})
    assert r.status_code == 200
    body = r.get_json()
    assert body["meta"] == {"saved": True}
    data = body["data"]
    assert data["gross_pay"] == "1193.18"
    assert data["net_pay"] == "1143.23"
    assert _amounts(data)["OT_REGULAR"] == "284.09"

    rec.clock_out = time(16, 0)
    db.session.commit()
    r = client.post("/api/v1/payroll/compute", json={"employee_id": emp.id, "pay_period_id": period.id})
    assert r.get_json()["data"]["gross_pay"] == "909.09"

    rows = PayrollResultRecord.query.filter_by(employee_id=emp.id, pay_period_id=period.id).all()
    assert len(rows) == 1
    assert rows[0].gross_pay == Decimal("909.09")

    r = client.get(f"/api/v1/payroll/results/{emp.id}/{period.id}")
    assert r.status_code == 200
    got = r.get_json()["data"]
    assert got["gross_pay"] == "909.09"
    assert got["breakdown"]["gross_pay"] == "909.09"
    assert _amounts(got["breakdown"])["OT_REGULAR"] == "0.00"


def test_compute_without_save(client):
    emp, period, _ = _ten_hour_day()
    r = client.post("/api/v1/payroll/compute",
                    json={"employee_id": emp.id, "pay_period_id": period.id, "save": False})
    assert r.status_code == 200
    assert r.get_json()["meta"] == {"saved": False}
    assert PayrollResultRecord.query.count() == 0


def test_compute_validation_and_lookup_errors(client):
    r = client.post("/api/v1/payroll/compute", json={"employee_id": 1})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    period = _period()
    db.session.commit()
    r = client.post("/api/v1/payroll/compute", json={"employee_id": 999, "pay_period_id": period.id})
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "EMPLOYEE_NOT_FOUND"

    emp = _employee()
    db.session.commit()
    r = client.post("/api/v1/payroll/compute", json={"employee_id": emp.id, "pay_period_id": 999})
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "PAY_PERIOD_NOT_FOUND"

    r = client.get(f"/api/v1/payroll/results/{emp.id}/{period.id}")
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "RESULT_NOT_FOUND"


def test_unknown_leave_type_aborts_without_saving(client):
    emp, period, _ = _ten_hour_day()
    lt = LeaveType(code="SAB", name="Sabbatical")
    db.session.add(lt)
    db.session.flush()
    db.session.add(LeaveRequest(employee_id=emp.id, leave_type_id=lt.id, start_date=MON, end_date=MON,
                                status="Approved"))
    db.session.commit()

    r = client.post("/api/v1/payroll/compute", json={"employee_id": emp.id, "pay_period_id": period.id})
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "UNKNOWN_LEAVE_TYPE"
    assert PayrollResultRecord.query.count() == 0


def test_hourly_profile_without_rate_is_rejected(client):
    emp = _employee(salary=None)
    period = _period()
    db.session.commit()
    r = client.post("/api/v1/payroll/compute", json={"employee_id": emp.id, "pay_period_id": period.id})
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "INVALID_COMPENSATION_PROFILE"


def test_batch_compute_and_list_results(client):
    emp, period, _ = _ten_hour_day()
    broken = _employee(code="E200", salary=None)
    db.session.commit()

    r = client.post(f"/api/v1/payroll/periods/{period.id}/compute", json={})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["processed"] == 1
    assert data["failed"] == 1
    assert data["errors"][0]["employee_id"] == broken.id
    assert data["errors"][0]["code"] == "INVALID_COMPENSATION_PROFILE"

    r = client.get(f"/api/v1/payroll/results?pay_period_id={period.id}")
    listing = r.get_json()
    assert listing["meta"]["total"] == 1
    assert listing["data"][0]["employee_id"] == emp.id

    r = client.delete(f"/api/v1/payroll/results/{emp.id}/{period.id}")
    assert r.status_code == 200
    assert PayrollResultRecord.query.count() == 0

    r = client.post("/api/v1/payroll/periods/999/compute", json={})
    assert r.status_code == 404


def test_batch_rejects_bad_employee_ids(client):
    period = _period()
    db.session.commit()
    r = client.post(f"/api/v1/payroll/periods/{period.id}/compute", json={"employee_ids": "all"})
    assert r.status_code == 400


def test_pay_periods(client):
    r = client.post("/api/v1/pay-periods", json={"start_date": "2025-06-16", "end_date": "2025-06-30"})
    assert r.status_code == 201
    created = r.get_json()["data"]
    assert created["days"] == 15
    assert created["status"] == "open"

    r = client.post("/api/v1/pay-periods", json={"start_date": "2025-06-30", "end_date": "2025-06-16"})
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "INCONSISTENT_INTERVAL"

    r = client.post("/api/v1/pay-periods", json={"start_date": "June 1"})
    assert r.status_code == 400

    r = client.get("/api/v1/pay-periods")
    assert r.get_json()["meta"]["total"] == 1

    r = client.get(f"/api/v1/pay-periods/{created['id']}")
    assert r.get_json()["data"]["end_date"] == "2025-06-30"
    assert client.get("/api/v1/pay-periods/999").status_code == 404


def _ot(client, emp_id, start, end, **kw):
    body = {"employee_id": emp_id, "work_date": MON.isoformat(), "start_time": start, "end_time": end, **kw}
    return client.post("/api/v1/overtime-requests", json=body)


def test_overtime_request_lifecycle(client):
    emp = _employee()
    db.session.commit()

    r = _ot(client, emp.id, "18:00", "20:00", allowance="150")
    assert r.status_code == 201
    first = r.get_json()["data"]
    assert first["status"] == "Pending"
    assert first["hours"] == "2.0000"

    r = _ot(client, emp.id, "19:00", "21:00")
    assert r.status_code == 422
    err = r.get_json()["error"]
    assert err["code"] == "OVERTIME_RULE_VIOLATION"
    assert err["errors"]

    r = client.post(f"/api/v1/overtime-requests/{first['id']}/approve")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "Approved"
    assert r.get_json()["data"]["approved_at"]

    r = client.post(f"/api/v1/overtime-requests/{first['id']}/approve")
    assert r.status_code == 422

    r = _ot(client, emp.id, "21:00", "22:00")
    second = r.get_json()["data"]
    r = client.post(f"/api/v1/overtime-requests/{second['id']}/reject", json={"reason": "not needed"})
    assert r.get_json()["data"]["status"] == "Rejected"
    assert r.get_json()["data"]["rejection_reason"] == "not needed"

    r = client.get(f"/api/v1/overtime-requests?employee_id={emp.id}&status=approved")
    assert [x["id"] for x in r.get_json()["data"]] == [first["id"]]

    r = client.post(f"/api/v1/overtime-requests/{first['id']}/cancel")
    assert r.get_json()["data"]["status"] == "Cancelled"
    assert client.post("/api/v1/overtime-requests/999/cancel").status_code == 404


def test_overtime_request_input_errors(client):
    emp = _employee()
    db.session.commit()
    assert _ot(client, emp.id, "18:00", None).status_code == 400
    r = _ot(client, 999, "18:00", "20:00")
    assert r.status_code == 404
    r = _ot(client, emp.id, "18:00", "20:00", category="bonus")
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "UNKNOWN_OVERTIME_CATEGORY"


def test_cli_seed_and_compute(app):
    runner = app.test_cli_runner()
    out = runner.invoke(args=["seed-demo"])
    assert out.exit_code == 0, out.output
    assert "Seed complete" in out.output

    period = PayPeriod.query.first()
    out = runner.invoke(args=["compute-payroll", "--period", str(period.id)])
    assert out.exit_code == 0, out.output
    assert "processed=3 failed=0" in out.output
    assert PayrollResultRecord.query.count() == 3

    out = runner.invoke(args=["compute-payroll", "--period", "999"])
    assert out.exit_code != 0
    assert "PAY_PERIOD_NOT_FOUND" in out.output
