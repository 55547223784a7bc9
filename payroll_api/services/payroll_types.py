# payroll_api/services/payroll_types.py
"""
Immutable value records consumed by the payroll engines.

Rows coming out of the database (or any other source) are converted into
these records once, at the collaborator boundary; the engines never see ORM
objects or raw status strings.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from payroll_api.services.interval_math import hours_between, _secs
from payroll_api.services.money import ZERO, dec
from payroll_api.services.payroll_errors import InconsistentInterval, UnknownOvertimeCategory


def _norm(value: Any) -> str:
    return " ".join(str(value or "").strip().lower().replace("_", " ").replace("-", " ").split())


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: Any) -> "ApprovalStatus":
        if isinstance(value, cls):
            return value
        key = _norm(value)
        for s in cls:
            if s.value.lower() == key:
                return s
        raise ValueError(f"unknown approval status {value!r}")

    @property
    def is_approved(self) -> bool:
        return self is ApprovalStatus.APPROVED

    @property
    def is_open(self) -> bool:
        """Pending and approved requests both reserve time against the caps."""
        return self in (ApprovalStatus.PENDING, ApprovalStatus.APPROVED)

    def can_move_to(self, target: "ApprovalStatus") -> bool:
        if self is ApprovalStatus.PENDING:
            return target is not ApprovalStatus.PENDING
        if self is ApprovalStatus.APPROVED:
            return target is ApprovalStatus.CANCELLED
        return False


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ON_LEAVE = "On Leave"
    ABSENT = "Absent"

    @classmethod
    def parse(cls, value: Any) -> "AttendanceStatus":
        if isinstance(value, cls):
            return value
        key = _norm(value)
        for s in cls:
            if s.value.lower() == key:
                return s
        raise ValueError(f"unknown attendance status {value!r}")


class OvertimeCategory(str, Enum):
    REGULAR = "regular"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    NIGHT = "night"
    SPECIAL = "special"

    @classmethod
    def parse(cls, value: Any) -> "OvertimeCategory":
        if isinstance(value, cls):
            return value
        key = _norm(value)
        if not key:
            return cls.REGULAR
        if key in _OT_ALIASES:
            return _OT_ALIASES[key]
        for c in cls:
            if c.value == key:
                return c
        raise UnknownOvertimeCategory(f"Unknown overtime category: {value!r}")


_OT_ALIASES = {
    "emergency": OvertimeCategory.SPECIAL,
    "project": OvertimeCategory.SPECIAL,
    "weekday": OvertimeCategory.REGULAR,
}


class LeaveCategory(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    MATERNITY_PATERNITY = "maternity_paternity"
    SICK = "sick"


@dataclass(frozen=True)
class CompensationProfile:
    employee_id: int
    monthly_salary: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    company_id: Optional[int] = None


@dataclass(frozen=True)
class PayPeriod:
    id: int
    start_date: date
    end_date: date
    description: Optional[str] = None

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise InconsistentInterval(
                f"Pay period {self.id} ends ({self.end_date}) before it starts ({self.start_date})"
            )

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date


@dataclass(frozen=True)
class AttendanceDay:
    work_date: date
    clock_in: Optional[time] = None
    clock_out: Optional[time] = None
    status: Optional[AttendanceStatus] = None
    scheduled_start: Optional[time] = None

    @property
    def is_complete(self) -> bool:
        return self.clock_in is not None and self.clock_out is not None

    @property
    def hours_worked(self) -> Decimal:
        if not self.is_complete:
            return ZERO
        return hours_between(self.clock_in, self.clock_out)

    @property
    def effective_status(self) -> AttendanceStatus:
        if self.status is not None:
            return self.status
        return AttendanceStatus.PRESENT if self.clock_in is not None else AttendanceStatus.ABSENT

    def minutes_late(self, standard_start: time, cap_minutes: int) -> int:
        start = self.scheduled_start or standard_start
        if self.clock_in is None:
            return 0
        diff = (_secs(self.clock_in) - _secs(start)) // 60
        if diff <= 0:
            return 0
        return min(diff, cap_minutes)

    def is_late(self, standard_start: time, grace_minutes: int, cap_minutes: int) -> bool:
        return self.minutes_late(standard_start, cap_minutes) > grace_minutes


@dataclass(frozen=True)
class OvertimeInterval:
    employee_id: int
    work_date: date
    start_time: time
    end_time: time
    category: OvertimeCategory = OvertimeCategory.REGULAR
    status: ApprovalStatus = ApprovalStatus.APPROVED
    override_rate: Optional[Decimal] = None
    allowance: Decimal = ZERO
    is_emergency: bool = False
    id: Optional[int] = None

    @property
    def hours(self) -> Decimal:
        return hours_between(self.start_time, self.end_time)


@dataclass(frozen=True)
class LeaveInterval:
    employee_id: int
    leave_type: str
    start_date: date
    end_date: date
    status: ApprovalStatus = ApprovalStatus.APPROVED
    id: Optional[int] = None

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise InconsistentInterval(
                f"Leave {self.leave_type!r} ends ({self.end_date}) before it starts ({self.start_date})"
            )

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def days_within(self, start: date, end: date) -> int:
        lo = max(self.start_date, start)
        hi = min(self.end_date, end)
        return (hi - lo).days + 1 if hi >= lo else 0

    def covers(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date


@dataclass(frozen=True)
class LeaveBalance:
    leave_type: str
    remaining_days: Decimal


@dataclass(frozen=True)
class HolidayEntry:
    day: date
    is_regular: bool = True


@dataclass(frozen=True)
class PayComponent:
    """One line of the breakdown: a quantity (hours/days/minutes/base) and an amount."""
    code: str
    kind: str               # earning | deduction | statutory | memo
    quantity: Decimal
    amount: Decimal
    unit: str = "hours"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class PayrollResult:
    employee_id: int
    pay_period_id: int
    period_start: date
    period_end: date
    hourly_rate: Decimal
    components: Tuple[PayComponent, ...]
    gross_pay: Decimal
    net_pay: Decimal
    accruals: Tuple[Tuple[str, Decimal], ...] = field(default_factory=tuple)

    def component(self, code: str) -> Optional[PayComponent]:
        for c in self.components:
            if c.code == code:
                return c
        return None

    def amount(self, code: str) -> Decimal:
        c = self.component(code)
        return c.amount if c else ZERO

    def quantity(self, code: str) -> Decimal:
        c = self.component(code)
        return c.quantity if c else ZERO

    def sum_kind(self, kind: str) -> Decimal:
        out = ZERO
        for c in self.components:
            if c.kind == kind:
                out += c.amount
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "pay_period_id": self.pay_period_id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "hourly_rate": str(self.hourly_rate),
            "components": [c.to_dict() for c in self.components],
            "totals": {
                "earnings": str(self.sum_kind("earning")),
                "deductions": str(self.sum_kind("deduction")),
                "statutory": str(self.sum_kind("statutory")),
            },
            "gross_pay": str(self.gross_pay),
            "net_pay": str(self.net_pay),
            "accruals": {k: str(v) for k, v in self.accruals},
        }

    @classmethod
    def from_dict(cls, j: Dict[str, Any]) -> "PayrollResult":
        return cls(
            employee_id=int(j["employee_id"]),
            pay_period_id=int(j["pay_period_id"]),
            period_start=date.fromisoformat(j["period_start"]),
            period_end=date.fromisoformat(j["period_end"]),
            hourly_rate=dec(j["hourly_rate"]),
            components=tuple(
                PayComponent(code=c["code"], kind=c["kind"], quantity=dec(c["quantity"]),
                             amount=dec(c["amount"]), unit=c.get("unit", "hours"))
                for c in j.get("components") or []
            ),
            gross_pay=dec(j["gross_pay"]),
            net_pay=dec(j["net_pay"]),
            accruals=tuple((k, dec(v)) for k, v in (j.get("accruals") or {}).items()),
        )
