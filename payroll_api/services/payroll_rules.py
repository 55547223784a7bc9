# payroll_api/services/payroll_rules.py
"""
One immutable bundle of every calculation constant.

Engines receive a ``PayrollRules`` instance explicitly; nothing in the
calculation path reads module-level multipliers. ``PayrollRules.from_mapping``
builds an instance from nested JSON-like data (config file or
``app.config["PAYROLL_RULES"]``), starting from the defaults below.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import time
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from payroll_api.services.money import dec

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeRules:
    standard_hours_per_day: Decimal = Decimal("8")
    working_days_per_month: Decimal = Decimal("22")
    standard_start_time: time = time(8, 0)
    late_grace_minutes: int = 0
    night_start: time = time(22, 0)
    night_end: time = time(6, 0)
    night_differential_rate: Decimal = Decimal("0.10")
    attendance_holiday_multiplier: Decimal = Decimal("2.00")
    exclude_holidays_from_absence: bool = False

    @property
    def monthly_hours(self) -> Decimal:
        return self.standard_hours_per_day * self.working_days_per_month

    @property
    def late_cap_minutes(self) -> int:
        return int(self.standard_hours_per_day * 60)


@dataclass(frozen=True)
class OvertimeRules:
    regular: Decimal = Decimal("1.25")
    holiday: Decimal = Decimal("2.60")
    special_holiday: Decimal = Decimal("1.69")
    weekend: Decimal = Decimal("1.30")
    special: Optional[Decimal] = None
    max_daily_hours: Decimal = Decimal("12")
    max_weekly_hours: Decimal = Decimal("60")

    @property
    def special_rate(self) -> Decimal:
        return self.special if self.special is not None else self.regular


DEFAULT_LEAVE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    # first match wins
    ("unpaid", ("unpaid", "leave without pay", "lwop")),
    ("maternity_paternity", ("maternity", "paternity", "parental")),
    ("sick", ("sick", "medical")),
    ("paid", ("vacation", "annual", "personal")),
)


@dataclass(frozen=True)
class LeaveRules:
    keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = DEFAULT_LEAVE_KEYWORDS
    maternity_pay_fraction: Decimal = Decimal("0.60")
    monthly_accruals: Tuple[Tuple[str, Decimal], ...] = (
        ("vacation", Decimal("1.25")),
        ("sick", Decimal("0.83")),
    )


@dataclass(frozen=True)
class SalaryCreditScheme:
    """Round salary to a credit step, clamp to floor/ceiling, apply a fixed rate."""
    floor_salary: Decimal = Decimal("3250")
    floor_credit: Decimal = Decimal("3000")
    ceiling_salary: Decimal = Decimal("29750")
    ceiling_credit: Decimal = Decimal("29700")
    step: Decimal = Decimal("500")
    rate: Decimal = Decimal("0.045")


@dataclass(frozen=True)
class ClampedPercentScheme:
    rate: Decimal = Decimal("0.05")
    minimum: Decimal = Decimal("500")
    maximum: Decimal = Decimal("5000")
    employee_share: Decimal = Decimal("0.5")


@dataclass(frozen=True)
class TieredPercentScheme:
    threshold: Decimal = Decimal("1500")
    low_rate: Decimal = Decimal("0.01")
    high_rate: Decimal = Decimal("0.02")
    cap: Decimal = Decimal("100")


DEFAULT_TAX_BRACKETS: Tuple[Tuple[Optional[Decimal], Decimal, Decimal], ...] = (
    # (upper bound, marginal rate, base tax at lower bound)
    (Decimal("20833"), Decimal("0"), Decimal("0")),
    (Decimal("33333"), Decimal("0.20"), Decimal("0")),
    (Decimal("66667"), Decimal("0.25"), Decimal("2500")),
    (Decimal("166667"), Decimal("0.30"), Decimal("10833.50")),
    (Decimal("666667"), Decimal("0.32"), Decimal("40833.50")),
    (None, Decimal("0.35"), Decimal("200833.50")),
)


@dataclass(frozen=True)
class StatutoryRules:
    sss: SalaryCreditScheme = field(default_factory=SalaryCreditScheme)
    philhealth: ClampedPercentScheme = field(default_factory=ClampedPercentScheme)
    pagibig: TieredPercentScheme = field(default_factory=TieredPercentScheme)
    tax_brackets: Tuple[Tuple[Optional[Decimal], Decimal, Decimal], ...] = DEFAULT_TAX_BRACKETS


@dataclass(frozen=True)
class PayrollRules:
    time: TimeRules = field(default_factory=TimeRules)
    overtime: OvertimeRules = field(default_factory=OvertimeRules)
    leave: LeaveRules = field(default_factory=LeaveRules)
    statutory: StatutoryRules = field(default_factory=StatutoryRules)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "PayrollRules":
        base = cls()
        if not data:
            return base
        _reject_unknown(data, ("time", "overtime", "leave", "statutory"), "rules")
        return cls(
            time=_merge(base.time, data.get("time"), "time"),
            overtime=_merge(base.overtime, data.get("overtime"), "overtime"),
            leave=_leave(base.leave, data.get("leave")),
            statutory=merge_statutory(base.statutory, data.get("statutory")),
        )

    @classmethod
    def from_file(cls, path: str) -> "PayrollRules":
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        log.info("payroll rules loaded from %s", path)
        return cls.from_mapping(data)

    def with_statutory(self, **changes) -> "PayrollRules":
        return replace(self, statutory=replace(self.statutory, **changes))


# ---------- mapping helpers ----------

def _reject_unknown(data: Mapping[str, Any], allowed, where: str) -> None:
    if not isinstance(data, Mapping):
        raise ValueError(f"{where}: expected an object")
    extra = sorted(set(data) - set(allowed))
    if extra:
        raise ValueError(f"{where}: unknown keys {extra}")


def _coerce(current: Any, raw: Any, key: str) -> Any:
    if isinstance(current, bool):
        if not isinstance(raw, bool):
            raise ValueError(f"{key}: expected true/false")
        return raw
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, time):
        return parse_time(raw, key)
    if raw is None:
        return None
    d = dec(raw)
    if d is None:
        raise ValueError(f"{key}: expected a number, got {raw!r}")
    return d


def _merge(obj, raw: Optional[Mapping[str, Any]], where: str):
    if not raw:
        return obj
    names = [f.name for f in fields(obj)]
    _reject_unknown(raw, names, where)
    changes: Dict[str, Any] = {}
    for k, v in raw.items():
        cur = getattr(obj, k)
        if cur is None:
            d = dec(v) if v is not None else None
            if v is not None and d is None:
                raise ValueError(f"{where}.{k}: expected a number, got {v!r}")
            changes[k] = d
        else:
            changes[k] = _coerce(cur, v, f"{where}.{k}")
    return replace(obj, **changes)


def _leave(obj: LeaveRules, raw: Optional[Mapping[str, Any]]) -> LeaveRules:
    if not raw:
        return obj
    _reject_unknown(raw, ("keywords", "maternity_pay_fraction", "monthly_accruals"), "leave")
    changes: Dict[str, Any] = {}
    if "keywords" in raw:
        kw = raw["keywords"]
        if not isinstance(kw, list):
            raise ValueError("leave.keywords: expected a list of [category, [keywords...]]")
        known = {"paid", "unpaid", "maternity_paternity", "sick"}
        out = []
        for item in kw:
            cat, words = item[0], item[1]
            if cat not in known:
                raise ValueError(f"leave.keywords: unknown category {cat!r}")
            out.append((cat, tuple(str(w).lower() for w in words)))
        changes["keywords"] = tuple(out)
    if "maternity_pay_fraction" in raw:
        changes["maternity_pay_fraction"] = _coerce(Decimal(0), raw["maternity_pay_fraction"],
                                                    "leave.maternity_pay_fraction")
    if "monthly_accruals" in raw:
        acc = raw["monthly_accruals"]
        if not isinstance(acc, Mapping):
            raise ValueError("leave.monthly_accruals: expected an object")
        changes["monthly_accruals"] = tuple(
            (str(k), _coerce(Decimal(0), v, f"leave.monthly_accruals.{k}")) for k, v in acc.items()
        )
    return replace(obj, **changes)


def merge_statutory(obj: StatutoryRules, raw: Optional[Mapping[str, Any]]) -> StatutoryRules:
    if not raw:
        return obj
    _reject_unknown(raw, ("sss", "philhealth", "pagibig", "tax_brackets"), "statutory")
    changes: Dict[str, Any] = {}
    for key in ("sss", "philhealth", "pagibig"):
        if key in raw:
            changes[key] = _merge(getattr(obj, key), raw[key], f"statutory.{key}")
    if "tax_brackets" in raw:
        changes["tax_brackets"] = parse_brackets(raw["tax_brackets"])
    return replace(obj, **changes)


def parse_brackets(raw: Any) -> Tuple[Tuple[Optional[Decimal], Decimal, Decimal], ...]:
    """
    Accepts ``[{"upper": 20833, "rate": 0, "base": 0}, ..., {"upper": null, ...}]``.
    Ordering and contiguity are checked by ``statutory.validate_brackets``.
    """
    if not isinstance(raw, list) or not raw:
        raise ValueError("tax_brackets: expected a non-empty list")
    out = []
    for i, b in enumerate(raw):
        if not isinstance(b, Mapping):
            raise ValueError(f"tax_brackets[{i}]: expected an object")
        _reject_unknown(b, ("upper", "rate", "base"), f"tax_brackets[{i}]")
        upper = dec(b.get("upper")) if b.get("upper") is not None else None
        rate = dec(b.get("rate"))
        base = dec(b.get("base", 0))
        if rate is None or base is None:
            raise ValueError(f"tax_brackets[{i}]: rate and base must be numbers")
        out.append((upper, rate, base))
    return tuple(out)


def parse_time(raw: Any, key: str = "time") -> time:
    if isinstance(raw, time):
        return raw
    try:
        parts = [int(p) for p in str(raw).strip().split(":")]
        return time(*parts)
    except (TypeError, ValueError):
        raise ValueError(f"{key}: expected HH:MM, got {raw!r}")


DEFAULT_RULES = PayrollRules()
