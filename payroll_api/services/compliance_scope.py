from __future__ import annotations
from datetime import date
import logging
from typing import Dict, List

from payroll_api.models.payroll.stat_config import StatConfig
from payroll_api.services.payroll_errors import InvalidDeductionTable
from payroll_api.services.payroll_rules import PayrollRules, merge_statutory
from payroll_api.services.payroll_types import CompensationProfile, PayPeriod

log = logging.getLogger(__name__)

STAT_TYPES = ("SSS", "PHILHEALTH", "PAGIBIG", "WTAX")

_RULES_KEY = {"SSS": "sss", "PHILHEALTH": "philhealth", "PAGIBIG": "pagibig"}


def resolve_configs(cfg_type: str, company_id: int | None, on_date: date) -> List[StatConfig]:
    """
    Return StatConfig records of a given type that are effective on `on_date`, ordered by resolution:
    1) company
    2) global (no scope)

    Within each tier, lower `priority` wins; tie-breaker is most-recent `effective_from`.

    value_json shapes:
    - SSS: {"floor_salary": 3250, "floor_credit": 3000, "ceiling_salary": 29750, "ceiling_credit": 29700, "step": 500, "rate": 0.045}
    - PHILHEALTH: {"rate": 0.05, "minimum": 500, "maximum": 5000, "employee_share": 0.5}
    - PAGIBIG: {"threshold": 1500, "low_rate": 0.01, "high_rate": 0.02, "cap": 100}
    - WTAX: {"brackets": [{"upper": 20833, "rate": 0, "base": 0}, ..., {"upper": null, "rate": 0.35, "base": 200833.5}]}
    Partial payloads are allowed; missing fields keep their current value.
    """
    q = (
        StatConfig.query
        .filter(StatConfig.type == cfg_type)
        .filter(StatConfig.effective_from <= on_date)
        .filter((StatConfig.effective_to.is_(None)) | (StatConfig.effective_to >= on_date))
        .filter((StatConfig.closed_at.is_(None)) | (StatConfig.closed_at > on_date))
    )

    def _ordered(subq):
        return (
            subq.order_by(StatConfig.priority.asc(), StatConfig.effective_from.desc(), StatConfig.id.desc()).all()
        )

    out: List[StatConfig] = []
    if company_id is not None:
        out.extend(_ordered(q.filter(StatConfig.scope_company_id == company_id)))
    out.extend(_ordered(q.filter(StatConfig.scope_company_id.is_(None))))
    return out


def statutory_overrides(company_id: int | None, on_date: date) -> Dict[str, dict]:
    """First resolved StatConfig per type, shaped as a ``statutory`` rules mapping."""
    raw: Dict[str, dict] = {}
    for t in STAT_TYPES:
        rows = resolve_configs(t, company_id, on_date)
        if not rows:
            continue
        v = rows[0].value_json or {}
        if t == "WTAX":
            if "brackets" in v:
                raw["tax_brackets"] = v["brackets"]
        else:
            raw[_RULES_KEY[t]] = dict(v)
        log.debug("stat config %s resolved to #%s for company=%s", t, rows[0].id, company_id)
    return raw


def rules_for_profile(profile: CompensationProfile, period: PayPeriod, rules: PayrollRules) -> PayrollRules:
    """Apply the StatConfig overrides in effect at the end of the period."""
    raw = statutory_overrides(profile.company_id, period.end_date)
    if not raw:
        return rules
    try:
        return PayrollRules(
            time=rules.time,
            overtime=rules.overtime,
            leave=rules.leave,
            statutory=merge_statutory(rules.statutory, raw),
        )
    except ValueError as e:
        raise InvalidDeductionTable(f"Statutory configuration is invalid: {e}")
