"""Scoring engine: quantitative, qualitative and impact section scores.

All functions are pure: they take raw form fields and return the derived
scores. Raw inputs arrive straight from forms, so numeric fields are
clamped at the boundary before any rule is applied.
"""

from __future__ import annotations

from typing import Any, Iterable

# Qualitative section
LEADERSHIP_WEIGHTS = {
    "has_ciso": 3,
    "has_dpo": 3,
    "has_it_security_team": 4,
}
LEADERSHIP_MAX = 10
SUSTAINABLE_MAX = 10
QUALITATIVE_MAX = 15

# (minimum trainings per year, points), checked top-down
TRAINING_TIERS = [(4, 5), (2, 3), (1, 1)]

# Impact section
IMPACT_MAX = 15
RECOVERY_PENALTIES = [(4, -2), (24, -5), (72, -8)]
RECOVERY_PENALTY_WORST = -15
BREACH_PENALTIES = {
    "none": 0,
    "low": 2,
    "medium": 5,
    "high": 8,
    "critical": 15,
}

# Summary (0-10 scale)
QUANTITATIVE_WEIGHT = 7.0
QUALITATIVE_SUMMARY_MAX = 1.5
IMPACT_SUMMARY_MAX = 1.5

ITEM_STATUSES = ("pass", "fail", "partial", "not_applicable")


def _as_count(value: Any) -> int:
    """Coerce a raw numeric field to a non-negative integer."""
    try:
        count = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, count)


def _as_hours(value: Any) -> float:
    try:
        hours = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, hours)


def training_contribution(annual_training_count: Any) -> int:
    """Points for the number of security trainings held in the year."""
    count = _as_count(annual_training_count)
    for minimum, points in TRAINING_TIERS:
        if count >= minimum:
            return points
    return 0


def software_contribution(uses_opensource: bool, uses_freeware: bool) -> int:
    """Points for avoiding unmanaged open-source and freeware in CTAM+ systems."""
    if not uses_freeware and not uses_opensource:
        return 5
    if not uses_freeware:
        return 3
    return 0


def score_qualitative(fields: dict[str, Any]) -> dict[str, int]:
    """Compute leadership, sustainability and total qualitative scores.

    Args:
        fields: Raw qualitative answers. Missing keys count as false / zero.

    Returns:
        Dict with ``leadership_score``, ``sustainable_score`` and ``total_score``.
    """
    leadership = sum(weight for key, weight in LEADERSHIP_WEIGHTS.items() if fields.get(key))
    leadership = min(LEADERSHIP_MAX, leadership)

    sustainable = training_contribution(fields.get("annual_training_count")) + software_contribution(
        bool(fields.get("uses_opensource")), bool(fields.get("uses_freeware"))
    )
    sustainable = min(SUSTAINABLE_MAX, sustainable)

    return {
        "leadership_score": leadership,
        "sustainable_score": sustainable,
        "total_score": min(QUALITATIVE_MAX, leadership + sustainable),
    }


def incident_penalty(had_incident: bool, recovery_hours: Any) -> int:
    """Penalty for a cyber incident, graded by recovery time."""
    if not had_incident:
        return 0
    hours = _as_hours(recovery_hours)
    for limit, penalty in RECOVERY_PENALTIES:
        if hours <= limit:
            return penalty
    return RECOVERY_PENALTY_WORST


def breach_penalty(had_data_breach: bool, severity: str | None) -> int:
    if not had_data_breach:
        return 0
    return -BREACH_PENALTIES.get(severity or "none", 0)


def score_impact(fields: dict[str, Any]) -> dict[str, int]:
    """Compute the impact section score, starting from 15 and deducting penalties."""
    incident = incident_penalty(bool(fields.get("had_incident")), fields.get("incident_recovery_hours"))
    breach = breach_penalty(bool(fields.get("had_data_breach")), fields.get("breach_severity"))
    return {
        "incident_score": incident,
        "breach_score": breach,
        "total_score": max(0, IMPACT_MAX + incident + breach),
    }


def score_quantitative(items: Iterable[dict[str, Any]], category_count: int) -> float:
    """Scale the share of passed CTAM+ categories to the 7-point quantitative score."""
    if category_count <= 0:
        return 0.0
    passed = sum(1 for item in items if item.get("status") == "pass")
    return round(min(passed, category_count) / category_count * QUANTITATIVE_WEIGHT, 2)


def summary_score(
    quantitative: float,
    qualitative_total: float | None,
    impact_total: float | None,
) -> dict[str, float]:
    """Combine the three sections into the 10-point assessment score.

    An assessment without an impact row is treated as incident-free and
    receives the full impact share.
    """
    qualitative = 0.0 if qualitative_total is None else min(qualitative_total / 10, QUALITATIVE_SUMMARY_MAX)
    impact = IMPACT_SUMMARY_MAX if impact_total is None else min(impact_total / 10, IMPACT_SUMMARY_MAX)
    return {
        "quantitative_score": round(quantitative, 2),
        "qualitative_score": round(qualitative, 2),
        "impact_score": round(impact, 2),
        "total_score": round(quantitative + qualitative + impact, 2),
    }
