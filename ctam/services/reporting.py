"""Report aggregation: latest assessment per unit rolled up by area."""

from __future__ import annotations

import re
import statistics
from datetime import datetime
from typing import Any, Iterable

from ctam.services.workflow import APPROVED_STATUSES

_PERIOD_NUMBER = re.compile(r"\d+")


def is_approved_status(status: str | None) -> bool:
    return status in {s.value for s in APPROVED_STATUSES}


def _period_number(period: str | None) -> int | None:
    if not period:
        return None
    match = _PERIOD_NUMBER.search(period)
    return int(match.group()) if match else None


def recency_key(assessment: dict[str, Any]) -> tuple:
    """Sort key where larger means newer.

    Fiscal year first, then the numeric part of the period, then the raw
    period string, then creation time.
    """
    period = assessment.get("assessment_period") or ""
    number = _period_number(period)
    created_at = assessment.get("created_at")
    return (
        assessment.get("fiscal_year", 0),
        number if number is not None else -1,
        period,
        created_at.timestamp() if isinstance(created_at, datetime) else 0.0,
    )


def unit_id(assessment: dict[str, Any]) -> str | None:
    return assessment.get("hospital_id") or assessment.get("health_office_id")


def latest_by_unit(assessments: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Map each hospital or health office to its most recent assessment."""
    latest: dict[str, dict[str, Any]] = {}
    for assessment in assessments:
        unit = unit_id(assessment)
        if not unit:
            continue
        existing = latest.get(unit)
        if existing is None or recency_key(assessment) > recency_key(existing):
            latest[unit] = assessment
    return latest


def _rollup(area_id: str, name: str, unit_ids: list[str], latest: dict[str, dict[str, Any]]) -> dict[str, Any]:
    assessed = [latest[u] for u in unit_ids if u in latest]
    approved = [a for a in assessed if is_approved_status(a["status"])]
    return {
        "id": area_id,
        "name": name,
        "unit_count": len(unit_ids),
        "assessed_count": len(assessed),
        "approved_count": len(approved),
        "average_score": round(statistics.mean(a["total_score"] for a in approved), 2) if approved else None,
    }


def _units_by_province(
    hospitals: dict[str, dict[str, Any]],
    health_offices: dict[str, dict[str, Any]],
) -> dict[str, list[str]]:
    by_province: dict[str, list[str]] = {}
    for hospital in hospitals.values():
        by_province.setdefault(hospital["province_id"], []).append(hospital["id"])
    for office in health_offices.values():
        if office.get("province_id"):
            by_province.setdefault(office["province_id"], []).append(office["id"])
    return by_province


def region_overview(
    regions: dict[str, dict[str, Any]],
    provinces: dict[str, dict[str, Any]],
    hospitals: dict[str, dict[str, Any]],
    health_offices: dict[str, dict[str, Any]],
    assessments: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Per-region counts and average approved score, ordered by region number."""
    latest = latest_by_unit(assessments)
    by_province = _units_by_province(hospitals, health_offices)

    rows = []
    for region in sorted(regions.values(), key=lambda r: r.get("region_number", 0)):
        unit_ids = [
            unit
            for province in provinces.values()
            if province["health_region_id"] == region["id"]
            for unit in by_province.get(province["id"], [])
        ]
        # Regional offices without a province still belong to the region
        unit_ids.extend(
            o["id"] for o in health_offices.values()
            if not o.get("province_id") and o["health_region_id"] == region["id"]
        )
        rows.append(_rollup(region["id"], region["name"], unit_ids, latest))
    return rows


def province_breakdown(
    region_id: str,
    provinces: dict[str, dict[str, Any]],
    hospitals: dict[str, dict[str, Any]],
    health_offices: dict[str, dict[str, Any]],
    assessments: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    latest = latest_by_unit(assessments)
    by_province = _units_by_province(hospitals, health_offices)
    return [
        _rollup(p["id"], p["name"], by_province.get(p["id"], []), latest)
        for p in sorted(provinces.values(), key=lambda p: p.get("code", ""))
        if p["health_region_id"] == region_id
    ]


def hospital_breakdown(
    province_id: str,
    hospitals: dict[str, dict[str, Any]],
    assessments: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Latest assessment status and score of every hospital in a province."""
    latest = latest_by_unit(assessments)
    rows = []
    for hospital in sorted(hospitals.values(), key=lambda h: h.get("code", "")):
        if hospital["province_id"] != province_id:
            continue
        assessment = latest.get(hospital["id"])
        rows.append({
            "hospital_id": hospital["id"],
            "code": hospital["code"],
            "name": hospital["name"],
            "assessment_id": assessment["id"] if assessment else None,
            "fiscal_year": assessment["fiscal_year"] if assessment else None,
            "status": assessment["status"] if assessment else None,
            "quantitative_score": assessment["quantitative_score"] if assessment else None,
            "qualitative_score": assessment["qualitative_score"] if assessment else None,
            "impact_score": assessment["impact_score"] if assessment else None,
            "total_score": assessment["total_score"] if assessment else None,
        })
    return rows
