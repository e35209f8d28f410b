"""Report endpoints: area roll-ups gated by report access policies."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ctam.dependencies import get_current_profile, get_store
from ctam.schemas.report import (
    AreaSummary,
    HospitalBreakdownResponse,
    HospitalRow,
    ProvinceBreakdownResponse,
    RegionOverviewResponse,
)
from ctam.services import reporting
from ctam.services.access_scope import ReportAccess, ReportType
from ctam.store import DataStore

router = APIRouter(prefix="/reports", tags=["reports"])

DRILL_DENIED = "ไม่มีสิทธิ์ดูรายงานในระดับนี้"


def _access(profile: dict[str, Any], report_type: ReportType, store: DataStore) -> ReportAccess:
    return ReportAccess.for_profile(
        profile,
        report_type,
        store.list_report_policies(),
        store.provinces,
        store.health_offices,
    )


@router.get("/regions", response_model=RegionOverviewResponse)
async def region_overview(
    report_type: ReportType = Query(default=ReportType.OVERVIEW),
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> RegionOverviewResponse:
    """Latest-assessment roll-up for every health region."""
    access = _access(profile, report_type, store)
    if not access.can_view_region:
        raise HTTPException(status_code=403, detail=DRILL_DENIED)

    rows = reporting.region_overview(
        store.health_regions,
        store.provinces,
        store.hospitals,
        store.health_offices,
        store.list_assessments(),
    )
    return RegionOverviewResponse(
        report_type=report_type.value,
        regions=[AreaSummary(**row, can_drill=access.can_drill_to_province(row["id"])) for row in rows],
    )


@router.get("/regions/{region_id}/provinces", response_model=ProvinceBreakdownResponse)
async def province_breakdown(
    region_id: str,
    report_type: ReportType = Query(default=ReportType.OVERVIEW),
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> ProvinceBreakdownResponse:
    if region_id not in store.health_regions:
        raise HTTPException(status_code=404, detail=f"Health region '{region_id}' not found")
    access = _access(profile, report_type, store)
    if not access.can_drill_to_province(region_id):
        raise HTTPException(status_code=403, detail=DRILL_DENIED)

    rows = reporting.province_breakdown(
        region_id,
        store.provinces,
        store.hospitals,
        store.health_offices,
        store.list_assessments(),
    )
    return ProvinceBreakdownResponse(
        health_region_id=region_id,
        provinces=[AreaSummary(**row, can_drill=access.can_drill_to_hospital(row["id"])) for row in rows],
    )


@router.get("/provinces/{province_id}/hospitals", response_model=HospitalBreakdownResponse)
async def hospital_breakdown(
    province_id: str,
    report_type: ReportType = Query(default=ReportType.OVERVIEW),
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> HospitalBreakdownResponse:
    """Latest assessment of each hospital in a province."""
    if province_id not in store.provinces:
        raise HTTPException(status_code=404, detail=f"Province '{province_id}' not found")
    access = _access(profile, report_type, store)
    if not access.can_drill_to_hospital(province_id):
        raise HTTPException(status_code=403, detail=DRILL_DENIED)

    rows = reporting.hospital_breakdown(province_id, store.hospitals, store.list_assessments())
    return HospitalBreakdownResponse(province_id=province_id, hospitals=[HospitalRow(**row) for row in rows])
