"""Reference data endpoints: regions, provinces, units and CTAM+ categories."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ctam.dependencies import get_current_profile, get_store
from ctam.schemas.reference import (
    CategoryResponse,
    HealthOfficeResponse,
    HealthRegionResponse,
    HospitalResponse,
    ProvinceResponse,
)
from ctam.store import DataStore

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get("/health-regions", response_model=list[HealthRegionResponse])
async def list_health_regions(
    _: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[HealthRegionResponse]:
    regions = sorted(store.health_regions.values(), key=lambda r: r.get("region_number", 0))
    return [HealthRegionResponse(**r) for r in regions]


@router.get("/provinces", response_model=list[ProvinceResponse])
async def list_provinces(
    health_region_id: str | None = None,
    _: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[ProvinceResponse]:
    provinces = [
        p for p in store.provinces.values()
        if health_region_id is None or p["health_region_id"] == health_region_id
    ]
    return [ProvinceResponse(**p) for p in sorted(provinces, key=lambda p: p["name"])]


@router.get("/hospitals", response_model=list[HospitalResponse])
async def list_hospitals(
    province_id: str | None = None,
    _: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[HospitalResponse]:
    hospitals = [h for h in store.hospitals.values() if province_id is None or h["province_id"] == province_id]
    return [HospitalResponse(**h) for h in sorted(hospitals, key=lambda h: h["code"])]


@router.get("/health-offices", response_model=list[HealthOfficeResponse])
async def list_health_offices(
    health_region_id: str | None = None,
    _: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[HealthOfficeResponse]:
    if health_region_id is not None:
        offices = store.get_health_offices_in_region(health_region_id)
    else:
        offices = sorted(store.health_offices.values(), key=lambda o: o["code"])
    return [HealthOfficeResponse(**o) for o in offices]


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    _: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[CategoryResponse]:
    """The CTAM+ categories in display order."""
    return [CategoryResponse(**c) for c in store.list_categories()]
