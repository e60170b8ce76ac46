"""Standard value routes: E-series catalogs and nearest-value lookup."""

from fastapi import APIRouter, HTTPException

from backend.models import NearbyValueInfo, NearestRequest, NearestResponse, StandardValuesResponse
from eecore.catalog import get_standard_values
from eecore.nearest import snap_to_standard, standard_values_near
from eecore.series import ToleranceClass

router = APIRouter()


@router.get("/standard-values/{tolerance}", response_model=StandardValuesResponse)
async def list_standard_values(tolerance: str):
    """Full catalog for a tolerance class. Unknown classes fall back to 5%."""
    tol = ToleranceClass.parse(tolerance)
    values = get_standard_values(tol)
    return StandardValuesResponse(
        tolerance=tol.value,
        series=tol.series_name,
        count=int(values.size),
        values=values.tolist(),
    )


@router.post("/standard-values/nearest", response_model=NearestResponse)
async def nearest_standard_value(request: NearestRequest):
    """Nearest standard value to a target and its neighbours."""
    tol = ToleranceClass.parse(request.tolerance)
    try:
        snapped, error_pct = snap_to_standard(request.target, tol)
        nearby = standard_values_near(request.target, tol, request.count, request.voltage)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return NearestResponse(
        tolerance=tol.value,
        series=tol.series_name,
        nearest=snapped,
        error_pct=error_pct,
        nearby=[NearbyValueInfo(value=n.value, error_pct=n.error_pct, current=n.current) for n in nearby],
    )
