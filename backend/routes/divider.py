"""Divider route: ranked standard resistor pairs."""

import dataclasses

from fastapi import APIRouter

from backend.models import DividerPair, DividerRequest, DividerResponse
from eecore.divider import find_pairs
from eecore.series import ToleranceClass

router = APIRouter()


@router.post("/divider/pairs", response_model=DividerResponse)
async def divider_pairs(request: DividerRequest):
    """
    Standard resistor pairs for a voltage divider.

    Ranking, the limit and the closest flags are applied together, so the
    flags always refer to the pairs returned. Invalid rail orderings yield
    an empty pair list rather than an error.
    """
    tol = ToleranceClass.parse(request.tolerance)
    max_ratio_error = tol.ratio_error_limit if request.within_tolerance_limit else None

    pairs = find_pairs(
        rtop=request.rtop,
        rbot=request.rbot,
        vtop=request.vtop,
        vmid=request.vmid,
        vbot=request.vbot,
        tolerance=tol,
        window_size=request.window_size,
        max_ratio_error=max_ratio_error,
        limit=request.limit,
        sort_by=request.sort_by,
    )

    return DividerResponse(
        tolerance=tol.value,
        series=tol.series_name,
        ideal_ratio=request.rtop / request.rbot,
        max_ratio_error=max_ratio_error,
        pairs=[DividerPair(**dataclasses.asdict(p)) for p in pairs],
    )
