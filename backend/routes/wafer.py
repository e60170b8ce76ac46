"""Wafer route: inverse gross-die-per-wafer solves."""

from fastapi import APIRouter

from backend.models import SolveResponse, WaferSolveRequest
from backend.routes.converters import to_response
from eecore.wafer import solve_wafer

router = APIRouter()


@router.post("/wafer/solve", response_model=SolveResponse)
async def solve_wafer_parameter(request: WaferSolveRequest):
    """
    Solve one wafer parameter for a target GDPW.

    Missing known parameters come back as an invalid_input status.
    """
    params = request.model_dump(exclude={"solve_for", "target_gdpw"})
    result = solve_wafer(request.solve_for, request.target_gdpw, **params)
    return to_response(result, (request.solve_for.value,))
