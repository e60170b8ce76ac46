"""Converter routes: operating points solved with Newton-Raphson."""

import math

from fastapi import APIRouter, HTTPException

from backend.models import BoostVinRequest, BuckVoutRequest, IBBSolveRequest, IBBUnknown, SolveResponse
from eecore.converters import Topology, solve
from eecore.solver import SolverResult

router = APIRouter()


def _json_float(v):
    # NaN and inf are not valid JSON numbers
    v = float(v)
    return v if math.isfinite(v) else None


def _as_list(x):
    if x is None:
        return None
    if isinstance(x, (int, float)):
        return [_json_float(x)]
    return [_json_float(v) for v in x]


def to_response(result: SolverResult, unknowns) -> SolveResponse:
    solution = {}
    if result.converged:
        solution = dict(zip(unknowns, _as_list(result.value)))
    return SolveResponse(
        converged=result.converged,
        status=result.status,
        variant=result.variant,
        solution=solution,
        iterations=result.iterations,
        resets=result.resets,
        residuals=[_json_float(r) for r in result.residuals],
        last_iterate=_as_list(result.last_iterate),
        message=result.message,
    )


@router.post("/converters/inverting-buck-boost/solve", response_model=SolveResponse)
async def solve_inverting_buck_boost(request: IBBSolveRequest):
    """
    Solve an inverting buck-boost for Vin, Vout or Vin with Iout.

    A run that fails to converge is still a 200 response; its status says why.
    """
    common = dict(
        il_avg=request.il_avg,
        ripple=request.ripple,
        inductance=request.inductance,
        fsw=request.fsw,
        max_iterations=request.max_iterations,
        tolerance=request.tolerance,
    )

    if request.solve_for == IBBUnknown.VIN:
        required = {"vout": request.vout, "iout": request.iout}
        unknowns = ("vin",)
    elif request.solve_for == IBBUnknown.VOUT:
        required = {"vin": request.vin, "iout": request.iout}
        unknowns = ("vout",)
    else:
        required = {"vout": request.vout}
        unknowns = ("vin", "iout")

    missing = [name for name, value in required.items() if value is None]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"solve_for={request.solve_for.value} requires: {', '.join(missing)}",
        )

    result = solve(Topology.INVERTING_BUCK_BOOST, request.solve_for.value, **required, **common)
    return to_response(result, unknowns)


@router.post("/converters/buck/vout", response_model=SolveResponse)
async def solve_buck_vout(request: BuckVoutRequest):
    """Buck output voltage from its inductor ripple."""
    result = solve(Topology.BUCK, "vout", **request.model_dump())
    return to_response(result, ("vout",))


@router.post("/converters/boost/vin", response_model=SolveResponse)
async def solve_boost_vin(request: BoostVinRequest):
    """Boost input voltage from its inductor ripple."""
    result = solve(Topology.BOOST, "vin", **request.model_dump())
    return to_response(result, ("vin",))
