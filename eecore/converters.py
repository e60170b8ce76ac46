"""
Converter operating points that need iterative solving.

Inverting buck-boost (Vout is the output magnitude):
    IL_avg = Iout · (Vin + Vout) / Vin
    ΔIL    = Vin · Vout / ((Vin + Vout) · fsw · L)

Both relations involve Vin and Vout, so solving either voltage from the
currents means driving the two residuals to zero together.

Buck, with high- and low-side switch drops:
    D   = (Vout + Vdsl) / (Vin - Vdsh)
    ΔIL = Vout · (1 - D) / (fsw · L)

Boost, with the low-side switch drop:
    D   = 1 - Vin / (Vout + Vdsl)
    ΔIL = Vin · D / (fsw · L)

All quantities are SI: volts, amps, henries, hertz.
"""

import logging
import math
from enum import Enum
from typing import Dict, Optional

from eecore.solver import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    SolverProblem,
    SolverResult,
    SolverStatus,
    SolverVariant,
    solve_problem,
)

logger = logging.getLogger(__name__)


class Topology(str, Enum):
    BUCK = "buck"
    BOOST = "boost"
    INVERTING_BUCK_BOOST = "inverting_buck_boost"


def _invalid(message: str, variant: SolverVariant = SolverVariant.COMBINED) -> SolverResult:
    logger.warning(message)
    return SolverResult(status=SolverStatus.INVALID_INPUT, variant=variant, message=message)


def _check_positive(variant: SolverVariant = SolverVariant.COMBINED, **params: float) -> Optional[SolverResult]:
    """INVALID_INPUT result naming the first non-positive or non-finite parameter, else None."""
    for name, value in params.items():
        if value is None or not math.isfinite(value) or value <= 0:
            return _invalid(f"{name} must be a positive finite number, got {value}", variant)
    return None


# --- Inverting buck-boost ---

def ibb_vin_problem(
    vout: float, il_avg: float, iout: float, ripple: float, inductance: float, fsw: float,
) -> SolverProblem:
    """Residuals in Vin with Vout known. Initial guess Vin = Vout."""
    k = 1.0 / (fsw * inductance)

    def f1(vin):
        return il_avg - iout * (vin + vout) / vin

    def f2(vin):
        return ripple - k * vin * vout / (vin + vout)

    # d f1 / d Vin is positive: f1 rises toward il_avg - iout as Vin grows.
    # Negating it walks the iterates away from the root.
    def jacobian(vin):
        return (
            iout * vout / vin ** 2,
            -k * vout ** 2 / (vin + vout) ** 2,
        )

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=vout,
        name="inverting buck-boost Vin", unknowns=("vin",),
    )


def ibb_vout_problem(
    vin: float, il_avg: float, iout: float, ripple: float, inductance: float, fsw: float,
) -> SolverProblem:
    """Residuals in Vout with Vin known. Initial guess Vout = Vin."""
    k = 1.0 / (fsw * inductance)

    def f1(vout):
        return il_avg - iout * (vin + vout) / vin

    def f2(vout):
        return ripple - k * vin * vout / (vin + vout)

    def jacobian(vout):
        return (
            -iout / vin,
            -k * vin ** 2 / (vin + vout) ** 2,
        )

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=vin,
        name="inverting buck-boost Vout", unknowns=("vout",),
    )


def ibb_vin_iout_problem(
    vout: float, il_avg: float, ripple: float, inductance: float, fsw: float,
) -> SolverProblem:
    """Residuals in (Vin, Iout) with Vout known. Initial guess (Vout, IL_avg / 2)."""
    k = 1.0 / (fsw * inductance)

    def f1(vin, iout):
        return il_avg - iout * (vin + vout) / vin

    def f2(vin, iout):
        return ripple - k * vin * vout / (vin + vout)

    def jacobian(vin, iout):
        return [
            [iout * vout / vin ** 2, -(vin + vout) / vin],
            [-k * vout ** 2 / (vin + vout) ** 2, 0.0],
        ]

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=(vout, il_avg / 2),
        name="inverting buck-boost Vin/Iout", unknowns=("vin", "iout"),
    )


def inverting_buck_boost_vin(
    vout: float,
    il_avg: float,
    iout: float,
    ripple: float,
    inductance: float,
    fsw: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """
    Input voltage of an inverting buck-boost from its currents.

    Args:
        vout: Output voltage magnitude (V)
        il_avg: Average inductor current (A)
        iout: Output current (A)
        ripple: Peak-to-peak inductor ripple current (A)
        inductance: Inductance (H)
        fsw: Switching frequency (Hz)

    Returns:
        SolverResult whose value is Vin (V) when converged.
    """
    invalid = _check_positive(
        vout=vout, il_avg=il_avg, iout=iout, ripple=ripple, inductance=inductance, fsw=fsw,
    )
    if invalid:
        return invalid
    problem = ibb_vin_problem(vout, il_avg, iout, ripple, inductance, fsw)
    return solve_problem(problem, max_iterations, tolerance)


def inverting_buck_boost_vout(
    vin: float,
    il_avg: float,
    iout: float,
    ripple: float,
    inductance: float,
    fsw: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """Output voltage magnitude of an inverting buck-boost from its currents."""
    invalid = _check_positive(
        vin=vin, il_avg=il_avg, iout=iout, ripple=ripple, inductance=inductance, fsw=fsw,
    )
    if invalid:
        return invalid
    problem = ibb_vout_problem(vin, il_avg, iout, ripple, inductance, fsw)
    return solve_problem(problem, max_iterations, tolerance)


def inverting_buck_boost_vin_iout(
    vout: float,
    il_avg: float,
    ripple: float,
    inductance: float,
    fsw: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """Input voltage and output current together, using the full 2x2 Newton step."""
    invalid = _check_positive(
        SolverVariant.SYSTEM,
        vout=vout, il_avg=il_avg, ripple=ripple, inductance=inductance, fsw=fsw,
    )
    if invalid:
        return invalid
    problem = ibb_vin_iout_problem(vout, il_avg, ripple, inductance, fsw)
    return solve_problem(problem, max_iterations, tolerance)


# --- Buck ---

def buck_vout_problem(
    vin: float, ripple: float, inductance: float, fsw: float, vdsh: float = 0.0, vdsl: float = 0.0,
) -> SolverProblem:
    """
    Residual in Vout with Vin and the ripple known.

    Ripple is a parabola in Vout with two roots. Starting from the D -> 0
    estimate ΔIL·fsw·L, which lies below both, Newton converges to the
    lower root: the one with D < 0.5 for ideal switches.
    """
    span = vin - vdsh
    fl = fsw * inductance

    def f1(vout):
        return ripple - vout * (span - vout - vdsl) / (span * fl)

    def f2(vout):
        return 0.0

    def jacobian(vout):
        return (-(span - 2 * vout - vdsl) / (span * fl), 0.0)

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=ripple * fl,
        name="buck Vout", unknowns=("vout",),
    )


def buck_vout(
    vin: float,
    ripple: float,
    inductance: float,
    fsw: float,
    vdsh: float = 0.0,
    vdsl: float = 0.0,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """
    Output voltage of a buck converter from its inductor ripple.

    Args:
        vin: Input voltage (V)
        ripple: Peak-to-peak inductor ripple current (A)
        inductance: Inductance (H)
        fsw: Switching frequency (Hz)
        vdsh: High-side switch drop (V)
        vdsl: Low-side switch drop (V)
    """
    invalid = _check_positive(vin=vin, ripple=ripple, inductance=inductance, fsw=fsw)
    if invalid:
        return invalid
    if vdsh < 0 or vdsl < 0 or vdsh >= vin:
        return _invalid(f"Switch drops must be non-negative and below Vin (vdsh={vdsh}, vdsl={vdsl})")
    problem = buck_vout_problem(vin, ripple, inductance, fsw, vdsh, vdsl)
    return solve_problem(problem, max_iterations, tolerance)


# --- Boost ---

def boost_vin_problem(
    vout: float, ripple: float, inductance: float, fsw: float, vdsl: float = 0.0,
) -> SolverProblem:
    """
    Residual in Vin with Vout and the ripple known.

    Same parabola shape as the buck case, with roots symmetric about
    (Vout + Vdsl) / 2. Starting from the D -> 1 estimate ΔIL·fsw·L, Newton
    converges to the lower root: the larger duty cycle.
    """
    span = vout + vdsl
    fl = fsw * inductance

    def f1(vin):
        return ripple - vin * (span - vin) / (span * fl)

    def f2(vin):
        return 0.0

    def jacobian(vin):
        return (-(span - 2 * vin) / (span * fl), 0.0)

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=ripple * fl,
        name="boost Vin", unknowns=("vin",),
    )


def boost_vin(
    vout: float,
    ripple: float,
    inductance: float,
    fsw: float,
    vdsl: float = 0.0,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """
    Input voltage of a boost converter from its inductor ripple.

    D = 1 - Vin / (Vout + Vdsl) and ΔIL = Vin · D / (fsw · L), so Vin
    appears in both factors.

    Args:
        vout: Output voltage (V)
        ripple: Peak-to-peak inductor ripple current (A)
        inductance: Inductance (H)
        fsw: Switching frequency (Hz)
        vdsl: Low-side switch drop (V)
    """
    invalid = _check_positive(vout=vout, ripple=ripple, inductance=inductance, fsw=fsw)
    if invalid:
        return invalid
    if vdsl < 0:
        return _invalid(f"Switch drop must be non-negative (vdsl={vdsl})")
    problem = boost_vin_problem(vout, ripple, inductance, fsw, vdsl)
    return solve_problem(problem, max_iterations, tolerance)


_SOLVERS = {
    (Topology.INVERTING_BUCK_BOOST, "vin"): inverting_buck_boost_vin,
    (Topology.INVERTING_BUCK_BOOST, "vout"): inverting_buck_boost_vout,
    (Topology.INVERTING_BUCK_BOOST, "vin_iout"): inverting_buck_boost_vin_iout,
    (Topology.BUCK, "vout"): buck_vout,
    (Topology.BOOST, "vin"): boost_vin,
}


def solvable_unknowns() -> Dict[Topology, list]:
    """Unknowns each topology can solve for."""
    table: Dict[Topology, list] = {}
    for topology, unknown in _SOLVERS:
        table.setdefault(topology, []).append(unknown)
    return table


def solve(topology, unknown: str, **params) -> SolverResult:
    """
    Solve a converter operating point.

    Args:
        topology: Topology member or its value ('buck', 'boost', 'inverting_buck_boost')
        unknown: Quantity to solve for ('vin', 'vout', 'vin_iout')
        **params: Keyword arguments of the matching solver function

    Raises:
        ValueError: If the topology/unknown combination is not supported.
    """
    topo = Topology(topology)
    try:
        solver = _SOLVERS[(topo, unknown)]
    except KeyError:
        raise ValueError(
            f"Cannot solve {topo.value} for '{unknown}'. "
            f"Supported: {solvable_unknowns()[topo]}"
        )
    return solver(**params)
