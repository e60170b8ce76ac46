"""
Bounded Newton-Raphson iteration for coupled circuit relations.

Two variants are provided:

- ``newton_raphson`` drives two residuals of one unknown to zero together
  with the combined update x <- x - (f1 + f2) / (df1 + df2). Summing the
  residuals is a simplification: it is only sound when both residuals
  cross zero at the same point with the same sign convention, which holds
  for a consistent operating point. An inconsistent pair never satisfies
  the convergence test, so it is reported as a failure rather than a
  compromise value.
- ``newton_system`` solves two residuals of two unknowns with the full 2x2
  Newton step.

Both reset the iterate to the initial guess whenever it leaves the valid
domain (by default: every component positive). Resets use up iterations, so
the loop is always bounded by ``max_iterations``.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_TOLERANCE = 1e-3

# Iterates at or below this are outside the physical domain
EPSILON = 1e-9

_MACHINE_EPS = float(np.finfo(float).eps)

Residual = Callable[..., float]


class SolverStatus(str, Enum):
    CONVERGED = "converged"
    SINGULAR_JACOBIAN = "singular_jacobian"
    MAX_ITERATIONS = "max_iterations"
    DIVERGED = "diverged"
    OUT_OF_DOMAIN = "out_of_domain"
    INVALID_INPUT = "invalid_input"


class SolverVariant(str, Enum):
    COMBINED = "combined"
    SYSTEM = "system"


@dataclass
class SolverResult:
    """
    Outcome of a Newton-Raphson run.

    `value` is only set when `status` is CONVERGED. `last_iterate` is kept
    for every outcome so callers can report where a failed run stopped.
    """
    status: SolverStatus
    value: Optional[Union[float, Tuple[float, ...]]] = None
    iterations: int = 0
    residuals: Tuple[float, ...] = ()
    last_iterate: Optional[Union[float, Tuple[float, ...]]] = None
    resets: int = 0
    variant: SolverVariant = SolverVariant.COMBINED
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.status == SolverStatus.CONVERGED


@dataclass
class SolverProblem:
    """
    Two residual equations and their analytic derivatives.

    For a scalar problem (`initial_guess` is a float) each residual takes
    x and `jacobian(x)` returns (df1/dx, df2/dx). For a system problem
    (`initial_guess` is a pair) each residual takes (x1, x2) and
    `jacobian(x1, x2)` returns [[df1/dx1, df1/dx2], [df2/dx1, df2/dx2]].
    """
    residuals: Tuple[Residual, Residual]
    jacobian: Callable
    initial_guess: Union[float, Tuple[float, float]]
    domain: Optional[Callable[..., bool]] = None
    name: str = ""
    unknowns: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_system(self) -> bool:
        return not isinstance(self.initial_guess, (int, float))


def positive_domain(*x: float) -> bool:
    """Default valid domain: every unknown strictly above EPSILON."""
    return all(v > EPSILON for v in x)


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def _negative_budget(max_iterations: int, variant: SolverVariant) -> Optional[SolverResult]:
    if max_iterations < 0:
        return SolverResult(
            status=SolverStatus.INVALID_INPUT, variant=variant,
            message=f"max_iterations must be non-negative, got {max_iterations}",
        )
    return None


def newton_raphson(
    f1: Residual,
    f2: Residual,
    jacobian: Callable[[float], Tuple[float, float]],
    x0: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    domain: Optional[Callable[[float], bool]] = None,
) -> SolverResult:
    """
    Solve f1(x) = f2(x) = 0 for a single unknown.

    Args:
        f1, f2: Residual functions of x
        jacobian: Returns (df1/dx, df2/dx) at x
        x0: Initial guess; also the reset point after a domain excursion
        max_iterations: Residual evaluations allowed before giving up
        tolerance: Both |f1| and |f2| must fall below this
        domain: Predicate for valid iterates (default: x > EPSILON)

    Returns:
        SolverResult tagged CONVERGED, SINGULAR_JACOBIAN, MAX_ITERATIONS,
        DIVERGED or OUT_OF_DOMAIN, or INVALID_INPUT for a negative budget.
    """
    invalid = _negative_budget(max_iterations, SolverVariant.COMBINED)
    if invalid:
        return invalid
    in_domain = domain or positive_domain
    if not _finite(x0) or not in_domain(x0):
        return SolverResult(
            status=SolverStatus.OUT_OF_DOMAIN,
            last_iterate=x0,
            message=f"Initial guess {x0} is outside the valid domain",
        )

    x = float(x0)
    resets = 0
    r1 = r2 = float('nan')

    for iteration in range(max_iterations):
        r1, r2 = f1(x), f2(x)
        if not _finite(r1, r2):
            return SolverResult(
                status=SolverStatus.DIVERGED, iterations=iteration, residuals=(r1, r2),
                last_iterate=x, resets=resets,
                message=f"Residuals are not finite at x={x}",
            )

        if abs(r1) < tolerance and abs(r2) < tolerance:
            logger.debug(f"Newton-Raphson converged to {x} after {iteration} iterations")
            return SolverResult(
                status=SolverStatus.CONVERGED, value=x, iterations=iteration,
                residuals=(r1, r2), last_iterate=x, resets=resets,
            )

        d1, d2 = jacobian(x)
        slope = d1 + d2
        floor = _MACHINE_EPS * max(1.0, abs(d1), abs(d2))
        if not math.isfinite(slope) or abs(slope) < floor:
            return SolverResult(
                status=SolverStatus.SINGULAR_JACOBIAN, iterations=iteration, residuals=(r1, r2),
                last_iterate=x, resets=resets,
                message=f"Combined derivative {slope} is singular at x={x}",
            )

        x = x - (r1 + r2) / slope
        if not math.isfinite(x):
            return SolverResult(
                status=SolverStatus.DIVERGED, iterations=iteration + 1, residuals=(r1, r2),
                last_iterate=x, resets=resets,
                message="Newton step produced a non-finite iterate",
            )
        if not in_domain(x):
            logger.debug(f"Iterate {x} left the valid domain, resetting to {x0}")
            x = float(x0)
            resets += 1

    logger.debug(f"Newton-Raphson did not converge in {max_iterations} iterations (last x={x})")
    return SolverResult(
        status=SolverStatus.MAX_ITERATIONS, iterations=max_iterations, residuals=(r1, r2),
        last_iterate=x, resets=resets,
        message=f"No convergence after {max_iterations} iterations",
    )


def newton_system(
    f1: Residual,
    f2: Residual,
    jacobian: Callable[[float, float], Sequence[Sequence[float]]],
    x0: Tuple[float, float],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    domain: Optional[Callable[[float, float], bool]] = None,
) -> SolverResult:
    """
    Solve f1(x1, x2) = f2(x1, x2) = 0 with the full 2x2 Newton step.

    Same stopping, reset and tagging rules as `newton_raphson`. The step is
    singular when |det J| falls below machine epsilon scaled by the largest
    Jacobian entry squared.
    """
    invalid = _negative_budget(max_iterations, SolverVariant.SYSTEM)
    if invalid:
        return invalid
    in_domain = domain or positive_domain
    start = np.asarray(x0, dtype=float)
    if start.shape != (2,):
        raise ValueError(f"System initial guess must have two components, got {x0!r}")
    if not np.all(np.isfinite(start)) or not in_domain(*start):
        return SolverResult(
            status=SolverStatus.OUT_OF_DOMAIN, last_iterate=tuple(start.tolist()),
            variant=SolverVariant.SYSTEM,
            message=f"Initial guess {tuple(start.tolist())} is outside the valid domain",
        )

    x = start.copy()
    resets = 0
    r = np.array([np.nan, np.nan])

    for iteration in range(max_iterations):
        r = np.array([f1(*x), f2(*x)], dtype=float)
        if not np.all(np.isfinite(r)):
            return SolverResult(
                status=SolverStatus.DIVERGED, iterations=iteration, residuals=tuple(r.tolist()),
                last_iterate=tuple(x.tolist()), resets=resets, variant=SolverVariant.SYSTEM,
                message=f"Residuals are not finite at x={tuple(x.tolist())}",
            )

        if np.all(np.abs(r) < tolerance):
            logger.debug(f"Newton system converged to {tuple(x.tolist())} after {iteration} iterations")
            return SolverResult(
                status=SolverStatus.CONVERGED, value=tuple(x.tolist()), iterations=iteration,
                residuals=tuple(r.tolist()), last_iterate=tuple(x.tolist()), resets=resets,
                variant=SolverVariant.SYSTEM,
            )

        jac = np.asarray(jacobian(*x), dtype=float)
        scale = max(1.0, float(np.max(np.abs(jac)))) if np.all(np.isfinite(jac)) else float('inf')
        det = float(np.linalg.det(jac)) if math.isfinite(scale) else float('nan')
        if not math.isfinite(det) or abs(det) < _MACHINE_EPS * scale ** 2:
            return SolverResult(
                status=SolverStatus.SINGULAR_JACOBIAN, iterations=iteration,
                residuals=tuple(r.tolist()), last_iterate=tuple(x.tolist()), resets=resets,
                variant=SolverVariant.SYSTEM,
                message=f"Jacobian determinant {det} is singular at x={tuple(x.tolist())}",
            )

        x = x - np.linalg.solve(jac, r)
        if not np.all(np.isfinite(x)):
            return SolverResult(
                status=SolverStatus.DIVERGED, iterations=iteration + 1,
                residuals=tuple(r.tolist()), last_iterate=tuple(x.tolist()), resets=resets,
                variant=SolverVariant.SYSTEM,
                message="Newton step produced a non-finite iterate",
            )
        if not in_domain(*x):
            logger.debug(f"Iterate {tuple(x.tolist())} left the valid domain, resetting")
            x = start.copy()
            resets += 1

    return SolverResult(
        status=SolverStatus.MAX_ITERATIONS, iterations=max_iterations,
        residuals=tuple(r.tolist()), last_iterate=tuple(x.tolist()), resets=resets,
        variant=SolverVariant.SYSTEM,
        message=f"No convergence after {max_iterations} iterations",
    )


def solve_problem(
    problem: SolverProblem,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """Run a SolverProblem through the variant matching its initial guess."""
    f1, f2 = problem.residuals
    solve = newton_system if problem.is_system else newton_raphson
    result = solve(
        f1, f2, problem.jacobian, problem.initial_guess,
        max_iterations=max_iterations, tolerance=tolerance, domain=problem.domain,
    )
    if not result.converged and problem.name:
        logger.info(f"{problem.name}: {result.status.value} ({result.message})")
    return result
