"""
Gross die per wafer and its inverse solves.

    GDPW = π·R² / (Px·Py) - π·R / √(2·Px·Py)

    R  = Wd / 2 - E       usable radius (mm)
    Px = die X + saw street
    Py = die Y + saw street

Wafer diameter Wd, edge keepout E and die sizes are in mm; the saw street
is in µm. Every input enters through R or the pitch area A = Px·Py, so
each inverse solve below is a one-unknown Newton problem with the chain
rule through dG/dR or dG/dA.
"""

import logging
import math
from enum import Enum
from typing import Callable, Optional

from eecore.solver import (
    SolverProblem,
    SolverResult,
    SolverStatus,
    solve_problem,
)

logger = logging.getLogger(__name__)

# Tolerance is in dies
WAFER_MAX_ITERATIONS = 100
WAFER_TOLERANCE = 0.01

DEFAULT_WAFER_SIZE = 200.0
DEFAULT_EDGE_KEEPOUT = 5.0
DEFAULT_SAW_STREET = 100.0

UM_PER_MM = 1000.0


class WaferUnknown(str, Enum):
    WAFER_SIZE = "wafer_size"
    EDGE_KEEPOUT = "edge_keepout"
    DIE_X = "die_x"
    DIE_Y = "die_y"
    SAW_STREET = "saw_street"


def _pitch_area(die_x: float, die_y: float, saw_street: float) -> float:
    saw_mm = saw_street / UM_PER_MM
    return (die_x + saw_mm) * (die_y + saw_mm)


def _gdpw(radius: float, area: float) -> float:
    return math.pi * radius ** 2 / area - math.pi * radius / math.sqrt(2 * area)


def _dgdpw_dradius(radius: float, area: float) -> float:
    return 2 * math.pi * radius / area - math.pi / math.sqrt(2 * area)


def _dgdpw_darea(radius: float, area: float) -> float:
    return -math.pi * radius ** 2 / area ** 2 + math.pi * radius / (2 * area) ** 1.5


def gdpw_exact(wafer_size: float, edge_keepout: float, die_x: float, die_y: float, saw_street: float) -> float:
    """
    Continuous GDPW before rounding down to whole dies.

    Raises:
        ValueError: If the keepout leaves no usable radius or a pitch is not positive.
    """
    radius = wafer_size / 2 - edge_keepout
    saw_mm = saw_street / UM_PER_MM
    if wafer_size <= 0 or edge_keepout < 0 or radius <= 0:
        raise ValueError(
            f"Edge keepout {edge_keepout} mm leaves no usable area on a {wafer_size} mm wafer"
        )
    if die_x + saw_mm <= 0 or die_y + saw_mm <= 0:
        raise ValueError(f"Die pitch must be positive (die {die_x} x {die_y} mm, saw {saw_street} µm)")
    return _gdpw(radius, _pitch_area(die_x, die_y, saw_street))


def gross_die_per_wafer(
    wafer_size: float, edge_keepout: float, die_x: float, die_y: float, saw_street: float,
) -> int:
    """Whole dies per wafer, never negative."""
    return max(0, math.floor(gdpw_exact(wafer_size, edge_keepout, die_x, die_y, saw_street)))


def _problem(
    name: str,
    target: float,
    radius: Callable[[float], float],
    area: Callable[[float], float],
    dradius: float,
    darea: Callable[[float], float],
    initial_guess: float,
    domain: Callable[[float], bool],
) -> SolverProblem:
    """target - GDPW(x) as a single residual, differentiated through R(x) and A(x)."""

    def f1(x):
        return target - _gdpw(radius(x), area(x))

    def f2(x):
        return 0.0

    def jacobian(x):
        r, a = radius(x), area(x)
        slope = _dgdpw_dradius(r, a) * dradius + _dgdpw_darea(r, a) * darea(x)
        return (-slope, 0.0)

    return SolverProblem(
        residuals=(f1, f2), jacobian=jacobian, initial_guess=initial_guess,
        domain=domain, name=name, unknowns=(name,),
    )


def wafer_size_problem(target: float, edge_keepout: float, die_x: float, die_y: float,
                       saw_street: float) -> SolverProblem:
    area = _pitch_area(die_x, die_y, saw_street)
    guess = max(DEFAULT_WAFER_SIZE, 4 * edge_keepout)
    return _problem(
        WaferUnknown.WAFER_SIZE.value, target,
        radius=lambda wd: wd / 2 - edge_keepout,
        area=lambda wd: area,
        dradius=0.5,
        darea=lambda wd: 0.0,
        initial_guess=guess,
        domain=lambda wd: wd / 2 - edge_keepout > 0,
    )


def edge_keepout_problem(target: float, wafer_size: float, die_x: float, die_y: float,
                         saw_street: float) -> SolverProblem:
    area = _pitch_area(die_x, die_y, saw_street)
    guess = min(DEFAULT_EDGE_KEEPOUT, wafer_size / 4)
    return _problem(
        WaferUnknown.EDGE_KEEPOUT.value, target,
        radius=lambda e: wafer_size / 2 - e,
        area=lambda e: area,
        dradius=-1.0,
        darea=lambda e: 0.0,
        initial_guess=guess,
        domain=lambda e: 0 <= e < wafer_size / 2,
    )


def die_x_problem(target: float, wafer_size: float, edge_keepout: float, die_y: float,
                  saw_street: float, aspect_ratio: float = 1.0) -> SolverProblem:
    radius = wafer_size / 2 - edge_keepout
    py = die_y + saw_street / UM_PER_MM
    return _problem(
        WaferUnknown.DIE_X.value, target,
        radius=lambda x: radius,
        area=lambda x: _pitch_area(x, die_y, saw_street),
        dradius=0.0,
        darea=lambda x: py,
        initial_guess=die_y * aspect_ratio,
        domain=lambda x: x > 0,
    )


def die_y_problem(target: float, wafer_size: float, edge_keepout: float, die_x: float,
                  saw_street: float, aspect_ratio: float = 1.0) -> SolverProblem:
    radius = wafer_size / 2 - edge_keepout
    px = die_x + saw_street / UM_PER_MM
    return _problem(
        WaferUnknown.DIE_Y.value, target,
        radius=lambda y: radius,
        area=lambda y: _pitch_area(die_x, y, saw_street),
        dradius=0.0,
        darea=lambda y: px,
        initial_guess=die_x / aspect_ratio,
        domain=lambda y: y > 0,
    )


def saw_street_problem(target: float, wafer_size: float, edge_keepout: float, die_x: float,
                       die_y: float) -> SolverProblem:
    radius = wafer_size / 2 - edge_keepout
    return _problem(
        WaferUnknown.SAW_STREET.value, target,
        radius=lambda s: radius,
        area=lambda s: _pitch_area(die_x, die_y, s),
        dradius=0.0,
        # A = (X + s/1000)(Y + s/1000)
        darea=lambda s: (die_x + die_y + 2 * s / UM_PER_MM) / UM_PER_MM,
        initial_guess=DEFAULT_SAW_STREET,
        domain=lambda s: s >= 0,
    )


def _invalid(message: str) -> SolverResult:
    logger.warning(message)
    return SolverResult(status=SolverStatus.INVALID_INPUT, message=message)


def _check_inputs(target, **params) -> Optional[SolverResult]:
    if target is None or not math.isfinite(target) or target <= 0:
        return _invalid(f"Target GDPW must be a positive finite number, got {target}")
    for name, value in params.items():
        if value is None or not math.isfinite(value):
            return _invalid(f"{name} must be a finite number, got {value}")
        if name in ("edge_keepout", "saw_street"):
            if value < 0:
                return _invalid(f"{name} must be non-negative, got {value}")
        elif value <= 0:
            return _invalid(f"{name} must be positive, got {value}")
    wafer_size = params.get("wafer_size")
    edge_keepout = params.get("edge_keepout")
    if wafer_size is not None and edge_keepout is not None and edge_keepout >= wafer_size / 2:
        return _invalid(f"Edge keepout {edge_keepout} mm exceeds the radius of a {wafer_size} mm wafer")
    return None


def solve_wafer(
    unknown,
    target: float,
    wafer_size: Optional[float] = None,
    edge_keepout: Optional[float] = None,
    die_x: Optional[float] = None,
    die_y: Optional[float] = None,
    saw_street: Optional[float] = None,
    aspect_ratio: float = 1.0,
    max_iterations: int = WAFER_MAX_ITERATIONS,
    tolerance: float = WAFER_TOLERANCE,
) -> SolverResult:
    """
    Solve one wafer parameter so the continuous GDPW hits `target`.

    The remaining four parameters must be given. For die X or die Y the
    initial guess is the other side scaled by `aspect_ratio` (X / Y).

    Raises:
        ValueError: If `unknown` is not a WaferUnknown value.
    """
    unknown = WaferUnknown(unknown)
    known = {
        "wafer_size": wafer_size,
        "edge_keepout": edge_keepout,
        "die_x": die_x,
        "die_y": die_y,
        "saw_street": saw_street,
    }
    known.pop(unknown.value)

    missing = [name for name, value in known.items() if value is None]
    if missing:
        return _invalid(f"Solving {unknown.value} requires: {', '.join(missing)}")
    invalid = _check_inputs(target, aspect_ratio=aspect_ratio, **known)
    if invalid:
        return invalid

    if unknown == WaferUnknown.WAFER_SIZE:
        problem = wafer_size_problem(target, edge_keepout, die_x, die_y, saw_street)
    elif unknown == WaferUnknown.EDGE_KEEPOUT:
        problem = edge_keepout_problem(target, wafer_size, die_x, die_y, saw_street)
    elif unknown == WaferUnknown.DIE_X:
        problem = die_x_problem(target, wafer_size, edge_keepout, die_y, saw_street, aspect_ratio)
    elif unknown == WaferUnknown.DIE_Y:
        problem = die_y_problem(target, wafer_size, edge_keepout, die_x, saw_street, aspect_ratio)
    else:
        problem = saw_street_problem(target, wafer_size, edge_keepout, die_x, die_y)

    return solve_problem(problem, max_iterations, tolerance)
