"""
eecore: standard component values and nonlinear solving for EE calculators.

Maps ideal component values onto manufacturable E-series parts, ranks
standard resistor pairs for voltage dividers, and solves converter
operating points and wafer die counts that cannot be isolated
algebraically.

All numerical results are returned as structured data; formatting is left
to the caller.
"""

from eecore.series import ToleranceClass, E24_BASE, E96_BASE, E192_BASE
from eecore.catalog import ValueCatalog, build_catalog, default_catalog, get_standard_values
from eecore.nearest import nearest_index, nearest_value, snap_to_standard, standard_values_near
from eecore.divider import CandidatePair, SortKey, find_pairs, flag_closest, rank_pairs
from eecore.solver import (
    SolverProblem,
    SolverResult,
    SolverStatus,
    newton_raphson,
    newton_system,
    solve_problem,
)
from eecore.converters import (
    Topology,
    boost_vin,
    buck_vout,
    inverting_buck_boost_vin,
    inverting_buck_boost_vin_iout,
    inverting_buck_boost_vout,
)
from eecore.wafer import WaferUnknown, gdpw_exact, gross_die_per_wafer, solve_wafer

__version__ = "0.1.0"
