"""
Tests for gross die per wafer and its inverse solves.

Reference wafer: 200mm, 5mm edge keepout, 5 x 5mm die, 100µm saw street.
    R = 95mm, Px = Py = 5.1mm → GDPW ≈ 1048.70

Each inverse solve is checked against the forward relation: the solved
parameter reproduces the target GDPW it was asked for.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from eecore.solver import SolverStatus
from eecore.wafer import (
    WaferUnknown,
    die_x_problem,
    edge_keepout_problem,
    gdpw_exact,
    gross_die_per_wafer,
    saw_street_problem,
    solve_wafer,
    wafer_size_problem,
)


REFERENCE = dict(wafer_size=200.0, edge_keepout=5.0, die_x=5.0, die_y=5.0, saw_street=100.0)


def _known(**overrides):
    params = dict(REFERENCE)
    params.update(overrides)
    return params


class TestGrossDiePerWafer:

    def test_reference_wafer(self):
        assert gdpw_exact(**REFERENCE) == pytest.approx(1048.70, abs=0.01)
        assert gross_die_per_wafer(**REFERENCE) == 1048

    def test_larger_wafer_more_dies(self):
        assert gross_die_per_wafer(**_known(wafer_size=300.0)) > gross_die_per_wafer(**REFERENCE)

    def test_wider_street_fewer_dies(self):
        assert gross_die_per_wafer(**_known(saw_street=150.0)) < gross_die_per_wafer(**REFERENCE)

    def test_never_negative(self):
        """A 1mm usable radius holds no 5mm die; the edge term dominates."""
        assert gross_die_per_wafer(**_known(wafer_size=10.0, edge_keepout=4.0)) == 0

    def test_keepout_beyond_radius_raises(self):
        with pytest.raises(ValueError):
            gdpw_exact(**_known(edge_keepout=100.0))


class TestInverseSolves:
    """Solve one parameter back from the GDPW it produces."""

    def test_wafer_size(self):
        target = gdpw_exact(**_known(wafer_size=300.0))
        params = _known()
        params.pop("wafer_size")
        result = solve_wafer(WaferUnknown.WAFER_SIZE, target, **params)
        assert result.converged
        assert result.value == pytest.approx(300.0, abs=0.01)

    def test_edge_keepout(self):
        target = gdpw_exact(**_known(edge_keepout=3.0))
        params = _known()
        params.pop("edge_keepout")
        result = solve_wafer("edge_keepout", target, **params)
        assert result.converged
        assert result.value == pytest.approx(3.0, abs=1e-3)

    def test_die_x(self):
        target = gdpw_exact(**_known(die_x=4.0))
        params = _known()
        params.pop("die_x")
        result = solve_wafer(WaferUnknown.DIE_X, target, **params)
        assert result.converged
        assert result.value == pytest.approx(4.0, abs=1e-3)

    def test_die_y(self):
        target = gdpw_exact(**_known(die_y=4.0))
        params = _known()
        params.pop("die_y")
        result = solve_wafer(WaferUnknown.DIE_Y, target, **params)
        assert result.converged
        assert result.value == pytest.approx(4.0, abs=1e-3)

    def test_saw_street(self):
        target = gdpw_exact(**_known(saw_street=150.0))
        params = _known()
        params.pop("saw_street")
        result = solve_wafer(WaferUnknown.SAW_STREET, target, **params)
        assert result.converged
        assert result.value == pytest.approx(150.0, abs=0.1)

    def test_solution_hits_target(self):
        params = _known()
        params.pop("wafer_size")
        result = solve_wafer(WaferUnknown.WAFER_SIZE, 2000.0, **params)
        assert result.converged
        assert gdpw_exact(wafer_size=result.value, **params) == pytest.approx(2000.0, abs=0.01)

    def test_unreachable_target(self):
        """A 200mm wafer holds about 1164 dies even with no keepout."""
        params = _known()
        params.pop("edge_keepout")
        result = solve_wafer(WaferUnknown.EDGE_KEEPOUT, 5000.0, **params)
        assert not result.converged
        assert result.value is None
        assert result.resets > 0


class TestAnalyticDerivatives:
    """Jacobians match a central difference of the residual."""

    @pytest.mark.parametrize("problem,points", [
        (wafer_size_problem(1500.0, 5.0, 5.0, 5.0, 100.0), (150.0, 200.0, 300.0)),
        (edge_keepout_problem(1000.0, 200.0, 5.0, 5.0, 100.0), (1.0, 5.0, 20.0)),
        (die_x_problem(1000.0, 200.0, 5.0, 5.0, 100.0), (2.0, 5.0, 10.0)),
        (saw_street_problem(1000.0, 200.0, 5.0, 5.0, 5.0), (50.0, 100.0, 200.0)),
    ])
    def test_matches_finite_difference(self, problem, points):
        f1, _ = problem.residuals
        h = 1e-4
        for x in points:
            d1, d2 = problem.jacobian(x)
            assert d1 == pytest.approx((f1(x + h) - f1(x - h)) / (2 * h), rel=1e-5)
            assert d2 == 0.0


class TestSolveWaferInputs:

    def test_missing_parameter(self):
        result = solve_wafer(WaferUnknown.DIE_X, 1000.0, wafer_size=200.0, edge_keepout=5.0, saw_street=100.0)
        assert result.status == SolverStatus.INVALID_INPUT
        assert "die_y" in result.message

    @pytest.mark.parametrize("target", [0.0, -10.0, float('nan')])
    def test_bad_target(self, target):
        params = _known()
        params.pop("wafer_size")
        result = solve_wafer(WaferUnknown.WAFER_SIZE, target, **params)
        assert result.status == SolverStatus.INVALID_INPUT

    def test_keepout_exceeds_radius(self):
        params = _known(edge_keepout=150.0)
        params.pop("die_x")
        result = solve_wafer(WaferUnknown.DIE_X, 1000.0, **params)
        assert result.status == SolverStatus.INVALID_INPUT

    def test_negative_saw_street(self):
        params = _known(saw_street=-5.0)
        params.pop("die_x")
        result = solve_wafer(WaferUnknown.DIE_X, 1000.0, **params)
        assert result.status == SolverStatus.INVALID_INPUT

    def test_unknown_parameter_raises(self):
        with pytest.raises(ValueError):
            solve_wafer("yield", 1000.0, **REFERENCE)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
