"""
Tests for converter operating points solved iteratively.

Reference operating point (inverting buck-boost, consistent by construction):
    Vin = 24V, Vout = 12V, Iout = 1.5A, L = 10µH, fsw = 500kHz
    IL_avg = Iout · (Vin + Vout) / Vin = 2.25A
    ΔIL    = Vin · Vout / ((Vin + Vout) · fsw · L) = 1.6A

Vin and Vout use the combined update; Vin/Iout uses the 2x2 system step.
Jacobians are the analytic derivatives, so d f1 / d Vin = +Iout·Vout / Vin².
"""

import dataclasses

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from eecore.converters import (
    Topology,
    boost_vin,
    boost_vin_problem,
    buck_vout,
    ibb_vin_problem,
    inverting_buck_boost_vin,
    inverting_buck_boost_vin_iout,
    inverting_buck_boost_vout,
    solvable_unknowns,
    solve,
)
from eecore.solver import SolverStatus, SolverVariant, solve_problem


IBB = dict(il_avg=2.25, iout=1.5, ripple=1.6, inductance=10e-6, fsw=0.5e6)


def _ibb_residuals(vin, vout, il_avg, iout, ripple, inductance, fsw):
    f1 = il_avg - iout * (vin + vout) / vin
    f2 = ripple - vin * vout / ((vin + vout) * fsw * inductance)
    return f1, f2


class TestInvertingBuckBoostVin:
    """Vin from Vout and the inductor currents (combined update)."""

    def test_converges_to_operating_point(self):
        result = inverting_buck_boost_vin(vout=12.0, **IBB)
        assert result.converged
        assert result.variant == SolverVariant.COMBINED
        assert result.value > 0
        assert result.value == pytest.approx(24.0, abs=0.05)
        assert result.iterations <= 10
        assert all(abs(r) < 0.001 for r in result.residuals)

    def test_tight_tolerance(self):
        result = inverting_buck_boost_vin(vout=12.0, **IBB, max_iterations=20, tolerance=1e-9)
        assert result.converged
        assert result.value == pytest.approx(24.0, rel=1e-6)

    def test_residuals_vanish_at_solution(self):
        result = inverting_buck_boost_vin(vout=12.0, **IBB, tolerance=1e-9, max_iterations=20)
        f1, f2 = _ibb_residuals(result.value, 12.0, **IBB)
        assert abs(f1) < 1e-9
        assert abs(f2) < 1e-9

    def test_analytic_derivatives(self):
        """Jacobian matches a central difference of the residuals."""
        problem = ibb_vin_problem(vout=12.0, **IBB)
        f1, f2 = problem.residuals
        for vin in (5.0, 12.0, 30.0):
            h = 1e-5
            d1, d2 = problem.jacobian(vin)
            assert d1 == pytest.approx((f1(vin + h) - f1(vin - h)) / (2 * h), rel=1e-5)
            assert d2 == pytest.approx((f2(vin + h) - f2(vin - h)) / (2 * h), rel=1e-5)

    def test_average_current_slope_is_positive(self):
        problem = ibb_vin_problem(vout=12.0, **IBB)
        d1, d2 = problem.jacobian(12.0)
        assert d1 == pytest.approx(1.5 * 12.0 / 12.0 ** 2)
        assert d1 > 0
        assert d2 < 0

    def test_negated_slope_does_not_converge(self):
        """With d f1 / d Vin negated the iterates walk down from 12V and never reach 24V."""
        problem = ibb_vin_problem(vout=12.0, **IBB)

        def negated(vin):
            d1, d2 = problem.jacobian(vin)
            return -d1, d2

        result = solve_problem(dataclasses.replace(problem, jacobian=negated))
        assert not result.converged
        assert result.value is None

    def test_inconsistent_currents_fail(self):
        """
        IL_avg = 2A, ΔIL = 0.4A with Vout = 12V, Iout = 1.5A: the average
        current needs Vin = 36V, the ripple needs Vin = 2.4V. No Vin satisfies
        both, so the solver must report failure rather than a compromise.
        """
        result = inverting_buck_boost_vin(
            vout=12.0, il_avg=2.0, iout=1.5, ripple=0.4, inductance=10e-6, fsw=0.5e6,
        )
        assert not result.converged
        assert result.status in (SolverStatus.MAX_ITERATIONS, SolverStatus.SINGULAR_JACOBIAN)
        assert result.value is None
        assert result.last_iterate is not None

    @pytest.mark.parametrize("field", ["vout", "il_avg", "iout", "ripple", "inductance", "fsw"])
    def test_non_positive_input(self, field):
        params = dict(IBB, vout=12.0)
        params[field] = 0.0
        result = inverting_buck_boost_vin(**params)
        assert result.status == SolverStatus.INVALID_INPUT
        assert field in result.message
        assert result.value is None


class TestInvertingBuckBoostVout:
    """Vout from Vin and the inductor currents (combined update)."""

    def test_converges_to_operating_point(self):
        result = inverting_buck_boost_vout(vin=24.0, **IBB)
        assert result.converged
        assert result.value == pytest.approx(12.0, abs=0.05)
        assert result.iterations <= 10

    def test_tight_tolerance(self):
        result = inverting_buck_boost_vout(vin=24.0, **IBB, tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.value == pytest.approx(12.0, rel=1e-6)

    def test_invalid_input(self):
        result = inverting_buck_boost_vout(vin=-24.0, **IBB)
        assert result.status == SolverStatus.INVALID_INPUT


class TestInvertingBuckBoostVinIout:
    """Vin and Iout together (full 2x2 system step)."""

    def test_converges_to_operating_point(self):
        params = {k: v for k, v in IBB.items() if k != 'iout'}
        result = inverting_buck_boost_vin_iout(vout=12.0, **params, tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.variant == SolverVariant.SYSTEM
        vin, iout = result.value
        assert vin == pytest.approx(24.0, rel=1e-6)
        assert iout == pytest.approx(1.5, rel=1e-6)

    def test_default_budget(self):
        params = {k: v for k, v in IBB.items() if k != 'iout'}
        result = inverting_buck_boost_vin_iout(vout=12.0, **params)
        assert result.converged
        assert result.iterations <= 10

    def test_invalid_input(self):
        result = inverting_buck_boost_vin_iout(vout=12.0, il_avg=2.25, ripple=1.6, inductance=0.0, fsw=0.5e6)
        assert result.status == SolverStatus.INVALID_INPUT
        assert result.variant == SolverVariant.SYSTEM


class TestBuckVout:
    """Buck output voltage from its ripple."""

    def test_ideal_switches(self):
        # Vout = 5V from 12V: ΔIL = 5 · (1 - 5/12) / (1MHz · 10µH)
        ripple = 5.0 * (1 - 5.0 / 12.0) / (1e6 * 10e-6)
        result = buck_vout(vin=12.0, ripple=ripple, inductance=10e-6, fsw=1e6, tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.value == pytest.approx(5.0, rel=1e-6)

    def test_with_switch_drops(self):
        vin, vout, vdsh, vdsl = 12.0, 3.3, 0.2, 0.3
        duty = (vout + vdsl) / (vin - vdsh)
        ripple = vout * (1 - duty) / (1e6 * 10e-6)
        result = buck_vout(vin=vin, ripple=ripple, inductance=10e-6, fsw=1e6,
                           vdsh=vdsh, vdsl=vdsl, tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.value == pytest.approx(3.3, rel=1e-6)

    def test_default_tolerance(self):
        ripple = 5.0 * (1 - 5.0 / 12.0) / (1e6 * 10e-6)
        result = buck_vout(vin=12.0, ripple=ripple, inductance=10e-6, fsw=1e6)
        assert result.converged
        assert result.value == pytest.approx(5.0, abs=0.05)

    def test_unreachable_ripple(self):
        """The ripple peaks at Vout = Vin/2 (0.3A here); 1A has no solution."""
        result = buck_vout(vin=12.0, ripple=1.0, inductance=10e-6, fsw=1e6)
        assert not result.converged
        assert result.value is None

    def test_drop_exceeds_vin(self):
        result = buck_vout(vin=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsh=12.0)
        assert result.status == SolverStatus.INVALID_INPUT

    def test_negative_drop(self):
        result = buck_vout(vin=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsl=-0.1)
        assert result.status == SolverStatus.INVALID_INPUT


class TestBoostVin:
    """Boost input voltage from its ripple."""

    def test_ideal_switch(self):
        # Vin = 5V into 12V: D = 7/12, ΔIL = 5 · 7/12 / (1MHz · 10µH)
        ripple = 5.0 * (1 - 5.0 / 12.0) / (1e6 * 10e-6)
        result = boost_vin(vout=12.0, ripple=ripple, inductance=10e-6, fsw=1e6, tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.value == pytest.approx(5.0, rel=1e-6)

    def test_with_switch_drop(self):
        # Vout + Vdsl = 12.5V, D = 0.6, ΔIL = 5 · 0.6 / 10 = 0.3A
        result = boost_vin(vout=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsl=0.5,
                           tolerance=1e-9, max_iterations=20)
        assert result.converged
        assert result.value == pytest.approx(5.0, rel=1e-6)

    def test_lower_root(self):
        """Both 5V and 7.5V give 0.3A with a 0.5V drop; the larger duty cycle wins."""
        result = boost_vin(vout=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsl=0.5,
                           tolerance=1e-9, max_iterations=20)
        assert result.value < 12.5 / 2

    def test_analytic_derivative(self):
        problem = boost_vin_problem(vout=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsl=0.5)
        f1, _ = problem.residuals
        h = 1e-5
        for vin in (2.0, 5.0, 9.0):
            d1, _ = problem.jacobian(vin)
            assert d1 == pytest.approx((f1(vin + h) - f1(vin - h)) / (2 * h), rel=1e-5)

    def test_unreachable_ripple(self):
        """The ripple peaks at Vin = Vout / 2 (0.3A here); 1A has no solution."""
        result = boost_vin(vout=12.0, ripple=1.0, inductance=10e-6, fsw=1e6)
        assert not result.converged
        assert result.value is None

    def test_negative_drop(self):
        result = boost_vin(vout=12.0, ripple=0.3, inductance=10e-6, fsw=1e6, vdsl=-0.1)
        assert result.status == SolverStatus.INVALID_INPUT

    def test_non_positive_vout(self):
        result = boost_vin(vout=0.0, ripple=0.3, inductance=10e-6, fsw=1e6)
        assert result.status == SolverStatus.INVALID_INPUT
        assert "vout" in result.message


class TestSolveDispatch:
    """Uniform entry point over the closed topology set."""

    def test_dispatch_by_value(self):
        result = solve("inverting_buck_boost", "vin", vout=12.0, **IBB)
        assert result.converged
        assert result.value == pytest.approx(24.0, abs=0.05)

    def test_dispatch_by_member(self):
        ripple = 5.0 * (1 - 5.0 / 12.0) / (1e6 * 10e-6)
        result = solve(Topology.BUCK, "vout", vin=12.0, ripple=ripple, inductance=10e-6, fsw=1e6)
        assert result.converged

    def test_unsupported_unknown(self):
        with pytest.raises(ValueError):
            solve(Topology.BUCK, "vin", vout=5.0)

    def test_unknown_topology(self):
        with pytest.raises(ValueError):
            solve("flyback", "vin")

    def test_solvable_unknowns(self):
        table = solvable_unknowns()
        assert table[Topology.BUCK] == ["vout"]
        assert table[Topology.BOOST] == ["vin"]
        assert set(table[Topology.INVERTING_BUCK_BOOST]) == {"vin", "vout", "vin_iout"}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
