"""
Tests for the variational minimisation of the Feynman free energy.

MAPI reference parameters follow Frost, PRB 96, 195202 (2017) for the
15-mode spectrum and its Hellwarth effective mode.
"""
import logging

import pytest

from polaronsuite.core.config import SolverConfig
from polaronsuite.core.constants import PolaronUnits
from polaronsuite.core.typepolaron import CouplingSet, ThermodynamicPoint
from polaronsuite.frohlich.coupling import reduce_coupling, single_mode_coupling
from polaronsuite.frohlich.freeenergy import multi_F
from polaronsuite.frohlich.hellwarth import hellwarth_b_scheme
from polaronsuite.frohlich.variational import solve_variational
from polaronsuite.libpolaron.materialproperties import load_material

MEV = PolaronUnits(0.12).energy_meV


@pytest.fixture(scope="module")
def mapi_coupling():
    m = load_material("MAPI")
    return reduce_coupling(m.table, m.eps_optic, m.eps_static, m.volume, m.m_eff)


@pytest.fixture(scope="module")
def mapi_single():
    m = load_material("MAPI")
    return single_mode_coupling(4.5, 24.1, hellwarth_b_scheme(m.table), 0.12)


class TestSingleMode:
    def test_uncoupled(self):
        cs = CouplingSet.from_arrays([1.0], [0.0])
        sol = solve_variational(cs)
        assert abs(sol.v - sol.w) < 1e-2
        assert abs(sol.F) < 1e-6

    def test_feynman_alpha_5(self):
        """Feynman (1955): alpha = 5 gives v ~ 4.02, w ~ 2.13 and E ~ -5.44."""
        cs = CouplingSet.from_arrays([1.0], [5.0])
        sol = solve_variational(cs)
        assert sol.converged
        assert sol.v == pytest.approx(4.02, rel=1e-2)
        assert sol.w == pytest.approx(2.13, rel=1e-2)
        assert sol.F == pytest.approx(-5.4401, rel=1e-3)
        assert sol.v >= sol.w > 0.0

    def test_solution_is_a_minimum(self):
        cs = CouplingSet.from_arrays([1.0], [3.0])
        point = ThermodynamicPoint.from_betas([2.0])
        sol = solve_variational(cs, point)
        for dv, dw in ((0.05, 0.0), (-0.05, 0.0), (0.0, 0.05), (0.0, -0.05)):
            assert multi_F(sol.v + dv, sol.w + dw, cs, point).F >= sol.F - 1e-9

    def test_components_sum_to_free_energy(self):
        cs = CouplingSet.from_arrays([1.0], [3.0])
        sol = solve_variational(cs, ThermodynamicPoint.from_betas([2.0]))
        assert sol.F == pytest.approx(-(sol.A + sol.B + sol.C), rel=1e-13)

    def test_warm_start_reaches_same_solution(self):
        cs = CouplingSet.from_arrays([1.0], [3.0])
        point = ThermodynamicPoint.from_betas([1.0])
        cold = solve_variational(cs, point)
        warm = solve_variational(cs, point, v0=cold.v * 1.01, w0=cold.w * 0.99)
        assert warm.F == pytest.approx(cold.F, rel=1e-7)
        assert warm.v == pytest.approx(cold.v, rel=1e-2)

    def test_invalid_guess_falls_back_to_default(self):
        cs = CouplingSet.from_arrays([1.0], [3.0])
        a = solve_variational(cs, v0=float("nan"), w0=1.0)
        b = solve_variational(cs)
        assert a.F == pytest.approx(b.F, rel=1e-12)

    def test_iteration_budget_exhausted(self, caplog):
        cs = CouplingSet.from_arrays([1.0], [5.0])
        with caplog.at_level(logging.WARNING, logger="polaronsuite"):
            sol = solve_variational(cs, max_iter=1)
        assert not sol.converged
        assert sol.iterations <= 1
        assert sol.message
        assert sol.v >= sol.w > 0.0
        assert any("not converged" in r.getMessage() for r in caplog.records)

    def test_budget_warning_names_the_state(self, caplog):
        cs = CouplingSet.from_arrays([1.0], [5.0])
        with caplog.at_level(logging.WARNING, logger="polaronsuite"):
            solve_variational(cs, ThermodynamicPoint.from_betas([2.0]), max_iter=1)
        warned = [r.getMessage() for r in caplog.records if "not converged" in r.getMessage()]
        assert warned and "beta=(2)" in warned[0]
        assert "T=0" not in warned[0]

    def test_config_budget(self):
        cs = CouplingSet.from_arrays([1.0], [5.0])
        sol = solve_variational(cs, config=SolverConfig(max_iter=1))
        assert not sol.converged

    def test_beta_count_must_match_modes(self):
        cs = CouplingSet.from_arrays([2.0, 1.0], [1.0, 1.0])
        with pytest.raises(ValueError, match="inverse temperatures"):
            solve_variational(cs, ThermodynamicPoint.from_betas([1.0]))


class TestMAPI:
    def test_multimode_ground_state(self, mapi_coupling):
        sol = solve_variational(mapi_coupling)
        assert sol.converged
        assert sol.v == pytest.approx(3.292283619446986, rel=2e-3)
        assert sol.w == pytest.approx(2.679188425097246, rel=2e-3)
        assert sol.F * MEV == pytest.approx(-19.50612170650821, rel=2e-3)

    def test_multimode_300K(self, mapi_coupling):
        ground = solve_variational(mapi_coupling)
        point = ThermodynamicPoint.from_temperature(300.0, mapi_coupling)
        sol = solve_variational(mapi_coupling, point, v0=ground.v, w0=ground.w)
        assert sol.v == pytest.approx(35.19211042393129, rel=1e-2)
        assert sol.w == pytest.approx(32.454157668863225, rel=1e-2)
        assert sol.F * MEV == pytest.approx(-42.79764110613318, rel=2e-3)

    def test_single_mode(self, mapi_single):
        ground = solve_variational(mapi_single)
        assert ground.v == pytest.approx(3.308644142915268, rel=2e-3)
        assert ground.w == pytest.approx(2.6633969095604466, rel=2e-3)
        assert ground.F * MEV == pytest.approx(-23.02903831886734, rel=2e-3)

        point = ThermodynamicPoint.from_temperature(300.0, mapi_single)
        sol = solve_variational(mapi_single, point, v0=ground.v, w0=ground.w)
        assert sol.v == pytest.approx(19.847591395925644, rel=1e-2)
        assert sol.w == pytest.approx(16.948206590039813, rel=1e-2)
        assert sol.F * MEV == pytest.approx(-35.46521250753788, rel=2e-3)
