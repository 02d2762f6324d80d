"""
Tests for the Osaka free energy of the multi-mode Feynman polaron.

Reference energies for MAPI (15 modes and its Hellwarth effective mode) were
computed with an independent implementation at the published variational
parameters; tolerances are rtol = 2e-3 to cover the CODATA revisions.
"""
import math

import numpy as np
import pytest

from polaronsuite.core.config import SolverConfig
from polaronsuite.core.constants import PolaronUnits, twopi
from polaronsuite.core.typepolaron import CouplingSet, ThermodynamicPoint
from polaronsuite.frohlich.coupling import reduce_coupling, single_mode_coupling
from polaronsuite.frohlich.freeenergy import (
    Aterm,
    Bterm,
    Cterm,
    Dtau,
    laguerre_rule,
    multi_F,
)
from polaronsuite.frohlich.hellwarth import hellwarth_b_scheme
from polaronsuite.libpolaron.materialproperties import load_material
from polaronsuite.libpolaron.quadrature import integrate

MEV = PolaronUnits(0.12).energy_meV


@pytest.fixture(scope="module")
def mapi_coupling():
    m = load_material("MAPI")
    return reduce_coupling(m.table, m.eps_optic, m.eps_static, m.volume, m.m_eff)


@pytest.fixture(scope="module")
def mapi_single():
    m = load_material("MAPI")
    return single_mode_coupling(4.5, 24.1, hellwarth_b_scheme(m.table), 0.12)


def _b_direct(tau, v, w, beta):
    return math.cosh(beta / 2 - tau) / math.sinh(beta / 2) / math.sqrt(Dtau(tau, v, w, beta))


def _b0_direct(tau, v, w):
    return math.exp(-tau) / math.sqrt(Dtau(tau, v, w, math.inf))


class TestDtau:
    def test_small_tau_slope(self):
        """D(tau) ~ tau for small tau at any beta."""
        for beta in (0.5, 3.0, math.inf):
            assert Dtau(1e-8, 4.0, 3.0, beta) == pytest.approx(1e-8, rel=1e-6)

    def test_symmetric_about_half_beta(self):
        beta = 2.7
        assert Dtau(0.4, 4.0, 3.0, beta) == pytest.approx(Dtau(beta - 0.4, 4.0, 3.0, beta), rel=1e-13)

    def test_uncoupled_is_free_particle(self):
        """v = w leaves the free-particle D(tau) = tau (1 - tau/beta)."""
        assert Dtau(0.3, 2.0, 2.0, 1.5) == pytest.approx(0.3 * (1 - 0.3 / 1.5), rel=1e-14)
        assert Dtau(0.3, 2.0, 2.0, math.inf) == pytest.approx(0.3, rel=1e-14)


class TestTerms:
    def test_athermal_closed_forms(self):
        v, w = 4.0, 2.5
        assert Aterm(v, w, math.inf) == pytest.approx(-1.5 * (v - w))
        assert Cterm(v, w, math.inf) == pytest.approx(0.75 * (v * v - w * w) / v)

    def test_mode_count_weighting(self):
        v, w, beta = 4.0, 2.5, 1.3
        assert Aterm(v, w, beta, n_modes=3) == pytest.approx(Aterm(v, w, beta) / 3.0)
        assert Cterm(v, w, beta, n_modes=3) == pytest.approx(Cterm(v, w, beta) / 3.0)

    def test_thermal_A_formula(self):
        v, w, beta = 4.0, 2.5, 1.3
        expected = 3.0 / beta * (math.log(v / w) - 0.5 * math.log(2 * math.pi * beta)
                                 - math.log(math.sinh(v * beta / 2) / math.sinh(w * beta / 2)))
        assert Aterm(v, w, beta) == pytest.approx(expected, rel=1e-12)

    def test_thermal_C_formula(self):
        v, w, beta = 4.0, 2.5, 1.3
        expected = 0.75 * (v * v - w * w) / v * (1 / math.tanh(v * beta / 2) - 2 / (v * beta))
        assert Cterm(v, w, beta) == pytest.approx(expected, rel=1e-12)

    @pytest.mark.parametrize("v, w", [(3.3, 2.7), (4.0, 2.1), (9.0, 3.0)])
    def test_laguerre_matches_adaptive(self, v, w):
        """The fixed-rule athermal B agrees with adaptive quadrature."""
        direct = integrate(_b0_direct, 0.0, np.inf, args=(v, w)).value / math.sqrt(math.pi)
        assert Bterm(v, w, 1.0, math.inf) == pytest.approx(direct, rel=1e-6)

    @pytest.mark.parametrize("beta", [0.36, 2.0, 15.0])
    def test_thermal_B_matches_direct_integral(self, beta):
        v, w, alpha = 4.0, 2.8, 2.0
        direct = integrate(_b_direct, 0.0, beta / 2, args=(v, w, beta)).value
        expected = alpha / math.sqrt(math.pi) * direct
        assert Bterm(v, w, alpha, beta) == pytest.approx(expected, rel=1e-8)

    def test_laguerre_rule_weights(self):
        """Weights of tau^{-1/2} e^{-tau} sum to Gamma(1/2)."""
        nodes, weights = laguerre_rule(32)
        assert np.sum(weights) == pytest.approx(math.sqrt(math.pi), rel=1e-12)
        assert np.all(nodes > 0.0)


class TestMultiF:
    def setup_method(self):
        self.cs = CouplingSet.from_arrays([2.0, 1.0], [0.8, 1.5])
        self.point = ThermodynamicPoint.from_betas([1.4, 0.7])

    def test_decomposition(self):
        for point in (None, self.point):
            fe = multi_F(3.4, 2.6, self.cs, point)
            assert fe.F == pytest.approx(-(fe.A + fe.B + fe.C), rel=1e-14)
            assert fe.converged

    def test_split_mode_equals_single_mode(self):
        """Two identical branches with alpha/2 each act as one branch."""
        one = CouplingSet.from_arrays([1.5], [2.0])
        two = CouplingSet.from_arrays([1.5, 1.5], [1.0, 1.0])
        for betas1, betas2 in (([0.9], [0.9, 0.9]), (None, None)):
            p1 = ThermodynamicPoint.from_betas(betas1) if betas1 else None
            p2 = ThermodynamicPoint.from_betas(betas2) if betas2 else None
            assert multi_F(3.0, 2.0, two, p2).F == pytest.approx(multi_F(3.0, 2.0, one, p1).F,
                                                                 rel=1e-10)

    @pytest.mark.parametrize("thermal", [False, True])
    def test_gradient_matches_finite_differences(self, thermal):
        point = self.point if thermal else None
        v, w, h = 3.4, 2.6, 1e-4
        fe = multi_F(v, w, self.cs, point)
        dv = (multi_F(v + h, w, self.cs, point).F - multi_F(v - h, w, self.cs, point).F) / (2 * h)
        dw = (multi_F(v, w + h, self.cs, point).F - multi_F(v, w - h, self.cs, point).F) / (2 * h)
        assert fe.dFdv == pytest.approx(dv, rel=1e-4, abs=1e-5)
        assert fe.dFdw == pytest.approx(dw, rel=1e-4, abs=1e-5)

    def test_large_beta_approaches_athermal(self):
        cs = CouplingSet.from_arrays([1.0], [2.0])
        cold = multi_F(3.3, 2.7, cs, ThermodynamicPoint.from_betas([1e4]))
        athermal = multi_F(3.3, 2.7, cs, None)
        assert cold.F == pytest.approx(athermal.F, rel=5e-3)
        assert cold.B == pytest.approx(athermal.B, rel=1e-3)

    def test_uncoupled_minimum_is_zero(self):
        cs = CouplingSet.from_arrays([1.0], [0.0])
        assert multi_F(2.0, 2.0, cs, None).F == pytest.approx(0.0, abs=1e-14)

    @pytest.mark.parametrize("v, w", [(2.0, 3.0), (2.0, 0.0), (np.nan, 1.0)])
    def test_rejects_bad_trial_parameters(self, v, w):
        with pytest.raises(ValueError, match="v >= w > 0"):
            multi_F(v, w, self.cs, None)

    def test_config_laguerre_order(self):
        a = multi_F(3.4, 2.6, self.cs, None, SolverConfig(laguerre_nodes=48))
        b = multi_F(3.4, 2.6, self.cs, None, SolverConfig(laguerre_nodes=96))
        assert a.F == pytest.approx(b.F, rel=1e-9)


class TestReferenceEnergies:
    def test_mapi_multimode_athermal(self, mapi_coupling):
        fe = multi_F(3.292283619446986, 2.679188425097246, mapi_coupling, None)
        assert fe.F * MEV == pytest.approx(-19.50612170650821, rel=2e-3)

    def test_mapi_multimode_300K(self, mapi_coupling):
        point = ThermodynamicPoint.from_temperature(300.0, mapi_coupling)
        fe = multi_F(35.19211042393129, 32.454157668863225, mapi_coupling, point)
        assert fe.F * MEV == pytest.approx(-42.79764110613318, rel=2e-3)

    def test_mapi_single_mode(self, mapi_single):
        fe0 = multi_F(3.308644142915268, 2.6633969095604466, mapi_single, None)
        point = ThermodynamicPoint.from_temperature(300.0, mapi_single)
        fe300 = multi_F(19.847591395925644, 16.948206590039813, mapi_single, point)
        assert fe0.F * MEV == pytest.approx(-23.02903831886734, rel=2e-3)
        assert fe300.F * MEV == pytest.approx(-35.46521250753788, rel=2e-3)

    def test_single_mode_frequency(self, mapi_single):
        assert mapi_single.frequencies[0] / twopi == pytest.approx(2.25, rel=2e-3)
