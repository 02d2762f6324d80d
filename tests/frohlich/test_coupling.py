"""
Tests for the Frohlich coupling reduction.

Reference values for MAPI (15 IR-active modes, eps_inf = 4.5, eps_S = 24.1,
m* = 0.12, V = (6.29 A)^3) follow Frost, PRB 96, 195202 (2017).
"""
import logging

import numpy as np
import pytest

from polaronsuite.core.constants import twopi
from polaronsuite.frohlich.coupling import (
    frohlich_alpha,
    ionic_dielectric,
    multi_frohlich_alpha,
    reduce_coupling,
    single_mode_coupling,
    validate_mode_table,
)
from polaronsuite.libpolaron.materialproperties import load_material

MAPI_EPS_IONIC = [
    0.2999680470756664, 0.0247387647244569, 0.2543132184018061, 0.16621617310133838,
    2.3083204422506296, 3.0707979601813267, 3.2026782087486407, 0.892674135624958,
    0.8861579096771846, 0.7209278375756829, 0.40199759805819046, 0.6183279038315278,
    0.7666391525823296, 0.1555444994147378, 1.1627710200840813,
]

MAPI_ALPHA = [
    0.03401013445306177, 0.002850969846883158, 0.03075081562607006, 0.02275292381052607,
    0.33591418423943553, 0.46526818717696034, 0.5046331098089347, 0.14223560721522646,
    0.16083871312929882, 0.1622911897190622, 0.09123913334086006, 0.14070972715961402,
    0.18159786148348117, 0.039500396977008016, 0.3487735470060312,
]


@pytest.fixture(scope="module")
def mapi():
    return load_material("MAPI")


class TestValidateModeTable:
    def test_splits_columns(self):
        freq, act = validate_mode_table([[2.0, 0.1], [1.0, 0.2]])
        np.testing.assert_array_equal(freq, [2.0, 1.0])
        np.testing.assert_array_equal(act, [0.1, 0.2])

    def test_single_row(self):
        freq, act = validate_mode_table([2.25, 0.5])
        assert freq.shape == (1,)

    @pytest.mark.parametrize("table", [[], [[1.0, 2.0, 3.0]], [[[1.0, 2.0]]]])
    def test_bad_shape(self, table):
        with pytest.raises(ValueError, match="shape"):
            validate_mode_table(table)

    def test_non_positive_frequency_names_mode(self):
        with pytest.raises(ValueError, match="Mode 1: phonon frequency"):
            validate_mode_table([[1.0, 0.1], [0.0, 0.1]])

    def test_negative_activity_names_mode(self):
        with pytest.raises(ValueError, match="Mode 0: IR activity"):
            validate_mode_table([[1.0, -0.1]])


class TestSingleModeAlpha:
    def test_mapi_effective_mode(self):
        """MAPI at 2.25 THz: alpha ~ 2.39 (Frost 2017)."""
        assert frohlich_alpha(4.5, 24.1, 2.25, 0.12) == pytest.approx(2.394, rel=1e-3)

    def test_scales_as_inverse_sqrt_frequency(self):
        a1 = frohlich_alpha(4.5, 24.1, 1.0, 0.12)
        a4 = frohlich_alpha(4.5, 24.1, 4.0, 0.12)
        assert a1 / a4 == pytest.approx(2.0, rel=1e-12)

    def test_equal_dielectrics_decouple(self):
        assert frohlich_alpha(5.0, 5.0, 1.0, 1.0) == 0.0

    @pytest.mark.parametrize("args", [(0.0, 24.1, 2.25, 0.12), (4.5, 24.1, -1.0, 0.12),
                                      (4.5, 24.1, 2.25, 0.0)])
    def test_rejects_non_positive(self, args):
        with pytest.raises(ValueError, match="must be positive"):
            frohlich_alpha(*args)

    def test_single_mode_coupling_set(self):
        cs = single_mode_coupling(4.5, 24.1, 2.25, 0.12)
        assert cs.n_modes == 1
        assert cs.frequencies[0] == pytest.approx(twopi * 2.25)
        assert cs.m_eff == 0.12


class TestMultiModeReduction:
    def test_ionic_dielectric(self, mapi):
        eps = ionic_dielectric(mapi.phonon_freq, mapi.ir_activity, mapi.volume)
        np.testing.assert_allclose(eps, MAPI_EPS_IONIC, rtol=1e-3)

    def test_multi_alpha(self, mapi):
        eps = ionic_dielectric(mapi.phonon_freq, mapi.ir_activity, mapi.volume)
        alpha = multi_frohlich_alpha(4.5, eps, np.sum(eps), mapi.phonon_freq, 0.12)
        np.testing.assert_allclose(alpha, MAPI_ALPHA, rtol=1e-3)

    def test_reduce_coupling(self, mapi):
        cs = reduce_coupling(mapi.table, 4.5, 24.1, mapi.volume, 0.12)
        assert cs.n_modes == 15
        np.testing.assert_allclose(cs.alphas, MAPI_ALPHA, rtol=1e-3)
        np.testing.assert_allclose(cs.ionic, MAPI_EPS_IONIC, rtol=1e-3)
        np.testing.assert_allclose(cs.frequencies, twopi * mapi.phonon_freq, rtol=1e-14)
        assert cs.alpha_total == pytest.approx(2.663366500992453, rel=1e-3)

    def test_alpha_total_independent_of_input_order(self, mapi):
        a = reduce_coupling(mapi.table, 4.5, 24.1, mapi.volume, 0.12)
        b = reduce_coupling(mapi.table[::-1], 4.5, 24.1, mapi.volume, 0.12)
        assert a.alpha_total == pytest.approx(b.alpha_total, rel=1e-13)
        assert a.alpha_total == pytest.approx(np.sum(a.alphas), rel=1e-14)

    def test_sorted_by_descending_frequency(self, mapi):
        cs = reduce_coupling(mapi.table[::-1], 4.5, 24.1, mapi.volume, 0.12)
        assert np.all(np.diff(cs.frequencies) <= 0.0)
        np.testing.assert_allclose(cs.alphas, MAPI_ALPHA, rtol=1e-3)

    def test_static_mismatch_warning(self, mapi, caplog):
        """eps_inf + sum(eps_ionic) = 19.43 is more than 10% below eps_S = 24.1."""
        with caplog.at_level(logging.WARNING, logger="polaronsuite"):
            reduce_coupling(mapi.table, 4.5, 24.1, mapi.volume, 0.12)
        assert any("differs from eps_static" in r.getMessage() for r in caplog.records)

    def test_no_warning_when_consistent(self, mapi, caplog):
        eps = ionic_dielectric(mapi.phonon_freq, mapi.ir_activity, mapi.volume)
        with caplog.at_level(logging.WARNING, logger="polaronsuite"):
            reduce_coupling(mapi.table, 4.5, 4.5 + np.sum(eps), mapi.volume, 0.12)
        assert not any("differs from eps_static" in r.getMessage() for r in caplog.records)

    def test_static_below_optic_rejected(self, mapi):
        with pytest.raises(ValueError, match="below the optical"):
            reduce_coupling(mapi.table, 4.5, 3.0, mapi.volume, 0.12)

    def test_bad_volume(self, mapi):
        with pytest.raises(ValueError, match="volume"):
            reduce_coupling(mapi.table, 4.5, 24.1, 0.0, 0.12)

    def test_malformed_table(self):
        with pytest.raises(ValueError, match="Mode 0"):
            reduce_coupling([[-1.0, 0.1]], 4.5, 24.1, 1e-28, 0.12)
