"""
Tests for SolverConfig and the [SOLVER] parameter-file reader.
"""
import dataclasses

import pytest

from polaronsuite.core.config import DEFAULT_CONFIG, SolverConfig, read_solver_config


class TestSolverConfig:
    def test_defaults(self):
        c = SolverConfig()
        assert c.rtol == 1e-8
        assert c.max_iter == 500
        assert c.v0 > c.w0 > 0.0
        assert c.threads is False

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.rtol = 1e-3

    def test_with_options_ignores_none(self):
        c = DEFAULT_CONFIG.with_options(rtol=None, max_iter=7)
        assert c.rtol == DEFAULT_CONFIG.rtol
        assert c.max_iter == 7
        assert DEFAULT_CONFIG.max_iter == 500

    @pytest.mark.parametrize("kwargs", [
        {"rtol": 0.0},
        {"gtol": -1.0},
        {"max_iter": 0},
        {"epsrel": -1e-3},
        {"response_rtol": 0.0},
        {"laguerre_nodes": 1},
        {"tail_start": 0.0},
        {"v0": 2.0, "w0": 3.0},
        {"max_workers": 0},
    ])
    def test_rejects_bad_values(self, kwargs):
        with pytest.raises(ValueError):
            SolverConfig(**kwargs)


class TestReadSolverConfig:
    def test_reads_section(self, tmp_path):
        path = tmp_path / "params.ini"
        path.write_text(
            "[SOLVER]\n"
            ":: tolerances\n"
            "rtol=1e-6\n"
            "max_iter=50\n"
            "threads=true\n"
            "max_workers=4\n"
            "laguerre_nodes=32\n"
            "\n"
            "[OTHER]\n"
            "rtol=1.0\n"
        )
        c = read_solver_config(str(path))
        assert c.rtol == 1e-6
        assert c.max_iter == 50
        assert c.threads is True
        assert c.max_workers == 4
        assert c.laguerre_nodes == 32
        assert c.epsrel == DEFAULT_CONFIG.epsrel

    def test_other_section(self, tmp_path):
        path = tmp_path / "params.ini"
        path.write_text("[FAST]\nrtol=1e-4\nverbose=yes\n")
        c = read_solver_config(str(path), section="FAST")
        assert c.rtol == 1e-4
        assert c.verbose is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_solver_config(str(tmp_path / "nope.ini"))

    def test_bad_value(self, tmp_path):
        path = tmp_path / "params.ini"
        path.write_text("[SOLVER]\nthreads=maybe\n")
        with pytest.raises(ValueError, match="threads"):
            read_solver_config(str(path))
