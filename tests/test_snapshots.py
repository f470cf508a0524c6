"""Snapshot tests for the bundled metastatic prostate cancer model.

Reference values are derived by hand from the published monthly
probabilities (LATITUDE / MAINSAIL / SSA life tables). If these fail
after code changes, either the change broke something or the model
definition changed intentionally and the values need updating.
"""

import pytest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from markov_cohort.config.loader import load_config
from markov_cohort.simulation.runner import ModelRunner, run_model

SD_ROW_EARLY = [0.97456, 0.003, 0.0208, 0.00164]  # cycles 1-6
SD_ROW_LATE = [0.97756, 0.0, 0.0208, 0.00164]  # cycle 7 onward


def reference_run(cycles: int = 60):
    """Independent numpy re-computation of the AA strategy."""
    dists = [np.array([1.0, 0.0, 0.0, 0.0])]
    for cycle in range(1, cycles + 1):
        m = np.array([
            SD_ROW_EARLY if cycle <= 6 else SD_ROW_LATE,
            [0.0, 1 - 0.0208 - 0.00164, 0.0208, 0.00164],
            [0.0, 0.0, 1 - 0.0205, 0.0205],
            [0.0, 0.0, 0.0, 1.0],
        ])
        dists.append(dists[-1] @ m)
    alive = np.array([d[:3].sum() for d in dists])
    return np.array(dists), float((0.5 * (alive[:-1] + alive[1:])).sum())


class TestDefaultModelSnapshot:
    """Snapshot tests with the default configuration."""

    @classmethod
    def setup_class(cls):
        cls.config = load_config()
        cls.result = run_model(cls.config)
        cls.aa = cls.result["AA"]

    def test_total_cycles(self):
        """Result holds cycles 0..60 inclusive."""
        assert self.aa.distributions.shape == (61, 4)
        assert len(self.aa.counts) == 61
        assert list(self.aa.counts.columns) == ["SD", "SD_FAT", "PD", "Death"]
        assert len(self.aa.matrices) == 60
        assert len(self.aa.effect_increments) == 60

    def test_cycle_zero_is_point_mass(self):
        np.testing.assert_array_equal(self.aa.distributions[0], [1.0, 0.0, 0.0, 0.0])

    def test_cycle_one_matrix(self):
        matrix = self.aa.matrix_for_cycle(1)
        np.testing.assert_allclose(matrix.loc["SD"].values, SD_ROW_EARLY, atol=1e-12)

    def test_cycle_one_distribution(self):
        np.testing.assert_allclose(self.aa.distributions[1], SD_ROW_EARLY, atol=1e-12)

    def test_cycle_two_distribution(self):
        expected_fat = 0.97456 * 0.003 + 0.003 * (1 - 0.0208 - 0.00164)
        assert self.aa.distributions[2][0] == pytest.approx(0.97456 ** 2)
        assert self.aa.distributions[2][1] == pytest.approx(expected_fat)

    def test_effect_after_one_cycle(self):
        """Life-table increment: 0.5 * (1 + (1 - 0.00164))."""
        assert self.aa.effect_increments[0] == pytest.approx(0.99918)

    def test_fatigue_boundary(self):
        """Fatigue probability applies through cycle 6 and is exactly 0 from cycle 7."""
        assert self.aa.matrix_for_cycle(6).loc["SD", "SD_FAT"] == 0.003
        for cycle in range(7, 61):
            assert self.aa.matrix_for_cycle(cycle).loc["SD", "SD_FAT"] == 0.0
        np.testing.assert_allclose(self.aa.matrix_for_cycle(7).loc["SD"].values, SD_ROW_LATE)

    def test_rows_stochastic(self):
        for matrix in self.aa.matrices:
            np.testing.assert_allclose(matrix.sum(axis=1), 1.0, atol=1e-9)

    def test_mass_conservation(self):
        np.testing.assert_allclose(self.aa.distributions.sum(axis=1), 1.0, atol=1e-9)

    def test_monotonic_absorption(self):
        death = self.aa.distributions[:, 3]
        assert (np.diff(death) >= 0).all()

    def test_matches_reference(self):
        dists, effect = reference_run()
        np.testing.assert_allclose(self.aa.distributions, dists, atol=1e-12)
        assert self.aa.effect_total == pytest.approx(effect, rel=1e-12)

    def test_effect_in_range(self):
        """Five-year survival months must be between 0 and 60."""
        assert 40.0 < self.aa.effect_total < 60.0
        assert self.aa.effect_total == pytest.approx(self.aa.effect_increments.sum())

    def test_parameter_trace(self):
        trace = self.result.parameter_trace
        assert trace.shape == (61, 5)
        assert trace.loc[6, "Pr_SD_to_SDFAT"] == 0.003
        assert trace.loc[7, "Pr_SD_to_SDFAT"] == 0.0
        assert (trace["Pr_SD_to_PD"] == 0.0208).all()

    def test_config_hash_recorded(self):
        assert self.result.config_hash == self.config.compute_hash()


class TestDeterminism:
    """Same configuration gives identical results."""

    def test_repeat_runs_identical(self):
        config = load_config()
        first = ModelRunner(config).run()["AA"]
        second = ModelRunner(config).run()["AA"]
        np.testing.assert_array_equal(first.distributions, second.distributions)
        assert first.effect_total == second.effect_total

    def test_runner_reusable(self):
        runner = ModelRunner(load_config())
        assert runner.run()["AA"].effect_total == runner.run()["AA"].effect_total


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
