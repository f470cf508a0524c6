"""Tests for sanity checks on configurations and results."""

import copy

import pytest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from markov_cohort.config.loader import config_from_dict, load_config
from markov_cohort.simulation.runner import run_model
from markov_cohort.validation.sanity_checks import (
    SanityChecker,
    ValidationWarning,
    validate_model_result,
)


class TestConfigChecks:
    """Checks on configuration inputs."""

    def test_default_config_clean(self):
        warnings = SanityChecker(load_config()).check_config_inputs()
        assert warnings == []

    def test_missing_absorbing_state_warns(self):
        data = load_config().to_dict()
        for state in data["states"]:
            state["absorbing"] = False
        warnings = SanityChecker(config_from_dict(data)).check_config_inputs()
        assert any(w.category == "input" and "absorbing" in w.message for w in warnings)

    def test_absorbing_state_with_effect_warns(self):
        data = load_config().to_dict()
        data["strategies"]["AA"]["states"]["Death"]["SurvMo"] = 1
        warnings = SanityChecker(config_from_dict(data)).check_config_inputs()
        assert any("Death" in w.message for w in warnings)
        assert all(w.severity == "warning" for w in warnings)

    def test_literal_probability_out_of_range(self):
        data = load_config().to_dict()
        data["transitions"]["matAA"][2] = [0, 0, "C", 1.5]
        warnings = SanityChecker(config_from_dict(data)).check_config_inputs()
        errors = [w for w in warnings if w.severity == "error"]
        assert len(errors) == 1
        assert errors[0].category == "bounds"

    def test_long_horizon_warns(self):
        data = load_config().to_dict()
        data["simulation"]["cycles"] = 5000
        warnings = SanityChecker(config_from_dict(data)).check_config_inputs()
        assert any(w.category == "bounds" for w in warnings)


class TestResultChecks:
    """Checks on simulated strategies."""

    @classmethod
    def setup_class(cls):
        cls.config = load_config()
        cls.result = run_model(cls.config)

    def test_default_result_clean(self):
        assert validate_model_result(self.config, self.result) == []

    def test_detects_decreasing_absorbing_state(self):
        aa = copy.deepcopy(self.result["AA"])
        aa.distributions[10, 3] -= 0.05
        aa.distributions[10, 0] += 0.05
        warnings = SanityChecker(self.config).check_strategy_result(aa)
        assert any(w.category == "absorption" for w in warnings)

    def test_detects_mass_leak(self):
        aa = copy.deepcopy(self.result["AA"])
        aa.distributions[5, 0] -= 0.1
        warnings = SanityChecker(self.config).check_strategy_result(aa)
        leak = [w for w in warnings if w.category == "conservation"]
        assert len(leak) == 1
        assert "Cycle 5" in leak[0].details

    def test_detects_nan(self):
        aa = copy.deepcopy(self.result["AA"])
        aa.distributions[3, 1] = np.nan
        warnings = SanityChecker(self.config).check_strategy_result(aa)
        assert len(warnings) == 1
        assert isinstance(warnings[0], ValidationWarning)
        assert warnings[0].category == "nan"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
