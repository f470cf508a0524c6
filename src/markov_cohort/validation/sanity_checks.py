"""Sanity checks and validation for model inputs and simulation outputs."""

import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..config.schema import Config
from ..simulation.results import ModelResult, StrategyResult


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "bounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and simulation results."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        sim = self.config.simulation

        if sim.cycles > 1000:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message=f"{sim.cycles} cycles is an unusually long horizon",
                details="Typical models run tens to low hundreds of cycles"
            ))

        if not self.config.absorbing_states:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="No absorbing state declared",
                details="Declare terminal states (e.g. death) with absorbing: true to have their rows verified"
            ))

        # Absorbing states normally accrue no effect
        for name, strategy in self.config.strategies.items():
            for state in self.config.absorbing_states:
                value = strategy.states.get(state, {}).get(sim.effect)
                if value is None:
                    continue
                if isinstance(value, (int, float)) and value != 0:
                    warnings.append(ValidationWarning(
                        severity="warning",
                        category="input",
                        message=f"Absorbing state '{state}' accrues {sim.effect}={value:g} in strategy '{name}'",
                        details="Effect keeps accumulating after the cohort is absorbed"
                    ))

        # Constant probabilities outside [0, 1] will fail at resolution
        for name, rows in self.config.transitions.items():
            for row in rows:
                entries = row.values() if isinstance(row, dict) else row
                for entry in entries:
                    if isinstance(entry, (int, float)) and not 0.0 <= entry <= 1.0:
                        warnings.append(ValidationWarning(
                            severity="error",
                            category="bounds",
                            message=f"Transition '{name}' contains literal probability {entry}",
                            details="Probabilities must lie in [0, 1]"
                        ))

        return warnings

    def check_strategy_result(self, result: StrategyResult) -> List[ValidationWarning]:
        """
        Check one strategy's output for invariant breaches.

        Args:
            result: Simulated strategy

        Returns:
            List of validation warnings
        """
        warnings = []
        tolerance = self.config.simulation.tolerance
        dists = result.distributions

        if np.isnan(dists).any() or np.isinf(dists).any():
            warnings.append(ValidationWarning(
                severity="error",
                category="nan",
                message=f"Invalid occupancy values in strategy '{result.strategy}'"
            ))
            return warnings

        mass = dists.sum(axis=1)
        worst = int(np.argmax(np.abs(mass - 1.0)))
        if abs(mass[worst] - 1.0) > tolerance:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Cohort mass not conserved",
                details=f"Cycle {worst}: occupancy sums to {mass[worst]:.12g}"
            ))

        if (dists < -tolerance).any():
            cycle = int(np.argwhere(dists < -tolerance)[0][0])
            warnings.append(ValidationWarning(
                severity="error",
                category="bounds",
                message="Negative occupancy",
                details=f"First seen at cycle {cycle}"
            ))

        for state in self.config.absorbing_states:
            column = dists[:, result.state_names.index(state)]
            drops = np.diff(column) < -tolerance
            if drops.any():
                warnings.append(ValidationWarning(
                    severity="error",
                    category="absorption",
                    message=f"Occupancy of absorbing state '{state}' decreased",
                    details=f"First drop entering cycle {int(np.argmax(drops)) + 1}"
                ))

        for name, acc in result.values.items():
            if math.isnan(acc.total) or math.isinf(acc.total):
                warnings.append(ValidationWarning(
                    severity="error",
                    category="nan",
                    message=f"Invalid total for value '{name}'",
                    details=f"Value: {acc.total}"
                ))

        return warnings


def validate_model_result(config: Config, result: ModelResult) -> List[ValidationWarning]:
    """
    Run all validation checks.

    Args:
        config: Model configuration
        result: Completed model run

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(config)
    warnings = []

    warnings.extend(checker.check_config_inputs())
    for strategy_result in result.strategies.values():
        warnings.extend(checker.check_strategy_result(strategy_result))

    return warnings
