"""Result packaging - labels occupancy and accumulated values for reporting."""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from ..engine.values import AccumulatedValue


@dataclass
class StrategyResult:
    """Outcome of simulating one strategy."""
    strategy: str
    state_names: List[str]
    distributions: np.ndarray  # (cycles + 1) x N occupancy fractions
    cohort_size: float
    values: Dict[str, AccumulatedValue]
    effect: str
    matrices: List[np.ndarray] = field(default_factory=list)  # matrices[k - 1] is cycle k

    @property
    def cycles(self) -> int:
        return self.distributions.shape[0] - 1

    @property
    def counts(self) -> pd.DataFrame:
        """State counts by cycle (occupancy scaled by cohort size)."""
        df = pd.DataFrame(
            self.distributions * self.cohort_size,
            columns=self.state_names,
        )
        df.index.name = "cycle"
        return df

    @property
    def effect_total(self) -> float:
        return self.values[self.effect].total

    @property
    def effect_increments(self) -> np.ndarray:
        return self.values[self.effect].increments

    @property
    def effect_per_member(self) -> float:
        return self.effect_total / self.cohort_size

    def matrix_for_cycle(self, cycle: int) -> pd.DataFrame:
        """Resolved transition matrix of a 1-based cycle, labeled by state."""
        if not 1 <= cycle <= len(self.matrices):
            raise IndexError(f"Cycle {cycle} outside 1..{len(self.matrices)}")
        return pd.DataFrame(
            self.matrices[cycle - 1],
            index=self.state_names,
            columns=self.state_names,
        )

    def counts_long(self) -> pd.DataFrame:
        """Long-format counts (cycle, state_names, count) for plotting."""
        long = self.counts.reset_index().melt(
            id_vars="cycle", var_name="state_names", value_name="count"
        )
        long["state_names"] = pd.Categorical(
            long["state_names"], categories=self.state_names, ordered=True
        )
        return long.sort_values(["state_names", "cycle"]).reset_index(drop=True)

    def values_frame(self) -> pd.DataFrame:
        """Per-cycle increments for every accumulated value (cycles 1..T)."""
        df = pd.DataFrame(
            {name: acc.increments for name, acc in self.values.items()},
            index=pd.RangeIndex(1, self.cycles + 1, name="cycle"),
        )
        return df

    def summary(self) -> Dict[str, float]:
        return {name: acc.total for name, acc in self.values.items()}


@dataclass
class ModelResult:
    """Outcome of a full model run over all strategies."""
    config_hash: str
    strategies: Dict[str, StrategyResult]
    parameter_trace: pd.DataFrame  # evaluated parameters by cycle 0..T

    def __getitem__(self, strategy: str) -> StrategyResult:
        return self.strategies[strategy]

    @property
    def strategy_names(self) -> List[str]:
        return list(self.strategies)

    def summary(self) -> pd.DataFrame:
        """Totals of every value by strategy."""
        return pd.DataFrame(
            {name: result.summary() for name, result in self.strategies.items()}
        ).T


class ResultAggregator:
    """Collect per-strategy simulation output into result objects."""

    def __init__(self, state_names: Sequence[str], cohort_size: float = 1.0, effect: str = "effect"):
        self.state_names = list(state_names)
        self.cohort_size = cohort_size
        self.effect = effect

    def strategy_result(
        self,
        strategy: str,
        distributions: Sequence[np.ndarray],
        values: Dict[str, AccumulatedValue],
        matrices: Sequence[np.ndarray] = (),
    ) -> StrategyResult:
        return StrategyResult(
            strategy=strategy,
            state_names=list(self.state_names),
            distributions=np.vstack(distributions),
            cohort_size=self.cohort_size,
            values=dict(values),
            effect=self.effect,
            matrices=list(matrices),
        )

    def model_result(
        self,
        config_hash: str,
        strategies: Dict[str, StrategyResult],
        parameters_by_cycle: Sequence[Dict[str, float]],
    ) -> ModelResult:
        trace = pd.DataFrame(list(parameters_by_cycle))
        trace.index.name = "cycle"
        return ModelResult(
            config_hash=config_hash,
            strategies=dict(strategies),
            parameter_trace=trace,
        )
