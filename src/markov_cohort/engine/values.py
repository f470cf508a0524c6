"""State value accumulation with the life-table (half-cycle) correction.

For each step k-1 -> k the increment is the average of the value dot
product at both ends of the cycle:

    increment[k] = 0.5 * (dist[k-1] . v[k-1] + dist[k] . v[k])

which assumes transitions happen, on average, at mid-cycle.
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

LIFE_TABLE = "life-table"


@dataclass
class AccumulatedValue:
    """Per-cycle increments and their total for one named value."""
    name: str
    increments: np.ndarray  # increments[k - 1] covers cycle k
    total: float

    @property
    def cumulative(self) -> np.ndarray:
        return np.cumsum(self.increments)


class StateValueAccumulator:
    """Integrate state values against an occupancy sequence."""

    def __init__(self, method: str = LIFE_TABLE):
        if method != LIFE_TABLE:
            raise ValueError(f"Unsupported half-cycle method '{method}', only '{LIFE_TABLE}'")
        self.method = method

    def accumulate(
        self,
        distributions: Sequence[np.ndarray],
        values: Union[np.ndarray, Sequence[np.ndarray]],
        name: str = "effect",
        scale: float = 1.0,
    ) -> AccumulatedValue:
        """
        Compute life-table increments and their sum.

        Args:
            distributions: Occupancy vectors for cycles 0..T
            values: One value vector (cycle invariant) or T + 1 vectors
            name: Label for the accumulated value
            scale: Cohort size multiplier

        Returns:
            AccumulatedValue with T increments
        """
        dists = np.asarray(distributions, dtype=float)
        if dists.ndim != 2 or dists.shape[0] < 1:
            raise ValueError("Need at least one occupancy vector")

        vals = np.asarray(values, dtype=float)
        if vals.ndim == 1:
            vals = np.broadcast_to(vals, dists.shape)
        elif vals.shape != dists.shape:
            raise ValueError(
                f"Value array shape {vals.shape} does not match occupancy shape {dists.shape}"
            )

        per_cycle = np.einsum("ij,ij->i", dists, vals) * scale
        increments = 0.5 * (per_cycle[:-1] + per_cycle[1:])
        return AccumulatedValue(name=name, increments=increments, total=float(increments.sum()))
