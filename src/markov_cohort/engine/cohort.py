"""Cohort propagation - linear recurrence dist[k] = dist[k-1] @ M_k."""

import logging
from typing import List, Sequence

import numpy as np

from ..errors import MassConservationError
from .transitions import DEFAULT_TOLERANCE

logger = logging.getLogger(__name__)


def point_mass(size: int, index: int) -> np.ndarray:
    """Occupancy vector with the whole cohort in one state."""
    if not 0 <= index < size:
        raise IndexError(f"State index {index} out of range for {size} states")
    dist = np.zeros(size, dtype=float)
    dist[index] = 1.0
    return dist


class CohortSimulator:
    """Propagate an occupancy distribution through per-cycle matrices."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def check_mass(self, dist: np.ndarray, cycle: int) -> None:
        total = float(dist.sum())
        if abs(total - 1.0) > self.tolerance:
            raise MassConservationError(
                f"Occupancy sums to {total:.12g}, expected 1",
                cycle=cycle,
            )

    def simulate(
        self,
        initial: np.ndarray,
        matrices: Sequence[np.ndarray],
    ) -> List[np.ndarray]:
        """
        Run the cohort through all cycles.

        Args:
            initial: Occupancy at cycle 0
            matrices: matrices[k - 1] is the cycle-k matrix moving dist[k-1] to dist[k]

        Returns:
            Occupancy vectors for cycles 0..len(matrices) inclusive

        Raises:
            MassConservationError: If any occupancy vector leaves the simplex
        """
        dist = np.asarray(initial, dtype=float)
        self.check_mass(dist, cycle=0)

        distributions = [dist]
        for cycle, matrix in enumerate(matrices, start=1):
            if matrix.shape != (dist.size, dist.size):
                raise ValueError(
                    f"Matrix shape {matrix.shape} does not match {dist.size} states at cycle {cycle}"
                )
            dist = dist @ matrix
            self.check_mass(dist, cycle=cycle)
            distributions.append(dist)

        logger.debug("Propagated cohort through %d cycles", len(matrices))
        return distributions
