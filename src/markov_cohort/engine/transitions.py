"""Transition specifications and per-cycle matrix resolution.

Key Concepts:
- Each cell is a tagged variant: ``Probability(expr)`` or ``Complement``
- A complement resolves to 1 - sum(other entries in its row)
- Resolved matrices are row-stochastic (rescaled within tolerance) and read-only
- Matrices are cached when no cell depends on model_time
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import (
    AbsorbingStateError,
    ExpressionError,
    InvalidProbabilityError,
    MultipleComplementError,
    RowSumError,
    UndefinedParameterError,
    UnknownStateReferenceError,
)
from .expressions import MODEL_TIME, Expression, compile_expression

logger = logging.getLogger(__name__)

COMPLEMENT_MARKER = "C"
DEFAULT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Probability:
    """Explicit probability cell."""
    expression: Expression


class Complement:
    """Placeholder for 'whatever is left of this row'."""

    def __repr__(self) -> str:
        return "Complement"


COMPLEMENT = Complement()

Cell = Union[Probability, Complement]
RowInput = Union[Sequence[Union[str, float]], Mapping[str, Union[str, float]]]


def parse_cell(value: Union[str, int, float, Cell]) -> Cell:
    """Turn a raw config entry into a cell; the string 'C' is the complement."""
    if isinstance(value, (Probability, Complement)):
        return value
    if isinstance(value, str) and value.strip() == COMPLEMENT_MARKER:
        return COMPLEMENT
    return Probability(compile_expression(value))


class TransitionSpec:
    """Immutable N x N transition specification over an ordered state set."""

    def __init__(self, state_names: Sequence[str], rows: Sequence[RowInput], name: str = "transition"):
        """
        Build and structurally validate a transition specification.

        Args:
            state_names: Ordered state names (fixes row/column positions)
            rows: One entry per state; a dense list of N cells, or a mapping
                to_state -> cell where missing destinations are 0
            name: Label used in error messages

        Raises:
            UnknownStateReferenceError: Sparse row names an undeclared state
            MultipleComplementError: More than one complement in a row
            ValueError: Shape does not match the state list
        """
        self.name = name
        self.state_names: Tuple[str, ...] = tuple(state_names)
        n = len(self.state_names)
        if len(set(self.state_names)) != n:
            raise ValueError(f"Duplicate state names in {self.state_names}")
        if len(rows) != n:
            raise ValueError(
                f"Transition '{name}' has {len(rows)} rows for {n} states"
            )

        index = {s: i for i, s in enumerate(self.state_names)}
        cells: List[Tuple[Cell, ...]] = []
        for from_state, row in zip(self.state_names, rows):
            if isinstance(row, Mapping):
                dense: List[Cell] = [Probability(compile_expression(0.0))] * n
                for to_state, value in row.items():
                    if to_state not in index:
                        raise UnknownStateReferenceError(
                            f"Transition '{name}' references unknown destination '{to_state}'",
                            state=from_state,
                        )
                    dense[index[to_state]] = self._parse(value, from_state)
            else:
                if len(row) != n:
                    raise ValueError(
                        f"Transition '{name}' row '{from_state}' has {len(row)} entries, expected {n}"
                    )
                dense = [self._parse(value, from_state) for value in row]

            complements = sum(1 for cell in dense if isinstance(cell, Complement))
            if complements > 1:
                raise MultipleComplementError(
                    f"Transition '{name}' has {complements} complement markers in one row",
                    state=from_state,
                )
            cells.append(tuple(dense))

        self.cells: Tuple[Tuple[Cell, ...], ...] = tuple(cells)

    def _parse(self, value, from_state: str) -> Cell:
        try:
            return parse_cell(value)
        except ExpressionError as e:
            raise ExpressionError(f"Transition '{self.name}': {e}", state=from_state) from e

    @property
    def size(self) -> int:
        return len(self.state_names)

    def referenced_names(self) -> FrozenSet[str]:
        """All names referenced by explicit cells."""
        names = set()
        for row in self.cells:
            for cell in row:
                if isinstance(cell, Probability):
                    names |= cell.expression.names
        return frozenset(names)


class TransitionMatrixBuilder:
    """Resolve a TransitionSpec into a validated row-stochastic matrix per cycle."""

    def __init__(
        self,
        spec: TransitionSpec,
        time_dependent: bool = True,
        absorbing: Sequence[str] = (),
        tolerance: float = DEFAULT_TOLERANCE,
    ):
        """
        Initialize builder.

        Args:
            spec: Transition specification
            time_dependent: Whether any cell depends on model_time, directly
                or through a parameter; False enables caching
            absorbing: States whose rows must resolve to identity rows
            tolerance: Floating tolerance for row sums and bounds
        """
        self.spec = spec
        self.tolerance = tolerance
        self.time_dependent = time_dependent or MODEL_TIME in spec.referenced_names()
        unknown = [s for s in absorbing if s not in spec.state_names]
        if unknown:
            raise UnknownStateReferenceError(
                f"Absorbing state(s) not declared: {', '.join(unknown)}"
            )
        self.absorbing = tuple(spec.state_names.index(s) for s in absorbing)
        self._cached: Optional[np.ndarray] = None

    def build(self, parameters: Mapping[str, float], cycle: int) -> np.ndarray:
        """
        Resolve the matrix for one cycle.

        Args:
            parameters: Evaluated parameter values for this cycle
            cycle: Cycle index (exposed as model_time)

        Returns:
            Read-only N x N numpy array

        Raises:
            RowSumError, InvalidProbabilityError, AbsorbingStateError,
            UndefinedParameterError (a referenced name is missing from parameters)
        """
        if self._cached is not None:
            logger.debug("Reusing cached matrix for '%s' at cycle %d", self.spec.name, cycle)
            return self._cached

        context: Dict[str, float] = dict(parameters)
        context[MODEL_TIME] = cycle
        n = self.spec.size
        matrix = np.zeros((n, n), dtype=float)

        for i, row in enumerate(self.spec.cells):
            matrix[i] = self._resolve_row(row, context, self.spec.state_names[i], cycle)

        for i in self.absorbing:
            expected = np.zeros(n)
            expected[i] = 1.0
            if not np.allclose(matrix[i], expected, rtol=0.0, atol=self.tolerance):
                raise AbsorbingStateError(
                    f"Absorbing state row is not an identity row: {matrix[i].tolist()}",
                    cycle=cycle,
                    state=self.spec.state_names[i],
                )

        matrix.setflags(write=False)
        if not self.time_dependent:
            self._cached = matrix
        return matrix

    def _resolve_row(
        self,
        row: Sequence[Cell],
        context: Mapping[str, float],
        state: str,
        cycle: int,
    ) -> np.ndarray:
        values = np.zeros(len(row), dtype=float)
        complement_at = None
        for j, cell in enumerate(row):
            if isinstance(cell, Complement):
                complement_at = j
                continue
            try:
                values[j] = cell.expression.evaluate(context)
            except (ExpressionError, UndefinedParameterError) as e:
                raise type(e)(str(e), cycle=cycle, state=state) from e

        if complement_at is not None:
            complement = 1.0 - values.sum()
            if complement < -self.tolerance:
                raise InvalidProbabilityError(
                    f"Explicit entries sum to {values.sum():.12g}, complement would be {complement:.3g}",
                    cycle=cycle,
                    state=state,
                )
            values[complement_at] = max(0.0, complement)
        else:
            total = values.sum()
            if abs(total - 1.0) > self.tolerance:
                raise RowSumError(
                    f"Row sums to {total:.12g} and has no complement marker",
                    cycle=cycle,
                    state=state,
                )

        for j, value in enumerate(values):
            if np.isnan(value) or value < -self.tolerance or value > 1.0 + self.tolerance:
                raise InvalidProbabilityError(
                    f"Probability to '{self.spec.state_names[j]}' is {value:.12g}, outside [0, 1]",
                    cycle=cycle,
                    state=state,
                )
        values = np.clip(values, 0.0, 1.0)
        total = values.sum()
        # Rows accepted within tolerance are rescaled so mass is conserved exactly
        if abs(total - 1.0) > values.size * np.finfo(float).eps:
            values = values / total
        return values
