"""Parameter evaluation - cycle-dependent named scalars.

Key Concepts:
- Parameters are declared once and never mutated
- Each parameter may reference ``model_time`` and/or other parameters
- Evaluation is a pure function of the cycle index, in topological order
"""

import logging
from collections import deque
from typing import Dict, FrozenSet, List, Mapping, Union

from ..errors import CyclicParameterError, ExpressionError, UndefinedParameterError
from .expressions import MODEL_TIME, RESERVED_NAMES, Expression, compile_expression

logger = logging.getLogger(__name__)

ParameterDefinition = Union[str, int, float, Expression]


class ParameterEvaluator:
    """Evaluate a parameter set for a given cycle."""

    def __init__(self, definitions: Mapping[str, ParameterDefinition]):
        """
        Compile definitions and fix the evaluation order.

        Args:
            definitions: Parameter name -> number or expression string

        Raises:
            ExpressionError: Invalid expression or reserved parameter name
            UndefinedParameterError: Reference to an undeclared name
            CyclicParameterError: Dependency graph contains a cycle
        """
        self.expressions: Dict[str, Expression] = {}
        for name, definition in definitions.items():
            if name in RESERVED_NAMES:
                raise ExpressionError(f"'{name}' is reserved and cannot be a parameter name")
            try:
                self.expressions[name] = compile_expression(definition)
            except ExpressionError as e:
                raise ExpressionError(str(e), parameter=name) from e

        for name, expression in self.expressions.items():
            for ref in expression.names:
                if ref != MODEL_TIME and ref not in self.expressions:
                    raise UndefinedParameterError(
                        f"Reference to undefined name '{ref}'", parameter=name
                    )

        self.order: List[str] = self._topological_order()
        self.time_dependent: FrozenSet[str] = self._find_time_dependent()
        logger.debug(
            "Parameter order: %s (time-dependent: %s)",
            self.order, sorted(self.time_dependent),
        )

    def _topological_order(self) -> List[str]:
        """Kahn's algorithm; ties broken by declaration order."""
        declared = list(self.expressions)
        position = {name: i for i, name in enumerate(declared)}
        pending = {
            name: {ref for ref in expr.names if ref != MODEL_TIME}
            for name, expr in self.expressions.items()
        }
        dependents: Dict[str, List[str]] = {name: [] for name in declared}
        for name, refs in pending.items():
            for ref in refs:
                dependents[ref].append(name)

        ready = deque(name for name in declared if not pending[name])
        order: List[str] = []
        while ready:
            name = ready.popleft()
            order.append(name)
            released = []
            for dependent in dependents[name]:
                pending[dependent].discard(name)
                if not pending[dependent]:
                    released.append(dependent)
            for dependent in sorted(released, key=position.get):
                ready.append(dependent)

        if len(order) != len(declared):
            stuck = [name for name in declared if pending[name]]
            raise CyclicParameterError(
                f"Cyclic parameter dependencies among: {', '.join(stuck)}"
            )
        return order

    def _find_time_dependent(self) -> FrozenSet[str]:
        dependent = set()
        for name in self.order:
            names = self.expressions[name].names
            if MODEL_TIME in names or names & dependent:
                dependent.add(name)
        return frozenset(dependent)

    def is_time_dependent(self, names) -> bool:
        """True if any of ``names`` is ``model_time`` or a time-dependent parameter."""
        return any(n == MODEL_TIME or n in self.time_dependent for n in names)

    def evaluate(self, cycle: int) -> Dict[str, float]:
        """
        Evaluate all parameters for one cycle.

        Args:
            cycle: Non-negative cycle index, exposed to expressions as ``model_time``

        Returns:
            Parameter name -> value, in declaration order
        """
        if cycle < 0:
            raise ValueError(f"Cycle index must be non-negative, got {cycle}")

        context: Dict[str, float] = {MODEL_TIME: cycle}
        for name in self.order:
            try:
                context[name] = self.expressions[name].evaluate(context)
            except ExpressionError as e:
                raise ExpressionError(str(e), cycle=cycle, parameter=name) from e

        return {name: context[name] for name in self.expressions}
