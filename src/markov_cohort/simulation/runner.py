"""Simulation runner - Orchestrate a full model run.

Key Features:
- Parameters evaluated once per cycle, passed explicitly (no global model time)
- All transition matrices resolved and validated before the cohort moves
- Life-table accumulation of every state value; one is reported as the effect
- Named collection of strategies sharing one state set, each run independently
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config.schema import Config
from ..engine.cohort import CohortSimulator, point_mass
from ..engine.expressions import MODEL_TIME, Expression, compile_expression
from ..engine.parameters import ParameterEvaluator
from ..engine.transitions import TransitionMatrixBuilder, TransitionSpec
from ..engine.values import AccumulatedValue, StateValueAccumulator
from ..errors import (
    ExpressionError,
    ModelError,
    StrategyBindingError,
    UndefinedParameterError,
    UnknownStateReferenceError,
)
from .results import ModelResult, ResultAggregator, StrategyResult

logger = logging.getLogger(__name__)


class ModelRunner:
    """Validate a model configuration and run its strategies."""

    def __init__(self, config: Config):
        """
        Compile and cross-check the configuration.

        Every cycle-independent error (unknown states, undefined names,
        cyclic parameters, multiple complements) is raised here, before any
        cycle is simulated.

        Args:
            config: Model configuration
        """
        self.config = config
        self.state_names: List[str] = config.state_names
        self.tolerance = config.simulation.tolerance
        self.parameters = ParameterEvaluator(config.parameters)

        self.transitions: Dict[str, TransitionSpec] = {}
        for name, rows in config.transitions.items():
            spec = TransitionSpec(self.state_names, rows, name=name)
            self._check_references(spec.referenced_names(), f"transition '{name}'")
            self.transitions[name] = spec

        # strategy -> value name -> per-state expressions in state order
        self.state_values: Dict[str, Dict[str, List[Expression]]] = {
            name: self._compile_strategy(name, strategy)
            for name, strategy in config.strategies.items()
        }

        start = config.simulation.start_state or self.state_names[0]
        if start not in self.state_names:
            raise UnknownStateReferenceError(f"Start state '{start}' is not declared", state=start)
        self.start_index = self.state_names.index(start)

        self.aggregator = ResultAggregator(
            self.state_names,
            cohort_size=config.simulation.cohort_size,
            effect=config.simulation.effect,
        )

    def _check_references(self, names, where: str) -> None:
        for ref in sorted(names):
            if ref != MODEL_TIME and ref not in self.parameters.expressions:
                raise UndefinedParameterError(f"Reference to undefined name '{ref}' in {where}")

    def _compile_strategy(self, name: str, strategy) -> Dict[str, List[Expression]]:
        if strategy.transition not in self.config.transitions:
            raise StrategyBindingError(
                f"Strategy '{name}' uses unknown transition '{strategy.transition}'"
            )
        for state in strategy.states:
            if state not in self.state_names:
                raise UnknownStateReferenceError(
                    f"Strategy '{name}' binds undeclared state", state=state
                )
        missing = [s for s in self.state_names if s not in strategy.states]
        if missing:
            raise StrategyBindingError(
                f"Strategy '{name}' has no values for state(s): {', '.join(missing)}"
            )

        value_names = list(strategy.states[self.state_names[0]])
        for state in self.state_names:
            if sorted(strategy.states[state]) != sorted(value_names):
                raise StrategyBindingError(
                    f"Strategy '{name}' defines values {sorted(strategy.states[state])}, "
                    f"expected {sorted(value_names)}",
                    state=state,
                )
        effect = self.config.simulation.effect
        if effect not in value_names:
            raise StrategyBindingError(f"Strategy '{name}' does not define effect value '{effect}'")

        compiled: Dict[str, List[Expression]] = {}
        for value_name in value_names:
            expressions = []
            for state in self.state_names:
                try:
                    expr = compile_expression(strategy.states[state][value_name])
                except ExpressionError as e:
                    raise ExpressionError(f"Strategy '{name}' value '{value_name}': {e}", state=state) from e
                self._check_references(expr.names, f"strategy '{name}' value '{value_name}'")
                expressions.append(expr)
            compiled[value_name] = expressions
        return compiled

    def evaluate_parameters(self) -> List[Dict[str, float]]:
        """Parameter values for cycles 0..cycles."""
        return [self.parameters.evaluate(t) for t in range(self.config.simulation.cycles + 1)]

    def resolve_matrices(
        self,
        transition: str,
        parameters_by_cycle: Sequence[Dict[str, float]],
    ) -> List[np.ndarray]:
        """
        Resolve the matrices for cycles 1..cycles.

        Returns:
            List where element k - 1 is the cycle-k matrix
        """
        spec = self.transitions[transition]
        builder = TransitionMatrixBuilder(
            spec,
            time_dependent=self.parameters.is_time_dependent(spec.referenced_names()),
            absorbing=self.config.absorbing_states,
            tolerance=self.tolerance,
        )
        return [
            builder.build(parameters_by_cycle[cycle], cycle)
            for cycle in range(1, self.config.simulation.cycles + 1)
        ]

    def _value_vectors(
        self,
        expressions: List[Expression],
        parameters_by_cycle: Sequence[Dict[str, float]],
    ) -> np.ndarray:
        names = set().union(*(e.names for e in expressions))
        cycles = range(len(parameters_by_cycle))
        if not self.parameters.is_time_dependent(names):
            cycles = [0]

        vectors = []
        for cycle in cycles:
            context = dict(parameters_by_cycle[cycle])
            context[MODEL_TIME] = cycle
            try:
                vectors.append([e.evaluate(context) for e in expressions])
            except (ExpressionError, UndefinedParameterError) as err:
                raise type(err)(str(err), cycle=cycle) from err
        values = np.asarray(vectors, dtype=float)
        return values[0] if len(values) == 1 else values

    def run_strategy(
        self,
        strategy: str,
        parameters_by_cycle: Optional[Sequence[Dict[str, float]]] = None,
    ) -> StrategyResult:
        """
        Simulate one strategy.

        Args:
            strategy: Strategy name
            parameters_by_cycle: Pre-evaluated parameters (evaluated here if omitted)

        Returns:
            StrategyResult with occupancy, values and resolved matrices
        """
        if strategy not in self.config.strategies:
            raise StrategyBindingError(f"Unknown strategy '{strategy}'")
        if parameters_by_cycle is None:
            parameters_by_cycle = self.evaluate_parameters()

        settings = self.config.simulation
        logger.info("Running strategy '%s' for %d cycles", strategy, settings.cycles)

        matrices = self.resolve_matrices(self.config.strategies[strategy].transition, parameters_by_cycle)

        simulator = CohortSimulator(tolerance=self.tolerance)
        initial = point_mass(len(self.state_names), self.start_index)
        distributions = simulator.simulate(initial, matrices)

        accumulator = StateValueAccumulator(method=settings.method)
        values: Dict[str, AccumulatedValue] = {}
        for value_name, expressions in self.state_values[strategy].items():
            vectors = self._value_vectors(expressions, parameters_by_cycle)
            values[value_name] = accumulator.accumulate(
                distributions, vectors, name=value_name, scale=settings.cohort_size
            )

        result = self.aggregator.strategy_result(strategy, distributions, values, matrices)
        logger.info(
            "Strategy '%s' finished: %s = %.6g", strategy, settings.effect, result.effect_total
        )
        return result

    def run(self) -> ModelResult:
        """Run every strategy; either all complete or an error is raised."""
        parameters_by_cycle = self.evaluate_parameters()
        results = {}
        for name in self.config.strategies:
            try:
                results[name] = self.run_strategy(name, parameters_by_cycle)
            except ModelError:
                logger.error("Strategy '%s' failed", name)
                raise
        return self.aggregator.model_result(
            self.config.compute_hash(), results, parameters_by_cycle
        )


def run_model(config: Config) -> ModelResult:
    """Validate and run a model configuration."""
    return ModelRunner(config).run()
