"""Error taxonomy for model declaration and simulation.

All errors are configuration or logic errors detected synchronously; none
are retried. Each carries the offending cycle, state and/or parameter when
known so callers can report exactly where a run failed.
"""

from typing import Optional


class ModelError(ValueError):
    """Base class for all Markov cohort model errors."""

    def __init__(
        self,
        message: str,
        cycle: Optional[int] = None,
        state: Optional[str] = None,
        parameter: Optional[str] = None,
    ):
        self.cycle = cycle
        self.state = state
        self.parameter = parameter
        context = []
        if parameter is not None:
            context.append(f"parameter={parameter}")
        if state is not None:
            context.append(f"state={state}")
        if cycle is not None:
            context.append(f"cycle={cycle}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class ExpressionError(ModelError):
    """Expression is syntactically invalid or failed to evaluate."""


class UndefinedParameterError(ModelError):
    """Expression references a name that is not a declared parameter."""


class CyclicParameterError(ModelError):
    """Parameter dependency graph contains a cycle."""


class MultipleComplementError(ModelError):
    """More than one complement marker in a transition row."""


class RowSumError(ModelError):
    """Transition row without a complement marker does not sum to 1."""


class InvalidProbabilityError(ModelError):
    """Resolved transition entry lies outside [0, 1]."""


class AbsorbingStateError(ModelError):
    """Row of a state declared absorbing is not an identity row."""


class MassConservationError(ModelError):
    """Occupancy vector no longer sums to 1."""


class UnknownStateReferenceError(ModelError):
    """A state name is referenced that is not in the declared state list."""


class StrategyBindingError(ModelError):
    """Strategy binds an unknown transition or leaves states without values."""
