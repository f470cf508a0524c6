"""Core engine: parameters, transition matrices, cohort propagation, value accumulation."""

from .cohort import CohortSimulator, point_mass
from .expressions import MODEL_TIME, Expression, compile_expression
from .parameters import ParameterEvaluator
from .transitions import (
    COMPLEMENT,
    Complement,
    Probability,
    TransitionMatrixBuilder,
    TransitionSpec,
)
from .values import AccumulatedValue, StateValueAccumulator

__all__ = [
    "MODEL_TIME",
    "Expression",
    "compile_expression",
    "ParameterEvaluator",
    "COMPLEMENT",
    "Complement",
    "Probability",
    "TransitionSpec",
    "TransitionMatrixBuilder",
    "CohortSimulator",
    "point_mass",
    "AccumulatedValue",
    "StateValueAccumulator",
]
