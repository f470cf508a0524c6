"""Model runs and result packaging."""

from .results import ModelResult, ResultAggregator, StrategyResult
from .runner import ModelRunner, run_model

__all__ = ["ModelResult", "ModelRunner", "ResultAggregator", "StrategyResult", "run_model"]
