"""Markov cohort workbench - discrete-time state-transition models with life-table correction."""

from .config.loader import config_from_dict, load_config
from .config.schema import Config
from .simulation.results import ModelResult, StrategyResult
from .simulation.runner import ModelRunner, run_model

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ModelResult",
    "ModelRunner",
    "StrategyResult",
    "config_from_dict",
    "load_config",
    "run_model",
]
