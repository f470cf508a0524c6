"""Model configuration schema and loaders."""

from .loader import config_from_dict, config_from_yaml, load_config
from .schema import Config, Simulation, State, Strategy

__all__ = [
    "Config",
    "Simulation",
    "State",
    "Strategy",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
]
