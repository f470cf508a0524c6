"""Model configuration loading from YAML files, YAML text or dictionaries."""

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Union[str, Path] = None) -> Config:
    """
    Load a model definition from a YAML file.

    Args:
        yaml_path: Path to YAML file (defaults to the bundled prostate cancer model)

    Returns:
        Validated Config
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULTS_PATH
    with open(path, 'r', encoding='utf-8') as f:
        return config_from_yaml(f.read(), source=str(path))


def config_from_yaml(text: str, source: str = "<string>") -> Config:
    """Parse YAML text into a validated Config."""
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"Model definition in {source} must be a YAML mapping")
    return config_from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Validate a plain dictionary as a Config."""
    return Config.from_dict(data)
