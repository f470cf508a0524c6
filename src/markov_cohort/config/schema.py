"""Pydantic schema for model configuration validation."""

import hashlib
import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.expressions import RESERVED_NAMES

# Number or expression string; the string "C" inside a transition row is the complement marker
ExpressionValue = Union[float, str]
TransitionRow = Union[List[ExpressionValue], Dict[str, ExpressionValue]]


class State(BaseModel):
    """Health state declaration."""
    name: str = Field(min_length=1, description="Unique state name")
    absorbing: bool = Field(default=False, description="State is never left once entered")
    description: Optional[str] = Field(default=None, description="Free-text label")


class Strategy(BaseModel):
    """Binds one transition specification and per-state values."""
    transition: str = Field(description="Name of the transition specification")
    states: Dict[str, Dict[str, ExpressionValue]] = Field(
        description="State name -> {value name -> number or expression}"
    )
    description: Optional[str] = None


class Simulation(BaseModel):
    """Run settings."""
    cycles: int = Field(gt=0, description="Number of cycles to simulate")
    start_state: Optional[str] = Field(
        default=None, description="State holding the whole cohort at cycle 0 (defaults to first state)"
    )
    cohort_size: float = Field(gt=0, default=1.0, description="Initial cohort size used to scale counts")
    effect: str = Field(description="Name of the state value accumulated as the model effect")
    method: Literal["life-table"] = Field(default="life-table", description="Half-cycle correction")
    tolerance: float = Field(gt=0, le=1e-3, default=1e-9, description="Floating tolerance for probability checks")

    @field_validator("cycles", mode="before")
    @classmethod
    def coerce_cycles(cls, v):
        """Accept integral floats from YAML (e.g. 60.0)."""
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v


class Config(BaseModel):
    """Complete Markov cohort model configuration."""
    name: str = Field(default="markov-model", description="Model label")
    states: List[State] = Field(min_length=1)
    parameters: Dict[str, ExpressionValue] = Field(default_factory=dict)
    transitions: Dict[str, List[TransitionRow]] = Field(min_length=1)
    strategies: Dict[str, Strategy] = Field(min_length=1)
    simulation: Simulation

    @field_validator("states", mode="before")
    @classmethod
    def expand_state_names(cls, v):
        """Allow states to be given as bare names."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @field_validator("parameters")
    @classmethod
    def validate_parameter_names(cls, v):
        """Parameter names must be identifiers and not shadow built-in names."""
        for name in v:
            if not name.isidentifier():
                raise ValueError(f"Parameter name '{name}' is not a valid identifier")
            if name in RESERVED_NAMES:
                raise ValueError(f"Parameter name '{name}' is reserved")
        return v

    @model_validator(mode="after")
    def validate_unique_states(self):
        """State names must be unique."""
        names = self.state_names
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate state names: {', '.join(duplicates)}")
        return self

    @property
    def state_names(self) -> List[str]:
        return [s.name for s in self.states]

    @property
    def absorbing_states(self) -> List[str]:
        return [s.name for s in self.states if s.absorbing]

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
