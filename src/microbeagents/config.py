"""
Configuration dataclass for microbeagents models.

Holds the model-level settings shared by every agent: dimensionality of
space, integration timestep and the optional simulation box.
"""

from dataclasses import dataclass, asdict
from typing import Any, Optional
import math

from .errors import ConfigurationError


@dataclass
class Config:
    """
    Model-level configuration.
    
    Attributes:
        dim: Dimensionality of space (1, 2 or 3)
        timestep: Integration timestep Δt in seconds
        extent: Size of the simulation box along each axis in μm,
            or None for unbounded space
        periodic: Wrap positions at the box faces if True, reflect otherwise
    """
    
    dim: int = 2
    timestep: float = 1.0
    extent: Optional[tuple[float, ...]] = None
    periodic: bool = True
    
    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.extent is not None:
            self.extent = tuple(float(x) for x in self.extent)
        self._validate()
    
    def _validate(self) -> None:
        """Check that all parameters are in valid ranges."""
        if self.dim not in (1, 2, 3):
            raise ConfigurationError(f"dim must be 1, 2 or 3, got {self.dim}")
        
        if not (self.timestep > 0 and math.isfinite(self.timestep)):
            raise ConfigurationError(f"timestep must be finite and > 0, got {self.timestep}")
        
        if self.extent is not None:
            if len(self.extent) != self.dim:
                raise ConfigurationError(
                    f"extent must have {self.dim} components, got {len(self.extent)}"
                )
            if not all(x > 0 and math.isfinite(x) for x in self.extent):
                raise ConfigurationError(f"extent must be finite and > 0, got {self.extent}")
    
    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return asdict(self)
    
    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Config":
        """Create config from dictionary."""
        d = dict(d)
        # Handle tuple conversion for the box size
        if isinstance(d.get("extent"), list):
            d["extent"] = tuple(d["extent"])
        return cls(**d)
    
    @property
    def bounded(self) -> bool:
        """Whether agents live inside a finite box."""
        return self.extent is not None
    
    def __repr__(self) -> str:
        return (
            f"Config(dim={self.dim}, timestep={self.timestep}, "
            f"extent={self.extent}, periodic={self.periodic})"
        )
