"""
Agent state for microbeagents.

Each microbe carries:
- Position and unit swimming direction (arrays of shape [D])
- Scalar swimming speed
- A motility pattern with its current motile state
- Translational/rotational diffusivities and an equivalent radius
- A model-specific internal state (scalar or small vector)

Concrete agent types pair this record with a chemotaxis kernel: an
``affect`` method updating the internal state and a ``tumblebias`` factor
modulating the reorientation rate. The baseline ``Microbe`` has no
chemotactic coupling; the chemotactic variants live in ``chemotaxis``.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import MISSING, dataclass, field, fields
from typing import Any, Optional, Sequence, Type, TypeVar
import math

import numpy as np

from .errors import ConfigurationError
from .kinematics import random_speed, random_velocity
from .motility import Motility, RunTumble

M = TypeVar("M", bound="AbstractMicrobe")

# Agent ids drawn by create_microbe are positive 63-bit integers
MAX_ID = 2**63 - 1


@dataclass(eq=False)
class AbstractMicrobe(ABC):
    """
    Fields shared by all microbe types.
    
    Attributes:
        pos: Position in μm [D]
        vel: Unit swimming direction [D]
        speed: Swimming speed in μm/s
        motility: Motility pattern (owned by this microbe)
        translational_diffusivity: Brownian translational diffusivity in μm²/s
        rotational_diffusivity: Brownian rotational diffusivity in rad²/s
        radius: Equivalent spherical radius in μm
        state: Generic internal state
        id: Identifier, assigned by the container when 0
    """
    
    pos: np.ndarray
    vel: np.ndarray
    speed: float
    motility: Motility = field(default_factory=RunTumble)
    translational_diffusivity: float = 0.0
    rotational_diffusivity: float = 0.0
    radius: float = 0.0
    state: Any = 0.0
    id: int = 0
    
    # Scalar fields that must be >= 0 (inf allowed, nan rejected)
    _nonnegative = ("translational_diffusivity", "rotational_diffusivity", "radius")
    
    def __post_init__(self) -> None:
        self.pos = np.array(self.pos, dtype=float).reshape(-1)
        self.vel = np.array(self.vel, dtype=float).reshape(-1)
        self.motility = copy.copy(self.motility)
        self._validate()
        self.vel = self.vel / np.linalg.norm(self.vel)
    
    def _validate(self) -> None:
        """Check shapes and parameter ranges."""
        dim = self.pos.shape[0]
        if dim not in (1, 2, 3):
            raise ConfigurationError(f"position must have 1, 2 or 3 components, got {dim}")
        if self.vel.shape[0] != dim:
            raise ConfigurationError(
                f"velocity has {self.vel.shape[0]} components but position has {dim}"
            )
        if not np.all(np.isfinite(self.pos)):
            raise ConfigurationError(f"position must be finite, got {self.pos}")
        norm = np.linalg.norm(self.vel)
        if not (norm > 0 and math.isfinite(norm)):
            raise ConfigurationError(f"velocity must be a finite non-zero vector, got {self.vel}")
        if not (self.speed >= 0 and math.isfinite(self.speed)):
            raise ConfigurationError(f"speed must be finite and >= 0, got {self.speed}")
        if not isinstance(self.motility, Motility):
            raise ConfigurationError(f"motility must be a Motility, got {type(self.motility).__name__}")
        self.speed = float(self.speed)
        for name in self._nonnegative:
            value = float(getattr(self, name))
            if not value >= 0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")
            setattr(self, name, value)
    
    @property
    def dim(self) -> int:
        """Dimensionality of the space the microbe lives in."""
        return self.pos.shape[0]
    
    @property
    def position(self) -> np.ndarray:
        return self.pos
    
    @property
    def direction(self) -> np.ndarray:
        """Unit swimming direction."""
        return self.vel
    
    @property
    def velocity(self) -> np.ndarray:
        """Swimming velocity in μm/s (direction times speed)."""
        return self.vel * self.speed
    
    def initialize_state(self, model) -> None:
        """Prepare the internal state when inserted into a model."""
    
    @abstractmethod
    def affect(self, model) -> None:
        """Update the internal state over one timestep."""
    
    @abstractmethod
    def tumblebias(self) -> float:
        """Multiplicative modulation of the unbiased turn rate."""
    
    @abstractmethod
    def turnrate(self, model) -> float:
        """Instantaneous reorientation rate in Hz."""
    
    def __repr__(self) -> str:
        pos = np.round(self.pos, 2).tolist()
        vel = np.round(self.velocity, 2).tolist()
        return (
            f"{type(self).__name__}(id={self.id}, dim={self.dim}, "
            f"motility={type(self.motility).__name__}, pos={pos}, vel={vel})"
        )


@dataclass(eq=False, repr=False)
class Microbe(AbstractMicrobe):
    """
    Basic microbe without chemotactic coupling.
    
    The internal state is a free scalar that ``affect`` leaves untouched;
    custom behavior is injected through the ``affect`` hook of the model.
    """
    
    state: float = 0.0
    turn_rate: float = 1.0
    
    _nonnegative = AbstractMicrobe._nonnegative + ("turn_rate",)
    
    def affect(self, model) -> None:
        pass
    
    def tumblebias(self) -> float:
        return 1.0
    
    def turnrate(self, model) -> float:
        return self.turn_rate


def _field_default(cls: type, name: str) -> Any:
    """Default value of a dataclass field, calling its factory if needed."""
    for f in fields(cls):
        if f.name == name:
            if f.default_factory is not MISSING:
                return f.default_factory()
            return f.default
    raise KeyError(name)


def create_microbe(
    cls: Type[M] = Microbe,
    dim: int = 2,
    rng: Optional[np.random.Generator] = None,
    pos: Optional[Sequence[float]] = None,
    **kwargs: Any,
) -> M:
    """
    Create a microbe, drawing the unspecified kinematic fields at random.
    
    Unspecified fields are drawn in the order direction, speed (from the
    current motile state of the motility pattern), id.
    
    Args:
        cls: Microbe type to instantiate
        dim: Dimensionality of space
        rng: Random generator used for the unspecified fields
        pos: Position (defaults to the origin)
        **kwargs: Any other field of ``cls``
    
    Returns:
        New microbe instance
    """
    if dim not in (1, 2, 3):
        raise ConfigurationError(f"dim must be 1, 2 or 3, got {dim}")
    needs_rng = "vel" not in kwargs or "speed" not in kwargs or "id" not in kwargs
    if rng is None and needs_rng:
        raise ConfigurationError("a random generator is required to draw unspecified fields")
    
    pos = np.zeros(dim) if pos is None else np.asarray(pos, dtype=float)
    if pos.shape != (dim,):
        raise ConfigurationError(f"position must have {dim} components, got shape {pos.shape}")
    
    motility = kwargs.pop("motility", None)
    if motility is None:
        motility = _field_default(cls, "motility")
    
    vel = kwargs.pop("vel", None)
    if vel is None:
        vel = random_velocity(rng, dim)
    elif np.shape(vel) != (dim,):
        raise ConfigurationError(f"velocity must have {dim} components, got shape {np.shape(vel)}")
    
    speed = kwargs.pop("speed", None)
    if speed is None:
        speed = random_speed(rng, motility)
    
    if "id" not in kwargs:
        kwargs["id"] = int(rng.integers(1, MAX_ID, endpoint=True))
    
    return cls(pos=pos, vel=vel, speed=speed, motility=motility, **kwargs)
