"""
Motility patterns for self-propelled microbes.

A motility pattern describes what happens at a reorientation event:
which motile state the microbe enters next, how its direction changes
and from which collection its new swimming speed is drawn.

Transition table:
    RunTumble:        FORWARD -> FORWARD  (tumble: isotropic new direction)
    RunReverse:       FORWARD -> BACKWARD (reverse), BACKWARD -> FORWARD (reverse)
    RunReverseFlick:  FORWARD -> BACKWARD (flick: ~90° turn), BACKWARD -> FORWARD (reverse)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
import math

from .errors import ConfigurationError


class MotileState(Enum):
    """Discrete swimming phase of a microbe."""
    
    FORWARD = "forward"
    BACKWARD = "backward"
    
    def flip(self) -> "MotileState":
        if self is MotileState.FORWARD:
            return MotileState.BACKWARD
        return MotileState.FORWARD


class Turn(Enum):
    """Kind of reorientation applied to the swimming direction."""
    
    TUMBLE = "tumble"
    REVERSE = "reverse"
    FLICK = "flick"


def _as_speeds(name: str, speeds: Sequence[float]) -> tuple[float, ...]:
    """Validate and freeze a collection of candidate speeds."""
    values = tuple(float(s) for s in speeds)
    if len(values) == 0:
        raise ConfigurationError(f"{name} must contain at least one speed")
    if not all(s >= 0 and math.isfinite(s) for s in values):
        raise ConfigurationError(f"{name} must contain finite speeds >= 0, got {values}")
    return values


@dataclass
class Motility(ABC):
    """
    Base class for motility patterns.
    
    Subclasses define the transition table in ``transition`` and the
    candidate speeds for each motile state in ``speeds``.
    
    Attributes:
        state: Current motile state
    """
    
    state: MotileState = MotileState.FORWARD
    
    @abstractmethod
    def speeds(self, state: Optional[MotileState] = None) -> tuple[float, ...]:
        """Candidate speeds for a motile state (current one by default)."""
    
    @abstractmethod
    def transition(self, state: Optional[MotileState] = None) -> tuple[MotileState, Turn]:
        """Next motile state and kind of turn for a reorientation."""
    
    @property
    def two_step(self) -> bool:
        """True for patterns alternating between forward and backward runs."""
        return False


@dataclass
class RunTumble(Motility):
    """
    Run-and-tumble motility (E. coli-like).
    
    Every reorientation picks a new isotropic direction; the motile state
    is always FORWARD.
    """
    
    speed: Sequence[float] = (30.0,)
    
    def __post_init__(self) -> None:
        self.speed = _as_speeds("speed", self.speed)
        if self.state is not MotileState.FORWARD:
            raise ConfigurationError("RunTumble only supports the FORWARD motile state")
    
    def speeds(self, state: Optional[MotileState] = None) -> tuple[float, ...]:
        return self.speed
    
    def transition(self, state: Optional[MotileState] = None) -> tuple[MotileState, Turn]:
        return MotileState.FORWARD, Turn.TUMBLE


@dataclass
class RunReverse(Motility):
    """
    Run-and-reverse motility.
    
    Reorientations alternate between forward and backward runs, each one
    inverting the swimming direction. ``speed_backward`` defaults to
    ``speed_forward``.
    """
    
    speed_forward: Sequence[float] = (30.0,)
    speed_backward: Optional[Sequence[float]] = None
    
    def __post_init__(self) -> None:
        self.speed_forward = _as_speeds("speed_forward", self.speed_forward)
        if self.speed_backward is None:
            self.speed_backward = self.speed_forward
        else:
            self.speed_backward = _as_speeds("speed_backward", self.speed_backward)
    
    @property
    def two_step(self) -> bool:
        return True
    
    def speeds(self, state: Optional[MotileState] = None) -> tuple[float, ...]:
        state = self.state if state is None else state
        if state is MotileState.FORWARD:
            return self.speed_forward
        return self.speed_backward
    
    def transition(self, state: Optional[MotileState] = None) -> tuple[MotileState, Turn]:
        state = self.state if state is None else state
        return state.flip(), Turn.REVERSE


@dataclass
class RunReverseFlick(RunReverse):
    """
    Run-reverse-flick motility (Vibrio-like).
    
    Like RunReverse, but leaving a forward run is accompanied by a flick:
    the direction is rotated by a quasi-perpendicular random angle instead
    of being inverted.
    """
    
    def transition(self, state: Optional[MotileState] = None) -> tuple[MotileState, Turn]:
        state = self.state if state is None else state
        if state is MotileState.FORWARD:
            return MotileState.BACKWARD, Turn.FLICK
        return MotileState.FORWARD, Turn.REVERSE


def transition(motility: Motility, state: Optional[MotileState] = None) -> tuple[MotileState, Turn]:
    """
    Next motile state and reorientation kind for a pattern.
    
    Deterministic: the same pattern and state always give the same result.
    
    Args:
        motility: Motility pattern
        state: Motile state to transition from (defaults to the current one)
    
    Returns:
        Tuple of (next state, turn kind)
    """
    return motility.transition(state)
