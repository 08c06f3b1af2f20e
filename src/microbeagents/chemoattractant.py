"""
Chemoattractant fields sensed by chemotactic microbes.

A field is described by three callables taking ``(pos, model)``:
concentration, spatial gradient and time derivative. Only the
concentration is required; the gradient and time derivative are used by
kernels that sense temporal changes along the swimming path (BrownBerg,
Brumley) and default to zero.
"""

import inspect
from dataclasses import dataclass
from typing import Callable, Sequence
import math

import numpy as np

from .errors import ConfigurationError

FieldFunction = Callable[[np.ndarray, object], float]
GradientFunction = Callable[[np.ndarray, object], np.ndarray]


def zero_concentration(pos: np.ndarray, model: object) -> float:
    return 0.0


def zero_gradient(pos: np.ndarray, model: object) -> np.ndarray:
    return np.zeros(len(pos))


def _check_arity(name: str, func: Callable) -> None:
    """Ensure ``func`` is callable as ``func(pos, model)``."""
    if not callable(func):
        raise ConfigurationError(f"{name} must be callable, got {type(func).__name__}")
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted as-is
        return
    try:
        signature.bind(None, None)
    except TypeError:
        raise ConfigurationError(
            f"{name} must accept exactly two arguments (pos, model), got signature {signature}"
        ) from None


@dataclass
class Chemoattractant:
    """
    Chemoattractant field.
    
    Attributes:
        concentration_field: c(pos, model) in μM, expected >= 0
        concentration_gradient: ∇c(pos, model) in μM/μm [D]
        concentration_time_derivative: ∂c/∂t(pos, model) in μM/s
        diffusivity: Molecular diffusivity D_c of the compound in μm²/s,
            used by the sensing noise models
    """
    
    concentration_field: FieldFunction = zero_concentration
    concentration_gradient: GradientFunction = zero_gradient
    concentration_time_derivative: FieldFunction = zero_concentration
    diffusivity: float = 608.0
    
    def __post_init__(self) -> None:
        """Validate field callables and diffusivity."""
        _check_arity("concentration_field", self.concentration_field)
        _check_arity("concentration_gradient", self.concentration_gradient)
        _check_arity("concentration_time_derivative", self.concentration_time_derivative)
        
        self.diffusivity = float(self.diffusivity)
        if not (self.diffusivity >= 0 and math.isfinite(self.diffusivity)):
            raise ConfigurationError(f"diffusivity must be finite and >= 0, got {self.diffusivity}")


def uniform_field(concentration: float, diffusivity: float = 608.0) -> Chemoattractant:
    """Spatially and temporally constant concentration."""
    if concentration < 0:
        raise ConfigurationError(f"concentration must be >= 0, got {concentration}")
    c = float(concentration)
    return Chemoattractant(
        concentration_field=lambda pos, model: c,
        diffusivity=diffusivity,
    )


def linear_field(
    c0: float,
    slope: float,
    axis: int = 0,
    diffusivity: float = 608.0,
) -> Chemoattractant:
    """
    Linear gradient along one axis: c = max(c0 + slope * x[axis], 0).
    
    Args:
        c0: Concentration at the origin in μM
        slope: Gradient steepness in μM/μm
        axis: Axis along which the concentration changes
        diffusivity: Compound diffusivity in μm²/s
    """
    if axis < 0:
        raise ConfigurationError(f"axis must be >= 0, got {axis}")
    
    def concentration(pos, model):
        return max(c0 + slope * pos[axis], 0.0)
    
    def gradient(pos, model):
        g = np.zeros(len(pos))
        if c0 + slope * pos[axis] > 0:
            g[axis] = slope
        return g
    
    return Chemoattractant(
        concentration_field=concentration,
        concentration_gradient=gradient,
        diffusivity=diffusivity,
    )


def gaussian_field(
    peak: float,
    center: Sequence[float],
    sigma: float,
    background: float = 0.0,
    diffusivity: float = 608.0,
) -> Chemoattractant:
    """
    Gaussian concentration profile around a fixed source.
    
        c(x) = background + peak * exp(-|x - center|² / (2σ²))
    """
    if sigma <= 0:
        raise ConfigurationError(f"sigma must be > 0, got {sigma}")
    if peak < 0 or background < 0:
        raise ConfigurationError("peak and background must be >= 0")
    center = np.asarray(center, dtype=float)
    
    def concentration(pos, model):
        r2 = float(np.sum((pos - center) ** 2))
        return background + peak * np.exp(-r2 / (2 * sigma**2))
    
    def gradient(pos, model):
        r2 = float(np.sum((pos - center) ** 2))
        return -peak * np.exp(-r2 / (2 * sigma**2)) * (pos - center) / sigma**2
    
    return Chemoattractant(
        concentration_field=concentration,
        concentration_gradient=gradient,
        diffusivity=diffusivity,
    )
