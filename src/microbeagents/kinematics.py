"""
Random kinematics for microbe agents.

Pure functions drawing isotropic directions and swimming speeds, and
rotating unit vectors. Every random draw goes through an explicit
``numpy.random.Generator`` so that a seeded generator reproduces the
same sequence of directions and speeds.
"""

from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .motility import Motility, MotileState


def random_velocity(rng: np.random.Generator, dim: int) -> np.ndarray:
    """
    Draw a unit vector uniformly distributed on the D-dimensional sphere.
    
    Args:
        rng: Random generator
        dim: Dimensionality (1, 2 or 3)
    
    Returns:
        Unit vector of shape (dim,)
    """
    if dim == 1:
        return np.array([1.0 if rng.random() < 0.5 else -1.0])
    if dim == 2:
        theta = rng.uniform(0.0, 2.0 * np.pi)
        return np.array([np.cos(theta), np.sin(theta)])
    if dim == 3:
        v = rng.standard_normal(3)
        norm = np.linalg.norm(v)
        # A zero-norm gaussian draw has probability zero but would break normalization
        while norm == 0.0:
            v = rng.standard_normal(3)
            norm = np.linalg.norm(v)
        return v / norm
    raise ConfigurationError(f"dim must be 1, 2 or 3, got {dim}")


def random_speed(
    rng: np.random.Generator,
    motility: Motility,
    state: Optional[MotileState] = None,
) -> float:
    """
    Draw a swimming speed uniformly from the candidates of a motile state.
    
    Args:
        rng: Random generator
        motility: Motility pattern
        state: Motile state (defaults to the pattern's current state)
    
    Returns:
        Speed in μm/s
    """
    speeds = motility.speeds(state)
    if len(speeds) == 0:
        raise ConfigurationError(f"{type(motility).__name__} has no candidate speeds")
    return float(speeds[rng.integers(len(speeds))])


def perpendicular(rng: np.random.Generator, vel: np.ndarray) -> np.ndarray:
    """
    Random unit vector perpendicular to ``vel`` (2-D or 3-D).
    
    In 2-D the two perpendicular directions are picked with equal
    probability; in 3-D the direction is isotropic in the plane normal
    to ``vel``.
    """
    dim = vel.shape[0]
    if dim == 2:
        sign = 1.0 if rng.random() < 0.5 else -1.0
        return sign * np.array([-vel[1], vel[0]])
    
    # Gram-Schmidt on an isotropic draw
    u = rng.standard_normal(3)
    u -= np.dot(u, vel) * vel
    norm = np.linalg.norm(u)
    while norm < 1e-12:
        u = rng.standard_normal(3)
        u -= np.dot(u, vel) * vel
        norm = np.linalg.norm(u)
    return u / norm


def rotate(vel: np.ndarray, angle: float, rng: np.random.Generator) -> np.ndarray:
    """
    Rotate a unit vector by a polar angle about a random perpendicular axis.
    
    In 1-D only the sign of the direction can change: it flips when
    ``cos(angle) < 0``.
    
    Args:
        vel: Unit vector to rotate
        angle: Polar rotation angle in radians
        rng: Random generator (picks the rotation plane)
    
    Returns:
        Rotated unit vector
    """
    dim = vel.shape[0]
    if dim == 1:
        return -vel if np.cos(angle) < 0 else vel.copy()
    
    u = perpendicular(rng, vel)
    w = np.cos(angle) * vel + np.sin(angle) * u
    return w / np.linalg.norm(w)


def rotate_by_vector(vel: np.ndarray, omega: np.ndarray) -> np.ndarray:
    """
    Rotate a 3-D vector by the rotation vector ``omega`` (Rodrigues' formula).
    
    The rotation axis is ``omega / |omega|`` and the angle is ``|omega|``.
    """
    theta = np.linalg.norm(omega)
    if theta == 0.0:
        return vel.copy()
    k = omega / theta
    w = (
        vel * np.cos(theta)
        + np.cross(k, vel) * np.sin(theta)
        + k * np.dot(k, vel) * (1.0 - np.cos(theta))
    )
    return w / np.linalg.norm(w)
