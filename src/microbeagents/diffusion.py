"""
Brownian noise acting on swimming microbes.

Rotational diffusion perturbs the swimming direction, translational
diffusion jitters the position. Both are no-ops when the corresponding
diffusivity is zero, in which case no random number is drawn.
"""

import numpy as np

from .kinematics import rotate_by_vector


def rotational_diffusion(
    vel: np.ndarray,
    rotational_diffusivity: float,
    dt: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Apply one step of rotational Brownian motion to a unit vector.
    
    The rotation angle has standard deviation σ = sqrt(2 D_r Δt):
        - 2-D: planar rotation by θ ~ N(0, σ²)
        - 3-D: rotation vector with N(0, σ²) components in the plane
          normal to the direction
        - 1-D: no rotation is defined, direction is returned unchanged
    
    Args:
        vel: Unit swimming direction
        rotational_diffusivity: D_r in rad²/s
        dt: Timestep Δt in s
        rng: Random generator
    
    Returns:
        New unit direction
    """
    dim = vel.shape[0]
    if rotational_diffusivity == 0 or dim == 1:
        return vel
    
    sigma = np.sqrt(2.0 * rotational_diffusivity * dt)
    
    if dim == 2:
        theta = rng.normal(0.0, sigma)
        c, s = np.cos(theta), np.sin(theta)
        w = np.array([c * vel[0] - s * vel[1], s * vel[0] + c * vel[1]])
        return w / np.linalg.norm(w)
    
    omega = rng.normal(0.0, sigma, size=3)
    # Rotation axis restricted to the plane normal to vel
    omega = omega - np.dot(omega, vel) * vel
    return rotate_by_vector(vel, omega)


def translational_diffusion(
    dim: int,
    translational_diffusivity: float,
    dt: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Brownian displacement over one timestep.
    
    Each coordinate is drawn from N(0, 2 D_t Δt).
    
    Returns:
        Displacement vector of shape (dim,)
    """
    if translational_diffusivity == 0:
        return np.zeros(dim)
    sigma = np.sqrt(2.0 * translational_diffusivity * dt)
    return rng.normal(0.0, sigma, size=dim)
