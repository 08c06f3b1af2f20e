"""
Per-agent stepping engine.

Update order for one microbe over one timestep (critical for
reproducibility of trajectories):
    1. Internal state update (``affect``, kernel or model hook)
    2. Turn-rate evaluation (``turnrate``, kernel or model hook)
    3. Reorientation with probability 1 - exp(-ν Δt)
    4. Rotational diffusion of the swimming direction
    5. Ballistic motion plus translational diffusion

The model is accessed through a small interface: ``timestep``, ``rng``,
the optional ``affect``/``turnrate`` hooks and ``move_agent``.
"""

import numpy as np

from .diffusion import rotational_diffusion, translational_diffusion
from .kinematics import random_speed, random_velocity, rotate
from .motility import Turn, transition
from .state import AbstractMicrobe

# Polar angle of a flick
FLICK_ANGLE = np.pi / 2


def affect(microbe: AbstractMicrobe, model) -> None:
    """Update the internal state, preferring the model hook when set."""
    hook = getattr(model, "affect", None)
    if hook is None:
        microbe.affect(model)
    else:
        hook(microbe, model)


def turnrate(microbe: AbstractMicrobe, model) -> float:
    """Instantaneous turn rate, preferring the model hook when set."""
    hook = getattr(model, "turnrate", None)
    if hook is None:
        return microbe.turnrate(model)
    return hook(microbe, model)


def turn_probability(rate: float, dt: float) -> float:
    """
    Probability of at least one reorientation within a timestep.
    
    Exact for a Poisson process of rate ν: p = 1 - exp(-ν Δt). An infinite
    rate gives p = 1, a zero rate gives p = 0.
    """
    return float(-np.expm1(-rate * dt))


def reorient(vel: np.ndarray, kind: Turn, rng: np.random.Generator) -> np.ndarray:
    """
    New swimming direction after a reorientation event.
    
    Args:
        vel: Current unit direction
        kind: Reorientation kind from the motility transition table
        rng: Random generator
    
    Returns:
        New unit direction
    """
    if kind is Turn.REVERSE:
        return -vel
    if kind is Turn.FLICK and vel.shape[0] > 1:
        return rotate(vel, FLICK_ANGLE, rng)
    # Tumbles, and flicks in 1-D where no perpendicular exists
    return random_velocity(rng, vel.shape[0])


def turn(microbe: AbstractMicrobe, model) -> None:
    """Apply a reorientation event following the microbe's motility pattern."""
    rng = model.rng
    motility = microbe.motility
    state, kind = transition(motility)
    vel = reorient(microbe.vel, kind, rng)
    speed = random_speed(rng, motility, state)
    motility.state = state
    microbe.vel = vel
    microbe.speed = speed


def microbe_step(microbe: AbstractMicrobe, model) -> None:
    """
    Advance a single microbe by one timestep.
    
    Args:
        microbe: Agent to update (mutated in place)
        model: Model providing timestep, random generator and field access
    """
    dt = model.timestep
    rng = model.rng
    
    affect(microbe, model)
    nu = turnrate(microbe, model)
    
    # One uniform draw per step, whatever the turn rate
    if rng.random() < turn_probability(nu, dt):
        turn(microbe, model)
    
    microbe.vel = rotational_diffusion(microbe.vel, microbe.rotational_diffusivity, dt, rng)
    
    displacement = microbe.vel * (microbe.speed * dt)
    displacement = displacement + translational_diffusion(
        microbe.dim, microbe.translational_diffusivity, dt, rng
    )
    model.move_agent(microbe, microbe.pos + displacement)
