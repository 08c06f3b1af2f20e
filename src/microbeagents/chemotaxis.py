"""
Chemotaxis kernels.

Each microbe type below couples its internal state to the chemoattractant
field sensed at its position:
    - ``affect`` integrates the sensing/adaptation dynamics over one timestep
    - ``tumblebias`` maps the internal state to a turn-rate modulation factor
    - ``turnrate`` = unbiased turn rate × tumblebias

Models:
    BrownBerg: Brown & Berg (1974) PNAS, exponential tumble bias
    Brumley:   Brumley et al. (2019) PNAS, noisy gradient sensing
    Celani:    Celani & Vergassola (2010) PNAS, linear response kernel
    Xie:       Xie et al. (2019) PNAS, two-timescale adaptation

Sensing noise follows the Berg-Purcell counting noise formula, scaled by
a ``chemotactic_precision`` factor (0 disables noise).
"""

from dataclasses import dataclass, field
import math

import numpy as np

from .errors import ConfigurationError, NumericDomainError
from .motility import MotileState, RunReverseFlick, RunTumble
from .state import AbstractMicrobe

# Prefactor of the Berg-Purcell counting noise
BERG_PURCELL = 0.04075


def _check_timescale(name: str, value: float) -> float:
    if value == 0:
        raise NumericDomainError(f"{name} must be > 0 to integrate the internal state")
    return value


def _noise_sigma(
    precision: float,
    concentration: float,
    radius: float,
    diffusivity: float,
    window: float,
) -> float:
    """
    Standard deviation of a concentration measurement.
    
        σ = Π × 0.04075 × sqrt(3c / (π a D_c T))
    
    where T is the effective integration window (the caller folds in any
    extra numeric factor). Returns 0 without evaluating the formula when
    there is no noise to add.
    """
    if precision == 0 or concentration <= 0:
        return 0.0
    denominator = math.pi * radius * diffusivity * window
    if denominator == 0:
        raise NumericDomainError(
            "sensing noise needs radius > 0 and compound diffusivity > 0 "
            f"(radius={radius}, diffusivity={diffusivity})"
        )
    return precision * BERG_PURCELL * math.sqrt(3 * concentration / denominator)


def _measure(rng: np.random.Generator, mean: float, sigma: float) -> float:
    """Gaussian measurement; exact when sigma is 0."""
    if sigma == 0:
        return mean
    return float(rng.normal(mean, sigma))


def _receptor_sensitivity(binding_constant: float, concentration: float) -> float:
    """dP_b/dc for a receptor with dissociation constant K_D."""
    denominator = (binding_constant + concentration) ** 2
    if denominator == 0:
        raise NumericDomainError("receptor_binding_constant and concentration are both zero")
    return binding_constant / denominator


def _path_derivative(microbe: AbstractMicrobe, model) -> float:
    """Rate of change of concentration seen along the swimming path."""
    grad = np.asarray(model.concentration_gradient(microbe.pos), dtype=float)
    dcdt = model.concentration_time_derivative(microbe.pos)
    return float(microbe.speed * np.dot(microbe.vel, grad) + dcdt)


@dataclass(eq=False, repr=False)
class BrownBerg(AbstractMicrobe):
    """
    Brown-Berg chemotactic microbe.
    
    The internal state is an exponentially weighted estimate of the rate of
    change of receptor occupancy along the path; the tumble bias is
    exp(-gain × state).
    
    Attributes:
        turn_rate: Unbiased turn rate in Hz
        gain: Chemotactic gain
        memory: Memory time τ in s
        receptor_binding_constant: K_D in μM
    """
    
    motility: RunTumble = field(default_factory=lambda: RunTumble(speed=(30.0,)))
    rotational_diffusivity: float = 0.035
    state: float = 0.0
    turn_rate: float = 1 / 0.67
    gain: float = 660.0
    memory: float = 1.0
    receptor_binding_constant: float = 100.0
    
    _nonnegative = AbstractMicrobe._nonnegative + (
        "turn_rate", "memory", "receptor_binding_constant",
    )
    
    def affect(self, model) -> None:
        dt = model.timestep
        tau = _check_timescale("memory", self.memory)
        beta = dt / tau
        c = model.concentration(self.pos)
        du_dt = _path_derivative(self, model)
        M = _receptor_sensitivity(self.receptor_binding_constant, c) * du_dt
        self.state = beta * M + self.state * math.exp(-beta)
    
    def tumblebias(self) -> float:
        return float(np.exp(-self.gain * self.state))
    
    def turnrate(self, model) -> float:
        return self.turn_rate * self.tumblebias()


@dataclass(eq=False, repr=False)
class Brumley(AbstractMicrobe):
    """
    Brumley chemotactic microbe (marine bacteria, run-reverse-flick).
    
    Measures the path derivative of the concentration with Berg-Purcell
    noise and low-pass filters the resulting occupancy change.
    """
    
    motility: RunReverseFlick = field(
        default_factory=lambda: RunReverseFlick(speed_forward=(46.5,))
    )
    rotational_diffusivity: float = 0.035
    radius: float = 0.5
    state: float = 0.0
    turn_rate: float = 1 / 0.45
    gain: float = 50.0
    memory: float = 1.3
    receptor_binding_constant: float = 100.0
    chemotactic_precision: float = 6.0
    
    _nonnegative = AbstractMicrobe._nonnegative + (
        "turn_rate", "memory", "receptor_binding_constant", "chemotactic_precision",
    )
    
    def affect(self, model) -> None:
        dt = model.timestep
        tau = _check_timescale("memory", self.memory)
        alpha = math.exp(-dt / tau)
        c = model.concentration(self.pos)
        mu = _path_derivative(self, model)
        sigma = _noise_sigma(
            self.chemotactic_precision, c, self.radius,
            model.compound_diffusivity, dt**3,
        )
        M = _measure(model.rng, mu, sigma)
        dPb_dt = _receptor_sensitivity(self.receptor_binding_constant, c) * M
        self.state = alpha * self.state + (1 - alpha) * dPb_dt
    
    def tumblebias(self) -> float:
        return float((1 + np.exp(-self.gain * self.state)) / 2)
    
    def turnrate(self, model) -> float:
        return self.turn_rate * self.tumblebias()


@dataclass(eq=False, repr=False)
class Celani(AbstractMicrobe):
    """
    Celani-Vergassola chemotactic microbe.
    
    The response kernel is realized by three Markovian variables S1..S3
    integrated with forward Euler; the fourth state slot holds the tumble
    bias 1 - β(λ²S2 - λ³S3/2), with λ = 1/memory and β the gain.
    
    When inserted into a model without an explicit state, S1..S3 start at
    their steady state for the local concentration c: [c/λ, c/λ², 2c/λ³].
    """
    
    motility: RunTumble = field(default_factory=lambda: RunTumble(speed=(30.0,)))
    rotational_diffusivity: float = 0.26
    radius: float = 0.5
    state: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    turn_rate: float = 1 / 0.67
    gain: float = 50.0
    memory: float = 1.0
    chemotactic_precision: float = 0.0
    
    _nonnegative = AbstractMicrobe._nonnegative + (
        "turn_rate", "memory", "chemotactic_precision",
    )
    
    def __post_init__(self) -> None:
        super().__post_init__()
        self.state = np.array(self.state, dtype=float).reshape(-1)
        if self.state.shape != (4,):
            raise ConfigurationError(f"Celani state must have 4 components, got {self.state.shape}")
    
    @property
    def markovian_variables(self) -> np.ndarray:
        return self.state[:3]
    
    def initialize_state(self, model) -> None:
        # Zero or infinite memory has no finite steady state
        if not 0 < self.memory < math.inf:
            return
        lam = 1.0 / self.memory
        c = model.concentration(self.pos)
        self.state = np.array([c / lam, c / lam**2, 2 * c / lam**3, 1.0])
    
    def affect(self, model) -> None:
        dt = model.timestep
        lam = 1.0 / _check_timescale("memory", self.memory)
        beta = self.gain
        c = model.concentration(self.pos)
        sigma = _noise_sigma(
            self.chemotactic_precision, c, self.radius,
            model.compound_diffusivity, 5 * dt,
        )
        M = _measure(model.rng, c, sigma)
        S1, S2, S3, _ = self.state
        S1 = S1 + (-lam * S1 + M) * dt
        S2 = S2 + (-lam * S2 + S1) * dt
        S3 = S3 + (-lam * S3 + 2 * S2) * dt
        S4 = 1 - beta * (lam**2 * S2 - lam**3 / 2 * S3)
        self.state = np.array([S1, S2, S3, S4])
    
    def tumblebias(self) -> float:
        return float(self.state[3])
    
    def turnrate(self, model) -> float:
        return self.turn_rate * self.tumblebias()


@dataclass(eq=False, repr=False)
class Xie(AbstractMicrobe):
    """
    Xie chemotactic microbe with distinct forward and backward responses.
    
    Two adaptation variables m, z filter the log-sensed concentration with
    time constants τ_m and τ_z; the state is m/τ_m - z/τ_z. The turn rate
    and gain depend on the current motile state.
    """
    
    motility: RunReverseFlick = field(
        default_factory=lambda: RunReverseFlick(speed_forward=(46.5,))
    )
    rotational_diffusivity: float = 0.26
    radius: float = 0.5
    state: float = 0.0
    state_m: float = 0.0
    state_z: float = 0.0
    turn_rate_forward: float = 2.3
    turn_rate_backward: float = 1.86
    adaptation_time_m: float = 1.29
    adaptation_time_z: float = 0.28
    gain_forward: float = 2.7
    gain_backward: float = 1.6
    binding_affinity: float = 0.39
    chemotactic_precision: float = 0.0
    
    _nonnegative = AbstractMicrobe._nonnegative + (
        "turn_rate_forward", "turn_rate_backward",
        "adaptation_time_m", "adaptation_time_z",
        "binding_affinity", "chemotactic_precision",
    )
    
    def affect(self, model) -> None:
        dt = model.timestep
        tau_m = _check_timescale("adaptation_time_m", self.adaptation_time_m)
        tau_z = _check_timescale("adaptation_time_z", self.adaptation_time_z)
        K = self.binding_affinity
        if K == 0:
            raise NumericDomainError("binding_affinity must be > 0")
        c = model.concentration(self.pos)
        sigma = _noise_sigma(
            self.chemotactic_precision, c, self.radius,
            model.compound_diffusivity, 5 * dt,
        )
        M = _measure(model.rng, c, sigma)
        phi = math.log(1.0 + max(M / K, -1.0 + np.finfo(float).eps))
        m = self.state_m + (phi - self.state_m / tau_m) * dt
        z = self.state_z + (phi - self.state_z / tau_z) * dt
        self.state_m = m
        self.state_z = z
        self.state = m / tau_m - z / tau_z
    
    def _response(self) -> tuple[float, float]:
        """Unbiased turn rate and gain for the current motile state."""
        if self.motility.state is MotileState.BACKWARD:
            return self.turn_rate_backward, self.gain_backward
        return self.turn_rate_forward, self.gain_forward
    
    def tumblebias(self) -> float:
        _, gain = self._response()
        return 1 + gain * self.state
    
    def turnrate(self, model) -> float:
        rate, _ = self._response()
        return rate * self.tumblebias()
