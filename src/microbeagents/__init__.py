"""
microbeagents - agent-based simulation of chemotactic microbes

Motility patterns, chemotaxis response kernels and a stepping engine for
self-propelled bacteria swimming in chemoattractant fields.
"""

__version__ = "0.1.0"

from .chemoattractant import Chemoattractant, gaussian_field, linear_field, uniform_field
from .chemotaxis import BrownBerg, Brumley, Celani, Xie
from .config import Config
from .errors import ConfigurationError, NumericDomainError
from .kinematics import random_speed, random_velocity
from .motility import MotileState, Motility, RunReverse, RunReverseFlick, RunTumble, Turn
from .simulation import Simulation
from .state import AbstractMicrobe, Microbe, create_microbe
from .stepping import microbe_step

__all__ = [
    "AbstractMicrobe",
    "BrownBerg",
    "Brumley",
    "Celani",
    "Chemoattractant",
    "Config",
    "ConfigurationError",
    "Microbe",
    "MotileState",
    "Motility",
    "NumericDomainError",
    "RunReverse",
    "RunReverseFlick",
    "RunTumble",
    "Simulation",
    "Turn",
    "Xie",
    "create_microbe",
    "gaussian_field",
    "linear_field",
    "microbe_step",
    "random_speed",
    "random_velocity",
    "uniform_field",
    "__version__",
]
