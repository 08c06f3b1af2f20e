"""
Simulation container for microbeagents.

Holds the agents, the random generator, the timestep and the
chemoattractant field, and sweeps the stepping engine over all agents
once per timestep.
"""

import logging
from typing import Any, Callable, Iterator, Optional, Sequence, Type

import numpy as np
from tqdm import tqdm

from .chemoattractant import Chemoattractant
from .config import Config
from .errors import ConfigurationError
from .state import AbstractMicrobe, Microbe, create_microbe
from .stepping import microbe_step

logger = logging.getLogger(__name__)

AffectHook = Callable[[AbstractMicrobe, "Simulation"], None]
TurnRateHook = Callable[[AbstractMicrobe, "Simulation"], float]


class Simulation:
    """
    Agent-based simulation of swimming microbes.
    
    Agents are stored in insertion order and updated in that order, which
    together with the single seeded random generator makes trajectories
    reproducible.
    
    Attributes:
        config: Model configuration
        seed: Random seed
        rng: Random generator shared by every random draw of the model
        chemoattractant: Chemoattractant field, or None for a field-free model
        affect: Optional hook replacing the kernels' internal state update
        turnrate: Optional hook replacing the kernels' turn rate
        agents: Agents keyed by id
        step_count: Number of steps executed
    """
    
    def __init__(
        self,
        config: Config,
        seed: Optional[int] = None,
        chemoattractant: Optional[Chemoattractant] = None,
        affect: Optional[AffectHook] = None,
        turnrate: Optional[TurnRateHook] = None,
    ):
        """
        Initialize simulation.
        
        Args:
            config: Model configuration
            seed: Random seed for reproducibility
            chemoattractant: Optional chemoattractant field
            affect: Optional ``affect(microbe, model)`` hook
            turnrate: Optional ``turnrate(microbe, model)`` hook
        """
        if chemoattractant is not None and not isinstance(chemoattractant, Chemoattractant):
            raise ConfigurationError(
                f"chemoattractant must be a Chemoattractant, got {type(chemoattractant).__name__}"
            )
        self.config = config
        self.seed = seed if seed is not None else 42
        self.rng = np.random.default_rng(self.seed)
        self.chemoattractant = chemoattractant
        self.affect = affect
        self.turnrate = turnrate
        self.agents: dict[int, AbstractMicrobe] = {}
        self.step_count = 0
        self._next_id = 1
    
    # Hooks are validated on every assignment, not only at construction
    @property
    def affect(self) -> Optional[AffectHook]:
        return self._affect
    
    @affect.setter
    def affect(self, hook: Optional[AffectHook]) -> None:
        if hook is not None and not callable(hook):
            raise ConfigurationError("affect hook must be callable or None")
        self._affect = hook
    
    @property
    def turnrate(self) -> Optional[TurnRateHook]:
        return self._turnrate
    
    @turnrate.setter
    def turnrate(self, hook: Optional[TurnRateHook]) -> None:
        if hook is not None and not callable(hook):
            raise ConfigurationError("turnrate hook must be callable or None")
        self._turnrate = hook
    
    @property
    def timestep(self) -> float:
        return self.config.timestep
    
    @property
    def time(self) -> float:
        """Simulated time in seconds."""
        return self.step_count * self.config.timestep
    
    @property
    def compound_diffusivity(self) -> float:
        if self.chemoattractant is None:
            return 0.0
        return self.chemoattractant.diffusivity
    
    def concentration(self, pos: np.ndarray) -> float:
        """Chemoattractant concentration at ``pos`` (0 without a field)."""
        if self.chemoattractant is None:
            return 0.0
        return self.chemoattractant.concentration_field(pos, self)
    
    def concentration_gradient(self, pos: np.ndarray) -> np.ndarray:
        if self.chemoattractant is None:
            return np.zeros(self.config.dim)
        return self.chemoattractant.concentration_gradient(pos, self)
    
    def concentration_time_derivative(self, pos: np.ndarray) -> float:
        if self.chemoattractant is None:
            return 0.0
        return self.chemoattractant.concentration_time_derivative(pos, self)
    
    def __len__(self) -> int:
        return len(self.agents)
    
    def __iter__(self) -> Iterator[AbstractMicrobe]:
        return iter(self.agents.values())
    
    def __getitem__(self, agent_id: int) -> AbstractMicrobe:
        return self.agents[agent_id]
    
    def add_agent(self, agent: AbstractMicrobe) -> AbstractMicrobe:
        """
        Insert an existing agent.
        
        An agent with ``id == 0`` receives the next sequential id.
        
        Returns:
            The inserted agent
        """
        if agent.dim != self.config.dim:
            raise ConfigurationError(
                f"agent lives in {agent.dim} dimensions but the model has dim={self.config.dim}"
            )
        if agent.id == 0:
            agent.id = self._next_id
        if agent.id in self.agents:
            raise ConfigurationError(f"an agent with id {agent.id} already exists")
        self._next_id = max(self._next_id, agent.id + 1)
        
        agent.pos = self._apply_boundaries(agent.pos)
        self.agents[agent.id] = agent
        logger.debug("Added %r", agent)
        return agent
    
    def add_microbe(
        self,
        cls: Type[AbstractMicrobe] = Microbe,
        pos: Optional[Sequence[float]] = None,
        **kwargs: Any,
    ) -> AbstractMicrobe:
        """
        Create and insert a microbe, drawing unspecified fields at random.
        
        Unspecified fields are drawn from the model generator in the order
        position (uniform in the box, origin when unbounded), direction,
        speed. Without an explicit ``state``, the microbe initializes its
        internal state from the local concentration.
        
        Args:
            cls: Microbe type
            pos: Position (random when omitted)
            **kwargs: Any other field of ``cls``
        
        Returns:
            The new agent
        """
        dim = self.config.dim
        if pos is None:
            if self.config.bounded:
                pos = self.rng.random(dim) * np.asarray(self.config.extent)
            else:
                pos = np.zeros(dim)

        explicit_state = "state" in kwargs
        kwargs.setdefault("id", self._next_id)
        agent = create_microbe(cls, dim, self.rng, pos=pos, **kwargs)
        agent.pos = self._apply_boundaries(agent.pos)
        if not explicit_state:
            agent.initialize_state(self)
        return self.add_agent(agent)
    
    def remove_agent(self, agent_id: int) -> AbstractMicrobe:
        """Remove an agent and return it."""
        agent = self.agents.pop(agent_id)
        logger.debug("Removed agent %d", agent_id)
        return agent
    
    def move_agent(self, agent: AbstractMicrobe, pos: np.ndarray) -> None:
        """
        Set the position of an agent, applying the box boundaries.
        
        A coordinate reflected off a wall also reverses the matching
        component of the swimming direction.
        """
        agent.pos, mirrored = self._fold(pos)
        if np.any(mirrored):
            agent.vel = np.where(mirrored, -agent.vel, agent.vel)
    
    def _apply_boundaries(self, pos: np.ndarray) -> np.ndarray:
        """Map a position back into the simulation box."""
        return self._fold(pos)[0]
    
    def _fold(self, pos: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Fold a position into the simulation box.
        
        Periodic boxes wrap coordinates into [0, extent); non-periodic boxes
        reflect them elastically off the faces into [0, extent].
        
        Returns:
            Folded position and a mask of the coordinates that were mirrored
        """
        pos = np.asarray(pos, dtype=float)
        mirrored = np.zeros(pos.shape, dtype=bool)
        if not self.config.bounded:
            return pos, mirrored
        extent = np.asarray(self.config.extent)
        if self.config.periodic:
            pos = np.mod(pos, extent)
            # np.mod rounds tiny negative values up to extent itself
            return np.where(pos >= extent, 0.0, pos), mirrored
        period = 2.0 * extent
        pos = np.mod(pos, period)
        mirrored = pos > extent
        pos = np.where(mirrored, period - pos, pos)
        return pos, mirrored
    
    def step(self) -> None:
        """
        Advance simulation by one timestep.
        
        Every agent present at the start of the sweep is updated once, in
        insertion order.
        """
        for agent in list(self.agents.values()):
            microbe_step(agent, self)
        self.step_count += 1
    
    def run(
        self,
        steps: int,
        callback: Optional[Callable[["Simulation"], None]] = None,
        callback_interval: int = 100,
        show_progress: bool = True,
    ) -> None:
        """
        Run simulation for multiple steps.
        
        Args:
            steps: Number of steps to run
            callback: Optional function called periodically
            callback_interval: How often to call callback
            show_progress: Whether to show progress bar
        """
        logger.info(
            "Running %d steps with %d agents (dt=%g, seed=%d)",
            steps, len(self.agents), self.config.timestep, self.seed,
        )
        iterator = range(steps)
        if show_progress:
            iterator = tqdm(iterator, desc="Simulating")
        
        for i in iterator:
            self.step()
            
            if callback is not None and (i + 1) % callback_interval == 0:
                callback(self)
        
        logger.info("Finished at step %d (t=%g s)", self.step_count, self.time)
    
    def reset(self, seed: Optional[int] = None) -> None:
        """
        Remove all agents and restart the random stream.
        
        Args:
            seed: New random seed (uses original if not provided)
        """
        if seed is not None:
            self.seed = seed
        
        self.rng = np.random.default_rng(self.seed)
        self.agents = {}
        self.step_count = 0
        self._next_id = 1
