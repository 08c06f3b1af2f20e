"""
Tests for the stepping engine and the simulation container.
"""

import math

import numpy as np
import pytest

from microbeagents.chemoattractant import gaussian_field, uniform_field
from microbeagents.chemotaxis import BrownBerg, Brumley, Celani, Xie
from microbeagents.config import Config
from microbeagents.errors import ConfigurationError, NumericDomainError
from microbeagents.motility import MotileState, RunReverse, RunReverseFlick
from microbeagents.simulation import Simulation
from microbeagents.state import Microbe
from microbeagents.stepping import microbe_step, turn_probability


class TestTurnProbability:
    
    def test_limits(self):
        assert turn_probability(0.0, 1.0) == 0.0
        assert turn_probability(math.inf, 0.1) == 1.0
    
    def test_poisson(self):
        """Exact Poisson discretization, not the linear ν Δt."""
        assert turn_probability(2.0, 0.5) == pytest.approx(1 - math.exp(-1.0))
        assert turn_probability(100.0, 1.0) < 1.0 + 1e-12


class TestMicrobeStep:
    """Tests for a single agent step."""
    
    def test_ballistic_1d(self, unit_sim):
        """x₁ = x₀ + v Δt for a non-turning, non-diffusing microbe."""
        m = unit_sim.add_microbe(pos=[0.0], vel=[1.0], speed=5.0, turn_rate=0)
        unit_sim.step()
        assert m.pos[0] == 5.0
    
    def test_zero_turn_rate_keeps_velocity(self, dim):
        """Without turns or diffusion the direction is exactly preserved."""
        sim = Simulation(Config(dim=dim, timestep=0.5), seed=68)
        m = sim.add_microbe(turn_rate=0)
        vel, speed, pos = m.vel.copy(), m.speed, m.pos.copy()
        sim.step()
        
        np.testing.assert_array_equal(m.vel, vel)
        np.testing.assert_allclose(m.pos, pos + vel * speed * 0.5)
    
    def test_infinite_turn_rate_reverses(self, dim):
        """RunReverse with ν = ∞ reverses and switches to backward every step."""
        sim = Simulation(Config(dim=dim, timestep=1.0), seed=68)
        m = sim.add_microbe(turn_rate=math.inf, motility=RunReverse(speed_backward=[20.0]))
        vel, pos = m.vel.copy(), m.pos.copy()
        sim.step()
        
        assert m.motility.state is MotileState.BACKWARD
        np.testing.assert_array_equal(m.vel, -vel)
        assert m.speed == 20.0
        np.testing.assert_allclose(m.pos, pos - vel * 20.0)
        
        sim.step()
        assert m.motility.state is MotileState.FORWARD
        np.testing.assert_array_equal(m.vel, vel)
        assert m.speed == 30.0
    
    def test_infinite_turn_rate_every_step(self):
        states = []
        sim = Simulation(Config(dim=2), seed=1)
        m = sim.add_microbe(turn_rate=math.inf, motility=RunReverse())
        for _ in range(6):
            sim.step()
            states.append(m.motility.state)
        assert states == [MotileState.BACKWARD, MotileState.FORWARD] * 3
    
    @pytest.mark.parametrize("dim", [2, 3])
    def test_flick(self, dim):
        """Leaving a forward run with RunReverseFlick turns by ~90°."""
        sim = Simulation(Config(dim=dim), seed=4)
        m = sim.add_microbe(turn_rate=math.inf, motility=RunReverseFlick())
        vel = m.vel.copy()
        sim.step()
        
        assert m.motility.state is MotileState.BACKWARD
        assert np.dot(m.vel, vel) == pytest.approx(0.0, abs=1e-12)
        assert np.linalg.norm(m.vel) == pytest.approx(1.0)
        
        flicked = m.vel.copy()
        sim.step()
        np.testing.assert_array_equal(m.vel, -flicked)
    
    def test_tumble_randomizes_direction(self):
        sim = Simulation(Config(dim=3), seed=9)
        m = sim.add_microbe(turn_rate=math.inf)
        directions = []
        for _ in range(5):
            sim.step()
            directions.append(m.vel.copy())
        assert len({tuple(d) for d in directions}) == 5
    
    def test_translational_diffusion(self):
        """Position variance grows as 2 D_t Δt per coordinate."""
        sim = Simulation(Config(dim=2, timestep=1.0), seed=21)
        agents = [
            sim.add_microbe(pos=[0.0, 0.0], speed=0.0, turn_rate=0, translational_diffusivity=1.0)
            for _ in range(4000)
        ]
        sim.step()
        pos = np.array([m.pos for m in agents])
        np.testing.assert_allclose(pos.var(axis=0), 2.0, rtol=0.1)
    
    def test_rotational_diffusion_changes_direction(self):
        sim = Simulation(Config(dim=2, timestep=0.1), seed=2)
        m = sim.add_microbe(turn_rate=0, rotational_diffusivity=0.5)
        vel = m.vel.copy()
        sim.step()
        assert not np.array_equal(m.vel, vel)
        assert np.linalg.norm(m.vel) == pytest.approx(1.0)
    
    def test_microbe_step_direct(self, unit_sim):
        m = unit_sim.add_microbe(pos=[1.0], vel=[-1.0], speed=2.0, turn_rate=0)
        microbe_step(m, unit_sim)
        assert m.pos[0] == -1.0
        assert unit_sim.step_count == 0
    
    def test_failure_keeps_last_state(self):
        """A numeric domain error propagates and the agent is not moved."""
        sim = Simulation(Config(dim=2), chemoattractant=uniform_field(1.0))
        m = sim.add_microbe(Celani, state=[0.0, 0.0, 0.0, 1.0], memory=0.0)
        pos, vel = m.pos.copy(), m.vel.copy()
        with pytest.raises(NumericDomainError):
            sim.step()
        np.testing.assert_array_equal(m.pos, pos)
        np.testing.assert_array_equal(m.vel, vel)
        assert sim.step_count == 0
    
    def test_celani_zero_memory_fails_when_stepping(self):
        """Zero memory is accepted on insertion and rejected by the update."""
        sim = Simulation(Config(dim=2), chemoattractant=uniform_field(1.0))
        m = sim.add_microbe(Celani, memory=0.0)
        np.testing.assert_array_equal(m.state, [0.0, 0.0, 0.0, 1.0])
        with pytest.raises(NumericDomainError, match="memory"):
            sim.step()


class TestDeterminism:
    """Same seed, same operations, same trajectories."""
    
    @staticmethod
    def trajectory(seed, dim):
        field = gaussian_field(peak=10.0, center=np.full(dim, 50.0), sigma=20.0)
        sim = Simulation(
            Config(dim=dim, timestep=0.1, extent=(100.0,) * dim),
            seed=seed,
            chemoattractant=field,
        )
        sim.add_microbe(Microbe, translational_diffusivity=0.1, rotational_diffusivity=0.2)
        sim.add_microbe(BrownBerg)
        sim.add_microbe(Brumley)
        sim.add_microbe(Celani, chemotactic_precision=1.0)
        sim.add_microbe(Xie, chemotactic_precision=1.0)
        history = []
        for _ in range(30):
            sim.step()
            history.append(np.concatenate([np.r_[m.pos, m.vel, m.speed] for m in sim]))
        return np.array(history)
    
    def test_same_seed_bit_identical(self, dim):
        np.testing.assert_array_equal(self.trajectory(5, dim), self.trajectory(5, dim))
    
    def test_different_seeds_differ(self):
        assert not np.array_equal(self.trajectory(5, 2), self.trajectory(6, 2))


class TestHooks:
    """Tests for the injectable affect/turnrate hooks."""
    
    def test_affect_override_and_restore(self, dim):
        """A custom affect accumulates linearly; clearing it freezes the state."""
        sim = Simulation(Config(dim=dim, timestep=1.0))
        
        def decrement(microbe, model):
            microbe.state -= dim
        
        sim.affect = decrement
        m = sim.add_microbe()
        sim.run(1, show_progress=False)
        assert m.state == -dim
        sim.run(3, show_progress=False)
        assert m.state == -4 * dim
        
        sim.affect = None
        sim.run(2, show_progress=False)
        assert m.state == -4 * dim
    
    def test_affect_hook_at_construction(self):
        calls = []
        sim = Simulation(Config(dim=1), affect=lambda m, model: calls.append(m.id))
        sim.add_microbe()
        sim.add_microbe()
        sim.step()
        assert calls == [1, 2]
    
    def test_turnrate_hook(self):
        """The turnrate hook replaces the kernel rate."""
        sim = Simulation(Config(dim=2), turnrate=lambda m, model: math.inf)
        m = sim.add_microbe(turn_rate=0, motility=RunReverse())
        sim.step()
        assert m.motility.state is MotileState.BACKWARD
    
    def test_hook_must_be_callable(self, sim):
        with pytest.raises(ConfigurationError, match="affect"):
            sim.affect = 3
        with pytest.raises(ConfigurationError, match="turnrate"):
            Simulation(Config(), turnrate="fast")


class TestSimulation:
    """Tests for the agent container."""
    
    def test_sequential_ids(self, sim):
        agents = [sim.add_microbe() for _ in range(3)]
        assert [m.id for m in agents] == [1, 2, 3]
        assert len(sim) == 3
        assert sim[2] is agents[1]
        assert list(sim) == agents
    
    def test_add_existing_agent(self, sim):
        m = Microbe(pos=[0.0, 0.0], vel=[0.0, 1.0], speed=1.0)
        sim.add_agent(m)
        assert m.id == 1
        assert sim.add_microbe().id == 2
    
    def test_duplicate_id_rejected(self, sim):
        sim.add_agent(Microbe(pos=[0.0, 0.0], vel=[0.0, 1.0], speed=1.0, id=7))
        with pytest.raises(ConfigurationError, match="id 7"):
            sim.add_agent(Microbe(pos=[0.0, 0.0], vel=[0.0, 1.0], speed=1.0, id=7))
        assert sim.add_microbe().id == 8
    
    def test_dimension_mismatch_rejected(self, sim):
        with pytest.raises(ConfigurationError, match="dim"):
            sim.add_agent(Microbe(pos=[0.0], vel=[1.0], speed=1.0))
        with pytest.raises(ConfigurationError, match="position"):
            sim.add_microbe(pos=[0.0, 0.0, 0.0])
    
    def test_remove_agent(self, sim):
        m = sim.add_microbe()
        assert sim.remove_agent(m.id) is m
        assert len(sim) == 0
        with pytest.raises(KeyError):
            sim.remove_agent(m.id)
    
    def test_random_position_in_box(self):
        sim = Simulation(Config(dim=3, extent=(10.0, 20.0, 30.0)), seed=123)
        for _ in range(50):
            m = sim.add_microbe()
            assert np.all(m.pos >= 0)
            assert np.all(m.pos < [10.0, 20.0, 30.0])
    
    def test_default_position_unbounded(self, sim):
        np.testing.assert_array_equal(sim.add_microbe().pos, [0.0, 0.0])
    
    def test_periodic_boundaries(self):
        sim = Simulation(Config(dim=1, timestep=1.0, extent=(10.0,)))
        m = sim.add_microbe(pos=[8.0], vel=[1.0], speed=5.0, turn_rate=0)
        sim.step()
        assert m.pos[0] == pytest.approx(3.0)
    
    def test_reflecting_boundaries(self):
        sim = Simulation(Config(dim=1, timestep=1.0, extent=(10.0,), periodic=False))
        m = sim.add_microbe(pos=[8.0], vel=[1.0], speed=5.0, turn_rate=0)
        sim.step()
        assert m.pos[0] == pytest.approx(7.0)
        assert m.vel[0] == -1.0
    
    def test_reflected_microbe_swims_back(self):
        """After bouncing off a wall the microbe keeps moving away from it."""
        sim = Simulation(Config(dim=1, timestep=1.0, extent=(10.0,), periodic=False))
        m = sim.add_microbe(pos=[8.0], vel=[1.0], speed=5.0, turn_rate=0)
        trajectory = []
        for _ in range(4):
            sim.step()
            trajectory.append((m.pos[0], m.vel[0]))
        assert trajectory == [(7.0, -1.0), (2.0, -1.0), (3.0, 1.0), (8.0, 1.0)]
    
    def test_reflection_reverses_crossed_axis_only(self):
        sim = Simulation(Config(dim=2, timestep=1.0, extent=(10.0, 10.0), periodic=False))
        m = sim.add_microbe(pos=[9.0, 5.0], vel=[0.6, 0.8], speed=5.0, turn_rate=0)
        sim.step()
        np.testing.assert_allclose(m.pos, [8.0, 9.0])
        np.testing.assert_allclose(m.vel, [-0.6, 0.8])
    
    def test_periodic_wrap_stays_below_extent(self):
        sim = Simulation(Config(dim=1, timestep=1.0, extent=(10.0,)))
        m = sim.add_microbe(pos=[1e-17], vel=[1.0], speed=0.0, turn_rate=0)
        sim.move_agent(m, m.pos - 2e-17)
        assert 0.0 <= m.pos[0] < 10.0
        assert m.vel[0] == 1.0
    
    def test_run_callback(self, sim):
        sim.add_microbe()
        seen = []
        sim.run(10, callback=lambda s: seen.append(s.step_count), callback_interval=5,
                show_progress=False)
        
        assert seen == [5, 10]
        assert sim.step_count == 10
        assert sim.time == pytest.approx(10 * sim.timestep)
    
    def test_run_with_progress_bar(self, sim):
        sim.add_microbe()
        sim.run(3, show_progress=True)
        assert sim.step_count == 3
    
    def test_reset(self, sim):
        first = sim.add_microbe().vel.copy()
        sim.run(5, show_progress=False)
        sim.reset()
        
        assert len(sim) == 0
        assert sim.step_count == 0
        np.testing.assert_array_equal(sim.add_microbe().vel, first)
    
    def test_default_seed(self, default_config):
        assert Simulation(default_config).seed == 42
