"""
Tests for conservation laws.

Validates mass conservation of accelerate_flow, the fused timestep and the
full simulation loop, with and without obstacles and forcing.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from d2q9_bgk.lattice import EX, EY, Q
from d2q9_bgk.equilibrium import compute_equilibrium, rest_state
from d2q9_bgk.grid import SimParams, ObstacleMask
from d2q9_bgk.observables import total_density
from d2q9_bgk.simulator import (
    Simulator,
    accelerate_flow, accelerate_flow_reference,
    timestep, timestep_reference,
    stream_periodic_pull,
)


TIMESTEPS = [timestep, timestep_reference]
ACCELERATORS = [accelerate_flow, accelerate_flow_reference]


def make_params(nx=32, ny=24, max_iters=100, accel=0.005, omega=1.7):
    return SimParams(nx=nx, ny=ny, max_iters=max_iters, reynolds_dim=ny,
                     density=0.1, accel=accel, omega=omega)


def box_obstacles(nx, ny):
    """Solid block in the middle of the channel plus a bottom wall."""
    cells = [(x, 0) for x in range(nx)]
    cells += [(x, y) for x in range(nx // 4, nx // 4 + 4)
              for y in range(ny // 3, ny // 3 + 5)]
    return ObstacleMask(nx, ny, cells)


class TestMassConservation:
    """Test mass conservation during LBM steps."""

    @pytest.fixture
    def initial_field(self):
        """Create a perturbed equilibrium field."""
        rng = np.random.default_rng(1234)
        nx, ny = 32, 24
        rho = 0.1 * (1.0 + 0.1 * rng.random((ny, nx)))
        ux = 0.02 * rng.standard_normal((ny, nx))
        uy = 0.02 * rng.standard_normal((ny, nx))

        return compute_equilibrium(rho, ux, uy)

    def test_streaming_conserves_mass(self, initial_field):
        """Mass should be exactly conserved by periodic streaming."""
        f = initial_field

        assert np.isclose(np.sum(f), np.sum(stream_periodic_pull(f)), rtol=1e-14)

    @pytest.mark.parametrize("accelerate", ACCELERATORS)
    def test_accelerate_conserves_mass(self, initial_field, accelerate):
        """Forcing redistributes density within each cell."""
        f = initial_field.copy()
        params = make_params()
        obstacles = box_obstacles(params.nx, params.ny)

        rho_before = np.sum(f, axis=0)
        accelerate(f, obstacles, params)

        np.testing.assert_allclose(np.sum(f, axis=0), rho_before, rtol=1e-14)

    @pytest.mark.parametrize("step", TIMESTEPS)
    def test_timestep_conserves_mass(self, initial_field, step):
        """Propagation, collision and bounce-back conserve total mass."""
        f = initial_field
        f_out = np.zeros_like(f)
        params = make_params()

        step(f, f_out, np.zeros((params.ny, params.nx), dtype=bool), params)

        assert np.isclose(total_density(f), total_density(f_out), rtol=1e-13)

    @pytest.mark.parametrize("use_fast", [True, False])
    def test_mass_conservation_multiple_steps(self, use_fast):
        """Mass should be conserved over many forced steps with obstacles."""
        params = make_params(max_iters=100)
        obstacles = box_obstacles(params.nx, params.ny)
        solver = Simulator(params, obstacles, use_fast=use_fast)

        # Rest populations of blocked cells never change
        mass_initial = solver.total_density()
        solver.run()
        mass_final = solver.total_density()

        assert np.isclose(mass_initial, mass_final, rtol=1e-12)

    def test_mass_conserved_every_step(self):
        """Total density stays constant from one timestep to the next."""
        params = make_params(max_iters=20)
        solver = Simulator(params, box_obstacles(params.nx, params.ny))

        expected = solver.total_density()
        for _ in range(params.max_iters):
            solver.step()
            assert np.isclose(solver.total_density(), expected, rtol=1e-12)


class TestMomentum:
    """Test momentum behaviour of the unforced, obstacle-free timestep."""

    @pytest.mark.parametrize("step", TIMESTEPS)
    def test_momentum_conserved_without_forcing(self, step):
        """Periodic BGK conserves momentum when nothing is blocked."""
        nx, ny = 16, 16
        rho = np.full((ny, nx), 0.1)
        ux = np.full((ny, nx), 0.03)
        uy = np.full((ny, nx), -0.01)
        f = compute_equilibrium(rho, ux, uy)
        f_out = np.zeros_like(f)
        params = make_params(nx=nx, ny=ny, accel=0.0)

        step(f, f_out, np.zeros((ny, nx), dtype=bool), params)

        assert np.isclose(np.sum(f * EX[:, None, None]),
                          np.sum(f_out * EX[:, None, None]), rtol=1e-12)
        assert np.isclose(np.sum(f * EY[:, None, None]),
                          np.sum(f_out * EY[:, None, None]), rtol=1e-12)


class TestZeroForcing:
    """Uniform grid, no obstacles, no forcing."""

    @pytest.mark.parametrize("use_fast", [True, False])
    def test_velocity_stays_zero(self, use_fast):
        params = make_params(nx=20, ny=10, max_iters=50, accel=0.0)
        solver = Simulator(params, use_fast=use_fast)

        mass_initial = solver.total_density()
        av_vels = solver.run()

        np.testing.assert_allclose(av_vels, 0.0, atol=1e-15)
        assert np.isclose(solver.total_density(), mass_initial, rtol=1e-13)
        np.testing.assert_allclose(solver.cells.current,
                                   rest_state(params.density, params.nx, params.ny),
                                   rtol=1e-13)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
