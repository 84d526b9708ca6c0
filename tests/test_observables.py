"""
Tests for macroscopic diagnostics.

Validates mean velocity, total density, Reynolds number and the final
state fields, including the unguarded degenerate cases.
"""

import math
import warnings

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from d2q9_bgk.lattice import CS2, Q
from d2q9_bgk.equilibrium import compute_equilibrium, rest_state
from d2q9_bgk.grid import SimParams, ObstacleMask
from d2q9_bgk.observables import (
    total_density, av_velocity, calc_reynolds,
    viscosity_from_omega, final_state_fields,
)
from d2q9_bgk.simulator import Simulator


def uniform_flow(nx, ny, rho=0.1, ux=0.02, uy=0.0):
    return compute_equilibrium(np.full((ny, nx), rho),
                               np.full((ny, nx), ux),
                               np.full((ny, nx), uy))


def make_params(omega=1.5, reynolds_dim=10, nx=6, ny=4):
    return SimParams(nx=nx, ny=ny, max_iters=1, reynolds_dim=reynolds_dim,
                     density=0.1, accel=0.0, omega=omega)


class TestTotalDensity:

    def test_sum_of_all_populations(self):
        f = rest_state(0.1, 8, 5)

        assert np.isclose(total_density(f), 0.1 * 8 * 5, rtol=1e-14)

    def test_includes_blocked_cells(self):
        f = rest_state(0.1, 4, 4)
        f[0, 0, 0] += 1.0

        assert np.isclose(total_density(f), 0.1 * 16 + 1.0, rtol=1e-14)


class TestAverageVelocity:

    def test_uniform_flow(self):
        f = uniform_flow(6, 4, ux=0.02, uy=-0.015)

        assert np.isclose(av_velocity(f, np.zeros((4, 6), dtype=bool)),
                          0.025, rtol=1e-12)

    def test_ignores_blocked_cells(self):
        nx, ny = 6, 4
        f = uniform_flow(nx, ny, ux=0.02)
        f[1, 1, 2] += 0.5
        obstacles = ObstacleMask(nx, ny, [(2, 1)])

        assert np.isclose(av_velocity(f, obstacles), 0.02, rtol=1e-12)

    def test_all_blocked_is_nan(self):
        f = uniform_flow(3, 3)

        assert math.isnan(av_velocity(f, np.ones((3, 3), dtype=bool)))

    def test_matches_timestep_value(self):
        """The online mean of the last step equals the diagnostic of its output."""
        params = SimParams(nx=12, ny=8, max_iters=30, reynolds_dim=8,
                           density=0.1, accel=0.005, omega=1.0)
        obstacles = ObstacleMask(12, 8, [(x, 0) for x in range(12)])
        solver = Simulator(params, obstacles)
        solver.run()

        # BGK conserves momentum, so velocity after collision equals the
        # velocity computed from the gathered values
        f = solver.cells.current
        assert np.isclose(av_velocity(f, obstacles), solver.av_vels[-1],
                          rtol=1e-12)


class TestReynoldsNumber:

    def test_viscosity(self):
        assert np.isclose(viscosity_from_omega(1.5), (1.0 / 6.0) * (2.0 / 1.5 - 1.0))
        assert np.isclose(viscosity_from_omega(1.0), 1.0 / 6.0)

    def test_formula(self):
        params = make_params(omega=1.5, reynolds_dim=10)
        f = uniform_flow(params.nx, params.ny, ux=0.02)
        no_obstacles = np.zeros(params.shape, dtype=bool)

        expected = 0.02 * 10 / ((1.0 / 6.0) * (2.0 / 1.5 - 1.0))
        assert np.isclose(calc_reynolds(params, f, no_obstacles), expected,
                          rtol=1e-12)

    def test_omega_two_is_unguarded(self):
        """Zero viscosity gives inf instead of raising."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            params = make_params(omega=2.0)
        f = uniform_flow(params.nx, params.ny, ux=0.02)

        re = calc_reynolds(params, f, np.zeros(params.shape, dtype=bool))

        assert math.isinf(re)

    def test_omega_two_at_rest_is_nan(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            params = make_params(omega=2.0)
        f = rest_state(0.1, params.nx, params.ny)

        re = calc_reynolds(params, f, np.zeros(params.shape, dtype=bool))

        assert math.isnan(re)

    def test_omega_zero_is_unguarded(self):
        """Infinite viscosity gives Re = 0 instead of raising."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            params = make_params(omega=0.0)
        no_obstacles = np.zeros(params.shape, dtype=bool)

        assert math.isinf(viscosity_from_omega(0.0))
        assert calc_reynolds(params, rest_state(0.1, params.nx, params.ny),
                             no_obstacles) == 0.0
        assert calc_reynolds(params, uniform_flow(params.nx, params.ny, ux=0.02),
                             no_obstacles) == 0.0

    def test_simulator_delegates(self):
        params = make_params()
        solver = Simulator(params)

        assert solver.reynolds_number() == pytest.approx(0.0, abs=1e-12)
        assert solver.av_velocity() == pytest.approx(0.0, abs=1e-15)


class TestFinalStateFields:

    def test_fluid_and_blocked_cells(self):
        params = make_params(nx=5, ny=4)
        f = uniform_flow(5, 4, rho=0.12, ux=0.03, uy=0.01)
        obstacles = ObstacleMask(5, 4, [(1, 2)])

        ux, uy, speed, pressure = final_state_fields(params, f, obstacles)

        assert ux[2, 1] == 0.0 and uy[2, 1] == 0.0 and speed[2, 1] == 0.0
        assert np.isclose(pressure[2, 1], params.density * CS2)

        fluid = ~obstacles.array
        np.testing.assert_allclose(ux[fluid], 0.03, rtol=1e-12)
        np.testing.assert_allclose(uy[fluid], 0.01, rtol=1e-12)
        np.testing.assert_allclose(speed[fluid], np.hypot(0.03, 0.01), rtol=1e-12)
        np.testing.assert_allclose(pressure[fluid], 0.12 / 3.0, rtol=1e-12)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
