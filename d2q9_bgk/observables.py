"""
Macroscopic Diagnostics

Density, velocity and derived quantities computed from a stored population
buffer:
    - Density (0th moment): rho = sum_i(f_i)
    - Momentum (1st moment): rho*u = sum_i(f_i * e_i)

Blocked cells never contribute to velocity statistics.
"""

import numpy as np
from .lattice import EX, EY, CS2, Q


def _blocked_array(obstacles):
    blocked = getattr(obstacles, "array", obstacles)
    return np.asarray(blocked, dtype=np.bool_)


def compute_density(f):
    """
    Compute density field from distribution functions.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)

    Returns
    -------
    rho : ndarray
        Density field, shape (ny, nx)
    """
    return np.sum(f, axis=0)


def compute_velocity(f, rho=None):
    """
    Compute velocity field from distribution functions.

    No guard against zero density: such cells give inf or NaN.

    Returns
    -------
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    """
    if rho is None:
        rho = compute_density(f)

    rho_ux = np.zeros_like(rho)
    rho_uy = np.zeros_like(rho)

    for i in range(Q):
        rho_ux += f[i] * EX[i]
        rho_uy += f[i] * EY[i]

    with np.errstate(divide="ignore", invalid="ignore"):
        return rho_ux / rho, rho_uy / rho


def total_density(f):
    """
    Sum of every population in the grid.

    The total should remain constant from one timestep to the next.
    """
    return float(np.sum(f))


def av_velocity(f, obstacles):
    """
    Mean velocity magnitude over unblocked cells.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    obstacles : ObstacleMask or ndarray
        Blocked cells

    Returns
    -------
    av_vel : float
        Mean of |u| over fluid cells; NaN if every cell is blocked
    """
    fluid = ~_blocked_array(obstacles)
    ux, uy = compute_velocity(f)
    speed = np.sqrt(ux[fluid] ** 2 + uy[fluid] ** 2)

    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(np.sum(speed)) / np.float64(speed.size))


def viscosity_from_omega(omega):
    """
    Kinematic viscosity for relaxation frequency omega.

    nu = (1/6) * (2/omega - 1), which is c_s^2 * (tau - 0.5) with
    tau = 1/omega. Zero at omega == 2, inf at omega == 0; neither raises.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(1.0 / 6.0 * (np.float64(2.0) / np.float64(omega) - 1.0))


def calc_reynolds(params, f, obstacles):
    """
    Reynolds number of the current state.

    Re = av_velocity * reynolds_dim / viscosity

    omega == 2 gives zero viscosity and omega == 0 infinite viscosity; the
    result is then inf, 0 or NaN and is returned without raising.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        viscosity = viscosity_from_omega(params.omega)
        return float(
            np.float64(av_velocity(f, obstacles) * params.reynolds_dim)
            / np.float64(viscosity)
        )


def final_state_fields(params, f, obstacles):
    """
    Per-cell velocity and pressure of the final state.

    Blocked cells report zero velocity and the reference pressure
    ``density * c_s^2``; fluid cells report ``local_density * c_s^2``.

    Returns
    -------
    ux, uy, speed, pressure : ndarray
        Fields of shape (ny, nx)
    """
    blocked = _blocked_array(obstacles)

    rho = compute_density(f)
    ux, uy = compute_velocity(f, rho)
    ux = np.where(blocked, 0.0, ux)
    uy = np.where(blocked, 0.0, uy)
    speed = np.sqrt(ux * ux + uy * uy)
    pressure = np.where(blocked, params.density * CS2, rho * CS2)

    return ux, uy, speed, pressure
