"""
Timestep Implementations

One D2Q9 BGK timestep is:
1. accelerate_flow: push density eastwards along row ny - 2
2. timestep: fused pull-streaming (periodic wrap), bounce-back on blocked
   cells and BGK collision on fluid cells, written to the scratch buffer

Each operation has a vectorised NumPy reference version and a Numba kernel
(the ``_fast`` path used by ``Simulator``).

The Numba timestep parallelises over rows. Every row accumulates its own
partial speed sum and fluid-cell count, and the per-row partials are summed
in row order after the parallel region, so the mean velocity does not depend
on the number of threads.
"""

import logging
import time

import numpy as np
from numba import njit, prange

from .equilibrium import compute_equilibrium
from .grid import GridState, ObstacleMask
from .lattice import EX, EY, W, C_SQ_INV, OPPOSITE, Q
from .observables import av_velocity, calc_reynolds, total_density

logger = logging.getLogger(__name__)


def _blocked_array(obstacles):
    if isinstance(obstacles, ObstacleMask):
        return obstacles.array
    return np.asarray(obstacles, dtype=np.bool_)


def _mean_speed(tot_u, tot_cells):
    # No fluid cells gives NaN, propagated as-is
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(tot_u) / np.float64(tot_cells))


def forcing_weights(params):
    """Density moved per axis link (w1) and per diagonal link (w2)."""
    w1 = params.density * params.accel / 9.0
    w2 = params.density * params.accel / 36.0
    return w1, w2


# ---------------------------------------------------------------------------
# accelerate_flow
# ---------------------------------------------------------------------------

def accelerate_flow_reference(f, obstacles, params):
    """
    Accelerate the flow along row ny - 2 (NumPy version).

    Moves w1 from direction 3 to 1 and w2 from directions 6, 7 to 5, 8 at
    every unblocked cell of the row, unless that would leave direction 3, 6
    or 7 non-positive, in which case the cell is skipped.

    Parameters
    ----------
    f : ndarray
        Current populations, shape (Q, ny, nx). Modified in place.
    obstacles : ObstacleMask or ndarray
        Blocked cells
    params : SimParams
        Simulation parameters
    """
    blocked = _blocked_array(obstacles)
    w1, w2 = forcing_weights(params)
    jj = params.ny - 2

    row = f[:, jj, :]
    push = (
        ~blocked[jj]
        & (row[3] - w1 > 0.0)
        & (row[6] - w2 > 0.0)
        & (row[7] - w2 > 0.0)
    )

    # increase 'east-side' densities
    row[1, push] += w1
    row[5, push] += w2
    row[8, push] += w2
    # decrease 'west-side' densities
    row[3, push] -= w1
    row[6, push] -= w2
    row[7, push] -= w2


@njit(cache=True)
def accelerate_flow_numba(f, blocked, w1, w2, jj):
    """
    Numba-accelerated flow acceleration on row jj.

    Parameters
    ----------
    f : ndarray
        Current populations, shape (Q, ny, nx). Modified in place.
    blocked : ndarray
        Boolean obstacle map, shape (ny, nx)
    w1, w2 : float
        Axis and diagonal forcing increments
    jj : int
        Row index
    """
    nx = f.shape[2]

    for ii in range(nx):
        if blocked[jj, ii]:
            continue
        if (f[3, jj, ii] - w1 > 0.0
                and f[6, jj, ii] - w2 > 0.0
                and f[7, jj, ii] - w2 > 0.0):
            f[1, jj, ii] += w1
            f[5, jj, ii] += w2
            f[8, jj, ii] += w2
            f[3, jj, ii] -= w1
            f[6, jj, ii] -= w2
            f[7, jj, ii] -= w2


def accelerate_flow(f, obstacles, params):
    """Accelerate the flow along row ny - 2 using Numba."""
    w1, w2 = forcing_weights(params)
    accelerate_flow_numba(f, _blocked_array(obstacles), w1, w2, params.ny - 2)


# ---------------------------------------------------------------------------
# timestep: propagate + bounce-back + collide
# ---------------------------------------------------------------------------

def stream_periodic_pull(f):
    """
    Streaming step using pull scheme with periodic boundaries.

    Pull scheme: f_i(x) = f_i(x - e_i)

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)

    Returns
    -------
    f_streamed : ndarray
        Gathered distribution
    """
    f_out = np.empty_like(f)

    for i in range(Q):
        # np.roll(a, s)[x] == a[x - s]
        f_out[i] = np.roll(np.roll(f[i], EX[i], axis=1), EY[i], axis=0)

    return f_out


def timestep_reference(f, f_out, obstacles, params):
    """
    Fused propagate, bounce-back and collision (NumPy version).

    Parameters
    ----------
    f : ndarray
        Current populations, shape (Q, ny, nx). Read only.
    f_out : ndarray
        Scratch populations, shape (Q, ny, nx). Written.
    obstacles : ObstacleMask or ndarray
        Blocked cells
    params : SimParams
        Simulation parameters

    Returns
    -------
    av_vel : float
        Mean velocity magnitude over unblocked cells
    """
    blocked = _blocked_array(obstacles)
    fluid = ~blocked

    g = stream_periodic_pull(f)

    with np.errstate(divide="ignore", invalid="ignore"):
        rho = np.sum(g, axis=0)
        rho_ux = np.zeros_like(rho)
        rho_uy = np.zeros_like(rho)
        for i in range(Q):
            rho_ux += g[i] * EX[i]
            rho_uy += g[i] * EY[i]
        ux = rho_ux / rho
        uy = rho_uy / rho

        f_eq = compute_equilibrium(rho, ux, uy)
        f_coll = g + params.omega * (f_eq - g)
        speed = np.sqrt(ux * ux + uy * uy)

    for i in range(Q):
        f_out[i][fluid] = f_coll[i][fluid]

    # Rest population of blocked cells is left untouched
    for i in range(1, Q):
        f_out[i][blocked] = g[OPPOSITE[i]][blocked]

    fluid_speed = speed[fluid]
    return _mean_speed(np.sum(fluid_speed), fluid_speed.size)


@njit(parallel=True, cache=True, error_model="numpy")
def timestep_numba(f, f_out, blocked, omega, ex, ey, w, opposite, c_sq_inv,
                   row_u, row_cells):
    """
    Numba-accelerated fused propagate, bounce-back and collision.

    Parameters
    ----------
    f : ndarray
        Current populations, shape (Q, ny, nx)
    f_out : ndarray
        Scratch populations, shape (Q, ny, nx)
    blocked : ndarray
        Boolean obstacle map, shape (ny, nx)
    omega : float
        Relaxation frequency
    ex, ey : ndarray
        Lattice velocity components
    w : ndarray
        Lattice weights
    opposite : ndarray
        Opposite direction indices
    c_sq_inv : float
        Inverse lattice sound speed squared
    row_u : ndarray
        Output per-row sum of fluid speeds, shape (ny,)
    row_cells : ndarray
        Output per-row fluid-cell count, shape (ny,)
    """
    q, ny, nx = f.shape

    for jj in prange(ny):
        g = np.empty(q, dtype=np.float64)
        tot_u = 0.0
        tot_cells = 0

        for ii in range(nx):
            # Pull from the neighbour each population streams in from
            for k in range(q):
                i_src = (ii - ex[k] + nx) % nx
                j_src = (jj - ey[k] + ny) % ny
                g[k] = f[k, j_src, i_src]

            if blocked[jj, ii]:
                for k in range(1, q):
                    f_out[k, jj, ii] = g[opposite[k]]
                continue

            rho_local = 0.0
            rho_ux = 0.0
            rho_uy = 0.0
            for k in range(q):
                rho_local += g[k]
                rho_ux += g[k] * ex[k]
                rho_uy += g[k] * ey[k]

            ux_local = rho_ux / rho_local
            uy_local = rho_uy / rho_local
            u_sq = ux_local * ux_local + uy_local * uy_local

            for k in range(q):
                eu = ex[k] * ux_local + ey[k] * uy_local
                f_eq = w[k] * rho_local * (
                    1.0
                    + eu * c_sq_inv
                    + (eu * eu) * (0.5 * c_sq_inv * c_sq_inv)
                    - u_sq * (0.5 * c_sq_inv)
                )
                f_out[k, jj, ii] = g[k] + omega * (f_eq - g[k])

            tot_u += np.sqrt(u_sq)
            tot_cells += 1

        row_u[jj] = tot_u
        row_cells[jj] = tot_cells


def timestep(f, f_out, obstacles, params):
    """
    Fused propagate, bounce-back and collision using Numba.

    Same contract as ``timestep_reference``.
    """
    ny = f.shape[1]
    row_u = np.zeros(ny, dtype=np.float64)
    row_cells = np.zeros(ny, dtype=np.int64)

    timestep_numba(f, f_out, _blocked_array(obstacles), params.omega,
                   EX, EY, W, OPPOSITE, C_SQ_INV, row_u, row_cells)

    tot_u = 0.0
    tot_cells = 0
    for jj in range(ny):
        tot_u += row_u[jj]
        tot_cells += int(row_cells[jj])

    return _mean_speed(tot_u, tot_cells)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class Simulator:
    """
    D2Q9 BGK simulation with periodic boundaries and bounce-back obstacles.

    Parameters
    ----------
    params : SimParams
        Simulation parameters
    obstacles : ObstacleMask or ndarray, optional
        Blocked cells, as a mask or a boolean (ny, nx) array (default: none)
    use_fast : bool
        Use the Numba kernels (default True)

    Attributes
    ----------
    cells : GridState
        Double-buffered populations; ``cells.current`` holds the latest state
    av_vels : ndarray
        Mean velocity recorded at each timestep, shape (max_iters,)
    """

    def __init__(self, params, obstacles=None, use_fast=True):
        self.params = params
        if obstacles is None:
            obstacles = ObstacleMask(params.nx, params.ny)
        elif not isinstance(obstacles, ObstacleMask):
            obstacles = ObstacleMask.from_array(obstacles)
        if (obstacles.nx, obstacles.ny) != (params.nx, params.ny):
            raise ValueError(
                f"obstacle map is {obstacles.nx} x {obstacles.ny}, "
                f"grid is {params.nx} x {params.ny}"
            )
        self.obstacles = obstacles
        self.use_fast = use_fast
        logger.info("Grid %d x %d, %d fluid cells, %d blocked",
                    params.nx, params.ny, obstacles.num_fluid,
                    obstacles.num_blocked)

        self.cells = GridState.from_params(params)
        self.av_vels = np.zeros(params.max_iters, dtype=np.float64)

        self.step_count = 0
        self.total_time = 0.0

    @property
    def done(self):
        return self.step_count >= self.params.max_iters

    def step(self):
        """
        Advance one timestep: accelerate, timestep, swap buffers.

        Returns
        -------
        av_vel : float
            Mean velocity of this timestep
        """
        if self.done:
            raise RuntimeError(
                f"simulation already ran its {self.params.max_iters} iterations"
            )

        start = time.perf_counter()
        blocked = self.obstacles.array

        if self.use_fast:
            accelerate_flow(self.cells.current, blocked, self.params)
            av_vel = timestep(self.cells.current, self.cells.scratch,
                              blocked, self.params)
        else:
            accelerate_flow_reference(self.cells.current, blocked, self.params)
            av_vel = timestep_reference(self.cells.current, self.cells.scratch,
                                        blocked, self.params)

        self.cells.swap()
        self.av_vels[self.step_count] = av_vel

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("==timestep: %d== av velocity: %.12E tot density: %.12E",
                         self.step_count, av_vel, self.total_density())

        self.step_count += 1
        self.total_time += time.perf_counter() - start
        return av_vel

    def run(self, report_interval=1000):
        """
        Run the remaining timesteps.

        Parameters
        ----------
        report_interval : int
            Steps between progress log records

        Returns
        -------
        av_vels : ndarray
            Mean velocity of every timestep
        """
        cells_per_step = self.params.nx * self.params.ny
        start = time.perf_counter()
        first = self.step_count

        while not self.done:
            self.step()

            if report_interval and self.step_count % report_interval == 0:
                elapsed = time.perf_counter() - start
                mlups = (self.step_count - first) * cells_per_step / elapsed / 1e6
                logger.info("Step %d/%d, MLUPS: %.2f",
                            self.step_count, self.params.max_iters, mlups)

        return self.av_vels

    def total_density(self):
        """Return total mass of the current state (should be conserved)."""
        return total_density(self.cells.current)

    def av_velocity(self):
        """Return the mean velocity of the current state."""
        return av_velocity(self.cells.current, self.obstacles)

    def reynolds_number(self):
        """Return the Reynolds number of the current state."""
        return calc_reynolds(self.params, self.cells.current, self.obstacles)
