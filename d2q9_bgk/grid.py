"""
Simulation State

Parameters, obstacle map and the double-buffered population field.

Populations use a Structure of Arrays layout, shape (Q, ny, nx): one
contiguous plane per lattice direction, cell (x, y) stored at [k, y, x],
i.e. at flat offset x + y * nx of plane k.
"""

import warnings
from dataclasses import dataclass

import numpy as np

from .equilibrium import rest_state
from .errors import AllocationError, ObstacleFormatError, ParameterFormatError
from .lattice import Q


@dataclass(frozen=True)
class SimParams:
    """
    Immutable simulation parameters.

    Parameters
    ----------
    nx, ny : int
        Number of cells in x and y
    max_iters : int
        Number of timesteps to run
    reynolds_dim : int
        Reference length for the Reynolds number
    density : float
        Initial density per cell
    accel : float
        Forcing applied to row ny - 2 each timestep
    omega : float
        Relaxation frequency (1/tau)
    """

    nx: int
    ny: int
    max_iters: int
    reynolds_dim: int
    density: float
    accel: float
    omega: float

    def __post_init__(self):
        if self.nx < 1:
            raise ParameterFormatError(f"nx must be >= 1, got {self.nx}", "nx")
        if self.ny < 2:
            # The forcing row ny - 2 has to exist
            raise ParameterFormatError(f"ny must be >= 2, got {self.ny}", "ny")
        if self.max_iters < 0:
            raise ParameterFormatError(
                f"maxIters must be >= 0, got {self.max_iters}", "maxIters"
            )
        if self.reynolds_dim < 0:
            raise ParameterFormatError(
                f"reynolds_dim must be >= 0, got {self.reynolds_dim}", "reynolds_dim"
            )
        if not self.density > 0.0:
            raise ParameterFormatError(
                f"density must be > 0, got {self.density}", "density"
            )
        validate_omega(self.omega)

    @property
    def shape(self):
        return (self.ny, self.nx)


def validate_omega(omega):
    """
    Warn when the relaxation frequency is outside the stable range.

    BGK is stable for 0 < omega < 2 (tau > 0.5). Values outside that range
    are allowed but reported; omega == 2 makes the viscosity zero and the
    Reynolds number infinite.

    Returns
    -------
    omega : float
        The value passed in
    """
    if not 0.0 < omega < 2.0:
        warnings.warn(
            f"omega = {omega} is outside (0, 2); the BGK update is not "
            f"stable and the viscosity is not positive."
        )
    return omega


class ObstacleMask:
    """
    Read-only map of blocked cells.

    Parameters
    ----------
    nx, ny : int
        Grid extents
    cells : iterable of (x, y), optional
        Coordinates of blocked cells
    """

    def __init__(self, nx, ny, cells=()):
        self.nx = nx
        self.ny = ny
        blocked = np.zeros((ny, nx), dtype=np.bool_)

        for x, y in cells:
            if not 0 <= x < nx:
                raise ObstacleFormatError(
                    f"obstacle x-coord {x} out of range [0, {nx})", "obstacles"
                )
            if not 0 <= y < ny:
                raise ObstacleFormatError(
                    f"obstacle y-coord {y} out of range [0, {ny})", "obstacles"
                )
            blocked[y, x] = True

        blocked.flags.writeable = False
        self._blocked = blocked

    @classmethod
    def from_array(cls, blocked):
        """Build a mask from a boolean (ny, nx) array."""
        blocked = np.asarray(blocked, dtype=np.bool_)
        ny, nx = blocked.shape
        ys, xs = np.nonzero(blocked)
        return cls(nx, ny, zip(xs.tolist(), ys.tolist()))

    @property
    def array(self):
        """Boolean array of shape (ny, nx); True marks a blocked cell."""
        return self._blocked

    @property
    def num_blocked(self):
        return int(np.count_nonzero(self._blocked))

    @property
    def num_fluid(self):
        return self.nx * self.ny - self.num_blocked

    def __repr__(self):
        return f"ObstacleMask(nx={self.nx}, ny={self.ny}, blocked={self.num_blocked})"


class GridState:
    """
    Double-buffered population field.

    Holds two (Q, ny, nx) buffers. ``current`` is read by the timestep and
    ``scratch`` receives its output; ``swap`` exchanges the two roles
    between timesteps without copying or reallocating.

    Both buffers start at the rest-state equilibrium for ``density``, so
    directions a timestep leaves untouched (the rest population of blocked
    cells) keep a defined value.
    """

    def __init__(self, nx, ny, density):
        self.nx = nx
        self.ny = ny
        try:
            self._buffers = [rest_state(density, nx, ny), rest_state(density, nx, ny)]
        except MemoryError as exc:
            raise AllocationError(
                f"cannot allocate 2 x {Q} x {ny} x {nx} populations", "allocate cells"
            ) from exc
        self._current = 0

    @classmethod
    def from_params(cls, params):
        return cls(params.nx, params.ny, params.density)

    @property
    def current(self):
        return self._buffers[self._current]

    @property
    def scratch(self):
        return self._buffers[1 - self._current]

    def swap(self):
        """Exchange the current and scratch roles."""
        self._current = 1 - self._current
