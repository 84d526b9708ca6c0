"""
D2Q9 BGK lattice Boltzmann solver.
"""

from .errors import (
    LBMError, InputFileError, OutputFileError,
    ParameterFormatError, ObstacleFormatError, AllocationError,
)
from .grid import SimParams, ObstacleMask, GridState
from .simulator import Simulator, accelerate_flow, timestep
from .observables import total_density, av_velocity, calc_reynolds

__version__ = "0.1.0"
