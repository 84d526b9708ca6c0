"""
Input File Loaders

Parameter file: seven whitespace-separated values in fixed order,

    nx ny maxIters reynolds_dim density accel omega

the first four integers, the rest decimals.

Obstacle file: zero or more lines ``x y 1`` marking cell (x, y) blocked.
"""

import logging

from .errors import InputFileError, ObstacleFormatError, ParameterFormatError
from .grid import ObstacleMask, SimParams

logger = logging.getLogger(__name__)

PARAM_FIELDS = (
    ("nx", int),
    ("ny", int),
    ("maxIters", int),
    ("reynolds_dim", int),
    ("density", float),
    ("accel", float),
    ("omega", float),
)


def _read_text(path, what):
    try:
        with open(path, "r") as fp:
            return fp.read()
    except OSError as exc:
        raise InputFileError(
            f"could not open input {what} file: {path} ({exc.strerror})",
            f"read {what} file",
        ) from exc


def parse_params(text):
    """
    Parse the contents of a parameter file.

    Raises
    ------
    ParameterFormatError
        If a value is missing, unparsable or out of range
    """
    tokens = text.split()
    values = []

    for i, (name, kind) in enumerate(PARAM_FIELDS):
        if i >= len(tokens):
            raise ParameterFormatError(f"could not read param file: {name}", name)
        try:
            values.append(kind(tokens[i]))
        except ValueError:
            raise ParameterFormatError(
                f"could not read param file: {name} (got {tokens[i]!r})", name
            ) from None

    if len(tokens) > len(PARAM_FIELDS):
        logger.warning("ignoring %d trailing tokens in param file",
                       len(tokens) - len(PARAM_FIELDS))

    return SimParams(*values)


def read_params(path):
    """Load SimParams from a parameter file."""
    params = parse_params(_read_text(path, "parameter"))
    logger.info("loaded params from %s: %s", path, params)
    return params


def parse_obstacles(text, nx, ny):
    """
    Parse the contents of an obstacle file.

    Blank lines are skipped.

    Returns
    -------
    obstacles : ObstacleMask
        Read-only obstacle map

    Raises
    ------
    ObstacleFormatError
        On a malformed line, an out-of-range coordinate or a flag other
        than 1
    """
    cells = []

    for lineno, line in enumerate(text.splitlines(), start=1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 3:
            raise ObstacleFormatError(
                f"line {lineno}: expected 3 values per line in obstacle file",
                "read obstacles",
            )
        try:
            xx, yy, blocked = (int(v) for v in fields)
        except ValueError:
            raise ObstacleFormatError(
                f"line {lineno}: obstacle values must be integers, got {line.strip()!r}",
                "read obstacles",
            ) from None

        if xx < 0 or xx > nx - 1:
            raise ObstacleFormatError(
                f"line {lineno}: obstacle x-coord out of range", "read obstacles"
            )
        if yy < 0 or yy > ny - 1:
            raise ObstacleFormatError(
                f"line {lineno}: obstacle y-coord out of range", "read obstacles"
            )
        if blocked != 1:
            raise ObstacleFormatError(
                f"line {lineno}: obstacle blocked value should be 1", "read obstacles"
            )
        cells.append((xx, yy))

    return ObstacleMask(nx, ny, cells)


def read_obstacles(path, params):
    """Load the obstacle map for a grid of ``params.nx`` x ``params.ny``."""
    obstacles = parse_obstacles(_read_text(path, "obstacles"), params.nx, params.ny)
    logger.info("loaded %d blocked cells from %s", obstacles.num_blocked, path)
    return obstacles
