"""
Result Writers

final_state.dat: one line per cell, y-major then x,
    x y u_x u_y |u| pressure obstacle_flag

av_vels.dat: one line per timestep,
    timestep:<TAB>mean_velocity

Each file is first written to ``<path>.tmp`` and renamed into place only
once every file of the batch has been written, so a failed write leaves no
result files behind.
"""

import os

import numpy as np

from .errors import OutputFileError
from .observables import final_state_fields

FINAL_STATE_FILE = "final_state.dat"
AV_VELS_FILE = "av_vels.dat"


def _output_error(path, exc):
    return OutputFileError(
        f"could not write output file: {path} ({exc.strerror})", "write results"
    )


def _discard(tmp_paths):
    for tmp in tmp_paths:
        try:
            os.remove(tmp)
        except FileNotFoundError:
            pass


def _stage(path, lines):
    """Write lines to ``<path>.tmp`` and return the temporary path."""
    tmp = f"{os.fspath(path)}.tmp"
    try:
        with open(tmp, "w") as fp:
            for line in lines:
                fp.write(line)
    except OSError as exc:
        _discard([tmp])
        raise _output_error(path, exc) from exc
    return tmp


def _commit(staged):
    """Rename staged files over their targets, or remove them all on failure."""
    tmp_paths = [tmp for _, tmp in staged]
    for path, tmp in staged:
        try:
            os.replace(tmp, path)
        except OSError as exc:
            _discard(tmp_paths)
            raise _output_error(path, exc) from exc


def _write_batch(outputs):
    staged = []
    try:
        for path, lines in outputs:
            staged.append((path, _stage(path, lines)))
    except OutputFileError:
        _discard([tmp for _, tmp in staged])
        raise
    _commit(staged)


def final_state_lines(params, f, obstacles):
    """Lines of final_state.dat for the given populations."""
    blocked = np.asarray(getattr(obstacles, "array", obstacles), dtype=np.bool_)
    ux, uy, speed, pressure = final_state_fields(params, f, blocked)

    for jj in range(params.ny):
        for ii in range(params.nx):
            yield "%d %d %.12E %.12E %.12E %.12E %d\n" % (
                ii, jj, ux[jj, ii], uy[jj, ii], speed[jj, ii],
                pressure[jj, ii], int(blocked[jj, ii]))


def av_vels_lines(av_vels):
    """Lines of av_vels.dat."""
    for ii, av_vel in enumerate(av_vels):
        yield "%d:\t%.12E\n" % (ii, av_vel)


def write_final_state(path, params, f, obstacles):
    """Write per-cell velocity and pressure of the final populations."""
    _write_batch([(path, final_state_lines(params, f, obstacles))])


def write_av_vels(path, av_vels):
    """Write the mean velocity of every timestep."""
    _write_batch([(path, av_vels_lines(av_vels))])


def write_results(final_state_path, av_vels_path, params, f, obstacles, av_vels):
    """Write both result files, or neither if any write fails."""
    _write_batch([
        (final_state_path, final_state_lines(params, f, obstacles)),
        (av_vels_path, av_vels_lines(av_vels)),
    ])
