"""
Command-line entry point.

    d2q9-bgk input.params obstacles.dat

Runs the simulation, reports the Reynolds number and elapsed times, and
writes final_state.dat and av_vels.dat.
"""

import argparse
import logging
import sys
import time

from .errors import LBMError
from .loaders import read_obstacles, read_params
from .output import AV_VELS_FILE, FINAL_STATE_FILE, write_results
from .simulator import Simulator

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="d2q9-bgk",
        description="D2Q9 BGK lattice Boltzmann simulation",
    )
    parser.add_argument("paramfile", help="parameter file")
    parser.add_argument("obstaclefile", help="obstacle file")
    parser.add_argument("--final-state", default=FINAL_STATE_FILE,
                        help=f"final state output (default: {FINAL_STATE_FILE})")
    parser.add_argument("--av-vels", default=AV_VELS_FILE,
                        help=f"velocity history output (default: {AV_VELS_FILE})")
    parser.add_argument("--plot", default=None, metavar="PATH",
                        help="also save a summary figure to PATH")
    parser.add_argument("--reference", action="store_true",
                        help="use the NumPy reference kernels instead of Numba")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log every timestep")
    return parser


def run(args):
    tot_tic = time.perf_counter()
    params = read_params(args.paramfile)
    obstacles = read_obstacles(args.obstaclefile, params)
    solver = Simulator(params, obstacles, use_fast=not args.reference)
    init_toc = time.perf_counter()

    solver.run()
    comp_toc = time.perf_counter()

    reynolds = solver.reynolds_number()
    col_toc = time.perf_counter()

    print("==done==")
    print(f"Reynolds number:\t\t{reynolds:.12E}")
    print(f"Elapsed Init time:\t\t\t{init_toc - tot_tic:.6f} (s)")
    print(f"Elapsed Compute time:\t\t\t{comp_toc - init_toc:.6f} (s)")
    print(f"Elapsed Collate time:\t\t\t{col_toc - comp_toc:.6f} (s)")
    print(f"Elapsed Total time:\t\t\t{col_toc - tot_tic:.6f} (s)")

    write_results(args.final_state, args.av_vels, params,
                  solver.cells.current, obstacles, solver.av_vels)

    if args.plot:
        import matplotlib
        matplotlib.use("Agg")
        from .visualization import save_summary_figure
        save_summary_figure(args.plot, params, solver.cells.current, obstacles,
                            solver.av_vels)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        run(args)
    except LBMError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
