"""
Benchmark Suite

Performance of the NumPy reference timestep against the Numba kernel,
reported in Million Lattice Updates Per Second (MLUPS).
"""

import time
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from d2q9_bgk.grid import SimParams, ObstacleMask
from d2q9_bgk.simulator import Simulator


def channel_obstacles(nx, ny):
    """Top and bottom walls plus a square block a quarter of the way in."""
    cells = [(x, 0) for x in range(nx)] + [(x, ny - 1) for x in range(nx)]
    side = max(ny // 8, 1)
    x0, y0 = nx // 4, ny // 2 - side // 2
    cells += [(x, y) for x in range(x0, x0 + side) for y in range(y0, y0 + side)]
    return ObstacleMask(nx, ny, cells)


def benchmark_solver(nx, ny, num_steps, warmup_steps=10, use_fast=True):
    """
    Benchmark one Simulator configuration.

    Returns
    -------
    mlups : float
        Million Lattice Updates Per Second
    """
    params = SimParams(nx=nx, ny=ny, max_iters=warmup_steps + num_steps,
                       reynolds_dim=ny, density=0.1, accel=0.005, omega=1.85)
    solver = Simulator(params, channel_obstacles(nx, ny), use_fast=use_fast)

    # Warmup (JIT compilation)
    for _ in range(warmup_steps):
        solver.step()

    start = time.perf_counter()
    for _ in range(num_steps):
        solver.step()
    elapsed = time.perf_counter() - start

    return num_steps * nx * ny / elapsed / 1e6


def run_full_benchmark(grid_sizes=None, num_steps=200):
    """
    Run the benchmark for every grid size.

    Returns
    -------
    results : dict
        {(nx, ny): {"reference": mlups, "numba": mlups}}
    """
    if grid_sizes is None:
        grid_sizes = [
            (128, 128),
            (256, 256),
            (1024, 1024),
        ]

    results = {}

    print("D2Q9 BGK Benchmark")
    print("=" * 50)
    print(f"Steps: {num_steps}")
    print()

    for nx, ny in grid_sizes:
        print(f"Grid size: {nx} x {ny}")

        ref = benchmark_solver(nx, ny, max(num_steps // 10, 1), use_fast=False)
        fast = benchmark_solver(nx, ny, num_steps, use_fast=True)
        results[(nx, ny)] = {"reference": ref, "numba": fast}

        print(f"  NumPy reference: {ref:8.2f} MLUPS")
        print(f"  Numba kernel:    {fast:8.2f} MLUPS ({fast / ref:.1f}x)")
        print()

    return results


if __name__ == "__main__":
    results = run_full_benchmark()

    print("\nSummary")
    print("=" * 50)
    for (nx, ny), r in results.items():
        print(f"{nx:4d} x {ny:4d}: {r['numba']:8.2f} MLUPS "
              f"(reference {r['reference']:.2f})")
