"""
Result Visualization

Plots of the final speed field and the mean-velocity history.
"""

import matplotlib.pyplot as plt
import numpy as np

from .observables import final_state_fields


def plot_velocity_magnitude(ax, params, f, obstacles, title="Velocity Magnitude"):
    """Plot |u| with blocked cells masked out."""
    blocked = np.asarray(getattr(obstacles, "array", obstacles), dtype=np.bool_)
    _, _, speed, _ = final_state_fields(params, f, blocked)

    im = ax.imshow(np.ma.masked_array(speed, mask=blocked), origin="lower",
                   cmap="viridis", interpolation="nearest")
    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    return im


def plot_av_vels(ax, av_vels, title="Mean Velocity"):
    """Plot mean velocity against timestep."""
    ax.plot(np.arange(len(av_vels)), av_vels, lw=1.0)
    ax.set_title(title)
    ax.set_xlabel("timestep")
    ax.set_ylabel("mean |u|")
    ax.grid(True, alpha=0.3)


def save_summary_figure(path, params, f, obstacles, av_vels):
    """Save the speed field and velocity history side by side."""
    fig, (ax_field, ax_hist) = plt.subplots(1, 2, figsize=(12, 4.5))

    im = plot_velocity_magnitude(ax_field, params, f, obstacles)
    fig.colorbar(im, ax=ax_field, label="|u|")
    plot_av_vels(ax_hist, av_vels)

    fig.tight_layout()
    fig.savefig(path, dpi=120)
    plt.close(fig)
