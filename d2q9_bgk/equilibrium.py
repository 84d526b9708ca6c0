"""
Equilibrium Distribution Functions

Second-order BGK equilibrium for the D2Q9 lattice:

    f_i^eq = w_i * rho * [1 + 3 (e_i . u) + 4.5 (e_i . u)^2 - 1.5 u^2]

which is the Maxwell-Boltzmann expansion with c_s^2 = 1/3 written in terms
of the inverse c_sq_inv = 3.
"""

import numpy as np
from .lattice import EX, EY, W, C_SQ_INV, Q


def compute_equilibrium(rho, ux, uy):
    """
    Compute equilibrium distribution for all lattice sites.

    Parameters
    ----------
    rho : ndarray
        Density field, shape (ny, nx)
    ux : ndarray
        X-velocity field, shape (ny, nx)
    uy : ndarray
        Y-velocity field, shape (ny, nx)

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    """
    rho = np.asarray(rho, dtype=np.float64)
    ny, nx = rho.shape
    f_eq = np.empty((Q, ny, nx), dtype=np.float64)

    u_sq = ux * ux + uy * uy

    for i in range(Q):
        eu = EX[i] * ux + EY[i] * uy
        f_eq[i] = W[i] * rho * (
            1.0
            + eu * C_SQ_INV
            + (eu * eu) * (0.5 * C_SQ_INV * C_SQ_INV)
            - u_sq * (0.5 * C_SQ_INV)
        )

    return f_eq


def equilibrium_single_site(rho, ux, uy):
    """
    Compute equilibrium distribution for a single lattice site.

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q,)
    """
    f_eq = np.zeros(Q, dtype=np.float64)
    u_sq = ux * ux + uy * uy

    for i in range(Q):
        eu = EX[i] * ux + EY[i] * uy
        f_eq[i] = W[i] * rho * (
            1.0
            + eu * C_SQ_INV
            + (eu * eu) * (0.5 * C_SQ_INV * C_SQ_INV)
            - u_sq * (0.5 * C_SQ_INV)
        )

    return f_eq


def rest_state(density, nx, ny):
    """
    Uniform zero-velocity population field.

    Every cell holds ``density * w_i`` in direction ``i``, the equilibrium
    of a fluid at rest.
    """
    f = np.empty((Q, ny, nx), dtype=np.float64)
    for i in range(Q):
        f[i].fill(density * W[i])
    return f
