"""
D2Q9 Lattice Constants

Defines the D2Q9 velocity set used by the BGK solver.
"""
import numpy as np

# D2Q9 lattice velocities
#     6   2   5
#       \ | /
#     3 - 0 - 1
#       / | \
#     7   4   8

# Lattice velocity components
EX = np.array([0, 1, 0, -1, 0, 1, -1, -1, 1], dtype=np.int64)
EY = np.array([0, 0, 1, 0, -1, 1, 1, -1, -1], dtype=np.int64)

# Lattice weights
W0 = 4.0 / 9.0
W1 = 1.0 / 9.0
W2 = 1.0 / 36.0
W = np.array([W0, W1, W1, W1, W1, W2, W2, W2, W2], dtype=np.float64)

# Opposite direction indices (for bounce-back)
OPPOSITE = np.array([0, 3, 4, 1, 2, 7, 8, 5, 6], dtype=np.int64)

# Lattice sound speed squared and its inverse
CS2 = 1.0 / 3.0
C_SQ_INV = 3.0

# Number of lattice velocities
Q = 9
