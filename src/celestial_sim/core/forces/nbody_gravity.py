"""Newtonian N-body gravity by direct summation."""

from __future__ import annotations

import numpy as np

from ..constants import G as GRAVITATIONAL_CONSTANT
from ..math.vector import ArrayF


class NBodyGravity:
    def __init__(
        self,
        G: float = GRAVITATIONAL_CONSTANT,
        softening: float = 0.0,
        chunk_size: int | None = None,
    ) -> None:
        if softening < 0.0:
            raise ValueError("softening must be >= 0")
        if chunk_size is not None and chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self.G = float(G)
        self.softening = float(softening)
        self.chunk_size = chunk_size

    def accelerations(self, pos: ArrayF, mass: ArrayF) -> ArrayF:
        """Return (N, 3) accelerations for positions (N, 3) and masses (N,)."""
        pos = np.asarray(pos, dtype=np.float64)
        mass = np.asarray(mass, dtype=np.float64)
        if pos.ndim != 2 or pos.shape[1] != 3:
            raise ValueError("pos must have shape (N, 3)")
        if mass.shape != (pos.shape[0],):
            raise ValueError("mass must have shape (N,)")
        return _nbody_accel(pos, mass, self.G, self.softening, self.chunk_size)


def _pair_terms(
    block: ArrayF, pos: ArrayF, mass: ArrayF, eps2: float, offset: int
) -> ArrayF:
    delta = pos[None, :, :] - block[:, None, :]
    dist2 = np.sum(delta * delta, axis=-1) + eps2
    rows = np.arange(block.shape[0])
    dist2[rows, rows + offset] = np.inf
    # Coincident bodies exert no force on each other.
    dist2[dist2 == 0.0] = np.inf
    inv_dist3 = dist2**-1.5
    return np.sum(delta * inv_dist3[..., np.newaxis] * mass[None, :, None], axis=1)


def _nbody_accel(
    pos: ArrayF,
    mass: ArrayF,
    G: float,
    softening: float,
    chunk_size: int | None,
) -> ArrayF:
    n = pos.shape[0]
    if n == 0:
        return np.zeros((0, 3), dtype=np.float64)
    eps2 = softening * softening
    if chunk_size is None or chunk_size >= n:
        return G * _pair_terms(pos, pos, mass, eps2, 0)

    acc = np.zeros((n, 3), dtype=np.float64)
    for i0 in range(0, n, chunk_size):
        i1 = min(i0 + chunk_size, n)
        acc[i0:i1] = _pair_terms(pos[i0:i1], pos, mass, eps2, i0)
    return G * acc
