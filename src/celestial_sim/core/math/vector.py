"""3-vector helpers over NumPy arrays shaped (..., 3)."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


ArrayF = NDArray[np.float64]


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> ArrayF:
    return np.array([x, y, z], dtype=np.float64)


def as_vec3(v: object, name: str = "vector") -> ArrayF:
    """Coerce to a contiguous float64 3-vector or raise ValueError."""
    arr = np.ascontiguousarray(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,)")
    return arr


def unit(v: ArrayF, axis: int = -1) -> ArrayF:
    """Unit vectors along `axis`; zero vectors stay zero."""
    v = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(v, axis=axis, keepdims=True)
    out = np.zeros_like(v)
    np.divide(v, n, out=out, where=n > 0.0)
    return out


def distance(a: ArrayF, b: ArrayF) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - b))
