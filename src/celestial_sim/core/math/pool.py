"""Reusable pool of scratch 3-vectors for per-tick work."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .vector import ArrayF


@dataclass(slots=True)
class VectorPool:
    """Hands out zeroed (3,) buffers and takes them back at end of tick.

    Vectors acquired from the pool must not be kept past `release`.
    """

    max_size: int = 256
    _free: list[ArrayF] = field(default_factory=list)
    in_use: int = 0

    def acquire(self) -> ArrayF:
        self.in_use += 1
        if self._free:
            v = self._free.pop()
            v.fill(0.0)
            return v
        return np.zeros(3, dtype=np.float64)

    def release(self, v: ArrayF) -> None:
        self.in_use = max(0, self.in_use - 1)
        if len(self._free) < self.max_size:
            self._free.append(v)

    def release_all(self, vectors: list[ArrayF]) -> None:
        for v in vectors:
            self.release(v)
        vectors.clear()

    @property
    def available(self) -> int:
        return len(self._free)
