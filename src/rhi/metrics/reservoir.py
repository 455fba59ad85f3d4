from __future__ import annotations

from random import Random

import numpy as np


class LatencyReservoir:
    """Uniform sample of at most ``capacity`` latencies (Algorithm R)."""

    def __init__(self, capacity: int, seed: int | None = None) -> None:
        self.capacity = capacity
        self.seen = 0
        self._rng = Random(seed)
        self._samples: list[float] = []

    def __len__(self) -> int:
        return len(self._samples)

    def add(self, value: float) -> None:
        self.seen += 1
        if len(self._samples) < self.capacity:
            self._samples.append(value)
            return
        idx = self._rng.randrange(self.seen)
        if idx < self.capacity:
            self._samples[idx] = value

    def values(self) -> np.ndarray:
        return np.asarray(self._samples, dtype=float)
