"""
Session-lifetime statistics.

One RunningStat per tracked quantity (residual error, iterations, execution
time). Values accumulate for the whole life of a session and are never
cleared by a full reset of the clustering state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass
class RunningStat:
    minimum: float = math.inf
    maximum: float = -math.inf
    total:   float = 0.0
    count:   int   = 0

    def update(self, value: float) -> None:
        value = float(value)
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)
        self.total  += value
        self.count  += 1

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def as_dict(self) -> dict:
        if not self.count:
            return {"min": None, "max": None, "avg": None, "n": 0}
        return {
            "min": round(self.minimum, 4),
            "max": round(self.maximum, 4),
            "avg": round(self.average, 4),
            "n":   self.count,
        }


@dataclass
class SessionStats:
    error:           RunningStat = field(default_factory=RunningStat)
    iterations:      RunningStat = field(default_factory=RunningStat)
    execution_ms:    RunningStat = field(default_factory=RunningStat)

    def record(self, error: float, iterations: int, execution_ms: float) -> None:
        # A frame stopped by the iteration bound on its first pass has no residual
        if math.isfinite(error):
            self.error.update(error)
        self.iterations.update(iterations)
        self.execution_ms.update(execution_ms)

    def as_dict(self) -> dict:
        return {
            "error":        self.error.as_dict(),
            "iterations":   self.iterations.as_dict(),
            "execution_ms": self.execution_ms.as_dict(),
        }
