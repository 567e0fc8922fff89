"""
Mutable clustering state shared across iterations and frames.

Pixel arrays (H, W)
-------------------
  labels         int32    cluster index, -1 = unassigned
  best_distance  float64  smallest distance seen in the current pass
  reached        bool     examined by some search window (additive modes only)

Cluster table (K rows, structure of arrays)
-------------------------------------------
  colors, positions                 current mean colour / (x, y)
  previous_colors, previous_positions  values from the previous pass
  counts                            assigned pixels
  residuals                         displacement since the previous pass

Rows are only ever appended, so an index stored in ``labels`` stays valid
until the state is discarded by a full reset.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field
from typing import Optional

from .distance import distance_factor


def _empty(cols: int) -> np.ndarray:
    return np.empty((0, cols), dtype=np.float64)


@dataclass
class ClusterState:
    height:          int
    width:           int
    sampling_step:   int
    spatial_weight:  float
    error_threshold: float
    labels:          np.ndarray = field(repr=False, default=None)
    best_distance:   np.ndarray = field(repr=False, default=None)
    reached:         Optional[np.ndarray] = field(repr=False, default=None)

    colors:             np.ndarray = field(repr=False, default_factory=lambda: _empty(3))
    positions:          np.ndarray = field(repr=False, default_factory=lambda: _empty(2))
    previous_colors:    np.ndarray = field(repr=False, default_factory=lambda: _empty(3))
    previous_positions: np.ndarray = field(repr=False, default_factory=lambda: _empty(2))
    counts:    np.ndarray = field(repr=False, default_factory=lambda: np.empty(0, dtype=np.int64))
    residuals: np.ndarray = field(repr=False, default_factory=lambda: np.empty(0, dtype=np.float64))

    total_residual_error: float = float("inf")
    iteration_index:      int   = 0

    def __post_init__(self):
        if self.labels is None:
            self.labels = np.full((self.height, self.width), -1, dtype=np.int32)
        if self.best_distance is None:
            self.best_distance = np.full((self.height, self.width), np.inf, dtype=np.float64)

    # ------------------------------------------------------------------  construction

    @classmethod
    def from_seeds(
        cls,
        shape:           tuple[int, int],
        positions:       np.ndarray,
        colors:          np.ndarray,
        sampling_step:   int,
        spatial_weight:  float,
        error_threshold: float,
    ) -> "ClusterState":
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        colors    = np.asarray(colors,    dtype=np.float64).reshape(-1, 3)
        k = positions.shape[0]
        return cls(
            height=int(shape[0]),
            width=int(shape[1]),
            sampling_step=int(sampling_step),
            spatial_weight=float(spatial_weight),
            error_threshold=float(error_threshold),
            colors=colors.copy(),
            positions=positions.copy(),
            previous_colors=colors.copy(),
            previous_positions=positions.copy(),
            counts=np.zeros(k, dtype=np.int64),
            residuals=np.zeros(k, dtype=np.float64),
        )

    # ------------------------------------------------------------------  properties

    @property
    def clusters_number(self) -> int:
        return int(self.counts.shape[0])

    @property
    def pixels_number(self) -> int:
        return self.height * self.width

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @property
    def distance_factor(self) -> float:
        return distance_factor(self.spatial_weight, self.sampling_step)

    # ------------------------------------------------------------------  mutation

    def append_cluster(self, position, color=None) -> int:
        """Append one cluster row to every table and return its index."""
        pos = np.asarray(position, dtype=np.float64).reshape(1, 2)
        col = np.zeros((1, 3)) if color is None else np.asarray(color, dtype=np.float64).reshape(1, 3)

        self.colors             = np.concatenate([self.colors, col])
        self.positions          = np.concatenate([self.positions, pos])
        self.previous_colors    = np.concatenate([self.previous_colors, col])
        self.previous_positions = np.concatenate([self.previous_positions, pos])
        self.counts    = np.append(self.counts, 0)
        self.residuals = np.append(self.residuals, 0.0)
        return self.clusters_number - 1

    def reset_distances(self) -> None:
        self.best_distance.fill(np.inf)

    def recompute_centres(self, image: np.ndarray) -> None:
        """
        Set every centre to the mean colour / position of its pixels.

        Clusters without pixels end up all zero.
        """
        k = self.clusters_number
        flat = self.labels.ravel()
        assigned = np.flatnonzero(flat >= 0)
        idx = flat[assigned]

        counts = np.bincount(idx, minlength=k).astype(np.int64)
        ys, xs = np.divmod(assigned, self.width)
        pixels = image.reshape(-1, image.shape[-1])[assigned]

        sums = np.zeros((k, 5), dtype=np.float64)
        for c in range(3):
            sums[:, c] = np.bincount(idx, weights=pixels[:, c], minlength=k)
        sums[:, 3] = np.bincount(idx, weights=xs, minlength=k)
        sums[:, 4] = np.bincount(idx, weights=ys, minlength=k)

        nonzero = counts > 0
        sums[nonzero] /= counts[nonzero, None]

        self.colors    = sums[:, :3]
        self.positions = sums[:, 3:]
        self.counts    = counts
