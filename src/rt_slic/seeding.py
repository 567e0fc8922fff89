"""
Initial cluster centres on a regular grid.

Each grid point is nudged to the flattest pixel of its 3x3 neighbourhood so
that no centre starts on an edge.
"""

from __future__ import annotations

import numpy as np
from typing import Tuple


def gradient_map(channel: np.ndarray) -> np.ndarray:
    """
    Squared central differences on a single channel.

    Border pixels have no defined gradient and are set to +inf.
    """
    c = channel.astype(np.float64)
    grad = np.full(c.shape, np.inf, dtype=np.float64)
    if c.shape[0] < 3 or c.shape[1] < 3:
        return grad
    gx = c[1:-1, 2:] - c[1:-1, :-2]
    gy = c[:-2, 1:-1] - c[2:, 1:-1]
    grad[1:-1, 1:-1] = gx ** 2 + gy ** 2
    return grad


def find_lowest_gradient(grad: np.ndarray, x: int, y: int) -> Tuple[int, int]:
    """
    Lowest-gradient pixel in the 3x3 window around (x, y).

    Rows are scanned top to bottom, columns left to right; the first strict
    minimum wins. Returns (x, y) unchanged when no candidate is valid.
    """
    H, W = grad.shape
    best = np.inf
    best_xy = (x, y)
    for ty in range(y - 1, min(y + 2, H - 1)):
        for tx in range(x - 1, min(x + 2, W - 1)):
            if tx < 1 or ty < 1:
                continue
            g = grad[ty, tx]
            if g < best:
                best = g
                best_xy = (tx, ty)
    return best_xy


def place_seeds(image: np.ndarray, sampling_step: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Parameters
    ----------
    image         : (H, W, 3) pixels; channel 0 drives the gradient
    sampling_step : grid spacing in pixels

    Returns
    -------
    positions : (K, 2) float64 (x, y)
    colors    : (K, 3) float64
    """
    H, W = image.shape[:2]
    grad = gradient_map(image[:, :, 0])

    positions, colors = [], []
    for y in range(sampling_step, H, sampling_step):
        for x in range(sampling_step, W, sampling_step):
            sx, sy = find_lowest_gradient(grad, x, y)
            positions.append((sx, sy))
            colors.append(image[sy, sx, :3])

    if not positions:
        return np.empty((0, 2), dtype=np.float64), np.empty((0, 3), dtype=np.float64)
    return (
        np.asarray(positions, dtype=np.float64),
        np.asarray(colors, dtype=np.float64),
    )
