"""
Joint colour + position distance between a pixel and a cluster centre.

    D = ||c_centre - c_pixel||^2 + factor * ||p_centre - p_pixel||^2
    factor = (spatial_weight / sampling_step)^2

A larger spatial weight favours compact regions; a coarser grid relaxes the
spatial penalty in proportion.
"""

from __future__ import annotations

import numpy as np


def distance_factor(spatial_weight: float, sampling_step: int) -> float:
    return float(spatial_weight) ** 2 / float(sampling_step) ** 2


def compute_distance(
    centre_color:    np.ndarray,
    centre_position: np.ndarray,
    position:        tuple[float, float],
    color:           np.ndarray,
    factor:          float,
) -> float:
    """
    Distance between one pixel and one centre.

    Parameters
    ----------
    centre_color    : (3,) centre colour
    centre_position : (2,) centre (x, y)
    position        : pixel (x, y)
    color           : (3,) pixel colour
    factor          : see ``distance_factor``
    """
    dc = np.asarray(centre_color, dtype=np.float64) - np.asarray(color, dtype=np.float64)
    dx = float(centre_position[0]) - float(position[0])
    dy = float(centre_position[1]) - float(position[1])
    return float(dc @ dc) + factor * (dx * dx + dy * dy)


def window_distances(
    centre_color:    np.ndarray,
    centre_position: np.ndarray,
    window:          np.ndarray,
    x0: int,
    y0: int,
    factor: float,
) -> np.ndarray:
    """
    Vectorised ``compute_distance`` over an image window.

    window : (h, w, 3) float pixels whose top-left corner is (x0, y0)
    Returns (h, w) float64 distances.
    """
    h, w = window.shape[:2]
    diff = window - centre_color
    color_d = np.einsum("ijk,ijk->ij", diff, diff)

    dx = np.arange(x0, x0 + w, dtype=np.float64) - centre_position[0]
    dy = np.arange(y0, y0 + h, dtype=np.float64) - centre_position[1]
    space_d = dy[:, None] ** 2 + dx[None, :] ** 2

    return color_d + factor * space_d
