"""
Rendering helpers for rt-slic results.

Functions
---------
fill_superpixels      : paint every region with its cluster's mean colour
draw_cluster_contours : mark pixels bordering a different cluster
draw_cluster_centres  : small circle on every centre
plot_convergence      : residual error per pass, one line per frame

None of these mutate the labels or the cluster table.
"""

from __future__ import annotations

import numpy as np
import cv2
from typing import Optional, Sequence, Tuple

from skimage.segmentation import find_boundaries

try:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    _MPL = True
except ImportError:
    _MPL = False


def _check_shapes(image: np.ndarray, labels: np.ndarray) -> None:
    if image.shape[:2] != labels.shape:
        raise ValueError(f"Label map {labels.shape} does not match image {image.shape[:2]}")


def fill_superpixels(
    image:  np.ndarray,
    labels: np.ndarray,
    colors: np.ndarray,
) -> np.ndarray:
    """Copy of ``image`` with assigned pixels replaced by their centre colour."""
    _check_shapes(image, labels)
    out   = image.copy()
    valid = (labels >= 0) & (labels < colors.shape[0])
    fill  = np.clip(np.rint(colors), 0, 255) if out.dtype == np.uint8 else colors
    out[valid] = fill[labels[valid], :out.shape[2]].astype(out.dtype)
    return out


def draw_cluster_contours(
    image:  np.ndarray,
    labels: np.ndarray,
    color:  Tuple[int, int, int] = (0, 0, 255),
) -> np.ndarray:
    """
    Paint contour pixels in place and return the image.

    A pixel is a contour pixel when it is assigned and one of its eight
    neighbours belongs to another cluster or is unassigned.
    """
    _check_shapes(image, labels)
    shifted = labels.astype(np.int64) + 1
    contour = find_boundaries(shifted, connectivity=2, mode="inner", background=0)
    contour &= labels >= 0
    image[contour] = color
    return image


def draw_cluster_centres(
    image:     np.ndarray,
    positions: np.ndarray,
    color:     Tuple[int, int, int] = (255, 0, 0),
    radius:    int = 2,
) -> np.ndarray:
    for x, y in positions:
        cv2.circle(image, (int(x), int(y)), radius, color, 2)
    return image


def plot_convergence(
    histories: Sequence[Sequence[float]],
    threshold: Optional[float] = None,
    save_path: Optional[str] = None,
) -> Optional["plt.Figure"]:
    """
    Plot residual error against pass number for a run of frames.

    Parameters
    ----------
    histories : ``RefinementReport.residual_history`` for each frame
    threshold : drawn as a dashed line when given
    save_path : if provided, save the figure to this path
    """
    if not _MPL:
        print("[visualise] matplotlib not installed, skipping plots.")
        return None

    fig, ax = plt.subplots(figsize=(7, 4))
    for i, hist in enumerate(histories):
        if len(hist):
            ax.plot(range(2, len(hist) + 2), hist, alpha=0.6, linewidth=1,
                    label=f"frame {i}" if len(histories) <= 10 else None)
    if threshold is not None:
        ax.axhline(threshold, color="tomato", linestyle="--", linewidth=1.5, label="threshold")
    ax.set_xlabel("Pass"); ax.set_ylabel("Mean residual (px)")
    ax.set_title("Residual error per pass")
    ax.grid(alpha=0.3)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(fontsize=8)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=120)
    return fig
