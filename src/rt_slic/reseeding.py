"""
Adaptive reseeding of orphan regions.

An orphan pixel is one that no cluster's search window examined during the
current frame. When the refinement loop is about to stop in an additive
video mode, the orphan mask is dilated into blobs, framed so that blobs on
the image border still close, and handed to three injected services:

  extract_edges(mask)        -> edge image
  trace_contours(edges)      -> list of (N, 1, 2) or (N, 2) point arrays
  compute_moments(contour)   -> (m00, m10, m01)

Every contour with a non-zero area becomes a new cluster centred on its
centroid, with zero colour and no pixels.
"""

from __future__ import annotations

import logging
import numpy as np
import cv2
from typing import Protocol, Sequence, Tuple

from .state import ClusterState

logger = logging.getLogger(__name__)


ORPHAN_VALUE     = 255
DILATION_SIZE    = 11     # Odd, so the dilation does not shift blob centroids
FRAME_THICKNESS  = 2


class OrphanRegionServices(Protocol):
    def extract_edges(self, mask: np.ndarray) -> np.ndarray: ...

    def trace_contours(self, edges: np.ndarray) -> Sequence[np.ndarray]: ...

    def compute_moments(self, contour: np.ndarray) -> Tuple[float, float, float]: ...


class OpenCVOrphanServices:
    """Canny edges, external contours and polygon moments from OpenCV."""

    def __init__(self, low_threshold: float = 100, high_threshold: float = 200, aperture: int = 3):
        self.low_threshold  = low_threshold
        self.high_threshold = high_threshold
        self.aperture       = aperture

    def extract_edges(self, mask: np.ndarray) -> np.ndarray:
        return cv2.Canny(mask, self.low_threshold, self.high_threshold, apertureSize=self.aperture)

    def trace_contours(self, edges: np.ndarray) -> Sequence[np.ndarray]:
        found = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return found[-2]

    def compute_moments(self, contour: np.ndarray) -> Tuple[float, float, float]:
        mu = cv2.moments(contour)
        return mu["m00"], mu["m10"], mu["m01"]


def orphan_mask(reached: np.ndarray) -> np.ndarray:
    """Dilated, framed uint8 mask (255 = orphan) ready for edge extraction."""
    mask = np.where(reached, 0, ORPHAN_VALUE).astype(np.uint8)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (DILATION_SIZE, DILATION_SIZE))
    mask = cv2.dilate(mask, kernel)
    t = FRAME_THICKNESS
    mask[:t, :] = 0
    mask[-t:, :] = 0
    mask[:, :t] = 0
    mask[:, -t:] = 0
    return mask


class AdaptiveReseeder:
    """
    Spawns cluster centres inside regions no search window reached.

    Example
    -------
    reseeder = AdaptiveReseeder()                 # OpenCV services
    reseeder = AdaptiveReseeder(my_services)      # stubbed in tests
    spawned  = reseeder.reseed(state)
    """

    def __init__(self, services: OrphanRegionServices | None = None):
        self.services = services or OpenCVOrphanServices()

    def has_orphans(self, state: ClusterState) -> bool:
        return state.reached is not None and not bool(state.reached.all())

    def reseed(self, state: ClusterState) -> int:
        """Append one cluster per orphan blob; returns how many were added."""
        if not self.has_orphans(state):
            return 0

        mask     = orphan_mask(state.reached)
        edges    = self.services.extract_edges(mask)
        contours = self.services.trace_contours(edges)

        spawned = 0
        for contour in contours:
            m00, m10, m01 = self.services.compute_moments(contour)
            if m00 == 0:
                continue
            state.append_cluster((m10 / m00, m01 / m00))
            spawned += 1

        logger.debug(
            "reseed: %d orphan pixels, %d contours, %d new clusters (total %d)",
            int((~state.reached).sum()), len(contours), spawned, state.clusters_number,
        )
        return spawned
