"""
Connectivity repair after refinement.

Regions are 8-connected pixels sharing a label. They are visited in raster
order of their first pixel; any region with at most a quarter of the average
cluster size is relabelled to a neighbouring cluster.

The merge target is looked up around the region's first pixel: the first
8-neighbour (raster order) that belongs to an earlier region and carries a
valid label different from the region's own. When nothing qualifies the
target from the previous region is kept, starting from cluster 0.
"""

from __future__ import annotations

import logging
import numpy as np
from skimage.measure import label as label_regions

from .state import ClusterState

logger = logging.getLogger(__name__)

_NEIGHBOURS = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]


def small_region_limit(pixels_number: int, clusters_number: int) -> int:
    average = int(pixels_number / clusters_number + 0.5)
    return average // 4


def enforce_connectivity(state: ClusterState, image: np.ndarray) -> int:
    """
    Merge undersized fragments, then recompute every centre.

    Returns the number of regions that were relabelled.
    """
    if state.clusters_number == 0:
        return 0

    H, W   = state.shape
    labels = state.labels
    flat   = labels.ravel()
    limit  = small_region_limit(state.pixels_number, state.clusters_number)

    # Shift so that -1 (unassigned) still forms regions instead of background
    regions = label_regions(labels.astype(np.int64) + 2, background=0, connectivity=2)
    region_flat = regions.ravel()
    sizes = np.bincount(region_flat)

    region_ids, first = np.unique(region_flat, return_index=True)
    order = np.argsort(first, kind="stable")
    region_ids, first = region_ids[order], first[order]

    rank = np.full(sizes.shape[0], -1, dtype=np.int64)
    rank[region_ids] = np.arange(region_ids.shape[0])
    new_label = np.full(sizes.shape[0], -1, dtype=np.int64)

    adjacent = 0
    merged = 0
    for rid, start in zip(region_ids, first):
        own = int(flat[start])
        y, x = divmod(int(start), W)

        for dy, dx in _NEIGHBOURS:
            ny, nx_ = y + dy, x + dx
            if not (0 <= ny < H and 0 <= nx_ < W):
                continue
            nrid = regions[ny, nx_]
            if rank[nrid] >= rank[rid]:
                continue
            candidate = int(new_label[nrid])
            if candidate >= 0 and candidate != own:
                adjacent = candidate
                break

        if sizes[rid] <= limit:
            new_label[rid] = adjacent
            merged += int(adjacent != own)
        else:
            new_label[rid] = own

    state.labels = new_label[regions].astype(np.int32)
    state.recompute_centres(image)

    logger.debug("connectivity: %d regions, %d merged (limit %d px)",
                 region_ids.shape[0], merged, limit)
    return merged
