"""
rt-slic

Real-time SLIC superpixels for images and video streams: cluster centres are
refined in a joint colour + position space and carried from frame to frame,
with adaptive reseeding of uncovered regions and connectivity repair.

"""

from .config import (
    SLICConfig, ConvergenceMode, VideoMode,
    load_config, load_raw_config,
)
from .distance import distance_factor, compute_distance, window_distances
from .seeding import place_seeds, find_lowest_gradient, gradient_map
from .state import ClusterState
from .stats import RunningStat, SessionStats
from .refinement import RefinementLoop, RefinementReport
from .temporal import TemporalPolicy, FrameStart
from .reseeding import AdaptiveReseeder, OrphanRegionServices, OpenCVOrphanServices, orphan_mask
from .connectivity import enforce_connectivity, small_region_limit
from .pipeline import SuperpixelPipeline, SLICSession, FrameResult
from .visualise import (
    fill_superpixels, draw_cluster_contours,
    draw_cluster_centres, plot_convergence,
)

__version__ = "0.1.0"

__all__ = [
    "SLICConfig", "ConvergenceMode", "VideoMode", "load_config", "load_raw_config",

    "distance_factor", "compute_distance", "window_distances",

    "place_seeds", "find_lowest_gradient", "gradient_map",

    "ClusterState", "RunningStat", "SessionStats",

    "RefinementLoop", "RefinementReport",
    "TemporalPolicy", "FrameStart",
    "AdaptiveReseeder", "OrphanRegionServices", "OpenCVOrphanServices", "orphan_mask",
    "enforce_connectivity", "small_region_limit",

    "SuperpixelPipeline", "SLICSession", "FrameResult",

    "fill_superpixels", "draw_cluster_contours",
    "draw_cluster_centres", "plot_convergence",
]
