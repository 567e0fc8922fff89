"""
rt-slic per-frame pipeline.

Orchestrates:
  1. Temporal policy  → reset / jitter / carry the previous centres
  2. Refinement loop  → assign, update, converge (+ adaptive reseeding)
  3. Connectivity     → merge undersized fragments
  4. Statistics       → session-lifetime min / max / average

Usage
-----
pipeline = SuperpixelPipeline(SLICConfig(sampling_step=16))
session  = SLICSession()
for frame in frames:                    # (H, W, 3) Lab
    result = pipeline.process(frame, session)
    labels = result.labels

All cross-frame state lives in the session object, one per stream.
"""

from __future__ import annotations

import numpy as np
import time
from dataclasses import dataclass, field
from typing import Optional

from .config import SLICConfig
from .connectivity import enforce_connectivity
from .refinement import RefinementLoop, RefinementReport
from .reseeding import AdaptiveReseeder, OrphanRegionServices
from .state import ClusterState
from .stats import SessionStats
from .temporal import FrameStart, TemporalPolicy


@dataclass
class SLICSession:
    """Everything that survives from one frame to the next."""
    state:       Optional[ClusterState] = None
    frame_index: int = 0
    stats:       SessionStats = field(default_factory=SessionStats)
    rng:         np.random.Generator = field(default_factory=np.random.default_rng)

    @classmethod
    def seeded(cls, seed: Optional[int]) -> "SLICSession":
        return cls(rng=np.random.default_rng(seed))

    def reset(self) -> None:
        """Drop the clustering state; the next frame starts from fresh seeds."""
        self.state = None


@dataclass
class FrameResult:
    """All outputs from one processed frame."""
    labels:          np.ndarray              # (H, W) int32, -1 = unassigned
    colors:          np.ndarray              # (K, 3) mean colour per cluster
    positions:       np.ndarray              # (K, 2) mean (x, y) per cluster
    counts:          np.ndarray              # (K,) pixels per cluster
    start:           FrameStart
    report:          RefinementReport
    residual_error:  float
    merged_regions:  int = 0
    frame_index:     int = 0
    timing:          dict = field(default_factory=dict)

    @property
    def clusters_number(self) -> int:
        return int(self.counts.shape[0])


class SuperpixelPipeline:
    """
    Full per-frame superpixel pipeline.

    Parameters
    ----------
    config   : SLICConfig (defaults if None)
    services : orphan-region services for additive modes (OpenCV if None)
    """

    def __init__(
        self,
        config:   Optional[SLICConfig] = None,
        services: Optional[OrphanRegionServices] = None,
    ):
        self.config   = config or SLICConfig()
        self.temporal = TemporalPolicy(self.config)
        self.refiner  = RefinementLoop(self.config, AdaptiveReseeder(services))

    def new_session(self) -> SLICSession:
        return SLICSession.seeded(self.config.seed)

    def process(self, frame: np.ndarray, session: SLICSession) -> FrameResult:
        """
        Segment one frame, continuing from ``session``.

        Parameters
        ----------
        frame   : (H, W, 3) image, typically Lab uint8
        session : per-stream state, updated in place
        """
        if frame.ndim != 3 or frame.shape[2] < 3:
            raise ValueError(f"Expected an (H, W, 3) image, got shape {frame.shape}")

        timing: dict[str, float] = {}
        t_frame = time.perf_counter()
        image = np.ascontiguousarray(frame[:, :, :3], dtype=np.float64)

        t = time.perf_counter()
        start = self.temporal.prepare(session, image)
        state = session.state
        timing["prepare"] = time.perf_counter() - t

        t = time.perf_counter()
        report = self.refiner.run(state, image)
        timing["refine"] = time.perf_counter() - t

        merged = 0
        if self.config.enforce_connectivity:
            t = time.perf_counter()
            merged = enforce_connectivity(state, image)
            timing["connectivity"] = time.perf_counter() - t

        timing["total"] = time.perf_counter() - t_frame
        session.stats.record(state.total_residual_error, report.iterations, timing["total"] * 1000.0)

        result = FrameResult(
            labels=state.labels.copy(),
            colors=state.colors.copy(),
            positions=state.positions.copy(),
            counts=state.counts.copy(),
            start=start,
            report=report,
            residual_error=state.total_residual_error,
            merged_regions=merged,
            frame_index=session.frame_index,
            timing=timing,
        )
        session.frame_index += 1
        return result
