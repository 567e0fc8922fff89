"""
Frame-to-frame continuity.

Before refinement, every frame goes through one decision (first match wins):

  1. full reset   continuity off, no previous state, shape change, key frame,
                  or runaway cluster count in an additive mode
  2. jitter       noise modes add N(0, noise_std) to every centre's x and y
  3. carry over   previous centres are used as they are
"""

from __future__ import annotations

import logging
import numpy as np
from enum import Enum
from typing import Optional

from .config import SLICConfig
from .seeding import place_seeds
from .state import ClusterState

logger = logging.getLogger(__name__)


class FrameStart(str, Enum):
    RESET     = "reset"
    JITTER    = "jitter"
    CARRY     = "carry"


class TemporalPolicy:

    def __init__(self, config: SLICConfig):
        self.config = config

    def needs_reset(self, state: Optional[ClusterState], shape: tuple, frame_index: int) -> Optional[str]:
        """Reason for a full reset, or None when the previous state can be reused."""
        cfg  = self.config
        mode = cfg.video_mode
        if not cfg.connected_frames:
            return "frames not connected"
        if state is None or state.clusters_number == 0:
            return "no previous state"
        if state.shape != tuple(shape):
            return f"frame shape changed {state.shape} -> {tuple(shape)}"
        if mode.uses_key_frames and frame_index % cfg.key_frame_ratio == 0:
            return f"key frame {frame_index}"
        if mode.adds_superpixels and state.clusters_number > cfg.max_clusters:
            return f"{state.clusters_number} clusters > {cfg.max_clusters}"
        return None

    def initialise(self, image: np.ndarray) -> ClusterState:
        cfg = self.config
        positions, colors = place_seeds(image, cfg.sampling_step)
        return ClusterState.from_seeds(
            image.shape[:2], positions, colors,
            cfg.sampling_step, cfg.spatial_weight, cfg.error_threshold,
        )

    def prepare(self, session, image: np.ndarray) -> FrameStart:
        """
        Configure ``session.state`` for the next frame.

        session : SLICSession (state, frame_index and rng are used)
        image   : (H, W, 3) float64 frame
        """
        cfg = self.config
        reason = self.needs_reset(session.state, image.shape[:2], session.frame_index)

        if reason is not None:
            session.state = self.initialise(image)
            start = FrameStart.RESET
            logger.debug("frame %d: full reset (%s), %d seeds",
                         session.frame_index, reason, session.state.clusters_number)
        elif cfg.video_mode.adds_noise:
            state = session.state
            jitter = session.rng.normal(0.0, cfg.noise_std, size=state.positions.shape)
            state.positions = state.positions + jitter
            start = FrameStart.JITTER
        else:
            start = FrameStart.CARRY

        state = session.state
        state.total_residual_error = float("inf")
        state.iteration_index = 0
        if cfg.video_mode.adds_superpixels:
            state.reached = np.zeros(state.shape, dtype=bool)
        else:
            state.reached = None
        return start
