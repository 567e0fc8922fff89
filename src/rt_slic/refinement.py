"""
Iterative centre refinement.

Each pass runs three phases separated by a join:

  1. Assigning  one task per cluster scans a 2*(step+1) window around the
                centre and claims pixels it is strictly closer to.
  2. Updating   centres move to the mean of their pixels.
  3. Residual   mean centre displacement against the previous pass.

Assigning writes ``best_distance`` / ``labels`` from several threads with no
lock. Two tasks may interleave their compare and write on the same pixel, so
a pixel can end up with either of two centres that tie (or nearly tie) in
the same pass. Convergence does not depend on that order. With
``n_workers=1`` the tasks run inline and ties go to the lowest index.
"""

from __future__ import annotations

import logging
import math
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import ConvergenceMode, SLICConfig
from .distance import window_distances
from .reseeding import AdaptiveReseeder
from .state import ClusterState

logger = logging.getLogger(__name__)


@dataclass
class RefinementReport:
    """Summary of one frame's refinement."""
    iterations:       int
    residual_history: List[float] = field(default_factory=list)
    spawned_clusters: int = 0
    reseed_rounds:    int = 0
    hit_limit:        bool = False


class RefinementLoop:
    """
    Lloyd-style assign / update / converge loop over a ClusterState.

    Parameters
    ----------
    config   : SLICConfig (convergence mode, bounds, worker count)
    reseeder : AdaptiveReseeder used in additive video modes
    """

    def __init__(self, config: SLICConfig, reseeder: Optional[AdaptiveReseeder] = None):
        self.config   = config
        self.reseeder = reseeder or AdaptiveReseeder()

    # ------------------------------------------------------------------  phases

    def assign(self, state: ClusterState, image: np.ndarray, fan_out: Callable) -> None:
        state.reset_distances()
        step   = state.sampling_step
        factor = state.distance_factor
        H, W   = state.shape
        mark   = state.reached is not None

        def task(k: int) -> None:
            cx, cy = state.positions[k]
            y0 = max(int(cy) - step - 1, 0)
            y1 = min(math.ceil(cy + step + 1), H)
            x0 = max(int(cx) - step - 1, 0)
            x1 = min(math.ceil(cx + step + 1), W)
            if y0 >= y1 or x0 >= x1:
                return

            d = window_distances(
                state.colors[k], state.positions[k], image[y0:y1, x0:x1], x0, y0, factor
            )
            best   = state.best_distance[y0:y1, x0:x1]
            labels = state.labels[y0:y1, x0:x1]
            closer = d < best
            best[closer]   = d[closer]
            labels[closer] = k
            if mark:
                state.reached[y0:y1, x0:x1] = True

        fan_out(task, state.clusters_number)

    @staticmethod
    def update(state: ClusterState, image: np.ndarray) -> None:
        state.recompute_centres(image)

    @staticmethod
    def converge(state: ClusterState, first_pass: bool) -> float:
        """Residual bookkeeping; returns the frame's current total error."""
        if not first_pass:
            delta = state.positions - state.previous_positions
            state.residuals = np.sqrt((delta ** 2).sum(axis=1))
            k = state.clusters_number
            state.total_residual_error = float(state.residuals.sum() / k) if k else 0.0

        state.previous_positions = state.positions.copy()
        state.previous_colors    = state.colors.copy()
        return state.total_residual_error

    # ------------------------------------------------------------------  loop

    def _terminal(self, state: ClusterState, iterations: int) -> bool:
        cfg = self.config
        if cfg.convergence == ConvergenceMode.FIXED_ITERATIONS:
            return iterations >= cfg.iterations
        return state.total_residual_error <= state.error_threshold

    def run(self, state: ClusterState, image: np.ndarray) -> RefinementReport:
        """
        Refine ``state`` against ``image`` until the convergence mode is met.

        image : (H, W, 3) float64
        """
        cfg = self.config
        reseeding = cfg.video_mode.adds_superpixels
        report = RefinementReport(iterations=0)

        pool = None if cfg.n_workers == 1 else ThreadPoolExecutor(max_workers=cfg.n_workers)

        def fan_out(fn: Callable[[int], None], n: int) -> None:
            if pool is None:
                for k in range(n):
                    fn(k)
            else:
                # Consuming the iterator re-raises task errors and acts as the barrier
                list(pool.map(fn, range(n)))

        try:
            while True:
                self.assign(state, image, fan_out)
                self.update(state, image)
                error = self.converge(state, first_pass=report.iterations == 0)

                report.iterations += 1
                state.iteration_index = report.iterations
                if report.iterations > 1:
                    report.residual_history.append(error)
                logger.debug("pass %d: residual=%.4f clusters=%d",
                             report.iterations, error, state.clusters_number)

                done = self._terminal(state, report.iterations)
                if (
                    cfg.convergence == ConvergenceMode.ERROR_THRESHOLD
                    and not done
                    and report.iterations >= cfg.max_iterations
                ):
                    logger.warning(
                        "residual %.4f still above %.4f after %d passes, stopping",
                        error, state.error_threshold, report.iterations,
                    )
                    report.hit_limit = True
                    done = True

                if (
                    done
                    and reseeding
                    and report.reseed_rounds < cfg.max_reseed_rounds
                    and self.reseeder.has_orphans(state)
                ):
                    spawned = self.reseeder.reseed(state)
                    report.reseed_rounds += 1
                    if spawned:
                        report.spawned_clusters += spawned
                        continue

                if done:
                    break
        finally:
            if pool is not None:
                pool.shutdown(wait=True)

        return report
