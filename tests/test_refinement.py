"""
Refinement loop: assignment window, centre update and convergence.
Run: pytest tests/ -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rt_slic.config import SLICConfig, ConvergenceMode, VideoMode
from rt_slic.refinement import RefinementLoop
from rt_slic.state import ClusterState
from rt_slic.temporal import TemporalPolicy


COLOR = (60, 130, 140)


def _uniform(H, W):
    img = np.zeros((H, W, 3), dtype=np.float64)
    img[:] = COLOR
    return img


def _noise(H=48, W=64, seed=0):
    rng = np.random.RandomState(seed)
    img = rng.randint(20, 220, (H, W, 3)).astype(np.float64)
    img[:, W // 2:, 0] += 30
    return img


def _run(image, cfg):
    state  = TemporalPolicy(cfg).initialise(image)
    report = RefinementLoop(cfg).run(state, image)
    return state, report


class TestScenario12x12:

    def _cfg(self):
        return SLICConfig(
            sampling_step=4, spatial_weight=10,
            convergence=ConvergenceMode.FIXED_ITERATIONS, iterations=5,
            n_workers=1,
        )

    def test_four_initial_centres(self):
        state = TemporalPolicy(self._cfg()).initialise(_uniform(12, 12))
        assert state.clusters_number == 4

    def test_all_assigned_after_first_pass(self):
        cfg = self._cfg()
        cfg.iterations = 1
        state, report = _run(_uniform(12, 12), cfg)
        assert report.iterations == 1
        assert (state.labels >= 0).all()
        assert (state.labels < 4).all()

    def test_zero_residual_and_uniform_colour(self):
        state, report = _run(_uniform(12, 12), self._cfg())
        assert report.iterations == 5
        assert len(report.residual_history) == 4
        assert all(r == pytest.approx(0.0) for r in report.residual_history)
        assert np.allclose(state.colors, COLOR)
        assert state.counts.tolist() == [36, 36, 36, 36]
        assert np.allclose(
            state.positions, [[2.5, 2.5], [8.5, 2.5], [2.5, 8.5], [8.5, 8.5]]
        )


class TestConvergence:

    def test_error_threshold_static_image(self):
        cfg = SLICConfig(sampling_step=8, spatial_weight=10, error_threshold=0.01,
                         convergence="error_threshold", n_workers=1)
        state, report = _run(_uniform(40, 40), cfg)
        hist = report.residual_history
        assert len(hist) >= 1
        assert all(b <= a + 1e-9 for a, b in zip(hist, hist[1:]))
        assert hist[-1] == pytest.approx(0.0)
        assert report.iterations <= 10
        assert not report.hit_limit

    def test_first_pass_sets_baseline_only(self):
        cfg = SLICConfig(sampling_step=8, convergence="fixed_iterations", iterations=1, n_workers=1)
        state, report = _run(_noise(), cfg)
        assert np.isinf(state.total_residual_error)
        assert report.residual_history == []
        assert np.array_equal(state.previous_positions, state.positions)

    def test_max_iterations_cap(self):
        cfg = SLICConfig(sampling_step=8, error_threshold=0.0, max_iterations=3,
                         convergence="error_threshold", n_workers=1)
        _, report = _run(_noise(), cfg)
        assert report.iterations <= 3

    def test_residual_is_mean_displacement(self):
        image = _noise()
        state = ClusterState.from_seeds(
            image.shape[:2], [[10.0, 10.0], [40.0, 30.0]], image[[10, 30], [10, 40]], 8, 10, 0.1
        )
        first = state.positions.copy()
        loop  = RefinementLoop(SLICConfig(sampling_step=8, n_workers=1))

        loop.converge(state, first_pass=True)
        assert np.isinf(state.total_residual_error)

        state.positions = first + [[3.0, 4.0], [0.0, 1.0]]
        error = loop.converge(state, first_pass=False)
        assert state.residuals.tolist() == pytest.approx([5.0, 1.0])
        assert error == pytest.approx(3.0)
        assert np.array_equal(state.previous_positions, state.positions)


class TestAssignment:

    @pytest.mark.parametrize("workers", [1, 4, None])
    def test_labels_valid(self, workers):
        cfg = SLICConfig(sampling_step=6, convergence="fixed_iterations", iterations=3,
                         n_workers=workers)
        state, _ = _run(_noise(), cfg)
        assert state.labels.min() >= -1
        assert state.labels.max() < state.clusters_number

    def test_mean_invariant_after_update(self):
        image = _noise()
        cfg   = SLICConfig(sampling_step=8, convergence="fixed_iterations", iterations=2, n_workers=4)
        state, _ = _run(image, cfg)
        for k in range(state.clusters_number):
            ys, xs = np.nonzero(state.labels == k)
            if len(ys) == 0:
                continue
            assert np.allclose(state.colors[k], image[ys, xs].mean(axis=0))
            assert np.allclose(state.positions[k], [xs.mean(), ys.mean()])

    def test_window_is_bounded(self):
        image = _uniform(40, 40)
        state = ClusterState.from_seeds((40, 40), [[5.0, 5.0]], [COLOR], 4, 10, 0.1)
        state.reached = np.zeros((40, 40), dtype=bool)
        cfg = SLICConfig(sampling_step=4, video_mode="add_superpixels", n_workers=1)
        RefinementLoop(cfg).assign(state, image, lambda fn, n: [fn(k) for k in range(n)])
        # int(5) - 4 - 1 = 0 ... ceil(5 + 4 + 1) = 10 (exclusive)
        assert state.reached[:10, :10].all()
        assert not state.reached[10:, :].any()
        assert not state.reached[:, 10:].any()
        assert (state.labels[:10, :10] == 0).all()
        assert (state.labels[10:, :] == -1).all()

    def test_unreached_pixels_stay_unassigned(self):
        image = _uniform(30, 30)
        state = ClusterState.from_seeds((30, 30), [[3.0, 3.0]], [COLOR], 3, 10, 0.1)
        cfg = SLICConfig(sampling_step=3, convergence="fixed_iterations", iterations=2, n_workers=1)
        RefinementLoop(cfg).run(state, image)
        assert (state.labels[-1, -1] == -1)
        assert (state.labels[0, 0] == 0)
