import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rt_slic.config import (
    CONFIG_DIR, ConvergenceMode, SLICConfig, VideoMode, load_config, load_raw_config,
)


def test_defaults():
    cfg = SLICConfig()
    assert cfg.sampling_step == 16
    assert cfg.convergence is ConvergenceMode.ERROR_THRESHOLD
    assert cfg.video_mode is VideoMode.NONE
    assert cfg.connected_frames


def test_shipped_yaml_matches_defaults():
    assert (CONFIG_DIR / "slic.yaml").exists()
    assert load_config("slic") == SLICConfig()


def test_load_from_path(tmp_path):
    path = tmp_path / "fast.yaml"
    path.write_text(yaml.safe_dump({
        "sampling_step": 24,
        "convergence": "Fixed_Iterations",
        "iterations": 3,
        "video_mode": "key_frames_noise",
    }))
    cfg = load_config(path)
    assert cfg.sampling_step == 24
    assert cfg.convergence is ConvergenceMode.FIXED_ITERATIONS
    assert cfg.video_mode is VideoMode.KEY_FRAMES_NOISE
    assert cfg.spatial_weight == 10.0


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_raw_config(path) == {}
    assert load_config(path) == SLICConfig()


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does_not_exist")


def test_unknown_keys_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"sampling_step": 8, "superpixels": 400}))
    with pytest.raises(ValueError, match="superpixels"):
        load_config(path)


def test_integer_enums_accepted():
    cfg = SLICConfig(convergence=0, video_mode=5)
    assert cfg.convergence is ConvergenceMode.FIXED_ITERATIONS
    assert cfg.video_mode is VideoMode.ADD_SUPERPIXELS_NOISE


@pytest.mark.parametrize("kwargs", [
    {"sampling_step": 0},
    {"spatial_weight": 0},
    {"error_threshold": -0.1},
    {"iterations": 0},
    {"key_frame_ratio": 0},
    {"noise_std": -1},
    {"n_workers": 0},
    {"max_iterations": 0},
    {"video_mode": "sometimes"},
    {"convergence": 7},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        SLICConfig(**kwargs)


def test_mode_properties():
    assert VideoMode.KEY_FRAMES.uses_key_frames
    assert VideoMode.KEY_FRAMES_NOISE.uses_key_frames and VideoMode.KEY_FRAMES_NOISE.adds_noise
    assert VideoMode.ADD_SUPERPIXELS.adds_superpixels
    assert not VideoMode.ADD_SUPERPIXELS.adds_noise
    assert VideoMode.ADD_SUPERPIXELS_NOISE.adds_superpixels and VideoMode.ADD_SUPERPIXELS_NOISE.adds_noise
    assert not any([VideoMode.NONE.uses_key_frames, VideoMode.NONE.adds_noise,
                    VideoMode.NONE.adds_superpixels])
