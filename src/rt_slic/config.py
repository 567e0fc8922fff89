"""
Configuration for rt-slic.

Modes
-----
ConvergenceMode  : when the refinement loop stops
VideoMode        : how cluster state is carried from one frame to the next

Values can be built in code or read from ``config/<name>.yaml``:

    cfg = load_config("slic")
"""

from __future__ import annotations

import yaml
from enum import IntEnum
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Union


CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class ConvergenceMode(IntEnum):
    FIXED_ITERATIONS = 0
    ERROR_THRESHOLD  = 1


class VideoMode(IntEnum):
    NONE                  = 0
    NOISE                 = 1
    KEY_FRAMES            = 2
    KEY_FRAMES_NOISE      = 3
    ADD_SUPERPIXELS       = 4
    ADD_SUPERPIXELS_NOISE = 5

    @property
    def uses_key_frames(self) -> bool:
        return self in (VideoMode.KEY_FRAMES, VideoMode.KEY_FRAMES_NOISE)

    @property
    def adds_noise(self) -> bool:
        return self in (
            VideoMode.NOISE, VideoMode.KEY_FRAMES_NOISE, VideoMode.ADD_SUPERPIXELS_NOISE
        )

    @property
    def adds_superpixels(self) -> bool:
        return self in (VideoMode.ADD_SUPERPIXELS, VideoMode.ADD_SUPERPIXELS_NOISE)


def _coerce_enum(cls, value):
    if isinstance(value, cls):
        return value
    if isinstance(value, str):
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown {cls.__name__}: {value!r}") from None
    return cls(value)


@dataclass
class SLICConfig:
    sampling_step:        int   = 16     # Grid spacing in pixels
    spatial_weight:       float = 10.0   # Higher = more compact superpixels
    error_threshold:      float = 0.25   # Mean centre displacement to stop at
    convergence:          ConvergenceMode = ConvergenceMode.ERROR_THRESHOLD
    iterations:           int   = 10     # Bound for FIXED_ITERATIONS
    video_mode:           VideoMode = VideoMode.NONE
    key_frame_ratio:      int   = 10     # Reset every N frames in key-frame modes
    noise_std:            float = 1.0    # Jitter std-dev (pixels) in noise modes
    connected_frames:     bool  = True   # Reuse the previous frame's centres
    enforce_connectivity: bool  = True
    n_workers:            Optional[int] = None   # None = executor default, 1 = inline
    max_iterations:       int   = 100    # Safety cap for ERROR_THRESHOLD
    max_reseed_rounds:    int   = 3      # Reseeding rounds allowed per frame
    max_clusters:         int   = 1300   # Additive modes reset above this count
    seed:                 Optional[int] = None   # Jitter RNG seed

    def __post_init__(self):
        self.convergence = _coerce_enum(ConvergenceMode, self.convergence)
        self.video_mode  = _coerce_enum(VideoMode, self.video_mode)

        if self.sampling_step < 1:
            raise ValueError(f"sampling_step must be positive, got {self.sampling_step}")
        if self.spatial_weight <= 0:
            raise ValueError(f"spatial_weight must be positive, got {self.spatial_weight}")
        if self.error_threshold < 0:
            raise ValueError(f"error_threshold must be >= 0, got {self.error_threshold}")
        if self.iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {self.iterations}")
        if self.key_frame_ratio < 1:
            raise ValueError(f"key_frame_ratio must be >= 1, got {self.key_frame_ratio}")
        if self.noise_std < 0:
            raise ValueError(f"noise_std must be >= 0, got {self.noise_std}")
        if self.n_workers is not None and self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1 or None, got {self.n_workers}")
        if self.max_iterations < 1 or self.max_reseed_rounds < 0:
            raise ValueError("max_iterations must be >= 1 and max_reseed_rounds >= 0")


def load_raw_config(name: Union[str, Path]) -> Dict[str, Any]:
    """
    Load raw yaml configuration without parsing into dataclasses.

    ``name`` is either a path to a yaml file or the stem of a file in
    ``CONFIG_DIR``.
    """
    path = Path(name)
    if path.suffix not in (".yaml", ".yml"):
        path = CONFIG_DIR / f"{name}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(name: Union[str, Path] = "slic") -> SLICConfig:
    """
    Convert a YAML config into a typed SLICConfig.
    Example:
        cfg = load_config("slic")
    """
    raw = load_raw_config(name)
    known = {f.name for f in fields(SLICConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")
    return SLICConfig(**raw)
