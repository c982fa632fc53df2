"""
Lane detector interfaces.

We keep this lightweight so the pipeline can swap lane networks by name
from config without touching the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Type

import numpy as np

from models.config import DenselineParam
from models.frame import CameraFrame
from models.geometry import CameraGeometry
from .errors import ConfigError


class DetectorState(str, Enum):
    """Detector lifecycle states."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LaneDetectorInitOptions:
    """
    Everything a lane detector needs at init time.

    Attributes:
        root_dir: Directory that relative model paths resolve against.
        conf_file: Model descriptor path, relative to root_dir.
        param: Already parsed descriptor; skips loading conf_file.
        camera_geometry: Native camera size, None if no camera model is known.
        gpu_id: Device to bind, -1 for CPU.
    """
    root_dir: str = ""
    conf_file: str = ""
    param: Optional[DenselineParam] = None
    camera_geometry: Optional[CameraGeometry] = None
    gpu_id: int = -1


class LaneDetector:
    """Lane detector interface writing raw network output onto the frame."""

    def init(self, options: LaneDetectorInitOptions) -> None:
        raise NotImplementedError

    def detect(self, frame: Optional[CameraFrame]) -> np.ndarray:
        raise NotImplementedError

    def name(self) -> str:
        raise NotImplementedError


_DETECTORS: Dict[str, Type[LaneDetector]] = {}


def register_lane_detector(name: str) -> Callable[[Type[LaneDetector]], Type[LaneDetector]]:
    def wrap(cls: Type[LaneDetector]) -> Type[LaneDetector]:
        _DETECTORS[name] = cls
        return cls
    return wrap


def registered_lane_detectors() -> List[str]:
    return sorted(_DETECTORS)


def create_lane_detector(name: str, **kwargs) -> LaneDetector:
    """Instantiate a registered detector by name."""
    # Built-in detectors register themselves on import
    from . import denseline  # noqa: F401

    cls = _DETECTORS.get(name)
    if cls is None:
        raise ConfigError(
            f"Unknown lane detector '{name}'. "
            f"Registered: {', '.join(registered_lane_detectors())}"
        )
    return cls(**kwargs)
