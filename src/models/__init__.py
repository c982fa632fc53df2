"""
Typed models for the lane detector.

Use the `from_dict` adapters to build them from parsed YAML.
"""

from .geometry import (
    CameraGeometry,
    ChannelOrder,
    ColorSpec,
    CropSpec,
    DEFAULT_CAMERA_GEOMETRY,
    ResizeSpec,
    ResolvedGeometry,
)
from .frame import CameraFrame
from .config import (
    Config,
    CameraConfig,
    DenselineParam,
    LaneDetectorConfig,
    ModelParam,
    NetParam,
)

__all__ = [
    # Geometry
    "CameraGeometry",
    "ChannelOrder",
    "ColorSpec",
    "CropSpec",
    "DEFAULT_CAMERA_GEOMETRY",
    "ResizeSpec",
    "ResolvedGeometry",
    # Frame
    "CameraFrame",
    # Config
    "Config",
    "CameraConfig",
    "DenselineParam",
    "LaneDetectorConfig",
    "ModelParam",
    "NetParam",
]
