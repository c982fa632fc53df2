"""
Error taxonomy for the lane detector.

Every error names the rule it violated through ``invariant`` so callers
(and log readers) can tell a bad crop from a drifted network without
parsing messages.
"""

from __future__ import annotations

from typing import Optional


class LaneDetectorError(Exception):
    """Base class for all lane detector failures."""

    invariant: str = "unspecified"

    def __init__(self, message: str, invariant: Optional[str] = None):
        super().__init__(message)
        if invariant is not None:
            self.invariant = invariant

    def __str__(self) -> str:
        return f"[{self.invariant}] {super().__str__()}"


class ConfigError(LaneDetectorError):
    """Model descriptor is missing, unreadable or inconsistent."""
    invariant = "config_valid"


class GeometryError(LaneDetectorError):
    """Crop / resize geometry cannot be satisfied."""
    invariant = "geometry_valid"


class CropExceedsFrameError(GeometryError):
    invariant = "crop_within_frame"


class NonIntegralResizeError(GeometryError):
    invariant = "integral_resize"


class ModelLoadError(LaneDetectorError):
    """Inference engine rejected the topology/weights or the input reshape."""
    invariant = "model_loaded"


class UnknownTensorError(LaneDetectorError):
    invariant = "tensor_names_resolve"


class NullFrameError(LaneDetectorError):
    invariant = "frame_present"


class FrameSizeMismatchError(LaneDetectorError):
    invariant = "frame_matches_camera"


class ShapeDriftError(LaneDetectorError):
    """Network input tensor no longer matches the validated geometry."""
    invariant = "input_shape_matches_geometry"


class PreprocessError(LaneDetectorError):
    """Image provider or resize kernel failed."""
    invariant = "preprocess_ok"


class InferenceError(LaneDetectorError):
    invariant = "inference_ok"


class DetectorNotReadyError(LaneDetectorError):
    invariant = "detector_ready"
