"""
Geometry models: camera size, crop box, resize scale and colour layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Tuple, Union


class ChannelOrder(str, Enum):
    """Channel order of the network input."""
    RGB = "rgb"
    BGR = "bgr"


@dataclass(frozen=True)
class CameraGeometry:
    """
    Native resolution of the physical camera.

    Attributes:
        native_width: Frame width in pixels.
        native_height: Frame height in pixels.
    """
    native_width: int
    native_height: int

    @classmethod
    def from_resolution(cls, resolution) -> "CameraGeometry":
        """Adapter: Create from a camera config ``[width, height]`` pair."""
        width, height = resolution
        return cls(native_width=int(width), native_height=int(height))

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.native_width, self.native_height)


# Assumed when no camera model is supplied at init time.
DEFAULT_CAMERA_GEOMETRY = CameraGeometry(native_width=1920, native_height=1080)


@dataclass(frozen=True)
class CropSpec:
    """
    Region of the native frame fed to the network.

    Attributes:
        offset_x: Left edge of the crop.
        offset_y: Top edge of the crop.
        width: Crop width in pixels.
        height: Crop height in pixels.
    """
    offset_x: int
    offset_y: int
    width: int
    height: int

    def as_roi(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.offset_x, self.offset_y, self.width, self.height)


@dataclass(frozen=True)
class ResizeSpec:
    """Multiplicative scale from crop pixels to network input pixels."""
    scale: Fraction

    @classmethod
    def from_value(cls, value: Union[int, float, str, Fraction]) -> "ResizeSpec":
        """
        Build from a config value.

        Floats go through their decimal text so ``0.33`` means exactly
        33/100 rather than the nearest binary double.
        """
        if isinstance(value, bool):
            raise ValueError(f"resize scale must be a number, got {value!r}")
        if isinstance(value, float):
            scale = Fraction(repr(value))
        else:
            scale = Fraction(value)
        if scale <= 0:
            raise ValueError(f"resize scale must be positive, got {value!r}")
        return cls(scale=scale)


@dataclass(frozen=True)
class ColorSpec:
    """
    Channel order plus per-channel mean values.

    ``mean`` is ordered to match ``channel_order``.
    """
    channel_order: ChannelOrder
    mean: Tuple[float, float, float]

    @classmethod
    def from_means(cls, is_bgr: bool, mean_b: float, mean_g: float, mean_r: float) -> "ColorSpec":
        if is_bgr:
            return cls(ChannelOrder.BGR, (float(mean_b), float(mean_g), float(mean_r)))
        return cls(ChannelOrder.RGB, (float(mean_r), float(mean_g), float(mean_b)))


@dataclass(frozen=True)
class ResolvedGeometry:
    """Outcome of resolving native size, crop and scale."""
    camera: CameraGeometry
    crop: CropSpec
    resize_width: int
    resize_height: int

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        """Network input shape in NCHW order."""
        return (1, 3, self.resize_height, self.resize_width)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "native_width": self.camera.native_width,
            "native_height": self.camera.native_height,
            "crop": list(self.crop.as_roi()),
            "resize_width": self.resize_width,
            "resize_height": self.resize_height,
        }
