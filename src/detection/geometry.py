"""
Size chain resolution: native frame -> crop -> network input.

The downstream resize kernel needs exact pixel counts, so a scale that
does not map the crop onto whole pixels is rejected instead of rounded.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Tuple

from models.geometry import CameraGeometry, CropSpec, ResizeSpec, ResolvedGeometry
from .errors import CropExceedsFrameError, NonIntegralResizeError


def validate_crop(camera: CameraGeometry, crop: CropSpec) -> None:
    """Raise CropExceedsFrameError unless the crop lies inside the frame."""
    if crop.offset_x < 0 or crop.offset_y < 0:
        raise CropExceedsFrameError(
            f"crop offset ({crop.offset_x}, {crop.offset_y}) is negative"
        )
    if crop.width <= 0 or crop.height <= 0:
        raise CropExceedsFrameError(
            f"crop size {crop.width}x{crop.height} must be positive"
        )
    if crop.offset_x + crop.width > camera.native_width:
        raise CropExceedsFrameError(
            f"crop x range {crop.offset_x}+{crop.width} exceeds frame width "
            f"{camera.native_width}"
        )
    if crop.offset_y + crop.height > camera.native_height:
        raise CropExceedsFrameError(
            f"crop y range {crop.offset_y}+{crop.height} exceeds frame height "
            f"{camera.native_height}"
        )


def _scaled(length: int, scale: Fraction, axis: str) -> int:
    value = length * scale
    if value.denominator != 1 or value <= 0:
        raise NonIntegralResizeError(
            f"crop {axis} {length} * scale {scale} = {float(value):g} "
            f"is not a positive whole number"
        )
    return int(value)


def resize_dims(crop: CropSpec, resize: ResizeSpec) -> Tuple[int, int]:
    """Return (resize_width, resize_height) for the crop at the given scale."""
    return (
        _scaled(crop.width, resize.scale, "width"),
        _scaled(crop.height, resize.scale, "height"),
    )


def resolve(camera: CameraGeometry, crop: CropSpec, resize: ResizeSpec) -> ResolvedGeometry:
    """
    Resolve and validate the full size chain.

    Args:
        camera: Native frame size.
        crop: Crop region inside the native frame.
        resize: Scale applied to the crop.

    Returns:
        ResolvedGeometry carrying the network input size.

    Raises:
        CropExceedsFrameError: Crop does not fit in the frame.
        NonIntegralResizeError: Crop times scale is not a positive integer.
    """
    validate_crop(camera, crop)
    resize_width, resize_height = resize_dims(crop, resize)
    return ResolvedGeometry(
        camera=camera,
        crop=crop,
        resize_width=resize_width,
        resize_height=resize_height,
    )


def expected_chw(geometry: ResolvedGeometry) -> Tuple[int, int, int]:
    """Return the (channels, height, width) the input tensor must have."""
    return geometry.input_shape[1:]
