"""
Resize + mean-normalise kernels that write into a network input tensor.

Kernels are two-phase: ``issue`` queues the work, ``synchronize`` blocks
until the destination tensor holds the result. Callers must synchronize
before anything reads the destination.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

import cv2
import numpy as np

from models.geometry import ChannelOrder


class ResizeKernel(Protocol):
    def issue(
        self,
        src: np.ndarray,
        dst: np.ndarray,
        crop_width: int,
        mean: Sequence[float],
        channel_order: ChannelOrder,
        scale: float = 1.0,
    ) -> None:
        ...

    def synchronize(self) -> None:
        ...


class CpuResizeKernel(ResizeKernel):
    """
    OpenCV implementation.

    ``issue`` computes into a staging buffer; ``synchronize`` commits it
    into ``dst``, so the destination is never observed half written.
    The source is expected to be in ``channel_order`` already (the data
    provider converts it), so channels are copied through unchanged.
    """

    def __init__(self, interpolation: int = cv2.INTER_LINEAR):
        self.interpolation = interpolation
        self._staged: Optional[np.ndarray] = None
        self._dst: Optional[np.ndarray] = None

    def issue(
        self,
        src: np.ndarray,
        dst: np.ndarray,
        crop_width: int,
        mean: Sequence[float],
        channel_order: ChannelOrder,
        scale: float = 1.0,
    ) -> None:
        if self._dst is not None:
            raise RuntimeError("previous resize was issued but never synchronized")
        if src.ndim != 3 or src.shape[2] != 3:
            raise ValueError(f"source must be HxWx3, got {src.shape}")
        if src.shape[1] != crop_width:
            raise ValueError(f"source width {src.shape[1]} does not match crop width {crop_width}")
        if dst.ndim != 4 or dst.shape[:2] != (1, 3):
            raise ValueError(f"destination must be 1x3xHxW, got {dst.shape}")

        dst_h, dst_w = dst.shape[2], dst.shape[3]
        resized = cv2.resize(src, (dst_w, dst_h), interpolation=self.interpolation)
        staged = resized.astype(np.float32)
        staged -= np.asarray(mean, dtype=np.float32)
        if scale != 1.0:
            staged *= scale

        self._staged = staged.transpose(2, 0, 1)[np.newaxis]
        self._dst = dst

    def synchronize(self) -> None:
        if self._dst is None:
            return
        np.copyto(self._dst, self._staged)
        self._staged = None
        self._dst = None
