"""
Image access for a single camera frame.

The provider holds the native BGR image and hands out cropped,
colour-converted views for the stages that need them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from models.geometry import ChannelOrder


@dataclass(frozen=True)
class ImageOptions:
    """
    How a stage wants the image delivered.

    Attributes:
        target_color: Channel order of the returned image.
        do_crop: Whether to cut ``crop_roi`` out of the native frame.
        crop_roi: (x, y, width, height) in native pixels.
    """
    target_color: ChannelOrder = ChannelOrder.BGR
    do_crop: bool = False
    crop_roi: Tuple[int, int, int, int] = (0, 0, 0, 0)


class DataProvider:
    """Native image plus crop / colour conversion on request."""

    def __init__(self, image: np.ndarray, color: ChannelOrder = ChannelOrder.BGR):
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"expected an HxWx3 image, got shape {image.shape}")
        self._image = image
        self._color = color

    @property
    def src_width(self) -> int:
        return self._image.shape[1]

    @property
    def src_height(self) -> int:
        return self._image.shape[0]

    @property
    def color(self) -> ChannelOrder:
        return self._color

    def get_image(self, options: ImageOptions) -> Optional[np.ndarray]:
        """
        Return the image as described by ``options``.

        Returns None if the crop falls outside the native frame.
        """
        image = self._image
        if options.do_crop:
            x, y, w, h = options.crop_roi
            if x < 0 or y < 0 or w <= 0 or h <= 0 or x + w > self.src_width or y + h > self.src_height:
                logging.error(
                    f"Crop roi {options.crop_roi} outside frame "
                    f"{self.src_width}x{self.src_height}"
                )
                return None
            image = image[y:y + h, x:x + w]

        if options.target_color != self._color:
            # BGR <-> RGB is the same channel swap either way
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        return np.ascontiguousarray(image)
