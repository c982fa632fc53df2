"""
CameraFrame model carried through the perception pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from camera.data_provider import DataProvider


@dataclass
class CameraFrame:
    """
    One camera frame plus the results attached by pipeline stages.

    Attributes:
        data_provider: Source image access (native size, cropped views).
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
        lane_detected_blob: Raw lane network output, set by the lane detector.
    """
    data_provider: DataProvider
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    lane_detected_blob: Optional[np.ndarray] = None
    extra: Dict[str, np.ndarray] = field(default_factory=dict)

    @classmethod
    def from_numpy(
        cls,
        image: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "CameraFrame":
        """Create CameraFrame from a BGR numpy image."""
        return cls(
            data_provider=DataProvider(image),
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return native (width, height)."""
        return (self.data_provider.src_width, self.data_provider.src_height)
