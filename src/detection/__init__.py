"""
Lane detection module.

Canonical imports:
- `from detection.base import create_lane_detector, LaneDetectorInitOptions`
- `from detection.denseline import DenselineLaneDetector`
- `from detection.errors import LaneDetectorError`
"""
