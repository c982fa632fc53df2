"""
Camera frame access.

Canonical imports:
- `from camera.data_provider import DataProvider, ImageOptions`
"""

from .data_provider import DataProvider, ImageOptions

__all__ = ["DataProvider", "ImageOptions"]
