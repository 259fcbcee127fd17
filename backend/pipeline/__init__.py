"""
Media refresh pipeline package.

Re-signs expiring storage links on scenes and project thumbnails:
- Per-scene refresh of image, alternate image, audio and video links
- Batch refresh with order-preserving results
"""

__version__ = "0.1.0"

from .url_refresh import RefreshStats, SceneUrlRefresher

__all__ = [
    "RefreshStats",
    "SceneUrlRefresher",
]
