"""
Common package for map_localizer.

Shared utilities used by the models and the matching core.

Subpackages:
- geometry/: SE(3) operations on 4x4 poses
"""

from map_localizer.common import constants
from map_localizer.common import pointcloud
from map_localizer.common import cloud_io

__all__ = [
    "constants",
    "pointcloud",
    "cloud_io",
]
