"""
Axis-aligned region-of-interest filter.

The box is defined by fixed offsets [xmin, xmax, ymin, ymax, zmin, zmax]
relative to an origin. Moving the origin moves the box; the offsets never
change after construction. Points on a face of the box are kept.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from map_localizer.common.pointcloud import as_cloud
from map_localizer.models.cloud_filter.cloud_filter_interface import CloudFilterInterface


class BoxFilter(CloudFilterInterface):
    """
    ROI crop box.

    Attributes:
        size: (6,) offsets relative to the origin
        origin: (3,) current box center reference
        edge: (6,) absolute bounds [xmin, xmax, ymin, ymax, zmin, zmax]
    """

    def __init__(self, size: Sequence[float], origin: Sequence[float] = (0.0, 0.0, 0.0)):
        size = np.asarray(size, dtype=float).reshape(-1)
        if size.shape != (6,):
            raise ValueError(f"Box size must have 6 entries, got {size.shape}")
        if np.any(size[0::2] >= size[1::2]):
            raise ValueError(f"Box size must satisfy min < max per axis, got {size}")
        self.size = size
        self.origin = np.zeros(3, dtype=float)
        self.edge = np.zeros(6, dtype=float)
        self.set_origin(origin)

    def set_origin(self, origin: Sequence[float]) -> None:
        origin = np.asarray(origin, dtype=float).reshape(-1)
        if origin.shape != (3,):
            raise ValueError(f"Origin must have 3 entries, got {origin.shape}")
        self.origin = origin.copy()
        self.edge = self.size + np.repeat(self.origin, 2)

    def get_edge(self) -> np.ndarray:
        """Absolute bounds [xmin, xmax, ymin, ymax, zmin, zmax]."""
        return self.edge.copy()

    def filter(self, cloud: np.ndarray) -> np.ndarray:
        cloud = as_cloud(cloud)
        lower = self.edge[0::2]
        upper = self.edge[1::2]
        inside = np.all((cloud >= lower) & (cloud <= upper), axis=1)
        return cloud[inside]
