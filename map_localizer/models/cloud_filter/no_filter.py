"""Pass-through filter."""

from __future__ import annotations

import numpy as np

from map_localizer.common.pointcloud import as_cloud
from map_localizer.models.cloud_filter.cloud_filter_interface import CloudFilterInterface


class NoFilter(CloudFilterInterface):
    def filter(self, cloud: np.ndarray) -> np.ndarray:
        return as_cloud(cloud).copy()
