"""
Voxel grid downsampling.

Points are binned into axis-aligned voxels of size `leaf_size` and each
occupied voxel is replaced by the centroid of its points. Output order
follows the sorted voxel index, so the result is deterministic.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from map_localizer.common.pointcloud import as_cloud
from map_localizer.models.cloud_filter.cloud_filter_interface import CloudFilterInterface


class VoxelFilter(CloudFilterInterface):
    """
    Centroid-per-voxel downsampling.

    Args:
        leaf_size: Voxel edge length per axis (x, y, z), all positive
    """

    def __init__(self, leaf_size: Sequence[float]):
        leaf = np.asarray(leaf_size, dtype=float).reshape(-1)
        if leaf.shape != (3,):
            raise ValueError(f"leaf_size must have 3 entries, got {leaf.shape}")
        if np.any(leaf <= 0.0):
            raise ValueError(f"leaf_size entries must be positive, got {leaf}")
        self.leaf_size = leaf

    def filter(self, cloud: np.ndarray) -> np.ndarray:
        cloud = as_cloud(cloud)
        if cloud.shape[0] == 0:
            return cloud.copy()

        grid = np.floor(cloud / self.leaf_size).astype(np.int64)
        _, inverse, counts = np.unique(grid, axis=0, return_inverse=True, return_counts=True)
        inverse = inverse.reshape(-1)

        sums = np.zeros((counts.shape[0], 3), dtype=float)
        np.add.at(sums, inverse, cloud)
        return sums / counts[:, None]
