"""
Point cloud helpers.

A cloud is a float64 numpy array of shape (N, 3) holding x, y, z. Extra
columns (intensity, ring, ...) are dropped at the boundary by `as_cloud`.
"""

from __future__ import annotations

import numpy as np

from map_localizer.common.geometry import se3_apply


def empty_cloud() -> np.ndarray:
    return np.empty((0, 3), dtype=float)


def as_cloud(points) -> np.ndarray:
    """
    Coerce input to an (N, 3) float64 cloud.

    Accepts (N, >=3) arrays; an empty input of any 1D/2D shape becomes an
    empty (0, 3) cloud.

    Raises:
        ValueError: If the input cannot be interpreted as (N, >=3) points
    """
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return empty_cloud()
    if arr.ndim != 2 or arr.shape[1] < 3:
        raise ValueError(f"Expected (N, >=3) points, got shape {arr.shape}")
    return np.ascontiguousarray(arr[:, :3])


def remove_invalid_points(points) -> np.ndarray:
    """Drop points with any non-finite coordinate (NaN / inf returns)."""
    cloud = as_cloud(points)
    if cloud.shape[0] == 0:
        return cloud
    return cloud[np.all(np.isfinite(cloud), axis=1)]


def transform_cloud(points, T: np.ndarray) -> np.ndarray:
    """Apply a 4x4 pose to every point of a cloud."""
    cloud = as_cloud(points)
    if cloud.shape[0] == 0:
        return cloud
    return se3_apply(T, cloud)
