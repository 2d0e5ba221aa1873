"""
Point cloud file I/O.

Supported formats:
- .pcd / .ply: read and written through open3d
- .npy: (N, >=3) array
- .npz: archive with a "points" array
- .bin: KITTI velodyne scans (float32 x, y, z, intensity)

Only x, y, z are kept; see `common.pointcloud.as_cloud`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import open3d as o3d

from map_localizer.common.pointcloud import as_cloud

logger = logging.getLogger(__name__)

CLOUD_SUFFIXES = (".pcd", ".ply", ".npy", ".npz", ".bin")
_OPEN3D_SUFFIXES = (".pcd", ".ply")


def load_pcd(path: str | Path) -> np.ndarray:
    """Read x, y, z of a PCD/PLY file; other fields are ignored."""
    pcd = o3d.io.read_point_cloud(str(path))
    return as_cloud(np.asarray(pcd.points))


def save_pcd(path: str | Path, points) -> None:
    """
    Write a binary PCD/PLY.

    Raises:
        OSError: If open3d fails to write the file
    """
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(as_cloud(points))
    ok = o3d.io.write_point_cloud(str(path), pcd)
    if not ok:
        logger.error("Failed to write point cloud: %s", path)
        raise OSError(f"Failed to write point cloud: {path}")


def load_point_cloud(path: str | Path) -> np.ndarray:
    """
    Load a point cloud file into an (N, 3) float64 array.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format is unsupported
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Point cloud file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in _OPEN3D_SUFFIXES:
        return load_pcd(path)
    if suffix == ".npy":
        return as_cloud(np.load(path))
    if suffix == ".npz":
        with np.load(path) as archive:
            if "points" not in archive:
                raise ValueError(f"{path}: .npz archive has no 'points' array")
            return as_cloud(archive["points"])
    if suffix == ".bin":
        return as_cloud(np.fromfile(path, dtype=np.float32).reshape(-1, 4))
    raise ValueError(f"Unsupported point cloud format: {suffix}")


def save_point_cloud(path: str | Path, points) -> None:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in _OPEN3D_SUFFIXES:
        save_pcd(path, points)
    elif suffix == ".npy":
        np.save(path, as_cloud(points))
    else:
        raise ValueError(f"Unsupported point cloud format for writing: {suffix}")
