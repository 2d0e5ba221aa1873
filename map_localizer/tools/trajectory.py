"""
TUM trajectory I/O.

TUM format: timestamp x y z qx qy qz qw (space-separated, # for comments).
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from map_localizer.common.geometry import as_pose, make_pose

TUM_HEADER = "# timestamp x y z qx qy qz qw\n"


def pose_to_tum_row(stamp: float, pose: np.ndarray) -> str:
    pose = as_pose(pose)
    trans = pose[:3, 3]
    quat = Rotation.from_matrix(pose[:3, :3]).as_quat()  # xyzw
    return (
        f"{stamp:.9f} {trans[0]:.6f} {trans[1]:.6f} {trans[2]:.6f} "
        f"{quat[0]:.6f} {quat[1]:.6f} {quat[2]:.6f} {quat[3]:.6f}\n"
    )


def write_tum(path: str | Path, stamps: Iterable[float], poses: Iterable[np.ndarray]) -> int:
    """Write poses as a TUM file; returns the number of rows written."""
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        f.write(TUM_HEADER)
        for stamp, pose in zip(stamps, poses):
            f.write(pose_to_tum_row(float(stamp), pose))
            count += 1
    return count


def load_tum(path: str | Path) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Load a TUM file in file order.

    Returns:
        (stamps, list of 4x4 poses)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If a row doesn't have 8 columns
    """
    stamps = []
    poses = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) < 8:
                raise ValueError(f"{path}:{lineno}: expected 8 columns, got {len(parts)}")
            values = [float(p) for p in parts[:8]]
            stamps.append(values[0])
            R = Rotation.from_quat(values[4:8]).as_matrix()
            poses.append(make_pose(R, np.array(values[1:4])))
    return np.array(stamps, dtype=np.float64), poses
