"""
Geometry package for map_localizer.

SE(3) operations on 4x4 homogeneous matrices (NumPy backend).

Usage:
    from map_localizer.common.geometry import (
        se3_inverse,
        se3_extrapolate,
        se3_apply,
        pose_from_vector,
    )
"""

from __future__ import annotations

from map_localizer.common.geometry.se3_numpy import (
    # Constants
    ROTATION_EPSILON,
    SINGULARITY_EPSILON,
    # SO(3) operations
    skew,
    unskew,
    rotvec_to_rotmat,
    rotmat_to_rotvec,
    project_to_so3,
    # Pose construction
    identity_pose,
    make_pose,
    as_pose,
    pose_from_vector,
    pose_to_vector,
    yaw_pose,
    # SE(3) operations
    se3_inverse,
    se3_compose,
    se3_relative,
    se3_extrapolate,
    se3_apply,
    se3_exp,
)

__all__ = [
    # Constants
    "ROTATION_EPSILON",
    "SINGULARITY_EPSILON",
    # SO(3) operations
    "skew",
    "unskew",
    "rotvec_to_rotmat",
    "rotmat_to_rotvec",
    "project_to_so3",
    # Pose construction
    "identity_pose",
    "make_pose",
    "as_pose",
    "pose_from_vector",
    "pose_to_vector",
    "yaw_pose",
    # SE(3) operations
    "se3_inverse",
    "se3_compose",
    "se3_relative",
    "se3_extrapolate",
    "se3_apply",
    "se3_exp",
]
