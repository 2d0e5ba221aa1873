"""
SE(3) geometry on homogeneous 4x4 matrices.

Pose representation: T = [[R, t], [0, 1]] where:
- R: 3x3 orthonormal rotation (map <- body)
- t: translation of the body origin in the map frame

Poses are plain float64 numpy arrays so they compose with `@`. The tangent
vector convention (used by the exponential map and the 6D vector helpers) is
(x, y, z, rx, ry, rz): translation first, rotation vector (axis-angle) last.

Numerical Policy:
    Epsilon thresholds are chosen based on IEEE 754 double precision:
    - ROTATION_EPSILON = 1e-10: ~sqrt(machine_epsilon) for stable trig
    - SINGULARITY_EPSILON = 1e-6: threshold for π-singularity handling

    These are NUMERICAL STABILITY choices, not model parameters.

References:
- Barfoot (2017): State Estimation for Robotics
- Sola et al. (2018): A micro Lie theory for state estimation
"""

from __future__ import annotations

import math

import numpy as np


# =============================================================================
# Numerical Constants (stability, not policy)
# =============================================================================

# For small-angle approximations: use when θ < ε to avoid division by ~0
ROTATION_EPSILON: float = 1e-10

# For π-singularity handling: eigenvalue decomposition threshold
SINGULARITY_EPSILON: float = 1e-6


# =============================================================================
# Rotation vector <-> Rotation matrix conversions (so(3) <-> SO(3))
# =============================================================================


def skew(v: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrix from 3-vector (hat operator)."""
    v = np.asarray(v, dtype=float).reshape(-1)
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0]
    ], dtype=float)


def unskew(S: np.ndarray) -> np.ndarray:
    """Extract 3-vector from skew-symmetric matrix (vee operator)."""
    return np.array([S[2, 1], S[0, 2], S[1, 0]], dtype=float)


def rotvec_to_rotmat(rotvec: np.ndarray) -> np.ndarray:
    """
    Convert rotation vector (axis-angle) to rotation matrix.
    Uses Rodrigues' formula: R = I + sin(θ)[ω]_× + (1-cos(θ))[ω]_×²

    For θ < ROTATION_EPSILON a first-order Taylor expansion is used.
    """
    rotvec = np.asarray(rotvec, dtype=float).reshape(-1)
    theta = np.linalg.norm(rotvec)

    if theta < ROTATION_EPSILON:
        return np.eye(3, dtype=float) + skew(rotvec)

    K = skew(rotvec / theta)
    return np.eye(3, dtype=float) + math.sin(theta) * K + (1.0 - math.cos(theta)) * (K @ K)


def rotmat_to_rotvec(R: np.ndarray) -> np.ndarray:
    """
    Convert rotation matrix to rotation vector (axis-angle).
    This is the logarithmic map log: SO(3) -> so(3).

    Handles three cases:
    1. θ ≈ 0: Extract from skew-symmetric part
    2. θ ≈ π: Use eigenvalue decomposition (singularity)
    3. Otherwise: Standard formula
    """
    R = np.asarray(R, dtype=float)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    if not np.allclose(R @ R.T, np.eye(3), atol=1e-5):
        raise ValueError("Input matrix is not orthogonal (R @ R.T != I)")

    theta = math.acos(np.clip((np.trace(R) - 1.0) / 2.0, -1.0, 1.0))

    if theta < ROTATION_EPSILON:
        return unskew((R - R.T) / 2.0)

    if abs(theta - math.pi) < SINGULARITY_EPSILON:
        # R has eigenvalue 1 with eigenvector = rotation axis
        eigenvals, eigenvecs = np.linalg.eig(R)
        idx = np.argmin(np.abs(eigenvals - 1.0))
        axis = np.real(eigenvecs[:, idx])
        axis = axis / np.linalg.norm(axis)
        return axis * math.pi

    return unskew((R - R.T) / 2.0) * (theta / math.sin(theta))


def project_to_so3(M: np.ndarray) -> np.ndarray:
    """Nearest rotation matrix (Frobenius norm) to a 3x3 matrix."""
    U, _, Vt = np.linalg.svd(np.asarray(M, dtype=float))
    D = np.diag([1.0, 1.0, np.sign(np.linalg.det(U @ Vt))])
    return U @ D @ Vt


# =============================================================================
# Pose construction
# =============================================================================


def identity_pose() -> np.ndarray:
    return np.eye(4, dtype=float)


def make_pose(R: np.ndarray | None = None, t: np.ndarray | None = None) -> np.ndarray:
    """Assemble a 4x4 pose from rotation and translation (defaults: identity)."""
    T = np.eye(4, dtype=float)
    if R is not None:
        T[:3, :3] = np.asarray(R, dtype=float).reshape(3, 3)
    if t is not None:
        T[:3, 3] = np.asarray(t, dtype=float).reshape(3)
    return T


def as_pose(T: np.ndarray) -> np.ndarray:
    """
    Coerce to a float64 4x4 pose.

    Raises:
        ValueError: If the input is not 4x4 or its bottom row is not [0, 0, 0, 1]
    """
    T = np.array(T, dtype=float)
    if T.shape != (4, 4):
        raise ValueError(f"Expected 4x4 pose, got shape {T.shape}")
    if not np.allclose(T[3], [0.0, 0.0, 0.0, 1.0]):
        raise ValueError(f"Pose bottom row must be [0, 0, 0, 1], got {T[3]}")
    return T


def pose_from_vector(vec: np.ndarray) -> np.ndarray:
    """4x4 pose from a 6D vector (x, y, z, rx, ry, rz)."""
    vec = np.asarray(vec, dtype=float).reshape(-1)
    if len(vec) != 6:
        raise ValueError(f"Expected 6D vector, got shape {vec.shape}")
    return make_pose(rotvec_to_rotmat(vec[3:6]), vec[:3])


def pose_to_vector(T: np.ndarray) -> np.ndarray:
    """6D vector (x, y, z, rx, ry, rz) from a 4x4 pose."""
    T = as_pose(T)
    return np.concatenate([T[:3, 3], rotmat_to_rotvec(T[:3, :3])])


def yaw_pose(yaw: float) -> np.ndarray:
    """Pure rotation about +z by `yaw` radians."""
    c, s = math.cos(yaw), math.sin(yaw)
    return make_pose(np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]))


# =============================================================================
# SE(3) group operations
# =============================================================================


def se3_inverse(T: np.ndarray) -> np.ndarray:
    """
    Inverse of a rigid transform using the orthonormal rotation block:
    T_inv = [R^T, -R^T t].
    """
    T = np.asarray(T, dtype=float)
    R_inv = T[:3, :3].T
    return make_pose(R_inv, -R_inv @ T[:3, 3])


def se3_compose(T1: np.ndarray, T2: np.ndarray) -> np.ndarray:
    """Compose two transforms: T_result = T1 ∘ T2."""
    return np.asarray(T1, dtype=float) @ np.asarray(T2, dtype=float)


def se3_relative(T_from: np.ndarray, T_to: np.ndarray) -> np.ndarray:
    """Relative transform: T_rel = T_from^{-1} ∘ T_to."""
    return se3_compose(se3_inverse(T_from), T_to)


def se3_extrapolate(T_prev: np.ndarray, T_curr: np.ndarray) -> np.ndarray:
    """
    Constant-velocity extrapolation one step ahead.

    With step = T_prev^{-1} ∘ T_curr, returns T_curr ∘ step, i.e.
    T_curr ∘ T_prev^{-1} ∘ T_curr.
    """
    return se3_compose(T_curr, se3_relative(T_prev, T_curr))


def se3_apply(T: np.ndarray, p: np.ndarray) -> np.ndarray:
    """
    Apply transform to point(s): p_transformed = R p + t.

    Args:
        T: 4x4 pose
        p: 3D point (3,) or batch of points (N, 3)

    Returns:
        Transformed point(s), same shape as input
    """
    T = np.asarray(T, dtype=float)
    p = np.asarray(p, dtype=float)
    R = T[:3, :3]
    t = T[:3, 3]

    if p.ndim == 1:
        if len(p) != 3:
            raise ValueError(f"Expected 3D point, got shape {p.shape}")
        return R @ p + t
    if p.ndim == 2:
        if p.shape[1] != 3:
            raise ValueError(f"Expected (N, 3) points, got shape {p.shape}")
        return p @ R.T + t
    raise ValueError(f"Expected 1D or 2D array, got shape {p.shape}")


def se3_exp(xi: np.ndarray) -> np.ndarray:
    """
    Exponential map: se(3) -> SE(3).

    Args:
        xi: 6D twist vector (vx, vy, vz, ωx, ωy, ωz)

    Returns:
        4x4 pose
    """
    xi = np.asarray(xi, dtype=float).reshape(-1)
    if len(xi) != 6:
        raise ValueError(f"Expected 6D twist, got shape {xi.shape}")

    v = xi[:3]
    omega = xi[3:6]
    theta = np.linalg.norm(omega)

    if theta < ROTATION_EPSILON:
        R = np.eye(3, dtype=float) + skew(omega)
        t = v
    else:
        K = skew(omega / theta)
        R = np.eye(3, dtype=float) + math.sin(theta) * K + (1.0 - math.cos(theta)) * (K @ K)
        V = (
            np.eye(3, dtype=float)
            + ((1.0 - math.cos(theta)) / theta) * K
            + ((theta - math.sin(theta)) / theta) * (K @ K)
        )
        t = V @ v

    return make_pose(project_to_so3(R), t)
