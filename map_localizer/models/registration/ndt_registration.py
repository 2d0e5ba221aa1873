"""
Normal Distributions Transform (NDT) registration.

The target is voxelised at resolution `res`; every cell with at least
`min_points_per_cell` points becomes a Gaussian (mean, regularised
covariance). Source points are associated with the cell they fall in and
the pose is refined by Gauss-Newton on the summed Mahalanobis residuals,
using a left perturbation T <- exp(ξ) T with ξ = (v, ω).

Step length is bounded by `step_size`; iteration stops when both the
translation and rotation parts of ξ drop below `trans_eps`, or after
`max_iter` iterations.

Reference: Magnusson (2009), The Three-Dimensional Normal-Distributions
Transform; Biber & Straßer (2003).
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from map_localizer.common import constants
from map_localizer.common.geometry import as_pose, se3_apply, se3_exp
from map_localizer.common.pointcloud import as_cloud, transform_cloud
from map_localizer.config import NDTParams
from map_localizer.models.registration.registration_interface import (
    RegistrationInterface,
    RegistrationResult,
)

logger = logging.getLogger(__name__)

# Cell indices are packed into one int64: 21 bits per axis, offset to unsigned
_KEY_BITS = 21
_KEY_OFFSET = 1 << (_KEY_BITS - 1)
_KEY_MASK = (1 << _KEY_BITS) - 1


def _encode_keys(grid: np.ndarray) -> np.ndarray:
    g = (grid.astype(np.int64) + _KEY_OFFSET) & _KEY_MASK
    return (g[:, 0] << (2 * _KEY_BITS)) | (g[:, 1] << _KEY_BITS) | g[:, 2]


def build_ndt_cells(
    target: np.ndarray,
    res: float,
    min_points: int,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Voxelise a cloud into Gaussian cells.

    Returns:
        codes: (C,) sorted packed cell keys
        means: (C, 3) cell means
        inv_covs: (C, 3, 3) inverses of the regularised covariances
    """
    target = as_cloud(target)
    empty = (np.empty(0, dtype=np.int64), np.empty((0, 3)), np.empty((0, 3, 3)))
    if target.shape[0] == 0:
        return empty

    codes = _encode_keys(np.floor(target / res))
    uniq, inverse, counts = np.unique(codes, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)

    sums = np.zeros((uniq.shape[0], 3), dtype=float)
    np.add.at(sums, inverse, target)
    means = sums / counts[:, None]

    centered = target - means[inverse]
    scatter = np.zeros((uniq.shape[0], 3, 3), dtype=float)
    np.add.at(scatter, inverse, centered[:, :, None] * centered[:, None, :])

    keep = counts >= min_points
    if not np.any(keep):
        return empty

    covs = scatter[keep] / (counts[keep, None, None] - 1.0)
    eigvals, eigvecs = np.linalg.eigh(covs)
    floor = np.maximum(eigvals[:, -1:] * constants.NDT_EIGEN_RATIO_FLOOR, 1e-9)
    eigvals = np.maximum(eigvals, floor)
    inv_covs = np.einsum("cij,cj,ckj->cik", eigvecs, 1.0 / eigvals, eigvecs)
    return uniq[keep], means[keep], inv_covs


class NDTRegistration(RegistrationInterface):
    """
    Args:
        res: Cell edge length (map units)
        step_size: Maximum norm of one Gauss-Newton step
        trans_eps: Convergence threshold on the step
        max_iter: Iteration cap
        min_points_per_cell: Cells with fewer points are ignored
    """

    def __init__(
        self,
        res: float = constants.NDT_RESOLUTION_DEFAULT,
        step_size: float = constants.NDT_STEP_SIZE_DEFAULT,
        trans_eps: float = constants.NDT_TRANS_EPS_DEFAULT,
        max_iter: int = constants.NDT_MAX_ITER_DEFAULT,
        min_points_per_cell: int = constants.NDT_MIN_POINTS_PER_CELL,
    ):
        self.res = float(res)
        self.step_size = float(step_size)
        self.trans_eps = float(trans_eps)
        self.max_iter = int(max_iter)
        self.min_points_per_cell = int(min_points_per_cell)
        self.target = as_cloud([])
        self._cells = build_ndt_cells(self.target, self.res, self.min_points_per_cell)

    @classmethod
    def from_params(cls, params: NDTParams) -> "NDTRegistration":
        return cls(
            res=params.res,
            step_size=params.step_size,
            trans_eps=params.trans_eps,
            max_iter=params.max_iter,
            min_points_per_cell=params.min_points_per_cell,
        )

    @property
    def num_cells(self) -> int:
        return int(self._cells[0].shape[0])

    def set_input_target(self, target: np.ndarray) -> None:
        target = as_cloud(target).copy()
        cells = build_ndt_cells(target, self.res, self.min_points_per_cell)
        self.target, self._cells = target, cells

    def _associate(self, moved: np.ndarray, codes: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return (mask of source points inside a cell, their cell index)."""
        query = _encode_keys(np.floor(moved / self.res))
        pos = np.searchsorted(codes, query)
        pos_clipped = np.minimum(pos, codes.shape[0] - 1)
        found = (pos < codes.shape[0]) & (codes[pos_clipped] == query)
        return found, pos_clipped[found]

    def scan_match(self, source: np.ndarray, predict_pose: np.ndarray) -> RegistrationResult:
        source = as_cloud(source)
        T = as_pose(predict_pose)
        codes, means, inv_covs = self._cells

        if source.shape[0] == 0 or codes.shape[0] == 0:
            return RegistrationResult(T, transform_cloud(source, T), float("inf"), False, 0)

        converged = False
        iterations = 0
        for iterations in range(1, self.max_iter + 1):
            moved = se3_apply(T, source)
            found, cell = self._associate(moved, codes)
            if int(found.sum()) < constants.N_MIN_SE3_CORRESPONDENCES:
                logger.debug("NDT: %d points in cells at iteration %d", int(found.sum()), iterations)
                break

            q = moved[found]
            r = q - means[cell]
            omega = inv_covs[cell]

            # d(exp(ξ) q)/dξ at ξ = 0 is [I, -[q]_x]
            J = np.zeros((q.shape[0], 3, 6), dtype=float)
            J[:, 0, 0] = J[:, 1, 1] = J[:, 2, 2] = 1.0
            J[:, 0, 4], J[:, 0, 5] = q[:, 2], -q[:, 1]
            J[:, 1, 3], J[:, 1, 5] = -q[:, 2], q[:, 0]
            J[:, 2, 3], J[:, 2, 4] = q[:, 1], -q[:, 0]

            omega_J = np.einsum("mij,mjk->mik", omega, J)
            H = np.einsum("mji,mjk->ik", J, omega_J)
            g = np.einsum("mji,mj->i", omega_J, r)

            xi = -np.linalg.solve(H + constants.NDT_DAMPING * np.eye(6), g)
            norm = float(np.linalg.norm(xi))
            if norm > self.step_size:
                xi *= self.step_size / norm

            T = se3_exp(xi) @ T

            if np.linalg.norm(xi[:3]) < self.trans_eps and np.linalg.norm(xi[3:]) < self.trans_eps:
                converged = True
                break

        aligned = se3_apply(T, source)
        found, cell = self._associate(aligned, codes)
        if np.any(found):
            fitness = float(np.mean(np.sum((aligned[found] - means[cell]) ** 2, axis=1)))
        else:
            fitness = float("inf")
        return RegistrationResult(T, aligned, fitness, converged, iterations)
