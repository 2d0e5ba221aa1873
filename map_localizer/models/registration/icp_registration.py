"""
Point-to-point ICP registration on open3d.

The target `PointCloud` is built once per local map. Each match runs
`registration_icp` from the seed and re-projects the rotation block onto
SO(3) before the pose is handed back.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import open3d as o3d

from map_localizer.common import constants
from map_localizer.common.geometry import as_pose, project_to_so3
from map_localizer.common.pointcloud import as_cloud, transform_cloud
from map_localizer.config import ICPParams
from map_localizer.models.registration.registration_interface import (
    RegistrationInterface,
    RegistrationResult,
)

logger = logging.getLogger(__name__)


def to_o3d_cloud(points: np.ndarray) -> o3d.geometry.PointCloud:
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(as_cloud(points))
    return pcd


class ICPRegistration(RegistrationInterface):
    """
    Args:
        max_corr_dist: Correspondence gate (map units)
        trans_eps: Relative fitness / RMSE change below which open3d stops
        max_iter: Iteration cap
    """

    def __init__(
        self,
        max_corr_dist: float = constants.ICP_MAX_CORR_DIST_DEFAULT,
        trans_eps: float = constants.ICP_TRANS_EPS_DEFAULT,
        max_iter: int = constants.ICP_MAX_ITER_DEFAULT,
    ):
        self.max_corr_dist = float(max_corr_dist)
        self.trans_eps = float(trans_eps)
        self.max_iter = int(max_iter)
        self.target = as_cloud([])
        self._target_pcd: Optional[o3d.geometry.PointCloud] = None
        self._estimation = o3d.pipelines.registration.TransformationEstimationPointToPoint()
        self._criteria = o3d.pipelines.registration.ICPConvergenceCriteria(
            relative_fitness=self.trans_eps,
            relative_rmse=self.trans_eps,
            max_iteration=self.max_iter,
        )

    @classmethod
    def from_params(cls, params: ICPParams) -> "ICPRegistration":
        return cls(
            max_corr_dist=params.max_corr_dist,
            trans_eps=params.trans_eps,
            max_iter=params.max_iter,
        )

    def set_input_target(self, target: np.ndarray) -> None:
        target = as_cloud(target).copy()
        # Swap both together so a match never sees a cloud built for another target
        target_pcd = to_o3d_cloud(target) if target.shape[0] > 0 else None
        self.target, self._target_pcd = target, target_pcd

    def scan_match(self, source: np.ndarray, predict_pose: np.ndarray) -> RegistrationResult:
        source = as_cloud(source)
        T = as_pose(predict_pose)
        target_pcd = self._target_pcd

        if source.shape[0] == 0 or target_pcd is None:
            return RegistrationResult(T, transform_cloud(source, T), float("inf"), False, 0)

        result = o3d.pipelines.registration.registration_icp(
            to_o3d_cloud(source), target_pcd, self.max_corr_dist, T,
            self._estimation, self._criteria,
        )

        n_matched = len(result.correspondence_set)
        if n_matched < constants.N_MIN_SE3_CORRESPONDENCES:
            logger.debug("ICP: %d correspondences, keeping the seed", n_matched)
            return RegistrationResult(T, transform_cloud(source, T), float("inf"), False, self.max_iter)

        pose = np.array(result.transformation, dtype=float)
        pose[:3, :3] = project_to_so3(pose[:3, :3])
        logger.debug("ICP done: fitness=%.4f, rmse=%.4f", result.fitness, result.inlier_rmse)
        return RegistrationResult(
            pose,
            transform_cloud(source, pose),
            float(result.inlier_rmse) ** 2,
            True,
            self.max_iter,
        )
