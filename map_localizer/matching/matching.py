"""
Scan-to-map matching.

Per frame:
1. Drop non-finite points
2. Downsample with the frame filter
3. Seed: motion prediction once initialized, else the latest absolute pose
4. Align against the local map
5. Transform the full-resolution frame into the map frame (current scan)
6. Constant-velocity update of the prediction
7. Recenter the local map if the pose came within the margin of the ROI box

Alignment results are accepted as-is; `RegistrationResult.fitness` and
`converged` are kept for diagnostics only.

All entry points expect serial calls in temporal order; there is no
internal locking or reordering.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import numpy as np

from map_localizer.common import constants
from map_localizer.common.cloud_io import load_point_cloud
from map_localizer.common.pointcloud import empty_cloud, remove_invalid_points, transform_cloud
from map_localizer.config import ConfigurationError, MatchingParams
from map_localizer.matching.init_state import InitializationStateMachine, InitState
from map_localizer.matching.local_map import LocalMapManager
from map_localizer.matching.motion_model import MotionModel
from map_localizer.models.cloud_filter import BoxFilter, FilterUser, make_cloud_filter
from map_localizer.models.registration import RegistrationResult, make_registration
from map_localizer.models.scan_context import PlaceRecognitionInterface, make_place_recognition

logger = logging.getLogger(__name__)


class Matching:
    """
    Localization core.

    Args:
        params: Validated configuration
        global_map: Map cloud; loaded from `params.map_path` when None
        place_recognition: Index for relocalization; built from
            `params.loop_closure_method` (and loaded from
            `params.scan_context_path` if set) when None

    Raises:
        ConfigurationError: On unknown methods or unreadable map / index
    """

    def __init__(
        self,
        params: MatchingParams,
        global_map: Optional[np.ndarray] = None,
        place_recognition: Optional[PlaceRecognitionInterface] = None,
    ):
        logger.info("----------------- Init Localization -----------------")
        self.params = params

        registration = make_registration(params.registration_method, params)
        self.global_map_filter = make_cloud_filter(params.global_map_filter, FilterUser.GLOBAL_MAP, params)
        self.local_map_filter = make_cloud_filter(params.local_map_filter, FilterUser.LOCAL_MAP, params)
        self.frame_filter = make_cloud_filter(params.frame_filter, FilterUser.FRAME, params)

        if place_recognition is None:
            place_recognition = self._init_place_recognition(params)

        global_map = self._init_global_map(params, global_map)
        self.local_map = LocalMapManager(global_map, BoxFilter(params.box_filter_size), registration)
        self._has_new_global_map = True

        self.motion = MotionModel()
        self.init = InitializationStateMachine(
            self.local_map, place_recognition, params.init_absolute_samples
        )
        self.init.add_initial_pose_listener(self.motion.reset)

        self._current_scan = empty_cloud()
        self.frame_count = 0
        self.last_result: Optional[RegistrationResult] = None

        self.local_map.reset_local_map(constants.LOCAL_MAP_START_ORIGIN)

    # =========================================================================
    # Start-up
    # =========================================================================

    @staticmethod
    def _init_place_recognition(params: MatchingParams) -> PlaceRecognitionInterface:
        index = make_place_recognition(params.loop_closure_method, params)
        if params.scan_context_path:
            try:
                index.load(params.scan_context_path)
            except (OSError, KeyError, ValueError) as exc:
                logger.error("Failed to load place recognition index: %s", exc)
                if isinstance(exc, ConfigurationError):
                    raise
                raise ConfigurationError(str(exc)) from exc
        return index

    def _init_global_map(self, params: MatchingParams, global_map: Optional[np.ndarray]) -> np.ndarray:
        if global_map is None:
            if not params.map_path:
                logger.error("No global map given and map_path is empty")
                raise ConfigurationError("map_path is not set")
            try:
                global_map = load_point_cloud(params.map_path)
            except (OSError, ValueError) as exc:
                logger.error("Failed to load global map: %s", exc)
                raise ConfigurationError(str(exc)) from exc

        global_map = remove_invalid_points(global_map)
        logger.info("Load global map, size: %d", global_map.shape[0])

        # scan-to-map matching: map and scan share the same density
        global_map = self.local_map_filter.filter(global_map)
        logger.info("Filtered global map, size: %d", global_map.shape[0])
        return global_map

    # =========================================================================
    # Registration loop
    # =========================================================================

    def process_frame(self, frame: np.ndarray) -> np.ndarray:
        """
        Localize one frame against the local map.

        Returns:
            Refined 4x4 pose of the frame in the map frame
        """
        cloud = remove_invalid_points(frame)
        filtered = self.frame_filter.filter(cloud)
        if filtered.shape[0] == 0:
            logger.warning("Frame %d is empty after filtering", self.frame_count)

        predict_pose = self.init.seed_pose(self.motion.predict_pose)
        result = self.local_map.registration.scan_match(filtered, predict_pose)
        pose = result.pose

        self._current_scan = transform_cloud(cloud, pose)
        self.motion.update(pose)

        self.local_map.update(pose, self.params.local_map_margin)

        self.last_result = result
        self.frame_count += 1
        logger.debug(
            "Frame %d: %d -> %d points, fitness %.4f, converged %s after %d iterations",
            self.frame_count, cloud.shape[0], filtered.shape[0],
            result.fitness, result.converged, result.iterations,
        )
        return pose.copy()

    # =========================================================================
    # Initialization
    # =========================================================================

    def set_absolute_pose(self, pose: np.ndarray) -> None:
        """Feed one absolute-position sample (e.g. GNSS) in the map frame."""
        self.init.on_absolute_position_sample(pose)

    def set_scan_context_pose(self, frame: np.ndarray) -> Optional[np.ndarray]:
        """Try to initialize from place recognition; None on a miss."""
        return self.init.on_place_recognition_query(frame)

    def set_init_pose(self, pose: np.ndarray) -> None:
        self.init.set_initial_pose(pose)

    def set_initialized(self) -> None:
        self.init.set_initialized()

    def get_init_pose(self) -> np.ndarray:
        return self.init.init_pose.copy()

    # =========================================================================
    # Outputs
    # =========================================================================

    def get_global_map(self) -> np.ndarray:
        """Global map downsampled for visualization; clears the "global map changed" flag."""
        self._has_new_global_map = False
        return self.global_map_filter.filter(self.local_map.global_map)

    def get_local_map(self) -> np.ndarray:
        """Read-only current local map; clears the "local map changed" flag."""
        return self.local_map.consume_local_map()

    def get_current_scan(self) -> np.ndarray:
        """Latest frame in the map frame, full resolution."""
        return self._current_scan

    def get_predict_pose(self) -> np.ndarray:
        return self.motion.predict_pose.copy()

    @property
    def init_state(self) -> InitState:
        return self.init.state

    def has_inited(self) -> bool:
        return self.init.is_initialized

    def has_new_global_map(self) -> bool:
        return self._has_new_global_map

    def has_new_local_map(self) -> bool:
        return self.local_map.has_new_local_map

    def status(self) -> Dict[str, Any]:
        from map_localizer.matching.status import matching_status

        return matching_status(self)

    def __repr__(self) -> str:
        return (
            f"Matching(state={self.init.state.name}, frames={self.frame_count}, "
            f"local_map={self.local_map.local_map.shape[0]} pts)"
        )
