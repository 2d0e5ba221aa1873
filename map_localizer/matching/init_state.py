"""
Initialization state machine.

Two ways to obtain the first trustworthy pose:
- Absolute-position samples (e.g. GNSS): the first sample is adopted as the
  initial pose right away (Uninitialized -> Converging); once more than
  `required_samples` samples have arrived the state becomes Initialized.
- Place recognition: a single successful query adopts the recovered pose
  and jumps straight to Initialized. A miss changes nothing; the caller
  retries on a later frame.

States never move backwards.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, List, Optional

import numpy as np

from map_localizer.common import constants
from map_localizer.common.geometry import as_pose, identity_pose
from map_localizer.matching.local_map import LocalMapManager
from map_localizer.models.scan_context import PlaceRecognitionInterface

logger = logging.getLogger(__name__)


class InitState(IntEnum):
    UNINITIALIZED = 0
    CONVERGING = 1
    INITIALIZED = 2


class InitializationStateMachine:
    """
    Args:
        local_map: Recentered on every committed initial pose
        place_recognition: Index queried by `on_place_recognition_query`
        required_samples: Absolute samples needed (strictly more than)
    """

    def __init__(
        self,
        local_map: LocalMapManager,
        place_recognition: PlaceRecognitionInterface,
        required_samples: int = constants.INIT_ABSOLUTE_SAMPLES_DEFAULT,
    ):
        self.local_map = local_map
        self.place_recognition = place_recognition
        self.required_samples = int(required_samples)

        self.state = InitState.UNINITIALIZED
        self.sample_count = 0
        self.absolute_pose = identity_pose()
        self.init_pose = identity_pose()
        self._listeners: List[Callable[[np.ndarray], None]] = []

    @property
    def is_initialized(self) -> bool:
        return self.state is InitState.INITIALIZED

    def add_initial_pose_listener(self, callback: Callable[[np.ndarray], None]) -> None:
        """Register a callback run with every committed initial pose."""
        self._listeners.append(callback)

    def _advance(self, state: InitState) -> None:
        if state > self.state:
            logger.info("Initialization state: %s -> %s", self.state.name, state.name)
            self.state = state

    def set_initial_pose(self, pose: np.ndarray) -> None:
        """Commit `pose` as the initial pose and recenter the local map on it."""
        pose = as_pose(pose)
        self.init_pose = pose.copy()
        logger.info("Init pose is:\n%s", np.array2string(pose, precision=4, suppress_small=True))
        self.local_map.reset_local_map(pose[:3, 3])
        for callback in self._listeners:
            callback(pose.copy())

    def set_initialized(self) -> None:
        self._advance(InitState.INITIALIZED)

    def on_absolute_position_sample(self, pose: np.ndarray) -> None:
        pose = as_pose(pose)
        self.absolute_pose = pose.copy()

        if self.sample_count == 0:
            self.set_initial_pose(pose)
            self._advance(InitState.CONVERGING)
        self.sample_count += 1

        if self.sample_count > self.required_samples:
            self._advance(InitState.INITIALIZED)

    def on_place_recognition_query(self, frame: np.ndarray) -> Optional[np.ndarray]:
        pose = self.place_recognition.query(frame)
        if pose is None:
            return None
        self.set_initial_pose(pose)
        self._advance(InitState.INITIALIZED)
        return as_pose(pose)

    def seed_pose(self, predict_pose: np.ndarray) -> np.ndarray:
        """
        Alignment seed: the motion prediction once initialized, otherwise
        the latest absolute sample (identity if none arrived yet).
        """
        if self.is_initialized:
            return as_pose(predict_pose)
        return self.absolute_pose.copy()
