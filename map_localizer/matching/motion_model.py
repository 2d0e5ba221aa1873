"""Constant-velocity pose prediction."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from map_localizer.common.geometry import as_pose, identity_pose, se3_extrapolate, se3_relative


@dataclass
class MotionModel:
    """
    Pose history of the registration loop.

    After each accepted pose P1 following P0:
        step = P0^{-1} ∘ P1
        predict_pose = P1 ∘ step
    """
    last_pose: np.ndarray = field(default_factory=identity_pose)
    predict_pose: np.ndarray = field(default_factory=identity_pose)
    step_pose: np.ndarray = field(default_factory=identity_pose)

    def reset(self, pose: np.ndarray) -> None:
        """Restart the history at `pose` with zero velocity."""
        pose = as_pose(pose)
        self.last_pose = pose.copy()
        self.predict_pose = pose.copy()
        self.step_pose = identity_pose()

    def update(self, pose: np.ndarray) -> np.ndarray:
        """Accept a pose; returns the prediction for the next frame."""
        pose = as_pose(pose)
        self.step_pose = se3_relative(self.last_pose, pose)
        self.predict_pose = se3_extrapolate(self.last_pose, pose)
        self.last_pose = pose.copy()
        return self.predict_pose.copy()
