"""
Local map management.

Owns the static global map and the ROI-cropped local map derived from it.
The local map is replaced wholesale whenever the ROI box is recentered, and
the registration target is re-bound in the same call, so the next alignment
always sees the new local map.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from map_localizer.common.geometry import as_pose
from map_localizer.common.pointcloud import as_cloud
from map_localizer.models.cloud_filter import BoxFilter
from map_localizer.models.registration import RegistrationInterface

logger = logging.getLogger(__name__)


def _read_only(cloud: np.ndarray) -> np.ndarray:
    cloud.setflags(write=False)
    return cloud


class LocalMapManager:
    """
    Bounded local map around the most recent rebuild origin.

    Args:
        global_map: Static map cloud; copied and frozen
        box_filter: ROI filter whose fixed offsets define the box
        registration: Primitive whose target tracks the local map
    """

    def __init__(
        self,
        global_map: np.ndarray,
        box_filter: BoxFilter,
        registration: RegistrationInterface,
    ):
        self._global_map = _read_only(as_cloud(global_map).copy())
        self._local_map = _read_only(as_cloud([]))
        self.box_filter = box_filter
        self.registration = registration
        self.has_new_local_map = False
        self.rebuild_count = 0

    @property
    def global_map(self) -> np.ndarray:
        return self._global_map

    @property
    def local_map(self) -> np.ndarray:
        return self._local_map

    def get_edge(self) -> np.ndarray:
        """ROI bounds [xmin, xmax, ymin, ymax, zmin, zmax]."""
        return self.box_filter.get_edge()

    def reset_local_map(self, origin: Sequence[float]) -> None:
        """
        Recenter the ROI box on `origin` and rebuild the local map.

        An empty result (origin outside map coverage) is legal; it only
        degrades alignment until the next rebuild.
        """
        self.box_filter.set_origin(origin)
        local_map = _read_only(self.box_filter.filter(self._global_map))

        self.registration.set_input_target(local_map)
        self._local_map = local_map
        self.has_new_local_map = True
        self.rebuild_count += 1

        edge = self.box_filter.get_edge()
        logger.info(
            "New local map: %s (%d points)",
            ", ".join(f"{e:.2f}" for e in edge),
            local_map.shape[0],
        )
        if local_map.shape[0] == 0:
            logger.warning("Local map is empty at origin %s", np.round(self.box_filter.origin, 3).tolist())

    def needs_rebuild(self, pose: np.ndarray, margin: float) -> bool:
        """
        True as soon as the pose is closer than `margin` to either box edge
        on any axis. A distance of exactly `margin` does not trigger.
        """
        position = as_pose(pose)[:3, 3]
        edge = self.box_filter.get_edge()
        for i in range(3):
            if (
                abs(position[i] - edge[2 * i]) >= margin
                and abs(position[i] - edge[2 * i + 1]) >= margin
            ):
                continue
            return True
        return False

    def update(self, pose: np.ndarray, margin: float) -> bool:
        """Rebuild centered at the pose translation if needed; returns whether it did."""
        if not self.needs_rebuild(pose, margin):
            return False
        self.reset_local_map(as_pose(pose)[:3, 3])
        return True

    def consume_local_map(self) -> np.ndarray:
        """Current local map; clears the "local map changed" flag."""
        self.has_new_local_map = False
        return self._local_map
