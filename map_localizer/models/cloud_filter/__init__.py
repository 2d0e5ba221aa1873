"""
Cloud filters.

Handles:
- Density reduction (VoxelFilter, NoFilter), selected per filter user
- Region-of-interest cropping (BoxFilter) for local map extraction

Usage:
    from map_localizer.models.cloud_filter import make_cloud_filter, FilterUser

    frame_filter = make_cloud_filter(params.frame_filter, FilterUser.FRAME, params)
"""

from __future__ import annotations

import logging
from enum import Enum

from map_localizer.config import ConfigurationError, FilterMethod, MatchingParams
from map_localizer.models.cloud_filter.cloud_filter_interface import CloudFilterInterface
from map_localizer.models.cloud_filter.box_filter import BoxFilter
from map_localizer.models.cloud_filter.no_filter import NoFilter
from map_localizer.models.cloud_filter.voxel_filter import VoxelFilter

logger = logging.getLogger(__name__)


class FilterUser(str, Enum):
    """Which stage a density filter serves; selects its parameter block."""
    GLOBAL_MAP = "global_map"
    LOCAL_MAP = "local_map"
    FRAME = "frame"


def make_cloud_filter(
    method: FilterMethod | str,
    user: FilterUser | str,
    params: MatchingParams,
) -> CloudFilterInterface:
    """
    Build the density filter for one user.

    Raises:
        ConfigurationError: If the method name is unknown
    """
    try:
        method = FilterMethod(method)
        user = FilterUser(user)
    except ValueError as exc:
        logger.error("Filter method %s for %s NOT FOUND", method, user)
        raise ConfigurationError(str(exc)) from exc

    logger.info("Filter method for %s: %s", user.value, method.value)
    if method is FilterMethod.VOXEL_FILTER:
        leaf_size = getattr(params.voxel_filter, user.value).leaf_size
        return VoxelFilter(leaf_size)
    return NoFilter()


__all__ = [
    "CloudFilterInterface",
    "BoxFilter",
    "NoFilter",
    "VoxelFilter",
    "FilterUser",
    "make_cloud_filter",
]
