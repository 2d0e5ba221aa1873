"""
Localization status and diagnostics.

Handles status snapshots, the "running uninitialized" warning, and the
JSON form consumed by replay logs.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from map_localizer.matching.matching import Matching

logger = logging.getLogger(__name__)

# Frames processed before an uninitialized run is reported
UNINITIALIZED_WARN_FRAMES = 50


def matching_status(matching: "Matching") -> Dict[str, Any]:
    """
    JSON-serializable snapshot of the localization state.

    Args:
        matching: Localization core instance
    """
    result = matching.last_result
    local_map = matching.local_map
    pose = result.pose if result is not None else matching.get_init_pose()

    # Determine mode
    if matching.has_inited():
        mode = "TRACKING"
    elif matching.init.sample_count > 0:
        mode = "CONVERGING"
    else:
        mode = "UNINITIALIZED"

    return {
        "timestamp": time.time(),
        "mode": mode,
        "init_state": matching.init_state.name,
        "absolute_samples": matching.init.sample_count,
        "frame_count": matching.frame_count,
        "registration_method": matching.params.registration_method.value,
        "global_map_size": int(local_map.global_map.shape[0]),
        "local_map_size": int(local_map.local_map.shape[0]),
        "local_map_rebuilds": local_map.rebuild_count,
        "local_map_edge": [float(e) for e in local_map.get_edge()],
        "has_new_global_map": matching.has_new_global_map(),
        "has_new_local_map": matching.has_new_local_map(),
        "position": [float(v) for v in pose[:3, 3]],
        "fitness": float(result.fitness) if result is not None else None,
        "converged": bool(result.converged) if result is not None else None,
        "iterations": int(result.iterations) if result is not None else None,
    }


def check_status(matching: "Matching") -> str:
    """
    Periodic status check; warns once if frames keep arriving while the
    pose was never initialized.

    Returns:
        The status snapshot as a JSON string
    """
    status = matching_status(matching)

    if (
        status["mode"] == "UNINITIALIZED"
        and matching.frame_count >= UNINITIALIZED_WARN_FRAMES
        and not getattr(matching, "warned_uninitialized", False)
    ):
        matching.warned_uninitialized = True
        logger.warning(
            "=" * 60 + "\n"
            "LOCALIZATION RUNNING UNINITIALIZED\n"
            "No absolute pose or place recognition hit received.\n"
            "Frames are aligned from the identity seed.\n"
            f"Stats: frames={matching.frame_count}, local_map={status['local_map_size']}\n"
            + "=" * 60
        )

    logger.debug(
        "Localization status: mode=%s, frames=%d, rebuilds=%d",
        status["mode"], status["frame_count"], status["local_map_rebuilds"],
    )
    return json.dumps(status)
