"""
Localization core.

Handles:
- The per-frame registration loop (matching)
- Local map extraction and recentering (local_map)
- Constant-velocity prediction (motion_model)
- Initialization from absolute poses or place recognition (init_state)
- Status snapshots (status)
"""

from map_localizer.matching.init_state import InitializationStateMachine, InitState
from map_localizer.matching.local_map import LocalMapManager
from map_localizer.matching.matching import Matching
from map_localizer.matching.motion_model import MotionModel
from map_localizer.matching.status import check_status, matching_status

__all__ = [
    "InitState",
    "InitializationStateMachine",
    "LocalMapManager",
    "Matching",
    "MotionModel",
    "check_status",
    "matching_status",
]
