"""
Place recognition (loop closure) for initialization.

Usage:
    from map_localizer.models.scan_context import make_place_recognition

    index = make_place_recognition(params.loop_closure_method, params)
    index.load(params.scan_context_path)
    pose = index.query(frame)
"""

from __future__ import annotations

import logging

from map_localizer.config import ConfigurationError, LoopClosureMethod, MatchingParams
from map_localizer.models.scan_context.place_recognition_interface import PlaceRecognitionInterface
from map_localizer.models.scan_context.scan_context_manager import (
    ScanContextManager,
    make_scan_context,
    ring_key,
    scan_context_distance,
)

logger = logging.getLogger(__name__)


def make_place_recognition(
    method: LoopClosureMethod | str,
    params: MatchingParams,
) -> PlaceRecognitionInterface:
    """
    Build the (empty) place recognition index named by `method`.

    Raises:
        ConfigurationError: If the method name is unknown
    """
    try:
        method = LoopClosureMethod(method)
    except ValueError as exc:
        logger.error("Loop closure method %s NOT FOUND", method)
        raise ConfigurationError(str(exc)) from exc

    logger.info("Loop closure method: %s", method.value)
    return ScanContextManager.from_params(params.scan_context)


__all__ = [
    "PlaceRecognitionInterface",
    "ScanContextManager",
    "make_scan_context",
    "ring_key",
    "scan_context_distance",
    "make_place_recognition",
]
