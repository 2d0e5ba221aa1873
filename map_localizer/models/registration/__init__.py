"""
Scan-to-map registration.

Handles:
- NDT registration (ndt_registration)
- Point-to-point ICP registration (icp_registration)

Usage:
    from map_localizer.models.registration import make_registration

    registration = make_registration(params.registration_method, params)
    registration.set_input_target(local_map)
    result = registration.scan_match(frame, predict_pose)
"""

from __future__ import annotations

import logging

from map_localizer.config import ConfigurationError, MatchingParams, RegistrationMethod
from map_localizer.models.registration.registration_interface import (
    RegistrationInterface,
    RegistrationResult,
)
from map_localizer.models.registration.icp_registration import ICPRegistration
from map_localizer.models.registration.ndt_registration import NDTRegistration, build_ndt_cells

logger = logging.getLogger(__name__)


def make_registration(method: RegistrationMethod | str, params: MatchingParams) -> RegistrationInterface:
    """
    Build the registration primitive named by `method`.

    Raises:
        ConfigurationError: If the method name is unknown
    """
    try:
        method = RegistrationMethod(method)
    except ValueError as exc:
        logger.error("Registration method %s NOT FOUND", method)
        raise ConfigurationError(str(exc)) from exc

    logger.info("Point cloud registration method: %s", method.value)
    if method is RegistrationMethod.NDT:
        return NDTRegistration.from_params(params.ndt)
    return ICPRegistration.from_params(params.icp)


__all__ = [
    "RegistrationInterface",
    "RegistrationResult",
    "ICPRegistration",
    "NDTRegistration",
    "build_ndt_cells",
    "make_registration",
]
