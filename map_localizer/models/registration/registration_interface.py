"""
Registration interface.

A registration primitive holds a target cloud (the local map) and aligns
source clouds (frames) against it from a seed pose. Degenerate inputs
(empty source, empty target, too few correspondences) never raise: the
seed pose comes back unchanged with `converged=False`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass
class RegistrationResult:
    """Outcome of one scan-to-map alignment."""
    pose: np.ndarray  # (4, 4) refined pose, map <- source
    aligned_cloud: np.ndarray  # (N, 3) source transformed by `pose`
    fitness: float  # mean squared residual of matched points, inf if none matched
    converged: bool
    iterations: int  # iterations run; the cap when the backend does not report a count


class RegistrationInterface(ABC):
    """Scan-to-map alignment primitive."""

    @abstractmethod
    def set_input_target(self, target: np.ndarray) -> None:
        """Replace the alignment target. Takes effect for the next `scan_match`."""

    @abstractmethod
    def scan_match(self, source: np.ndarray, predict_pose: np.ndarray) -> RegistrationResult:
        """Align `source` to the target starting from `predict_pose`."""
