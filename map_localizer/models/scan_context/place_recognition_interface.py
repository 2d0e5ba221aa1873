"""
Place recognition interface.

An index is built offline from keyframes with known map poses and loaded
read-only at start-up. A query either recovers an absolute pose for the
frame or returns None; a miss is an expected outcome, not an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import numpy as np


class PlaceRecognitionInterface(ABC):

    @abstractmethod
    def load(self, path: str | Path) -> None:
        """Replace the index contents with a serialized index."""

    @abstractmethod
    def query(self, frame: np.ndarray) -> Optional[np.ndarray]:
        """Absolute 4x4 pose for `frame`, or None when no keyframe matches."""
