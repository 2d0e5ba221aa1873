"""
Cloud filter interface.

Filters are stateless with respect to history and deterministic for a fixed
configuration: the same input cloud always yields the same output cloud.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class CloudFilterInterface(ABC):
    """Maps an (N, 3) cloud to an (M, 3) cloud."""

    @abstractmethod
    def filter(self, cloud: np.ndarray) -> np.ndarray:
        """Return the filtered cloud; never mutates the input."""

    def __call__(self, cloud: np.ndarray) -> np.ndarray:
        return self.filter(cloud)
