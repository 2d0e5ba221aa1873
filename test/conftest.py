import os
from typing import Any, List

import numpy as np
import pytest

from map_localizer.config import MatchingParams, get_default_config_path, load_matching_config

# =============================================================================
# Config Fixtures
# =============================================================================
# These fixtures load the shipped config/matching.yaml so tests validate the
# same defaults the tools run with.


@pytest.fixture
def default_config_path() -> str:
    path = str(get_default_config_path())
    if not os.path.exists(path):
        pytest.skip("config/matching.yaml not found")
    return path


@pytest.fixture
def make_params(default_config_path):
    """
    Factory for MatchingParams built from the shipped defaults plus overrides.

    Usage:
        def test_something(make_params):
            params = make_params(registration_method="ICP", frame_filter="no_filter")
    """
    def _make(**overrides: Any) -> MatchingParams:
        return load_matching_config(default_config_path, overrides=overrides)

    return _make


@pytest.fixture
def params(make_params) -> MatchingParams:
    """Defaults with unfiltered inputs and a small ROI box."""
    return make_params(
        global_map_filter="no_filter",
        local_map_filter="no_filter",
        frame_filter="no_filter",
        box_filter_size=[-20.0, 20.0, -20.0, 20.0, -20.0, 20.0],
    )


# =============================================================================
# Test Utility Fixtures
# =============================================================================

@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


def make_cube_map(extent: float = 100.0, height: float = 10.0, spacing: float = 2.0) -> np.ndarray:
    """Uniform grid over [-extent/2, extent/2]^2 x [0, height]."""
    half = extent / 2.0
    xs = np.arange(-half, half + 1e-9, spacing)
    zs = np.arange(0.0, height + 1e-9, spacing)
    X, Y, Z = np.meshgrid(xs, xs, zs, indexing="ij")
    return np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=1)


@pytest.fixture
def cube_map() -> np.ndarray:
    """100 x 100 x 10 cube of uniformly spaced points."""
    return make_cube_map()


@pytest.fixture
def box_size() -> List[float]:
    return [-20.0, 20.0, -20.0, 20.0, -20.0, 20.0]
