"""
Localization configuration.

Provides the validated parameter model and the YAML loading path:
1. YAML configuration files (config/matching.yaml, optional preset)
2. Dict overrides from the caller
3. Pydantic validation into `MatchingParams`

Strategy names (registration, filters, loop closure) are closed enums, so an
unknown name fails validation at start-up instead of at first use.

Usage:
    from map_localizer.config import load_matching_config

    params = load_matching_config("/path/to/matching.yaml", overrides={"local_map_margin": 30.0})
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from map_localizer.common import constants

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Start-up configuration is invalid; construction must abort."""


# =============================================================================
# Strategy selection
# =============================================================================


class FilterMethod(str, Enum):
    VOXEL_FILTER = "voxel_filter"
    NO_FILTER = "no_filter"


class RegistrationMethod(str, Enum):
    NDT = "NDT"
    ICP = "ICP"


class LoopClosureMethod(str, Enum):
    SCAN_CONTEXT = "scan_context"


# =============================================================================
# Parameter groups
# =============================================================================


class VoxelFilterParams(BaseModel):
    """Leaf size (x, y, z) of one voxel filter user."""
    leaf_size: Tuple[float, float, float]

    @field_validator("leaf_size")
    @classmethod
    def _positive_leaf(cls, v: Tuple[float, float, float]) -> Tuple[float, float, float]:
        if any(s <= 0.0 for s in v):
            raise ValueError(f"leaf_size entries must be positive, got {v}")
        return v


class VoxelFilterGroup(BaseModel):
    """Voxel filter parameters per filter user."""
    global_map: VoxelFilterParams = Field(
        default_factory=lambda: VoxelFilterParams(leaf_size=constants.VOXEL_LEAF_SIZE_GLOBAL_MAP)
    )
    local_map: VoxelFilterParams = Field(
        default_factory=lambda: VoxelFilterParams(leaf_size=constants.VOXEL_LEAF_SIZE_LOCAL_MAP)
    )
    frame: VoxelFilterParams = Field(
        default_factory=lambda: VoxelFilterParams(leaf_size=constants.VOXEL_LEAF_SIZE_FRAME)
    )


class NDTParams(BaseModel):
    """Normal Distributions Transform registration."""
    res: float = Field(default=constants.NDT_RESOLUTION_DEFAULT, gt=0.0)
    step_size: float = Field(default=constants.NDT_STEP_SIZE_DEFAULT, gt=0.0)
    trans_eps: float = Field(default=constants.NDT_TRANS_EPS_DEFAULT, gt=0.0)
    max_iter: int = Field(default=constants.NDT_MAX_ITER_DEFAULT, ge=1)
    min_points_per_cell: int = Field(default=constants.NDT_MIN_POINTS_PER_CELL, ge=3)


class ICPParams(BaseModel):
    """Point-to-point ICP registration."""
    max_corr_dist: float = Field(default=constants.ICP_MAX_CORR_DIST_DEFAULT, gt=0.0)
    trans_eps: float = Field(default=constants.ICP_TRANS_EPS_DEFAULT, gt=0.0)
    max_iter: int = Field(default=constants.ICP_MAX_ITER_DEFAULT, ge=1)


class ScanContextParams(BaseModel):
    """Scan Context descriptor and retrieval."""
    num_rings: int = Field(default=constants.SC_NUM_RINGS_DEFAULT, ge=1)
    num_sectors: int = Field(default=constants.SC_NUM_SECTORS_DEFAULT, ge=1)
    max_radius: float = Field(default=constants.SC_MAX_RADIUS_DEFAULT, gt=0.0)
    lidar_height: float = constants.SC_LIDAR_HEIGHT_DEFAULT
    num_candidates: int = Field(default=constants.SC_NUM_CANDIDATES_DEFAULT, ge=1)
    distance_threshold: float = Field(default=constants.SC_DISTANCE_THRESHOLD_DEFAULT, gt=0.0)
    min_points: int = Field(default=constants.SC_MIN_POINTS_DEFAULT, ge=0)


class MatchingParams(BaseModel):
    """Complete localization configuration."""
    model_config = ConfigDict(populate_by_name=True)

    map_path: str = ""
    scan_context_path: str = ""

    registration_method: RegistrationMethod = RegistrationMethod.NDT
    loop_closure_method: LoopClosureMethod = LoopClosureMethod.SCAN_CONTEXT

    global_map_filter: FilterMethod = FilterMethod.VOXEL_FILTER
    local_map_filter: FilterMethod = FilterMethod.VOXEL_FILTER
    frame_filter: FilterMethod = FilterMethod.VOXEL_FILTER

    box_filter_size: Tuple[float, float, float, float, float, float] = constants.BOX_FILTER_SIZE_DEFAULT
    local_map_margin: float = Field(default=constants.LOCAL_MAP_MARGIN_DEFAULT, ge=0.0)
    init_absolute_samples: int = Field(default=constants.INIT_ABSOLUTE_SAMPLES_DEFAULT, ge=0)

    ndt: NDTParams = Field(default_factory=NDTParams, alias="NDT")
    icp: ICPParams = Field(default_factory=ICPParams, alias="ICP")
    voxel_filter: VoxelFilterGroup = Field(default_factory=VoxelFilterGroup)
    scan_context: ScanContextParams = Field(default_factory=ScanContextParams)

    @field_validator("box_filter_size")
    @classmethod
    def _ordered_box(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        for axis, name in enumerate("xyz"):
            lo, hi = v[2 * axis], v[2 * axis + 1]
            if not lo < hi:
                raise ValueError(f"box_filter_size: {name} min ({lo}) must be < max ({hi})")
        return v


# =============================================================================
# Loading
# =============================================================================


def load_yaml_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge configuration dictionaries (later configs override earlier)."""
    result: Dict[str, Any] = {}
    for config in configs:
        if config:
            _deep_merge(result, config)
    return result


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override dict into base dict (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_matching_config(
    base_path: Optional[str | Path] = None,
    preset_path: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> MatchingParams:
    """
    Load and validate localization configuration.

    Args:
        base_path: Path to base configuration YAML (matching.yaml)
        preset_path: Optional path to preset override YAML
        overrides: Optional dictionary of parameter overrides

    Returns:
        Validated MatchingParams model

    Raises:
        ConfigurationError: If a file is missing, unreadable or invalid
    """
    try:
        base_config = load_yaml_config(base_path) if base_path else {}
        preset_config = load_yaml_config(preset_path) if preset_path else {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to read localization config: %s", exc)
        raise ConfigurationError(str(exc)) from exc

    merged = merge_configs(base_config, preset_config, overrides or {})
    try:
        return MatchingParams(**merged)
    except ValidationError as exc:
        logger.error("Invalid localization parameters: %s", exc)
        raise ConfigurationError(str(exc)) from exc


def get_default_config_path() -> Path:
    """
    Path to the default config/matching.yaml.

    Prefers the copy next to the package (source checkout, editable install)
    and falls back to the installed data files under share/.
    """
    pkg_root = Path(__file__).resolve().parent.parent
    local = pkg_root / "config" / "matching.yaml"
    if local.exists():
        return local
    return Path(sys.prefix) / "share" / "map_localizer" / "config" / "matching.yaml"
