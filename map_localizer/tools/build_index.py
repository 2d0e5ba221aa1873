#!/usr/bin/env python3
"""
Build a Scan Context index from keyframe clouds and their map poses.

Keyframes are paired with TUM poses by order (sorted file names against
file rows); extra entries on either side are ignored with a warning.

Usage:
  map_localizer_build_index keyframes/ keyframe_poses.tum --out sc_index.npz
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from map_localizer.common.cloud_io import load_point_cloud
from map_localizer.config import ConfigurationError, get_default_config_path, load_matching_config
from map_localizer.models.scan_context import ScanContextManager
from map_localizer.tools.replay import list_frames
from map_localizer.tools.trajectory import load_tum

logger = logging.getLogger(__name__)


def build_index(
    index: ScanContextManager,
    keyframes: Sequence[Path],
    poses: Sequence[np.ndarray],
) -> ScanContextManager:
    """Add every (keyframe, pose) pair to `index`."""
    if len(keyframes) != len(poses):
        logger.warning(
            "%d keyframes but %d poses; using the first %d",
            len(keyframes), len(poses), min(len(keyframes), len(poses)),
        )
    for path, pose in zip(keyframes, poses):
        index.add_key_frame(load_point_cloud(path), pose)
    return index


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Build a Scan Context index for map localization.")
    ap.add_argument("keyframes_dir", help="Directory of keyframe clouds in the sensor frame")
    ap.add_argument("poses", help="TUM file with one map pose per keyframe")
    ap.add_argument("--config", default=None, help="Base YAML config (default: shipped matching.yaml)")
    ap.add_argument("--out", default="sc_index.npz", help="Output index (.npz)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        params = load_matching_config(args.config or get_default_config_path())
        keyframes = list_frames(args.keyframes_dir)
        _, poses = load_tum(args.poses)
        index = build_index(ScanContextManager.from_params(params.scan_context), keyframes, poses)
    except (ConfigurationError, OSError, ValueError) as exc:
        logger.error("Index build failed: %s", exc)
        return 1

    written = index.save(args.out)
    logger.info("Saved %d keyframes to %s", len(index), written)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
