#!/usr/bin/env python3
"""
Replay a directory of lidar frames through the localizer and write the
estimated trajectory as TUM.

Frames are processed in sorted file-name order. With --poses, one absolute
pose per frame (by order) is fed before the frame is matched; otherwise
place recognition is attempted on each frame until it initializes.

Usage:
  map_localizer_replay frames/ --map map.pcd --index sc_index.npz --out est.tum
  map_localizer_replay frames/ --config my.yaml --poses gnss.tum --out est.tum
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from map_localizer.common.cloud_io import CLOUD_SUFFIXES, load_point_cloud
from map_localizer.config import ConfigurationError, get_default_config_path, load_matching_config
from map_localizer.matching import Matching, check_status
from map_localizer.tools.trajectory import load_tum, write_tum

logger = logging.getLogger(__name__)


def list_frames(frames_dir: str | Path) -> List[Path]:
    """Cloud files of a directory in sorted file-name order."""
    frames_dir = Path(frames_dir)
    if not frames_dir.is_dir():
        raise FileNotFoundError(f"Frames directory not found: {frames_dir}")
    return sorted(p for p in frames_dir.iterdir() if p.suffix.lower() in CLOUD_SUFFIXES)


def replay(
    matching: Matching,
    frames: Sequence[Path],
    absolute_poses: Optional[Sequence[np.ndarray]] = None,
    stamps: Optional[Sequence[float]] = None,
    period: float = 0.1,
    status_every: int = 100,
):
    """
    Run the registration loop over `frames`.

    Returns:
        (stamps, poses) of every processed frame
    """
    out_stamps = []
    out_poses = []
    for i, path in enumerate(frames):
        frame = load_point_cloud(path)

        if absolute_poses is not None and i < len(absolute_poses):
            matching.set_absolute_pose(absolute_poses[i])
        elif absolute_poses is None and not matching.has_inited():
            matching.set_scan_context_pose(frame)

        pose = matching.process_frame(frame)
        out_stamps.append(stamps[i] if stamps is not None and i < len(stamps) else i * period)
        out_poses.append(pose)

        if status_every > 0 and (i + 1) % status_every == 0:
            check_status(matching)
    return out_stamps, out_poses


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Replay lidar frames through the map localizer.")
    ap.add_argument("frames_dir", help="Directory of frame clouds (.pcd/.npy/.npz/.bin)")
    ap.add_argument("--config", default=None, help="Base YAML config (default: shipped matching.yaml)")
    ap.add_argument("--preset", default=None, help="Optional preset YAML merged over the base config")
    ap.add_argument("--map", default=None, help="Global map cloud (overrides map_path)")
    ap.add_argument("--index", default=None, help="Scan Context index .npz (overrides scan_context_path)")
    ap.add_argument("--poses", default=None, help="TUM file of absolute poses, one per frame")
    ap.add_argument("--period", type=float, default=0.1, help="Frame period (s) when --poses is not given")
    ap.add_argument("--out", default="estimated_trajectory.tum", help="Output TUM trajectory")
    ap.add_argument("-v", "--verbose", action="store_true", help="Per-frame debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.map:
        overrides["map_path"] = args.map
    if args.index:
        overrides["scan_context_path"] = args.index

    try:
        params = load_matching_config(args.config or get_default_config_path(), args.preset, overrides)
        matching = Matching(params)
        frames = list_frames(args.frames_dir)
        stamps = absolute_poses = None
        if args.poses:
            stamps, absolute_poses = load_tum(args.poses)
    except (ConfigurationError, OSError, ValueError) as exc:
        logger.error("Replay setup failed: %s", exc)
        return 1

    if not frames:
        logger.error("No frames found in %s", args.frames_dir)
        return 1
    logger.info("Replaying %d frames from %s", len(frames), args.frames_dir)

    out_stamps, out_poses = replay(matching, frames, absolute_poses, stamps, args.period)
    n = write_tum(args.out, out_stamps, out_poses)
    logger.info("Wrote %d poses to %s", n, args.out)
    logger.info("Final status: %s", check_status(matching))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
