"""
Scan Context place recognition.

Descriptor: the horizontal plane around the sensor is split into
`num_rings` x `num_sectors` polar bins out to `max_radius`; each bin holds
the maximum point height (plus `lidar_height`, so ground returns are
positive). Empty bins are 0.

Retrieval:
1. Ring key (per-ring mean) nearest neighbours from a KD-tree give
   `num_candidates` keyframes.
2. Each candidate is compared with the column-shift cosine distance; the
   best shift also yields the relative yaw.
3. The best candidate matches if its distance is below
   `distance_threshold`; the returned pose is the keyframe pose rotated by
   the recovered yaw.

Reference: Kim & Kim (2018), Scan Context: Egocentric Spatial Descriptor
for Place Recognition within 3D Point Cloud Map.
"""

from __future__ import annotations

import logging
import math
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from scipy.spatial import cKDTree

from map_localizer.common import constants
from map_localizer.common.geometry import as_pose, yaw_pose
from map_localizer.common.pointcloud import remove_invalid_points
from map_localizer.config import ConfigurationError, ScanContextParams
from map_localizer.models.scan_context.place_recognition_interface import PlaceRecognitionInterface

logger = logging.getLogger(__name__)


def make_scan_context(
    cloud: np.ndarray,
    num_rings: int = constants.SC_NUM_RINGS_DEFAULT,
    num_sectors: int = constants.SC_NUM_SECTORS_DEFAULT,
    max_radius: float = constants.SC_MAX_RADIUS_DEFAULT,
    lidar_height: float = constants.SC_LIDAR_HEIGHT_DEFAULT,
) -> np.ndarray:
    """
    Build the (num_rings, num_sectors) max-height descriptor of a body-frame cloud.
    """
    cloud = remove_invalid_points(cloud)
    sc = np.full(num_rings * num_sectors, -np.inf, dtype=float)

    x, y, z = cloud[:, 0], cloud[:, 1], cloud[:, 2]
    r = np.hypot(x, y)
    keep = r < max_radius
    if np.any(keep):
        r, z = r[keep], z[keep]
        azimuth = np.mod(np.arctan2(y[keep], x[keep]), 2.0 * math.pi)
        ring_idx = np.clip((r / max_radius * num_rings).astype(np.int64), 0, num_rings - 1)
        sector_idx = np.clip(
            (azimuth / (2.0 * math.pi) * num_sectors).astype(np.int64), 0, num_sectors - 1
        )
        np.maximum.at(sc, ring_idx * num_sectors + sector_idx, z + lidar_height)

    sc[~np.isfinite(sc)] = 0.0
    return sc.reshape(num_rings, num_sectors)


def ring_key(sc: np.ndarray) -> np.ndarray:
    """Rotation-invariant per-ring mean of a descriptor."""
    return np.asarray(sc, dtype=float).mean(axis=1)


def scan_context_distance(sc_query: np.ndarray, sc_candidate: np.ndarray) -> Tuple[float, int]:
    """
    Column-shift cosine distance.

    For every circular shift s of the candidate's sectors, the distance is
    1 - mean cosine similarity over columns non-empty in both descriptors.

    Returns:
        (best distance in [0, 2], shift s achieving it); shifting the
        candidate by s columns (np.roll) aligns it with the query
    """
    n_sectors = sc_query.shape[1]
    shifts = np.arange(n_sectors)
    # rolled[s] == np.roll(sc_candidate, s, axis=1)
    cols = (np.arange(n_sectors)[None, :] - shifts[:, None]) % n_sectors
    rolled = sc_candidate[:, cols].transpose(1, 0, 2)  # (S, R, S)

    q_norm = np.linalg.norm(sc_query, axis=0)  # (S,)
    c_norm = np.linalg.norm(rolled, axis=1)  # (shift, S)
    dots = np.einsum("rj,srj->sj", sc_query, rolled)

    valid = (q_norm[None, :] > constants.COSINE_EPSILON) & (c_norm > constants.COSINE_EPSILON)
    sims = np.where(valid, dots / np.maximum(q_norm[None, :] * c_norm, constants.COSINE_EPSILON), 0.0)
    n_valid = valid.sum(axis=1)
    dist = np.where(n_valid > 0, 1.0 - sims.sum(axis=1) / np.maximum(n_valid, 1), np.inf)

    best = int(np.argmin(dist))
    return float(dist[best]), best


def index_path(path: str | Path) -> Path:
    """Index file name as np.savez writes it (".npz" appended when missing)."""
    path = Path(path)
    return path if path.suffix == ".npz" else path.with_name(path.name + ".npz")


class ScanContextManager(PlaceRecognitionInterface):
    """
    Keyframe descriptor database with ring-key candidate search.

    Attributes:
        scan_contexts: (K, R, S) keyframe descriptors
        ring_keys: (K, R) keyframe ring keys
        poses: (K, 4, 4) keyframe poses in the map frame
    """

    def __init__(
        self,
        num_rings: int = constants.SC_NUM_RINGS_DEFAULT,
        num_sectors: int = constants.SC_NUM_SECTORS_DEFAULT,
        max_radius: float = constants.SC_MAX_RADIUS_DEFAULT,
        lidar_height: float = constants.SC_LIDAR_HEIGHT_DEFAULT,
        num_candidates: int = constants.SC_NUM_CANDIDATES_DEFAULT,
        distance_threshold: float = constants.SC_DISTANCE_THRESHOLD_DEFAULT,
        min_points: int = constants.SC_MIN_POINTS_DEFAULT,
    ):
        self.num_rings = int(num_rings)
        self.num_sectors = int(num_sectors)
        self.max_radius = float(max_radius)
        self.lidar_height = float(lidar_height)
        self.num_candidates = int(num_candidates)
        self.distance_threshold = float(distance_threshold)
        self.min_points = int(min_points)

        self._scan_contexts: List[np.ndarray] = []
        self._poses: List[np.ndarray] = []
        self._tree: Optional[cKDTree] = None

    @classmethod
    def from_params(cls, params: ScanContextParams) -> "ScanContextManager":
        return cls(**params.model_dump())

    def __len__(self) -> int:
        return len(self._scan_contexts)

    @property
    def scan_contexts(self) -> np.ndarray:
        if not self._scan_contexts:
            return np.empty((0, self.num_rings, self.num_sectors))
        return np.stack(self._scan_contexts)

    @property
    def ring_keys(self) -> np.ndarray:
        return self.scan_contexts.mean(axis=2)

    @property
    def poses(self) -> np.ndarray:
        if not self._poses:
            return np.empty((0, 4, 4))
        return np.stack(self._poses)

    @property
    def sector_angle(self) -> float:
        return 2.0 * math.pi / self.num_sectors

    def describe(self, cloud: np.ndarray) -> np.ndarray:
        return make_scan_context(
            cloud, self.num_rings, self.num_sectors, self.max_radius, self.lidar_height
        )

    def add_key_frame(self, cloud: np.ndarray, pose: np.ndarray) -> None:
        """Index a body-frame keyframe cloud observed at map pose `pose`."""
        self._scan_contexts.append(self.describe(cloud))
        self._poses.append(as_pose(pose))
        self._tree = None

    def _candidate_tree(self) -> cKDTree:
        if self._tree is None:
            self._tree = cKDTree(self.ring_keys)
        return self._tree

    def detect_loop_closure(self, cloud: np.ndarray) -> Optional[Tuple[int, float, float]]:
        """
        Best keyframe for a query cloud.

        Returns:
            (keyframe index, distance, yaw of the query relative to the
            keyframe) or None on a miss
        """
        if not self._scan_contexts:
            return None
        cloud = remove_invalid_points(cloud)
        if cloud.shape[0] < self.min_points:
            logger.debug("Scan context: query has %d points, need %d", cloud.shape[0], self.min_points)
            return None

        sc = self.describe(cloud)
        k = min(self.num_candidates, len(self))
        _, idx = self._candidate_tree().query(ring_key(sc), k=k)
        candidates = np.atleast_1d(idx)

        best_index, best_dist, best_shift = -1, np.inf, 0
        for i in candidates:
            dist, shift = scan_context_distance(sc, self._scan_contexts[int(i)])
            if dist < best_dist:
                best_index, best_dist, best_shift = int(i), dist, shift

        if best_index < 0 or best_dist >= self.distance_threshold:
            logger.debug("Scan context: no match (best distance %.3f)", best_dist)
            return None

        yaw = -best_shift * self.sector_angle
        yaw = math.atan2(math.sin(yaw), math.cos(yaw))
        return best_index, float(best_dist), yaw

    def query(self, frame: np.ndarray) -> Optional[np.ndarray]:
        match = self.detect_loop_closure(frame)
        if match is None:
            return None
        index, dist, yaw = match
        logger.info("Scan context: matched keyframe %d (distance %.3f, yaw %.3f rad)", index, dist, yaw)
        return self._poses[index] @ yaw_pose(yaw)

    def save(self, path: str | Path) -> Path:
        """Write the index; a missing .npz suffix is appended. Returns the written path."""
        path = index_path(path)
        np.savez(
            path,
            scan_contexts=self.scan_contexts,
            poses=self.poses,
            descriptor=np.array(
                [self.num_rings, self.num_sectors, self.max_radius, self.lidar_height], dtype=float
            ),
        )
        return path

    def load(self, path: str | Path) -> None:
        """
        Load a saved index.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the file is not a readable index, or was
                built with another descriptor layout
        """
        path = index_path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Scan context index not found: {path}")

        try:
            with np.load(path) as archive:
                scan_contexts = np.asarray(archive["scan_contexts"], dtype=float)
                poses = np.asarray(archive["poses"], dtype=float)
                descriptor = np.asarray(archive["descriptor"], dtype=float)
        except (zipfile.BadZipFile, KeyError, ValueError, EOFError) as exc:
            raise ConfigurationError(f"Scan context index {path} is unreadable: {exc}") from exc

        expected = np.array([self.num_rings, self.num_sectors, self.max_radius, self.lidar_height])
        if not np.allclose(descriptor, expected):
            raise ConfigurationError(
                f"Scan context index {path} was built with descriptor {descriptor.tolist()}, "
                f"configured {expected.tolist()}"
            )
        if scan_contexts.shape[0] != poses.shape[0]:
            raise ConfigurationError(
                f"Scan context index {path}: {scan_contexts.shape[0]} descriptors "
                f"but {poses.shape[0]} poses"
            )

        self._scan_contexts = list(scan_contexts)
        self._poses = [as_pose(p) for p in poses]
        self._tree = None
        logger.info("Loaded scan context index %s with %d keyframes", path, len(self))
