"""
Tests for point cloud file I/O.
"""

import numpy as np
import pytest

from map_localizer.common.cloud_io import load_pcd, load_point_cloud, save_point_cloud
from map_localizer.common.pointcloud import as_cloud, remove_invalid_points, transform_cloud


ASCII_PCD = """# .PCD v0.7 - Point Cloud Data file format
VERSION 0.7
FIELDS x y z intensity
SIZE 4 4 4 4
TYPE F F F F
COUNT 1 1 1 1
WIDTH 3
HEIGHT 1
VIEWPOINT 0 0 0 1 0 0 0
POINTS 3
DATA ascii
1.0 2.0 3.0 10
4.0 5.0 6.0 20
-1.0 0.5 2.5 30
"""


class TestPointCloudHelpers:

    def test_as_cloud_drops_extra_columns(self):
        assert as_cloud(np.ones((4, 5))).shape == (4, 3)

    def test_as_cloud_empty(self):
        assert as_cloud([]).shape == (0, 3)

    def test_as_cloud_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            as_cloud(np.ones((4, 2)))

    def test_remove_invalid_points(self):
        cloud = np.array([[1.0, 2.0, 3.0], [np.nan, 0.0, 0.0], [0.0, -np.inf, 0.0]])
        np.testing.assert_array_equal(remove_invalid_points(cloud), [[1.0, 2.0, 3.0]])

    def test_transform_empty(self):
        assert transform_cloud(np.empty((0, 3)), np.eye(4)).shape == (0, 3)


class TestPCD:

    def test_ascii_keeps_xyz_only(self, tmp_path):
        path = tmp_path / "cloud.pcd"
        path.write_text(ASCII_PCD)
        cloud = load_pcd(path)
        assert cloud.shape == (3, 3)
        np.testing.assert_allclose(cloud, [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [-1.0, 0.5, 2.5]])

    def test_binary_round_trip(self, tmp_path, rng):
        cloud = rng.normal(size=(100, 3))
        path = tmp_path / "cloud.pcd"
        save_point_cloud(path, cloud)
        np.testing.assert_allclose(load_point_cloud(path), cloud, atol=1e-5)

    def test_ply_round_trip(self, tmp_path, rng):
        cloud = rng.uniform(-10.0, 10.0, size=(50, 3))
        path = tmp_path / "cloud.ply"
        save_point_cloud(path, cloud)
        np.testing.assert_allclose(load_point_cloud(path), cloud, atol=1e-4)


class TestLoadPointCloud:

    def test_npy(self, tmp_path, rng):
        cloud = rng.normal(size=(20, 4))
        np.save(tmp_path / "cloud.npy", cloud)
        np.testing.assert_allclose(load_point_cloud(tmp_path / "cloud.npy"), cloud[:, :3])

    def test_npz(self, tmp_path, rng):
        cloud = rng.normal(size=(20, 3))
        np.savez(tmp_path / "cloud.npz", points=cloud)
        np.testing.assert_allclose(load_point_cloud(tmp_path / "cloud.npz"), cloud)

    def test_npz_without_points(self, tmp_path):
        np.savez(tmp_path / "cloud.npz", other=np.zeros(3))
        with pytest.raises(ValueError):
            load_point_cloud(tmp_path / "cloud.npz")

    def test_kitti_bin(self, tmp_path):
        scan = np.array([[1.0, 2.0, 3.0, 0.5], [4.0, 5.0, 6.0, 0.1]], dtype=np.float32)
        scan.tofile(tmp_path / "000000.bin")
        np.testing.assert_allclose(load_point_cloud(tmp_path / "000000.bin"), scan[:, :3])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_point_cloud(tmp_path / "missing.pcd")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "cloud.xyz"
        path.write_text("1 2 3\n")
        with pytest.raises(ValueError):
            load_point_cloud(path)
