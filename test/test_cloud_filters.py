"""
Tests for density filters, the ROI box filter and filter selection.
"""

import numpy as np
import pytest

from map_localizer.config import ConfigurationError
from map_localizer.models.cloud_filter import (
    BoxFilter,
    FilterUser,
    NoFilter,
    VoxelFilter,
    make_cloud_filter,
)


class TestVoxelFilter:

    def test_centroid_per_voxel(self):
        cloud = np.array([
            [0.1, 0.1, 0.1],
            [0.3, 0.3, 0.3],
            [1.5, 0.5, 0.5],
        ])
        out = VoxelFilter([1.0, 1.0, 1.0]).filter(cloud)
        assert out.shape == (2, 3)
        np.testing.assert_allclose(out[0], [0.2, 0.2, 0.2])
        np.testing.assert_allclose(out[1], [1.5, 0.5, 0.5])

    def test_reduces_dense_cloud(self, rng):
        cloud = rng.uniform(0.0, 10.0, size=(5000, 3))
        out = VoxelFilter([2.0, 2.0, 2.0]).filter(cloud)
        assert out.shape[0] <= 125
        assert np.all(out >= 0.0) and np.all(out <= 10.0)

    def test_deterministic(self, rng):
        cloud = rng.normal(size=(500, 3))
        f = VoxelFilter([0.5, 0.5, 0.5])
        np.testing.assert_array_equal(f.filter(cloud), f.filter(cloud.copy()))

    def test_empty_cloud(self):
        assert VoxelFilter([1.0, 1.0, 1.0]).filter(np.empty((0, 3))).shape == (0, 3)

    def test_rejects_non_positive_leaf(self):
        with pytest.raises(ValueError):
            VoxelFilter([1.0, 0.0, 1.0])

    def test_callable(self):
        cloud = np.array([[0.1, 0.1, 0.1], [0.2, 0.2, 0.2]])
        np.testing.assert_allclose(VoxelFilter([1.0, 1.0, 1.0])(cloud), [[0.15, 0.15, 0.15]])


class TestNoFilter:

    def test_passthrough_drops_extra_columns(self):
        cloud = np.array([[1.0, 2.0, 3.0, 42.0]])
        np.testing.assert_array_equal(NoFilter().filter(cloud), [[1.0, 2.0, 3.0]])


class TestBoxFilter:

    def test_edge_follows_origin(self):
        box = BoxFilter([-1.0, 2.0, -3.0, 4.0, -5.0, 6.0])
        box.set_origin([10.0, 20.0, 30.0])
        np.testing.assert_array_equal(box.get_edge(), [9.0, 12.0, 17.0, 24.0, 25.0, 36.0])

    def test_faces_are_inclusive(self):
        box = BoxFilter([-1.0, 1.0, -1.0, 1.0, -1.0, 1.0])
        cloud = np.array([
            [1.0, 0.0, 0.0],
            [-1.0, -1.0, -1.0],
            [1.0001, 0.0, 0.0],
        ])
        out = box.filter(cloud)
        assert out.shape == (2, 3)

    def test_get_edge_returns_copy(self):
        box = BoxFilter([-1.0, 1.0, -1.0, 1.0, -1.0, 1.0])
        edge = box.get_edge()
        edge[:] = 0.0
        assert box.get_edge()[1] == 1.0

    @pytest.mark.parametrize("size", [
        [1.0, -1.0, -1.0, 1.0, -1.0, 1.0],
        [-1.0, 1.0, -1.0, 1.0, -1.0],
    ])
    def test_rejects_bad_size(self, size):
        with pytest.raises(ValueError):
            BoxFilter(size)


class TestFilterSelection:

    def test_voxel_filter_uses_user_leaf_size(self, make_params):
        params = make_params()
        f = make_cloud_filter("voxel_filter", FilterUser.FRAME, params)
        assert isinstance(f, VoxelFilter)
        np.testing.assert_allclose(f.leaf_size, params.voxel_filter.frame.leaf_size)

    def test_no_filter(self, make_params):
        f = make_cloud_filter("no_filter", "local_map", make_params())
        assert isinstance(f, NoFilter)

    def test_unknown_method(self, make_params):
        with pytest.raises(ConfigurationError):
            make_cloud_filter("statistical_outlier", FilterUser.FRAME, make_params())

    def test_unknown_user(self, make_params):
        with pytest.raises(ConfigurationError):
            make_cloud_filter("no_filter", "viewer", make_params())
