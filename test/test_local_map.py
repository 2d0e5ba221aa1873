"""
Tests for local map extraction and the margin-triggered rebuild.
"""

import numpy as np
import pytest

from map_localizer.common.geometry import make_pose, pose_from_vector
from map_localizer.matching.local_map import LocalMapManager
from map_localizer.models.cloud_filter import BoxFilter
from map_localizer.models.registration import ICPRegistration


class RecordingRegistration(ICPRegistration):
    """ICP that remembers every target it was bound to."""

    def __init__(self):
        super().__init__()
        self.targets = []

    def set_input_target(self, target):
        super().set_input_target(target)
        self.targets.append(target)


@pytest.fixture
def manager(cube_map, box_size):
    return LocalMapManager(cube_map, BoxFilter(box_size), RecordingRegistration())


def at(x, y=0.0, z=0.0):
    return make_pose(t=np.array([x, y, z]))


class TestRebuildPredicate:

    @pytest.fixture
    def wide(self, cube_map):
        m = LocalMapManager(cube_map, BoxFilter([-100.0, 100.0] * 3), RecordingRegistration())
        m.reset_local_map([0.0, 0.0, 0.0])
        return m

    def test_centre_is_safe(self, wide):
        assert not wide.needs_rebuild(at(0.0), margin=50.0)

    def test_distance_equal_to_margin_does_not_rebuild(self, wide):
        # far edge at 100: distance exactly 50
        assert not wide.needs_rebuild(at(50.0), margin=50.0)
        assert not wide.needs_rebuild(at(0.0, -50.0), margin=50.0)

    def test_closer_than_margin_rebuilds(self, wide):
        assert wide.needs_rebuild(at(50.001), margin=50.0)
        assert wide.needs_rebuild(at(0.0, 0.0, -60.0), margin=50.0)

    def test_pose_far_outside_box_never_rebuilds(self, wide):
        # |300 - 100| and |300 + 100| both exceed the margin
        assert not wide.needs_rebuild(at(300.0), margin=50.0)
        assert not wide.needs_rebuild(at(0.0, -400.0), margin=50.0)

    def test_pose_just_outside_box_rebuilds(self, wide):
        assert wide.needs_rebuild(at(120.0), margin=50.0)

    def test_any_single_axis_triggers(self, wide):
        assert wide.needs_rebuild(at(0.0, 0.0, 75.0), margin=50.0)
        assert not wide.needs_rebuild(at(10.0, -10.0, 20.0), margin=50.0)

    def test_predicate_ignores_rotation(self, wide):
        assert not wide.needs_rebuild(pose_from_vector([10.0, 0.0, 0.0, 0.0, 0.0, 2.0]), margin=50.0)

    def test_box_narrower_than_twice_margin_always_rebuilds(self, manager):
        manager.reset_local_map([0.0, 0.0, 0.0])
        assert manager.needs_rebuild(at(0.0), margin=50.0)


class TestLocalMapManager:

    def test_submap_within_box(self, manager):
        manager.reset_local_map([0.0, 0.0, 0.0])
        local = manager.local_map
        assert local.shape[0] > 0
        assert np.all(np.abs(local[:, 0]) <= 20.0)
        assert np.all(np.abs(local[:, 1]) <= 20.0)
        np.testing.assert_array_equal(manager.get_edge(), [-20.0, 20.0, -20.0, 20.0, -20.0, 20.0])

    def test_rebuild_is_idempotent(self, manager):
        manager.reset_local_map([5.0, -3.0, 0.0])
        edge, local = manager.get_edge(), manager.local_map.copy()
        manager.reset_local_map([5.0, -3.0, 0.0])
        np.testing.assert_array_equal(manager.get_edge(), edge)
        np.testing.assert_array_equal(manager.local_map, local)

    def test_rebuild_rebinds_registration_target(self, manager):
        manager.reset_local_map([0.0, 0.0, 0.0])
        assert manager.registration.targets[-1] is manager.local_map
        np.testing.assert_array_equal(manager.registration.target, manager.local_map)

    def test_move_to_45_triggers_rebuild(self, manager):
        manager.reset_local_map([0.0, 0.0, 0.0])
        pose = at(45.0)
        # x: |45 - 20| = 25 < 50
        assert manager.needs_rebuild(pose, margin=50.0)
        assert manager.update(pose, margin=50.0)
        np.testing.assert_array_equal(manager.get_edge(), [25.0, 65.0, -20.0, 20.0, -20.0, 20.0])
        local = manager.local_map
        assert np.all((local[:, 0] >= 25.0) & (local[:, 0] <= 50.0))

    def test_update_without_rebuild(self, cube_map):
        m = LocalMapManager(cube_map, BoxFilter([-100.0, 100.0] * 3), RecordingRegistration())
        m.reset_local_map([0.0, 0.0, 0.0])
        count = m.rebuild_count
        assert not m.update(at(10.0), margin=50.0)
        assert m.rebuild_count == count

    def test_empty_local_map_is_legal(self, manager):
        manager.reset_local_map([1000.0, 1000.0, 0.0])
        assert manager.local_map.shape == (0, 3)
        assert manager.registration.target.shape == (0, 3)

    def test_flag_set_on_rebuild_cleared_on_consume(self, manager):
        assert not manager.has_new_local_map
        manager.reset_local_map([0.0, 0.0, 0.0])
        assert manager.has_new_local_map
        local = manager.consume_local_map()
        assert not manager.has_new_local_map
        assert local is manager.local_map

    def test_maps_are_read_only(self, manager):
        manager.reset_local_map([0.0, 0.0, 0.0])
        with pytest.raises(ValueError):
            manager.local_map[0, 0] = 1.0
        with pytest.raises(ValueError):
            manager.global_map[0, 0] = 1.0
