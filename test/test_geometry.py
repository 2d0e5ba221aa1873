"""
Tests for SE(3) helpers on 4x4 poses.
"""

import math

import numpy as np
import pytest

from map_localizer.common.geometry import (
    as_pose,
    identity_pose,
    make_pose,
    pose_from_vector,
    pose_to_vector,
    rotmat_to_rotvec,
    rotvec_to_rotmat,
    se3_apply,
    se3_exp,
    se3_extrapolate,
    se3_inverse,
    se3_relative,
    yaw_pose,
)


class TestRotationConversions:

    def test_rotvec_round_trip(self):
        rotvec = np.array([0.1, -0.4, 0.7])
        np.testing.assert_allclose(rotmat_to_rotvec(rotvec_to_rotmat(rotvec)), rotvec, atol=1e-10)

    def test_rotation_near_pi(self):
        rotvec = np.array([0.0, 0.0, math.pi - 1e-9])
        R = rotvec_to_rotmat(rotvec)
        np.testing.assert_allclose(rotvec_to_rotmat(rotmat_to_rotvec(R)), R, atol=1e-6)

    def test_yaw_pose_rotates_x_axis(self):
        p = se3_apply(yaw_pose(math.pi / 2), np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(p, [0.0, 1.0, 0.0], atol=1e-12)


class TestPoses:

    def test_as_pose_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            as_pose(np.eye(3))

    def test_as_pose_rejects_bad_bottom_row(self):
        T = np.eye(4)
        T[3, 0] = 1.0
        with pytest.raises(ValueError):
            as_pose(T)

    def test_inverse(self):
        T = pose_from_vector([1.0, -2.0, 0.5, 0.2, 0.1, -0.3])
        np.testing.assert_allclose(T @ se3_inverse(T), np.eye(4), atol=1e-12)

    def test_vector_round_trip(self):
        vec = np.array([3.0, 1.0, -1.0, 0.05, -0.2, 0.4])
        np.testing.assert_allclose(pose_to_vector(pose_from_vector(vec)), vec, atol=1e-10)

    def test_relative_recovers_step(self):
        T0 = pose_from_vector([1.0, 2.0, 3.0, 0.0, 0.0, 0.3])
        step = pose_from_vector([0.5, 0.0, 0.0, 0.0, 0.0, 0.1])
        np.testing.assert_allclose(se3_relative(T0, T0 @ step), step, atol=1e-12)

    def test_extrapolate_matches_constant_velocity(self):
        P0 = pose_from_vector([0.0, 0.0, 0.0, 0.0, 0.0, 0.2])
        P1 = pose_from_vector([1.0, 0.5, 0.0, 0.0, 0.1, 0.4])
        expected = P1 @ np.linalg.inv(P0) @ P1
        np.testing.assert_allclose(se3_extrapolate(P0, P1), expected, atol=1e-12)

    def test_exp_of_pure_translation(self):
        T = se3_exp([1.0, 2.0, 3.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(T, make_pose(t=np.array([1.0, 2.0, 3.0])), atol=1e-12)

    def test_apply_batch(self):
        T = pose_from_vector([1.0, 0.0, 0.0, 0.0, 0.0, math.pi])
        pts = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        np.testing.assert_allclose(se3_apply(T, pts), [[0.0, 0.0, 0.0], [1.0, -1.0, 0.0]], atol=1e-12)

    def test_identity(self):
        np.testing.assert_array_equal(identity_pose(), np.eye(4))
