from __future__ import annotations

import numpy as np

from celestial_sim.core.math.quat import (
    IDENTITY,
    quat_from_axis_angle,
    quat_mul,
    quat_normalize,
    quat_rotate,
    spin_angle,
    spin_quaternion,
)


def test_quat_rotate_preserves_norm() -> None:
    rng = np.random.default_rng(123)
    v = rng.normal(size=(100, 3))
    axis = rng.normal(size=(100, 3))
    angle = rng.uniform(low=-np.pi, high=np.pi, size=(100,))
    q = quat_from_axis_angle(axis, angle)

    v_rot = quat_rotate(q, v)
    n0 = np.linalg.norm(v, axis=-1)
    n1 = np.linalg.norm(v_rot, axis=-1)
    assert np.allclose(n0, n1, rtol=1e-12, atol=1e-12)


def test_quat_composition() -> None:
    rng = np.random.default_rng(456)
    v = rng.normal(size=(10, 3))
    q1 = quat_from_axis_angle(rng.normal(size=(10, 3)), rng.normal(size=(10,)))
    q2 = quat_from_axis_angle(rng.normal(size=(10, 3)), rng.normal(size=(10,)))

    v_seq = quat_rotate(q2, quat_rotate(q1, v))
    v_comp = quat_rotate(quat_mul(q2, q1), v)
    assert np.allclose(v_seq, v_comp, rtol=1e-12, atol=1e-12)


def test_spin_about_tilted_axis() -> None:
    q = quat_from_axis_angle(np.array([0.0, 2.0, 0.0]), np.pi / 2)
    assert np.allclose(q, [np.cos(np.pi / 4), 0.0, np.sin(np.pi / 4), 0.0])
    assert np.allclose(quat_rotate(q, np.array([1.0, 0.0, 0.0])), [0.0, 0.0, -1.0])


def test_normalize_leaves_zero_quaternion() -> None:
    assert np.allclose(quat_normalize(np.zeros(4)), 0.0)
    assert np.allclose(quat_normalize(IDENTITY * 3.0), IDENTITY)


def test_spin_angle_wraps_each_period() -> None:
    assert spin_angle(0.0, 10.0) == 0.0
    assert np.isclose(spin_angle(2.5, 10.0), np.pi / 2)
    assert np.isclose(spin_angle(12.5, 10.0), np.pi / 2)
    assert 0.0 <= spin_angle(-2.5, 10.0) < 2.0 * np.pi


def test_spin_quaternion_half_turn() -> None:
    q = spin_quaternion(np.array([0.0, 0.0, 1.0]), 5.0, 10.0)
    assert np.allclose(quat_rotate(q, np.array([1.0, 0.0, 0.0])), [-1.0, 0.0, 0.0])
