"""Quaternions for body spin.

Stored as [w, x, y, z] and read as body->world rotations. Every function
broadcasts over leading axes.
"""

from __future__ import annotations

import math

import numpy as np

from .vector import ArrayF, unit

IDENTITY = np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)


def quat_normalize(q: ArrayF) -> ArrayF:
    q = np.asarray(q, dtype=np.float64)
    n = np.linalg.norm(q, axis=-1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(n > 0.0, q / n, q)


def quat_mul(q1: ArrayF, q2: ArrayF) -> ArrayF:
    """Hamilton product; `quat_mul(q2, q1)` applies q1 first."""
    q1 = np.asarray(q1, dtype=np.float64)
    q2 = np.asarray(q2, dtype=np.float64)
    w1, v1 = q1[..., :1], q1[..., 1:]
    w2, v2 = q2[..., :1], q2[..., 1:]
    w = w1 * w2 - np.sum(v1 * v2, axis=-1, keepdims=True)
    v = w1 * v2 + w2 * v1 + np.cross(v1, v2)
    return np.concatenate([w, v], axis=-1)


def quat_rotate(q: ArrayF, v: ArrayF) -> ArrayF:
    q = quat_normalize(q)
    v = np.asarray(v, dtype=np.float64)
    w, u = q[..., :1], q[..., 1:]
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def quat_from_axis_angle(axis: ArrayF, angle_rad: ArrayF | float) -> ArrayF:
    half = 0.5 * np.asarray(angle_rad, dtype=np.float64)[..., np.newaxis]
    return np.concatenate(
        [np.cos(half), unit(np.asarray(axis, dtype=np.float64)) * np.sin(half)],
        axis=-1,
    )


def spin_angle(t: float, period_s: float) -> float:
    """Rotation angle in [0, 2*pi) after `t` seconds of a sidereal period."""
    two_pi = 2.0 * math.pi
    return (two_pi * t / period_s) % two_pi


def spin_quaternion(axis: ArrayF, t: float, period_s: float) -> ArrayF:
    return quat_from_axis_angle(axis, spin_angle(t, period_s))
