"""System diagnostics over the Active physics bodies."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import numpy as np

from .bodies import Body
from .constants import G as GRAVITATIONAL_CONSTANT
from .hierarchy import BodiesLike, MAX_HIERARCHY_DEPTH, parent_chain


def _arrays(bodies: BodiesLike) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    values: Iterable[Body] = bodies.values() if isinstance(bodies, Mapping) else bodies
    states = [b.physics_state for b in values if b.participates_in_physics]
    if not states:
        empty = np.zeros((0, 3), dtype=np.float64)
        return empty, empty.copy(), np.zeros(0, dtype=np.float64)
    pos = np.array([s.position_m for s in states], dtype=np.float64)
    vel = np.array([s.velocity_mps for s in states], dtype=np.float64)
    mass = np.array([s.mass_kg for s in states], dtype=np.float64)
    return pos, vel, mass


def total_mass(bodies: BodiesLike) -> float:
    _, _, mass = _arrays(bodies)
    return float(np.sum(mass)) if mass.size else 0.0


def center_of_mass(bodies: BodiesLike) -> np.ndarray:
    pos, _, mass = _arrays(bodies)
    if mass.size == 0:
        raise ValueError("cannot compute center of mass for empty body set")
    total = np.sum(mass)
    if total == 0.0:
        raise ValueError("cannot compute center of mass with zero total mass")
    return np.sum(pos * mass[:, np.newaxis], axis=0) / total


def linear_momentum(bodies: BodiesLike) -> np.ndarray:
    _, vel, mass = _arrays(bodies)
    if mass.size == 0:
        return np.zeros(3, dtype=np.float64)
    return np.sum(vel * mass[:, np.newaxis], axis=0)


def kinetic_energy(bodies: BodiesLike) -> float:
    _, vel, mass = _arrays(bodies)
    if mass.size == 0:
        return 0.0
    v2 = np.sum(vel**2, axis=1)
    return float(0.5 * np.sum(mass * v2))


def potential_energy_gravity(
    bodies: BodiesLike, G: float = GRAVITATIONAL_CONSTANT, softening: float = 0.0
) -> float:
    pos, _, mass = _arrays(bodies)
    n = pos.shape[0]
    if n < 2:
        return 0.0

    eps2 = softening * softening
    delta = pos[None, :, :] - pos[:, None, :]
    dist2 = np.sum(delta * delta, axis=-1) + eps2
    iu = np.triu_indices(n, k=1)
    dist = np.sqrt(dist2[iu])
    mprod = mass[iu[0]] * mass[iu[1]]
    return float(-G * np.sum(mprod / dist))


def total_energy_gravity(
    bodies: BodiesLike, G: float = GRAVITATIONAL_CONSTANT, softening: float = 0.0
) -> float:
    return kinetic_energy(bodies) + potential_energy_gravity(bodies, G, softening)


def hierarchy_depth(bodies: BodiesLike) -> int:
    """Longest parent chain among Active bodies (0 for a lone root)."""
    by_id = bodies if isinstance(bodies, Mapping) else {b.id: b for b in bodies}
    depth = 0
    for body in by_id.values():
        if body.is_active:
            depth = max(depth, len(parent_chain(body.id, by_id, MAX_HIERARCHY_DEPTH)))
    return depth
