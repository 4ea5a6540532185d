from __future__ import annotations

import numpy as np
import pytest

from celestial_sim.core.bodies import Body, BodyKind, PhysicsState
from celestial_sim.core.diagnostics import total_energy_gravity
from celestial_sim.core.forces import NBodyGravity
from celestial_sim.core.integrators import NBodyIntegrator


def _states(pos: np.ndarray, vel: np.ndarray, mass: np.ndarray) -> list[PhysicsState]:
    return [PhysicsState(f"b{i}", mass[i], pos[i], vel[i]) for i in range(len(mass))]


def _advance(
    integrator: NBodyIntegrator, states: list[PhysicsState], dt: float
) -> list[PhysicsState]:
    ids = [s.id for s in states]
    result = integrator.advance(
        states,
        dt,
        {i: 0.0 for i in ids},
        {i: False for i in ids},
        {i: BodyKind.PLANET for i in ids},
    )
    return [result.states[i] for i in ids]


def test_nbody_shapes_and_self_interaction() -> None:
    model = NBodyGravity(G=1.0)
    acc1 = model.accelerations(np.array([[0.0, 0.0, 0.0]]), np.array([2.0]))
    assert acc1.shape == (1, 3)
    assert np.allclose(acc1, 0.0)

    pos = np.array([[-1.0, 0.0, 0.0], [1.0, 0.0, 0.0]], dtype=np.float64)
    mass = np.array([2.0, 3.0], dtype=np.float64)
    acc2 = model.accelerations(pos, mass)
    assert np.allclose(np.sum(mass[:, None] * acc2, axis=0), 0.0, atol=1e-12)
    assert np.isclose(acc2[0, 0], 3.0 / 4.0)


def test_chunked_matches_direct() -> None:
    rng = np.random.default_rng(7)
    pos = rng.normal(size=(9, 3))
    mass = rng.uniform(0.5, 2.0, size=9)
    direct = NBodyGravity(G=1.0, softening=0.01).accelerations(pos, mass)
    chunked = NBodyGravity(G=1.0, softening=0.01, chunk_size=4).accelerations(pos, mass)
    assert np.allclose(direct, chunked)


def test_invalid_parameters() -> None:
    with pytest.raises(ValueError, match="softening"):
        NBodyGravity(softening=-1.0)
    with pytest.raises(ValueError, match="chunk_size"):
        NBodyGravity(chunk_size=0)
    with pytest.raises(ValueError, match="shape"):
        NBodyGravity().accelerations(np.zeros((2, 2)), np.ones(2))


def test_momentum_conservation_gravity_only() -> None:
    pos = np.array(
        [
            [-1.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, -1.0, 0.0],
            [0.5, 0.5, 0.0],
        ],
        dtype=np.float64,
    )
    vel = np.array(
        [
            [0.0, 0.1, 0.0],
            [0.0, -0.1, 0.0],
            [-0.1, 0.0, 0.0],
            [0.1, 0.0, 0.0],
            [0.0, 0.0, 0.0],
        ],
        dtype=np.float64,
    )
    mass = np.array([1.0, 1.5, 0.8, 1.2, 0.6], dtype=np.float64)
    states = _states(pos, vel, mass)
    integrator = NBodyIntegrator(G=1.0, softening=0.01, collisions=False)

    p0 = sum(s.velocity_mps * s.mass_kg for s in states)
    for _ in range(2000):
        states = _advance(integrator, states, 0.001)
    p1 = sum(s.velocity_mps * s.mass_kg for s in states)

    tol = 1e-8 * (np.linalg.norm(p0) + 1.0)
    assert np.linalg.norm(p1 - p0) < tol


def test_two_body_orbit_separation_band_and_energy() -> None:
    mass = np.array([1.0, 1.0], dtype=np.float64)
    pos = np.array([[-0.5, 0.0, 0.0], [0.5, 0.0, 0.0]], dtype=np.float64)
    v = np.sqrt(0.5)
    vel = np.array([[0.0, v, 0.0], [0.0, -v, 0.0]], dtype=np.float64)
    states = _states(pos, vel, mass)
    integrator = NBodyIntegrator(G=1.0)

    def energy(current: list[PhysicsState]) -> float:
        bodies = [Body(s.id, BodyKind.PLANET, mass_kg=s.mass_kg, physics_state=s) for s in current]
        return total_energy_gravity(bodies, G=1.0)

    e0 = energy(states)
    sep0 = 1.0
    sep_min = sep_max = sep0
    for _ in range(5000):
        states = _advance(integrator, states, 0.001)
        sep = np.linalg.norm(states[1].position_m - states[0].position_m)
        sep_min = min(sep_min, sep)
        sep_max = max(sep_max, sep)

    assert sep_min > 0.9 * sep0
    assert sep_max < 1.1 * sep0
    assert abs(energy(states) - e0) < 1e-4 * abs(e0)


def test_advance_does_not_mutate_inputs() -> None:
    states = _states(
        np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
        np.zeros((2, 3)),
        np.array([1.0, 1.0]),
    )
    _advance(NBodyIntegrator(G=1.0), states, 0.1)
    assert np.array_equal(states[1].position_m, [1.0, 0.0, 0.0])
