"""Integrator contract and the default N-body implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence

import numpy as np

from ..bodies import BodyKind, PhysicsState
from ..collisions import DestructionEvent, resolve_collisions  # noqa: F401
from ..constants import G as GRAVITATIONAL_CONSTANT
from ..forces.nbody_gravity import NBodyGravity
from ..math.vector import ArrayF


@dataclass(slots=True)
class SimulationStepResult:
    states: dict[str, PhysicsState] = field(default_factory=dict)
    accelerations: dict[str, ArrayF] = field(default_factory=dict)
    destroyed_ids: set[str] = field(default_factory=set)
    destruction_events: list[DestructionEvent] = field(default_factory=list)


class Integrator(Protocol):
    def advance(
        self,
        states: Sequence[PhysicsState],
        dt: float,
        radius_by_id: Mapping[str, float],
        is_star_by_id: Mapping[str, bool],
        kind_by_id: Mapping[str, BodyKind],
    ) -> SimulationStepResult:
        """Advance the given states by `dt` seconds without mutating them."""


@dataclass(slots=True)
class NBodyIntegrator:
    """Velocity Verlet over direct-summation gravity, then collisions."""

    G: float = GRAVITATIONAL_CONSTANT
    softening: float = 0.0
    chunk_size: int | None = None
    collisions: bool = True

    def advance(
        self,
        states: Sequence[PhysicsState],
        dt: float,
        radius_by_id: Mapping[str, float],
        is_star_by_id: Mapping[str, bool],
        kind_by_id: Mapping[str, BodyKind],
    ) -> SimulationStepResult:
        if not states:
            return SimulationStepResult()
        gravity = NBodyGravity(G=self.G, softening=self.softening, chunk_size=self.chunk_size)

        pos = np.array([s.position_m for s in states], dtype=np.float64)
        vel = np.array([s.velocity_mps for s in states], dtype=np.float64)
        mass = np.array([s.mass_kg for s in states], dtype=np.float64)

        a = gravity.accelerations(pos, mass)
        pos += vel * dt + 0.5 * a * dt * dt
        a_next = gravity.accelerations(pos, mass)
        vel += 0.5 * (a + a_next) * dt

        new_states = {
            s.id: PhysicsState(s.id, s.mass_kg, pos[i], vel[i])
            for i, s in enumerate(states)
        }
        accelerations = {s.id: a_next[i].copy() for i, s in enumerate(states)}

        destroyed: set[str] = set()
        events: list[DestructionEvent] = []
        if self.collisions:
            destroyed, events = resolve_collisions(
                new_states, radius_by_id, is_star_by_id, kind_by_id
            )
        return SimulationStepResult(
            states=new_states,
            accelerations=accelerations,
            destroyed_ids=destroyed,
            destruction_events=events,
        )
