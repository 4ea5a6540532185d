"""Sphere collision detection and resolution between integrated bodies.

Resolution rules:
- star vs star: the more massive star absorbs the other
- star vs anything else: the star absorbs it
- moon vs moon: both are destroyed
- planet/dwarf/moon vs gas giant: elastic bounce
- any other pair: absorption when the mass ratio is below
  MASS_RATIO_THRESHOLD, elastic bounce otherwise

Absorption conserves momentum and adds the destroyed mass to the survivor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from .bodies import BodyKind, PhysicsState
from .math.vector import ArrayF

logger = logging.getLogger(__name__)

MASS_RATIO_THRESHOLD = 0.1

_BOUNCES_OFF_GAS_GIANT = frozenset(
    {BodyKind.PLANET, BodyKind.DWARF_PLANET, BodyKind.MOON}
)


@dataclass(frozen=True, slots=True)
class DestructionEvent:
    """One body lost in a collision.

    `survivor_id` is None when both bodies were destroyed.
    """

    destroyed_id: str
    survivor_id: str | None
    destroyed_radius: float
    impact_position: ArrayF
    relative_velocity: ArrayF

    @property
    def mutual(self) -> bool:
        return self.survivor_id is None


@dataclass(frozen=True, slots=True)
class Collision:
    body1_id: str
    body2_id: str
    normal: ArrayF
    penetration_depth: float
    relative_velocity: ArrayF


def detect_sphere_collision(
    a: PhysicsState, radius_a: float, b: PhysicsState, radius_b: float
) -> Collision | None:
    """Return a Collision if the spheres overlap; the normal points b -> a."""
    displacement = a.position_m - b.position_m
    dist2 = float(np.dot(displacement, displacement))
    r_sum = radius_a + radius_b
    if dist2 >= r_sum * r_sum:
        return None
    dist = np.sqrt(dist2)
    if dist > 1e-9:
        normal = displacement / dist
    else:
        normal = np.array([1.0, 0.0, 0.0], dtype=np.float64)
    return Collision(
        body1_id=a.id,
        body2_id=b.id,
        normal=normal,
        penetration_depth=float(r_sum - dist),
        relative_velocity=a.velocity_mps - b.velocity_mps,
    )


def resolve_elastic(
    collision: Collision,
    a: PhysicsState,
    b: PhysicsState,
    restitution: float = 1.0,
) -> tuple[PhysicsState, PhysicsState]:
    """Apply an impulse along the collision normal; separating pairs are untouched."""
    if a.mass_kg <= 0.0 or b.mass_kg <= 0.0:
        logger.warning(
            f"Elastic collision between {a.id} and {b.id} skipped: non-positive mass"
        )
        return a, b
    vn = float(np.dot(collision.relative_velocity, collision.normal))
    if vn > 0.0:
        return a, b
    j = -(1.0 + restitution) * vn / (1.0 / a.mass_kg + 1.0 / b.mass_kg)
    impulse = collision.normal * j
    new_a = PhysicsState(a.id, a.mass_kg, a.position_m, a.velocity_mps + impulse / a.mass_kg)
    new_b = PhysicsState(b.id, b.mass_kg, b.position_m, b.velocity_mps - impulse / b.mass_kg)
    return new_a, new_b


class _Resolver:
    def __init__(
        self,
        states: dict[str, PhysicsState],
        radius_by_id: Mapping[str, float],
    ) -> None:
        self.states = states
        self.radius_by_id = radius_by_id
        self.destroyed: set[str] = set()
        self.events: list[DestructionEvent] = []

    def absorb(self, survivor_id: str, destroyed_id: str) -> None:
        survivor = self.states[survivor_id]
        lost = self.states[destroyed_id]
        self.events.append(
            DestructionEvent(
                destroyed_id=destroyed_id,
                survivor_id=survivor_id,
                destroyed_radius=float(self.radius_by_id.get(destroyed_id, 0.0)),
                impact_position=lost.position_m.copy(),
                relative_velocity=survivor.velocity_mps - lost.velocity_mps,
            )
        )
        self.destroyed.add(destroyed_id)
        total = survivor.mass_kg + lost.mass_kg
        if total <= 0.0:
            logger.warning(
                f"Absorption of {destroyed_id} by {survivor_id} with zero total mass"
            )
            return
        momentum = survivor.velocity_mps * survivor.mass_kg + lost.velocity_mps * lost.mass_kg
        self.states[survivor_id] = PhysicsState(
            survivor_id, total, survivor.position_m, momentum / total
        )

    def absorb_smaller(self, id1: str, id2: str) -> None:
        if self.states[id1].mass_kg >= self.states[id2].mass_kg:
            self.absorb(id1, id2)
        else:
            self.absorb(id2, id1)

    def mutual(self, id1: str, id2: str) -> None:
        a = self.states[id1]
        b = self.states[id2]
        for lost, other in ((a, b), (b, a)):
            self.destroyed.add(lost.id)
            self.events.append(
                DestructionEvent(
                    destroyed_id=lost.id,
                    survivor_id=None,
                    destroyed_radius=float(self.radius_by_id.get(lost.id, 0.0)),
                    impact_position=lost.position_m.copy(),
                    relative_velocity=other.velocity_mps - lost.velocity_mps,
                )
            )

    def bounce(self, collision: Collision) -> None:
        a, b = resolve_elastic(
            collision,
            self.states[collision.body1_id],
            self.states[collision.body2_id],
        )
        self.states[a.id] = a
        self.states[b.id] = b


def resolve_collisions(
    states: dict[str, PhysicsState],
    radius_by_id: Mapping[str, float],
    is_star_by_id: Mapping[str, bool],
    kind_by_id: Mapping[str, BodyKind],
) -> tuple[set[str], list[DestructionEvent]]:
    """Detect and resolve all pairwise collisions, updating `states` in place.

    Returns the destroyed ids and one event per destroyed body.
    """
    resolver = _Resolver(states, radius_by_id)
    ids = list(states)
    for i, id1 in enumerate(ids):
        for id2 in ids[i + 1 :]:
            if id1 in resolver.destroyed or id2 in resolver.destroyed:
                continue
            collision = detect_sphere_collision(
                states[id1],
                float(radius_by_id.get(id1, 0.0)),
                states[id2],
                float(radius_by_id.get(id2, 0.0)),
            )
            if collision is None:
                continue
            star1 = is_star_by_id.get(id1, False)
            star2 = is_star_by_id.get(id2, False)
            kind1 = kind_by_id.get(id1, BodyKind.OTHER)
            kind2 = kind_by_id.get(id2, BodyKind.OTHER)
            logger.debug(f"Collision between {id1} ({kind1.value}) and {id2} ({kind2.value})")

            if star1 and star2:
                resolver.absorb_smaller(id1, id2)
            elif star1:
                resolver.absorb(id1, id2)
            elif star2:
                resolver.absorb(id2, id1)
            elif kind1 == BodyKind.MOON and kind2 == BodyKind.MOON:
                resolver.mutual(id1, id2)
            elif (kind1 == BodyKind.GAS_GIANT and kind2 in _BOUNCES_OFF_GAS_GIANT) or (
                kind2 == BodyKind.GAS_GIANT and kind1 in _BOUNCES_OFF_GAS_GIANT
            ):
                resolver.bounce(collision)
            else:
                m1 = states[id1].mass_kg
                m2 = states[id2].mass_kg
                if m1 <= 0.0 or m2 <= 0.0:
                    logger.warning(
                        f"Collision between {id1} and {id2} skipped: non-positive mass"
                    )
                    continue
                if min(m1, m2) / max(m1, m2) < MASS_RATIO_THRESHOLD:
                    resolver.absorb_smaller(id1, id2)
                else:
                    resolver.bounce(collision)
    return resolver.destroyed, resolver.events
