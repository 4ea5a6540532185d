"""Gravitational parent/child hierarchy validation and correction.

The hierarchy is a tree rooted at the most massive Active star. Companion
stars hang off the root, planets and other minor bodies off stars, moons
and ring systems off planets. All functions here work on copies and never
mutate their input.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Union

from .bodies import (
    Body,
    BodyKind,
    PLANETARY_KINDS,
    StarProperties,
)
from .constants import AU
from .math.vector import distance

logger = logging.getLogger(__name__)

STAR_CHILD_KINDS = frozenset(
    {
        BodyKind.PLANET,
        BodyKind.GAS_GIANT,
        BodyKind.DWARF_PLANET,
        BodyKind.ASTEROID_FIELD,
        BodyKind.COMET,
        BodyKind.OORT_CLOUD,
        BodyKind.SPACE_ROCK,
        BodyKind.OTHER,
    }
)
PLANET_CHILD_KINDS = frozenset({BodyKind.MOON, BodyKind.RING_SYSTEM})
DWARF_CHILD_KINDS = frozenset({BodyKind.RING_SYSTEM})

MAX_HIERARCHY_DEPTH = 16

BodiesLike = Union[Mapping[str, Body], Iterable[Body]]


@dataclass(slots=True)
class HierarchySummary:
    root_id: str | None
    root_mass_kg: float = 0.0
    companion_ids: list[str] = field(default_factory=list)
    planets_per_star: dict[str, int] = field(default_factory=dict)

    def lines(self) -> list[str]:
        if self.root_id is None:
            return ["No root star"]
        out = [f"Root star: {self.root_id} ({self.root_mass_kg:.2e} kg)"]
        out.extend(f"  Companion star: {sid}" for sid in self.companion_ids)
        out.extend(
            f"  {sid} has {count} planets"
            for sid, count in self.planets_per_star.items()
            if count
        )
        return out


def admits_child(parent: Body, child: Body) -> bool:
    if parent.kind == BodyKind.STAR:
        return child.kind in STAR_CHILD_KINDS
    if parent.kind in PLANETARY_KINDS:
        return child.kind in PLANET_CHILD_KINDS
    if parent.kind == BodyKind.DWARF_PLANET:
        return child.kind in DWARF_CHILD_KINDS
    return False


def body_distance(a: Body, b: Body) -> float:
    """Straight-line distance in metres.

    Falls back to the difference of semi-major axes when either body has
    no physics state, and 0 when that is unavailable too.
    """
    if a.physics_state is not None and b.physics_state is not None:
        return distance(a.physics_state.position_m, b.physics_state.position_m)
    a_sma = a.orbit.semi_major_axis_m if a.orbit is not None else 0.0
    b_sma = b.orbit.semi_major_axis_m if b.orbit is not None else 0.0
    return abs(a_sma - b_sma)


def gravitational_influence(influencer: Body, target: Body) -> float:
    """mass / distance_AU**2, or 0 when the bodies coincide."""
    d = body_distance(influencer, target)
    if d == 0.0:
        return 0.0
    d_au = d / AU
    return influencer.mass_kg / (d_au * d_au)


def find_best_gravitational_parent(
    body: Body,
    bodies: Mapping[str, Body],
    exclude: Iterable[str] = (),
) -> Body | None:
    excluded = set(exclude)
    best: Body | None = None
    best_influence = 0.0
    for candidate in bodies.values():
        if candidate.id == body.id or candidate.id in excluded:
            continue
        if not candidate.is_active or not admits_child(candidate, body):
            continue
        influence = gravitational_influence(candidate, body)
        if influence > best_influence:
            best_influence = influence
            best = candidate
    return best


def find_nearest(body: Body, candidates: Iterable[Body]) -> Body | None:
    nearest: Body | None = None
    best = float("inf")
    for candidate in candidates:
        if candidate.id == body.id:
            continue
        d = body_distance(body, candidate)
        if d < best:
            best = d
            nearest = candidate
    return nearest


def parent_chain(
    body_id: str,
    bodies: Mapping[str, Body],
    max_depth: int = MAX_HIERARCHY_DEPTH,
) -> list[str]:
    """Return ancestor ids from the direct parent up to the top.

    Raises ValueError on a cycle or a chain longer than `max_depth`.
    """
    chain: list[str] = []
    seen = {body_id}
    current = bodies[body_id]
    while current.parent_id:
        if current.parent_id in seen:
            raise ValueError(f"parent cycle through {current.parent_id}")
        if len(chain) >= max_depth:
            raise ValueError(f"parent chain of {body_id} exceeds depth {max_depth}")
        chain.append(current.parent_id)
        seen.add(current.parent_id)
        parent = bodies.get(current.parent_id)
        if parent is None:
            break
        current = parent
    return chain


def _copy_bodies(bodies: BodiesLike) -> dict[str, Body]:
    values = bodies.values() if isinstance(bodies, Mapping) else bodies
    return {body.id: body.copy() for body in values}


def _parent_is_invalid(body: Body, by_id: Mapping[str, Body]) -> bool:
    if not body.parent_id:
        return True
    parent = by_id.get(body.parent_id)
    if parent is None or not parent.is_active:
        return True
    # Moons under stars are left to the nearest-planet pass.
    return not parent.is_star and not admits_child(parent, body)


def _in_cycle(body: Body, by_id: Mapping[str, Body]) -> bool:
    try:
        parent_chain(body.id, by_id)
    except ValueError:
        return True
    return False


def descendants(body_id: str, bodies: Mapping[str, Body]) -> set[str]:
    """Ids whose parent chain passes through `body_id`.

    Tolerates cycles and dangling parents elsewhere in the mapping.
    """
    out: set[str] = set()
    for other in bodies.values():
        if other.id == body_id:
            continue
        seen = {other.id}
        current = other
        while current.parent_id and current.parent_id not in seen:
            if current.parent_id == body_id:
                out.add(other.id)
                break
            seen.add(current.parent_id)
            parent = bodies.get(current.parent_id)
            if parent is None:
                break
            current = parent
    return out


def _set_main_flag(star: Body, value: bool) -> None:
    if isinstance(star.properties, StarProperties):
        star.properties.is_main_star = value


def _link_partners(root: Body, companion: Body) -> None:
    if isinstance(companion.properties, StarProperties):
        companion.properties.partner_stars = [root.id]
    if isinstance(root.properties, StarProperties):
        if companion.id not in root.properties.partner_stars:
            root.properties.partner_stars.append(companion.id)


def _flagged_root(stars: list[Body]) -> Body | None:
    flagged = next((s for s in stars if s.is_main_star), None)
    if flagged is not None:
        return flagged
    return next((s for s in stars if s.is_root), None)


def _correct_stars(stars: list[Body]) -> Body:
    expected = stars[0]
    current = _flagged_root(stars)
    others = stars[1:]

    if current is None or current.id != expected.id:
        logger.info(
            f"Correcting root star: {current.id if current else 'none'} "
            f"({current.mass_kg if current else 0.0:.2e} kg) -> "
            f"{expected.id} ({expected.mass_kg:.2e} kg)"
        )
        for star in stars:
            _set_main_flag(star, False)
        _set_main_flag(expected, True)
        expected.set_parent(None)
        if isinstance(expected.properties, StarProperties):
            expected.properties.partner_stars = []
        for star in others:
            star.set_parent(expected.id)
            _link_partners(expected, star)
        return expected

    for star in others:
        _set_main_flag(star, False)
    _set_main_flag(expected, True)
    if expected.parent_id or expected.current_parent_id:
        logger.info(f"Clearing parent of root star {expected.id}")
        expected.set_parent(None)
    # Companions hang directly off the root, never off another companion.
    for star in others:
        if star.parent_id != expected.id or star.current_parent_id != expected.id:
            logger.info(f"Reparenting companion star {star.id} to root {expected.id}")
            star.set_parent(expected.id)
            _link_partners(expected, star)
    return expected


def _correct_parents(
    body: Body, by_id: Mapping[str, Body], stars: list[Body]
) -> None:
    # Descendants are excluded so the new link cannot close a cycle.
    best = find_best_gravitational_parent(body, by_id, exclude=descendants(body.id, by_id))
    if best is None:
        best = find_nearest(body, stars)
        if best is None:
            return
        logger.warning(
            f"No admissible parent for {body.id} ({body.kind.value}); "
            f"falling back to nearest star {best.id}"
        )
    logger.info(f"Assigned {body.id} ({body.kind.value}) to parent {best.id}")
    body.set_parent(best.id)


def validate_and_correct_hierarchy(bodies: BodiesLike) -> dict[str, Body]:
    """Return a corrected copy of `bodies` satisfying the hierarchy rules.

    With no Active star an error is logged and the copy is returned
    unchanged.
    """
    by_id = _copy_bodies(bodies)
    stars = [b for b in by_id.values() if b.is_active and b.is_star]
    if not stars:
        logger.error("No active stars in system; hierarchy left unmodified")
        return by_id

    stars.sort(key=lambda s: s.mass_kg, reverse=True)
    _correct_stars(stars)

    for body in by_id.values():
        if not body.is_active or body.is_star:
            continue
        if _parent_is_invalid(body, by_id) or _in_cycle(body, by_id):
            if body.parent_id:
                logger.warning(
                    f"Parent {body.parent_id} of {body.id} is not a valid parent"
                )
            else:
                logger.warning(f"Body {body.id} ({body.kind.value}) has no parent")
            _correct_parents(body, by_id, stars)

    planets = [b for b in by_id.values() if b.is_active and b.kind in PLANETARY_KINDS]
    for moon in by_id.values():
        if not moon.is_active or moon.kind != BodyKind.MOON:
            continue
        parent = by_id.get(moon.parent_id) if moon.parent_id else None
        if parent is None or not parent.is_star:
            continue
        below = descendants(moon.id, by_id)
        nearest = find_nearest(moon, [p for p in planets if p.id not in below])
        if nearest is None:
            logger.debug(f"Moon {moon.id} orbits star {parent.id}; no planet available")
            continue
        logger.warning(
            f"Moon {moon.id} parented to star {parent.id}; re-parenting to {nearest.id}"
        )
        moon.set_parent(nearest.id)

    for line in hierarchy_summary(by_id).lines():
        logger.info(line)
    return by_id


def reassign_planets_to_dominant_stars(
    bodies: BodiesLike, margin: float = 1.5
) -> dict[str, Body]:
    """Move planets to a star that out-pulls their current parent by `margin`."""
    by_id = _copy_bodies(bodies)
    stars = [
        b
        for b in by_id.values()
        if b.is_active and b.is_star and b.physics_state is not None
    ]
    if len(stars) <= 1:
        return by_id

    for planet in by_id.values():
        if not planet.is_active or planet.kind not in PLANETARY_KINDS:
            continue
        if planet.physics_state is None or not planet.parent_id:
            continue
        best: Body | None = None
        best_influence = 0.0
        for star in stars:
            influence = gravitational_influence(star, planet)
            if influence > best_influence:
                best_influence = influence
                best = star
        if best is None or best.id in (planet.parent_id, planet.current_parent_id):
            continue
        parent = by_id.get(planet.parent_id)
        if parent is None or parent.physics_state is None:
            continue
        if best_influence > gravitational_influence(parent, planet) * margin:
            logger.info(
                f"Planet {planet.id} captured by star {best.id} (was {parent.id})"
            )
            planet.set_parent(best.id)
    return by_id


def hierarchy_summary(bodies: BodiesLike) -> HierarchySummary:
    by_id = bodies if isinstance(bodies, Mapping) else {b.id: b for b in bodies}
    stars = [b for b in by_id.values() if b.is_active and b.is_star]
    root = next((s for s in stars if s.is_main_star and s.is_root), None)
    if root is None:
        root = next((s for s in stars if s.is_root), None)
    if root is None:
        return HierarchySummary(root_id=None)
    planets_per_star = {
        star.id: sum(
            1
            for b in by_id.values()
            if b.is_active and b.kind in PLANETARY_KINDS and b.parent_id == star.id
        )
        for star in stars
    }
    return HierarchySummary(
        root_id=root.id,
        root_mass_kg=root.mass_kg,
        companion_ids=[s.id for s in stars if s.parent_id == root.id],
        planets_per_star=planets_per_star,
    )
