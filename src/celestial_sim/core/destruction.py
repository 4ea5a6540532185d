"""Root-star replacement and orphan detection after destruction.

Nothing here mutates bodies; callers apply the outcome and then run the
hierarchy validator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .bodies import Body, BodyKind, BodyStatus, RING_HOST_KINDS
from .collisions import DestructionEvent
from .hierarchy import BodiesLike

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RootReassignment:
    destroyed_root_id: str
    new_root_id: str | None
    orphan_ids: list[str] = field(default_factory=list)


def _values(bodies: BodiesLike) -> Iterable[Body]:
    return bodies.values() if isinstance(bodies, Mapping) else bodies


def is_root_worthy(body: Body | None) -> bool:
    """A star that had no parent of either kind before it was destroyed."""
    return (
        body is not None
        and body.kind == BodyKind.STAR
        and not body.parent_id
        and not body.current_parent_id
    )


def select_new_root(bodies: BodiesLike, destroyed_id: str) -> Body | None:
    # First in iteration order; the validator then promotes the most massive.
    for body in _values(bodies):
        if body.id != destroyed_id and body.is_star and body.is_active:
            return body
    return None


def should_reassign_to_distant_star(body: Body, bodies: Mapping[str, Body]) -> bool:
    if body.is_star:
        return False
    if not body.parent_id:
        return True
    parent = bodies.get(body.parent_id)
    return parent is None or not parent.is_active


def find_orphans(bodies: Mapping[str, Body]) -> list[str]:
    return [
        body.id
        for body in bodies.values()
        if body.is_active and should_reassign_to_distant_star(body, bodies)
    ]


def plan_root_reassignment(
    bodies: Mapping[str, Body], destroyed_id: str
) -> RootReassignment:
    new_root = select_new_root(bodies, destroyed_id)
    if new_root is None:
        logger.error(f"Root star {destroyed_id} destroyed and no stars remain")
    else:
        logger.info(f"Root star {destroyed_id} destroyed; {new_root.id} selected as new root")
    return RootReassignment(
        destroyed_root_id=destroyed_id,
        new_root_id=new_root.id if new_root is not None else None,
        orphan_ids=find_orphans(bodies),
    )


def collect_destruction_targets(
    destroyed_ids: Iterable[str], bodies: Mapping[str, Body]
) -> set[str]:
    """Destroyed ids plus ring systems whose host planet was destroyed."""
    targets = set(destroyed_ids)
    hosts = {
        body_id
        for body_id in targets
        if body_id in bodies and bodies[body_id].kind in RING_HOST_KINDS
    }
    for body in bodies.values():
        if body.kind == BodyKind.RING_SYSTEM and body.is_active and body.parent_id in hosts:
            logger.debug(f"Cascading destruction to ring system {body.id}")
            targets.add(body.id)
    return targets


def destruction_status(
    body_id: str,
    events: Iterable[DestructionEvent],
    bodies: Mapping[str, Body],
) -> BodyStatus:
    """ANNIHILATED when a star swallowed the body (or its ring host) or on
    mutual destruction, DESTROYED otherwise."""
    by_destroyed = {event.destroyed_id: event for event in events}
    event = by_destroyed.get(body_id)
    if event is None:
        body = bodies.get(body_id)
        if body is not None and body.kind == BodyKind.RING_SYSTEM and body.parent_id:
            event = by_destroyed.get(body.parent_id)
    if event is None:
        return BodyStatus.DESTROYED
    if event.survivor_id is None:
        return BodyStatus.ANNIHILATED
    survivor = bodies.get(event.survivor_id)
    if survivor is not None and survivor.is_star:
        return BodyStatus.ANNIHILATED
    return BodyStatus.DESTROYED
