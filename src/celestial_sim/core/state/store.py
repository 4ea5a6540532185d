"""Keyed store of bodies shared by the stepper and hierarchy correction.

One writer per tick: the stepper and hierarchy corrections must be
serialized by the caller. No locking is done here.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Iterable, Iterator, Mapping

import numpy as np

from ..bodies import Body, PhysicsState
from ..math.vector import ArrayF

logger = logging.getLogger(__name__)

_BODY_FIELDS = frozenset(f.name for f in fields(Body)) - {"id"}


class BodyStore:
    def __init__(self, bodies: Iterable[Body] = ()) -> None:
        self._bodies: dict[str, Body] = {}
        self.accelerations: dict[str, ArrayF] = {}
        for body in bodies:
            self.add(body)

    def add(self, body: Body) -> None:
        if body.id in self._bodies:
            raise ValueError(f"duplicate body id: {body.id}")
        self._bodies[body.id] = body

    def get(self, body_id: str | None) -> Body | None:
        if body_id is None:
            return None
        return self._bodies.get(body_id)

    def __getitem__(self, body_id: str) -> Body:
        return self._bodies[body_id]

    def __contains__(self, body_id: object) -> bool:
        return body_id in self._bodies

    def __iter__(self) -> Iterator[Body]:
        return iter(self._bodies.values())

    def __len__(self) -> int:
        return len(self._bodies)

    def ids(self) -> list[str]:
        return list(self._bodies)

    def as_mapping(self) -> Mapping[str, Body]:
        return self._bodies

    def active(self) -> list[Body]:
        return [b for b in self._bodies.values() if b.is_active]

    def physics_bodies(self) -> list[Body]:
        """Active bodies that take part in integration."""
        out: list[Body] = []
        for body in self._bodies.values():
            if not body.is_active or body.ignore_physics:
                continue
            if body.physics_state is None:
                logger.warning(
                    f"Body {body.id} is active for physics but has no physics state; skipping"
                )
                continue
            out.append(body)
        return out

    def snapshot(self) -> dict[str, Body]:
        return {body_id: body.copy() for body_id, body in self._bodies.items()}

    def replace_all(self, bodies: Mapping[str, Body]) -> None:
        self._bodies = dict(bodies)

    def update_many(self, updates: Mapping[str, Mapping[str, Any]]) -> None:
        """Apply partial field updates to several bodies at once.

        Every change is applied to a copy and validated first; the store
        is left untouched if any of them fails.
        """
        for body_id, changes in updates.items():
            if body_id not in self._bodies:
                raise ValueError(f"unknown body id: {body_id}")
            unknown = set(changes) - _BODY_FIELDS
            if unknown:
                raise ValueError(f"unknown body fields: {sorted(unknown)}")
            candidate = self._bodies[body_id].copy()
            for name, value in changes.items():
                setattr(candidate, name, value)
            candidate.validate()
        for body_id, changes in updates.items():
            body = self._bodies[body_id]
            for name, value in changes.items():
                setattr(body, name, value)

    def apply_states(self, states: Mapping[str, PhysicsState]) -> None:
        for body_id, state in states.items():
            body = self._bodies.get(body_id)
            if body is None:
                logger.warning(
                    f"Received state for unknown body {body_id}; ignoring"
                )
                continue
            body.physics_state = state
            body.mass_kg = state.mass_kg

    def set_accelerations(self, accelerations: Mapping[str, ArrayF]) -> None:
        self.accelerations = {
            body_id: np.asarray(acc, dtype=np.float64)
            for body_id, acc in accelerations.items()
        }
