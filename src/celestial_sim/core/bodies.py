"""Celestial body data model.

Bodies carry real-world SI magnitudes. Kind-specific data lives in a
property variant tagged by `Body.kind`; a variant that does not belong to
the kind is rejected at construction.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .math.vector import ArrayF, as_vec3


class BodyKind(str, Enum):
    STAR = "STAR"
    PLANET = "PLANET"
    GAS_GIANT = "GAS_GIANT"
    DWARF_PLANET = "DWARF_PLANET"
    MOON = "MOON"
    SPACE_ROCK = "SPACE_ROCK"
    ASTEROID_FIELD = "ASTEROID_FIELD"
    COMET = "COMET"
    OORT_CLOUD = "OORT_CLOUD"
    RING_SYSTEM = "RING_SYSTEM"
    OTHER = "OTHER"


class BodyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DESTROYED = "DESTROYED"
    ANNIHILATED = "ANNIHILATED"


PLANETARY_KINDS = frozenset({BodyKind.PLANET, BodyKind.GAS_GIANT})
RING_HOST_KINDS = frozenset(
    {BodyKind.PLANET, BodyKind.GAS_GIANT, BodyKind.DWARF_PLANET}
)


@dataclass(slots=True)
class PhysicsState:
    id: str
    mass_kg: float
    position_m: ArrayF
    velocity_mps: ArrayF

    def __post_init__(self) -> None:
        self.mass_kg = float(self.mass_kg)
        self.position_m = as_vec3(self.position_m, "position_m")
        self.velocity_mps = as_vec3(self.velocity_mps, "velocity_mps")
        self.validate()

    def validate(self) -> None:
        if self.mass_kg < 0.0:
            raise ValueError("mass_kg must be >= 0")
        if not np.all(np.isfinite(self.position_m)):
            raise ValueError("position_m must be finite")
        if not np.all(np.isfinite(self.velocity_mps)):
            raise ValueError("velocity_mps must be finite")

    def copy(self) -> "PhysicsState":
        return PhysicsState(
            id=self.id,
            mass_kg=self.mass_kg,
            position_m=self.position_m.copy(),
            velocity_mps=self.velocity_mps.copy(),
        )


@dataclass(frozen=True, slots=True)
class OrbitalElements:
    """Keplerian elements; angles in radians, distances in metres."""

    semi_major_axis_m: float
    eccentricity: float = 0.0
    inclination: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0
    mean_anomaly: float = 0.0
    period_s: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.eccentricity < 1.0:
            raise ValueError("eccentricity must be in [0, 1)")
        if self.semi_major_axis_m < 0.0:
            raise ValueError("semi_major_axis_m must be >= 0")
        if self.period_s < 0.0:
            raise ValueError("period_s must be >= 0")


@dataclass(slots=True)
class StarProperties:
    is_main_star: bool = False
    partner_stars: list[str] = field(default_factory=list)
    spectral_class: str | None = None


@dataclass(slots=True)
class PlanetProperties:
    has_rings: bool = False


@dataclass(slots=True)
class RingSystemProperties:
    inner_radius_m: float = 0.0
    outer_radius_m: float = 0.0


BodyProperties = StarProperties | PlanetProperties | RingSystemProperties

_VARIANT_KINDS: dict[type, frozenset[BodyKind]] = {
    StarProperties: frozenset({BodyKind.STAR}),
    PlanetProperties: RING_HOST_KINDS,
    RingSystemProperties: frozenset({BodyKind.RING_SYSTEM}),
}


def default_properties(kind: BodyKind) -> BodyProperties | None:
    if kind == BodyKind.STAR:
        return StarProperties()
    if kind in RING_HOST_KINDS:
        return PlanetProperties()
    if kind == BodyKind.RING_SYSTEM:
        return RingSystemProperties()
    return None


@dataclass(slots=True)
class Body:
    id: str
    kind: BodyKind
    name: str = ""
    status: BodyStatus = BodyStatus.ACTIVE
    mass_kg: float = 0.0
    radius_m: float = 0.0
    physics_state: PhysicsState | None = None
    parent_id: str | None = None
    current_parent_id: str | None = None
    orbit: OrbitalElements | None = None
    ignore_physics: bool = False
    sidereal_rotation_period_s: float | None = None
    axial_tilt: ArrayF | None = None
    rotation: ArrayF | None = None
    properties: BodyProperties | None = None

    def __post_init__(self) -> None:
        self.kind = BodyKind(self.kind)
        self.status = BodyStatus(self.status)
        self.mass_kg = float(self.mass_kg)
        self.radius_m = float(self.radius_m)
        if not self.name:
            self.name = self.id
        if self.axial_tilt is not None:
            self.axial_tilt = as_vec3(self.axial_tilt, "axial_tilt")
        if self.properties is None:
            self.properties = default_properties(self.kind)
        self.validate()

    def validate(self) -> None:
        if self.mass_kg < 0.0:
            raise ValueError("mass_kg must be >= 0")
        if self.radius_m < 0.0:
            raise ValueError("radius_m must be >= 0")
        if self.parent_id == self.id or self.current_parent_id == self.id:
            raise ValueError(f"body {self.id} cannot be its own parent")
        if self.properties is not None:
            kinds = _VARIANT_KINDS.get(type(self.properties))
            if kinds is None or self.kind not in kinds:
                raise ValueError(
                    f"{type(self.properties).__name__} does not apply to {self.kind.value}"
                )

    @property
    def is_active(self) -> bool:
        return self.status == BodyStatus.ACTIVE

    @property
    def is_star(self) -> bool:
        return self.kind == BodyKind.STAR

    @property
    def is_root(self) -> bool:
        return self.is_star and not self.parent_id and not self.current_parent_id

    @property
    def is_main_star(self) -> bool:
        return isinstance(self.properties, StarProperties) and self.properties.is_main_star

    @property
    def participates_in_physics(self) -> bool:
        return self.is_active and not self.ignore_physics and self.physics_state is not None

    @property
    def position_m(self) -> ArrayF | None:
        if self.physics_state is None:
            return None
        return self.physics_state.position_m

    def set_parent(self, parent_id: str | None) -> None:
        """Assign both the structural and the physics parent."""
        if parent_id == self.id:
            raise ValueError(f"body {self.id} cannot be its own parent")
        self.parent_id = parent_id
        self.current_parent_id = parent_id

    def mark_destroyed(self) -> None:
        if self.status != BodyStatus.ACTIVE:
            raise ValueError(f"cannot destroy body {self.id} in status {self.status.value}")
        self.status = BodyStatus.DESTROYED

    def mark_annihilated(self) -> None:
        if self.status != BodyStatus.DESTROYED:
            raise ValueError(
                f"cannot annihilate body {self.id} in status {self.status.value}"
            )
        self.status = BodyStatus.ANNIHILATED

    def copy(self) -> "Body":
        return Body(
            id=self.id,
            kind=self.kind,
            name=self.name,
            status=self.status,
            mass_kg=self.mass_kg,
            radius_m=self.radius_m,
            physics_state=(
                self.physics_state.copy() if self.physics_state is not None else None
            ),
            parent_id=self.parent_id,
            current_parent_id=self.current_parent_id,
            orbit=self.orbit,
            ignore_physics=self.ignore_physics,
            sidereal_rotation_period_s=self.sidereal_rotation_period_s,
            axial_tilt=self.axial_tilt.copy() if self.axial_tilt is not None else None,
            rotation=self.rotation.copy() if self.rotation is not None else None,
            properties=copy.deepcopy(self.properties),
        )
