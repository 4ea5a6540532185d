"""System definition I/O and adapters."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import numpy as np

from ..core.bodies import (
    Body,
    BodyKind,
    OrbitalElements,
    PhysicsState,
    PlanetProperties,
    RingSystemProperties,
    StarProperties,
)
from ..core.constants import G as GRAVITATIONAL_CONSTANT
from ..core.integrators import NBodyIntegrator
from ..core.orbits import orbital_state, period_from_mass
from ..core.state import BodyStore, SimulationClock
from ..core.stepper import SimulationStepper, StepperConfig
from .units import PRESETS, UnitsConfig, config_from_defn, to_si

logger = logging.getLogger(__name__)

SystemDefinition = dict[str, Any]

_BODY_KINDS = {kind.value for kind in BodyKind}


@dataclass(slots=True)
class SystemRuntime:
    store: BodyStore
    integrator: NBodyIntegrator
    clock: SimulationClock
    config: StepperConfig

    def stepper(self) -> SimulationStepper:
        return SimulationStepper(
            self.store, self.integrator, clock=self.clock, config=self.config
        )


def load_system(path: str | Path) -> SystemDefinition:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return _validate_system_v1(data)


def system_to_runtime(defn: SystemDefinition) -> SystemRuntime:
    units_cfg = config_from_defn(defn)
    sim = defn.get("simulation", {})

    config = StepperConfig(
        max_delta_s=float(sim.get("max_delta_s", 0.01)),
        fixed_step_s=float(sim.get("fixed_step_s", 0.01)),
        max_frame_s=float(sim.get("max_frame_s", 0.25)),
        max_steps_per_frame=int(sim.get("max_steps_per_frame", 25)),
        hierarchy_check_interval=int(sim.get("hierarchy_check_interval", 1000)),
    )
    clock = SimulationClock(
        time_scale=float(sim.get("time_scale", 1.0)),
        paused=bool(sim.get("paused", False)),
    )
    G = float(to_si(sim["G"], "G", units_cfg)) if "G" in sim else GRAVITATIONAL_CONSTANT
    integrator = NBodyIntegrator(
        G=G,
        softening=float(to_si(sim.get("softening", 0.0), "length", units_cfg)),
        chunk_size=sim.get("chunk_size"),
        collisions=bool(sim.get("collisions", True)),
    )

    entries = {entry["id"]: entry for entry in defn["bodies"]}
    bodies: dict[str, Body] = {}
    for body_id in entries:
        _build_body(body_id, entries, bodies, units_cfg, G)
    store = BodyStore(bodies[body_id] for body_id in entries)
    logger.info(f"Loaded system with {len(store)} bodies (units {units_cfg.preset})")
    return SystemRuntime(store=store, integrator=integrator, clock=clock, config=config)


def _build_body(
    body_id: str,
    entries: dict[str, dict[str, Any]],
    bodies: dict[str, Body],
    units_cfg: UnitsConfig,
    G: float,
) -> Body:
    # Parents are built first so orbit-only bodies can be placed relative to them.
    if body_id in bodies:
        return bodies[body_id]
    entry = entries[body_id]
    kind = BodyKind(entry["kind"])
    mass = float(to_si(entry.get("mass", 0.0), "mass", units_cfg))
    parent_id = entry.get("parent")
    parent = (
        _build_body(parent_id, entries, bodies, units_cfg, G)
        if parent_id is not None
        else None
    )

    orbit = None
    if "orbit" in entry:
        orbit = _parse_orbit(entry["orbit"], units_cfg)
        if orbit.period_s == 0.0 and parent is not None:
            period = period_from_mass(orbit.semi_major_axis_m, parent.mass_kg + mass, G)
            orbit = replace(orbit, period_s=period)

    state = None
    if not entry.get("ignore_physics", False) or "position" in entry:
        state = _initial_state(body_id, entry, mass, orbit, parent, units_cfg, G)

    rotation_period = entry.get("rotation_period")
    body = Body(
        id=body_id,
        kind=kind,
        name=str(entry.get("name", "")),
        mass_kg=mass,
        radius_m=float(to_si(entry.get("radius", 0.0), "length", units_cfg)),
        physics_state=state,
        parent_id=parent_id,
        current_parent_id=parent_id,
        orbit=orbit,
        ignore_physics=bool(entry.get("ignore_physics", False)),
        sidereal_rotation_period_s=(
            float(to_si(rotation_period, "time", units_cfg))
            if rotation_period is not None
            else None
        ),
        axial_tilt=(
            np.asarray(entry["axial_tilt"], dtype=np.float64)
            if "axial_tilt" in entry
            else None
        ),
        properties=_parse_properties(kind, entry, units_cfg),
    )
    bodies[body_id] = body
    return body


def _initial_state(
    body_id: str,
    entry: dict[str, Any],
    mass: float,
    orbit: OrbitalElements | None,
    parent: Body | None,
    units_cfg: UnitsConfig,
    G: float,
) -> PhysicsState:
    if "position" in entry:
        pos = np.asarray(to_si(entry["position"], "length", units_cfg), dtype=np.float64)
        vel = np.asarray(
            to_si(entry.get("velocity", [0.0, 0.0, 0.0]), "velocity", units_cfg),
            dtype=np.float64,
        )
        return PhysicsState(body_id, mass, pos, vel)
    if orbit is not None and parent is not None:
        rel_pos, rel_vel = orbital_state(orbit, parent.mass_kg, 0.0, G)
        base_pos = np.zeros(3, dtype=np.float64)
        base_vel = np.zeros(3, dtype=np.float64)
        if parent.physics_state is not None:
            base_pos = parent.physics_state.position_m
            base_vel = parent.physics_state.velocity_mps
        return PhysicsState(body_id, mass, base_pos + rel_pos, base_vel + rel_vel)
    return PhysicsState(body_id, mass, np.zeros(3), np.zeros(3))


def _parse_orbit(cfg: dict[str, Any], units_cfg: UnitsConfig) -> OrbitalElements:
    return OrbitalElements(
        semi_major_axis_m=float(to_si(cfg["semi_major_axis"], "length", units_cfg)),
        eccentricity=float(cfg.get("eccentricity", 0.0)),
        inclination=float(to_si(cfg.get("inclination", 0.0), "angle", units_cfg)),
        longitude_of_ascending_node=float(
            to_si(cfg.get("longitude_of_ascending_node", 0.0), "angle", units_cfg)
        ),
        argument_of_periapsis=float(
            to_si(cfg.get("argument_of_periapsis", 0.0), "angle", units_cfg)
        ),
        mean_anomaly=float(to_si(cfg.get("mean_anomaly", 0.0), "angle", units_cfg)),
        period_s=float(to_si(cfg.get("period", 0.0), "time", units_cfg)),
    )


def _parse_properties(
    kind: BodyKind, entry: dict[str, Any], units_cfg: UnitsConfig
) -> StarProperties | PlanetProperties | RingSystemProperties | None:
    if kind == BodyKind.STAR:
        return StarProperties(
            is_main_star=bool(entry.get("is_main_star", False)),
            spectral_class=entry.get("spectral_class"),
        )
    if kind in (BodyKind.PLANET, BodyKind.GAS_GIANT, BodyKind.DWARF_PLANET):
        return PlanetProperties(has_rings=bool(entry.get("has_rings", False)))
    if kind == BodyKind.RING_SYSTEM:
        return RingSystemProperties(
            inner_radius_m=float(to_si(entry.get("inner_radius", 0.0), "length", units_cfg)),
            outer_radius_m=float(to_si(entry.get("outer_radius", 0.0), "length", units_cfg)),
        )
    return None


def _require(obj: dict[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ValueError(f"missing required field: {ctx}.{key}")
    return obj[key]


def _validate_vector(value: Any, ctx: str) -> None:
    a = np.asarray(value, dtype=np.float64)
    if a.shape != (3,):
        raise ValueError(f"{ctx} must have length 3")


def _validate_system_v1(data: dict[str, Any]) -> SystemDefinition:
    if not isinstance(data, dict):
        raise ValueError("system must be a JSON object")
    if data.get("schema_version") != 1:
        raise ValueError("schema_version must be 1")

    if "units" in data:
        units = data["units"]
        if not isinstance(units, dict):
            raise ValueError("units must be an object")
        if str(units.get("preset", "SI")).upper() not in PRESETS:
            raise ValueError("units.preset is not supported")
        if "enabled" in units and not isinstance(units["enabled"], bool):
            raise ValueError("units.enabled must be boolean")

    sim = data.get("simulation", {})
    if not isinstance(sim, dict):
        raise ValueError("simulation must be an object")
    for key in ("max_delta_s", "fixed_step_s", "max_frame_s"):
        if key in sim and float(sim[key]) <= 0.0:
            raise ValueError(f"simulation.{key} must be > 0")
    if "time_scale" in sim and float(sim["time_scale"]) < 0.0:
        raise ValueError("simulation.time_scale must be >= 0")
    if "softening" in sim and float(sim["softening"]) < 0.0:
        raise ValueError("simulation.softening must be >= 0")

    bodies = _require(data, "bodies", "system")
    if not isinstance(bodies, list):
        raise ValueError("bodies must be a list")
    ids: set[str] = set()
    for idx, entry in enumerate(bodies):
        ctx = f"bodies[{idx}]"
        if not isinstance(entry, dict):
            raise ValueError(f"{ctx} must be an object")
        body_id = _require(entry, "id", ctx)
        if not isinstance(body_id, str) or not body_id:
            raise ValueError(f"{ctx}.id must be a non-empty string")
        if body_id in ids:
            raise ValueError(f"duplicate body id: {body_id}")
        ids.add(body_id)
        kind = _require(entry, "kind", ctx)
        if kind not in _BODY_KINDS:
            raise ValueError(f"{ctx}.kind must be one of {sorted(_BODY_KINDS)}")
        if float(entry.get("mass", 0.0)) < 0.0:
            raise ValueError(f"{ctx}.mass must be >= 0")
        if float(entry.get("radius", 0.0)) < 0.0:
            raise ValueError(f"{ctx}.radius must be >= 0")
        for key in ("position", "velocity", "axial_tilt"):
            if key in entry:
                _validate_vector(entry[key], f"{ctx}.{key}")
        if "velocity" in entry and "position" not in entry:
            raise ValueError(f"{ctx}.velocity requires position")
        if "orbit" in entry:
            orbit = entry["orbit"]
            if not isinstance(orbit, dict):
                raise ValueError(f"{ctx}.orbit must be an object")
            _require(orbit, "semi_major_axis", f"{ctx}.orbit")
            e = float(orbit.get("eccentricity", 0.0))
            if not 0.0 <= e < 1.0:
                raise ValueError(f"{ctx}.orbit.eccentricity must be in [0, 1)")

    for idx, entry in enumerate(bodies):
        parent = entry.get("parent")
        if parent is None:
            continue
        if parent not in ids:
            raise ValueError(f"bodies[{idx}].parent not found in system ids")
        if parent == entry["id"]:
            raise ValueError(f"bodies[{idx}].parent must not be the body itself")
    _check_parent_cycles(bodies)
    return data


def _check_parent_cycles(bodies: list[dict[str, Any]]) -> None:
    parents = {entry["id"]: entry.get("parent") for entry in bodies}
    for body_id in parents:
        seen = {body_id}
        current = parents[body_id]
        while current is not None:
            if current in seen:
                raise ValueError(f"parent cycle through {current}")
            seen.add(current)
            current = parents.get(current)
