from __future__ import annotations

import logging

import numpy as np
import pytest

from celestial_sim.core.bodies import (
    Body,
    BodyKind,
    BodyStatus,
    PhysicsState,
    StarProperties,
)
from celestial_sim.core.collisions import DestructionEvent
from celestial_sim.core.constants import AU, SOLAR_MASS
from celestial_sim.core.events import DESTRUCTION_OCCURRED, TICK_COMPLETE, TIME_RESET
from celestial_sim.core.integrators import NBodyIntegrator, SimulationStepResult
from celestial_sim.core.state import BodyStore, SimulationClock
from celestial_sim.core.stepper import SimulationStepper, StepperConfig, TickPayload


class RecordingIntegrator:
    """Drifts bodies along their velocity and replays scripted destructions."""

    def __init__(self, script: dict[int, list[DestructionEvent]] | None = None) -> None:
        self.calls: list[float] = []
        self.script = script or {}

    def advance(self, states, dt, radius_by_id, is_star_by_id, kind_by_id) -> SimulationStepResult:
        self.calls.append(dt)
        result = SimulationStepResult(
            states={
                s.id: PhysicsState(s.id, s.mass_kg, s.position_m + s.velocity_mps * dt, s.velocity_mps)
                for s in states
            },
            accelerations={s.id: np.zeros(3) for s in states},
        )
        events = self.script.get(len(self.calls), [])
        result.destroyed_ids = {e.destroyed_id for e in events}
        result.destruction_events = list(events)
        return result


class FailingIntegrator:
    def advance(self, states, dt, radius_by_id, is_star_by_id, kind_by_id) -> SimulationStepResult:
        raise RuntimeError("boom")


def _body(
    body_id: str,
    kind: BodyKind,
    mass: float,
    x_au: float,
    parent: str | None = None,
    **kw,
) -> Body:
    v = 0.0 if x_au == 0.0 else 2.0e4
    return Body(
        body_id,
        kind,
        mass_kg=mass,
        radius_m=1.0e6,
        physics_state=PhysicsState(body_id, mass, [x_au * AU, 0.0, 0.0], [0.0, 0.0, v]),
        parent_id=parent,
        current_parent_id=parent,
        **kw,
    )


def _system() -> BodyStore:
    return BodyStore(
        [
            _body("sun", BodyKind.STAR, 10 * SOLAR_MASS, 0.0, properties=StarProperties(is_main_star=True)),
            _body("blue", BodyKind.STAR, 3 * SOLAR_MASS, 50.0, parent="sun"),
            _body("red", BodyKind.STAR, 1 * SOLAR_MASS, 80.0, parent="sun"),
            _body("earth", BodyKind.PLANET, 6e24, 1.0, parent="sun"),
            _body("saturn", BodyKind.GAS_GIANT, 5.7e26, 9.5, parent="sun"),
            Body("rings", BodyKind.RING_SYSTEM, parent_id="saturn", ignore_physics=True),
        ]
    )


def _event(destroyed: str, survivor: str | None) -> DestructionEvent:
    return DestructionEvent(
        destroyed_id=destroyed,
        survivor_id=survivor,
        destroyed_radius=1.0e6,
        impact_position=np.zeros(3),
        relative_velocity=np.zeros(3),
    )


def _stepper(integrator, clock: SimulationClock | None = None, **config) -> SimulationStepper:
    config.setdefault("hierarchy_check_interval", 0)
    return SimulationStepper(_system(), integrator, clock=clock, config=StepperConfig(**config))


def test_large_delta_is_clamped() -> None:
    integrator = RecordingIntegrator()
    stepper = _stepper(integrator)
    result = stepper.tick(5.0)
    assert result.ok and result.stepped
    assert integrator.calls == [0.01]
    assert result.step_s == 0.01
    assert stepper.simulation_time == pytest.approx(0.01)


def test_time_scale_applies_after_clamp() -> None:
    integrator = RecordingIntegrator()
    stepper = _stepper(integrator, clock=SimulationClock(time_scale=10.0))
    stepper.tick(1.0)
    assert integrator.calls == [pytest.approx(0.1)]


def test_negative_delta_becomes_zero() -> None:
    integrator = RecordingIntegrator()
    stepper = _stepper(integrator)
    stepper.tick(-3.0)
    assert integrator.calls == [0.0]
    assert stepper.simulation_time == 0.0


def test_paused_tick_skips_work() -> None:
    integrator = RecordingIntegrator()
    stepper = _stepper(integrator, clock=SimulationClock(paused=True))
    result = stepper.tick(0.01)
    assert result.ok
    assert not result.stepped
    assert integrator.calls == []
    assert stepper.simulation_time == 0.0

    forced = stepper.tick(0.01, force=True)
    assert forced.stepped
    assert len(integrator.calls) == 1


def test_reset_time_keeps_playback_state() -> None:
    clock = SimulationClock(time_scale=2.0)
    stepper = _stepper(RecordingIntegrator(), clock=clock)
    seen: list[float] = []
    stepper.events.subscribe(TIME_RESET, seen.append)
    stepper.tick(0.01)
    clock.toggle_pause()

    stepper.reset_time()
    assert clock.time == 0.0
    assert clock.paused is True
    assert clock.time_scale == 2.0
    assert seen == [0.0]


def test_failure_stops_stepper(caplog: pytest.LogCaptureFixture) -> None:
    stepper = _stepper(FailingIntegrator())
    with caplog.at_level(logging.ERROR):
        result = stepper.tick(0.01)
    assert not result.ok
    assert "RuntimeError" in result.error
    assert "boom" in result.error
    assert not stepper.running
    assert any(r.exc_info for r in caplog.records)
    assert stepper.pool.in_use == 0

    again = stepper.tick(0.01)
    assert not again.ok
    assert again.error == "stopped"


def test_stop_and_restart() -> None:
    integrator = RecordingIntegrator()
    stepper = _stepper(integrator)
    stepper.stop()
    assert stepper.tick(0.01).error == "stopped"
    stepper.restart()
    assert stepper.tick(0.01).ok
    assert len(integrator.calls) == 1


def test_tick_publishes_positions() -> None:
    stepper = _stepper(RecordingIntegrator())
    payloads: list[TickPayload] = []
    stepper.events.subscribe(TICK_COMPLETE, payloads.append)
    stepper.tick(0.01)

    assert len(payloads) == 1
    assert payloads[0].simulation_time == pytest.approx(0.01)
    assert set(payloads[0].positions) == {"sun", "blue", "red", "earth", "saturn"}
    assert np.array_equal(payloads[0].positions["earth"], stepper.store["earth"].position_m)


def test_accelerations_are_stored() -> None:
    stepper = _stepper(RecordingIntegrator())
    stepper.tick(0.01)
    assert set(stepper.store.accelerations) == {"sun", "blue", "red", "earth", "saturn"}


def test_root_star_destruction_promotes_new_root() -> None:
    integrator = RecordingIntegrator(script={1: [_event("sun", "blue")]})
    stepper = _stepper(integrator)
    seen: list[DestructionEvent] = []
    payloads: list[TickPayload] = []
    stepper.events.subscribe(DESTRUCTION_OCCURRED, seen.append)
    stepper.events.subscribe(TICK_COMPLETE, payloads.append)

    result = stepper.tick(0.01)
    store = stepper.store

    assert result.ok
    assert result.destroyed_ids == ["sun"]
    assert result.new_root_id == "blue"
    assert store["sun"].status is BodyStatus.ANNIHILATED
    roots = [b.id for b in store.active() if b.is_star and b.is_root]
    assert roots == ["blue"]
    assert store["blue"].is_main_star
    assert store["red"].parent_id == "blue"
    for body in store.active():
        if not body.is_star:
            assert store[body.parent_id].is_active
    assert [e.destroyed_id for e in seen] == ["sun"]
    assert "sun" not in payloads[0].positions


def test_destroyed_host_takes_its_rings() -> None:
    integrator = RecordingIntegrator(script={1: [_event("saturn", "sun")]})
    stepper = _stepper(integrator)
    result = stepper.tick(0.01)

    assert result.destroyed_ids == ["rings", "saturn"]
    assert result.new_root_id is None
    assert stepper.store["saturn"].status is BodyStatus.ANNIHILATED
    assert stepper.store["rings"].status is BodyStatus.ANNIHILATED
    assert stepper.store["sun"].is_root


def test_mutual_destruction_of_companion() -> None:
    integrator = RecordingIntegrator(script={1: [_event("earth", None)]})
    stepper = _stepper(integrator)
    stepper.tick(0.01)
    assert stepper.store["earth"].status is BodyStatus.ANNIHILATED
    assert "earth" in stepper.store
    assert stepper.tick(0.01).ok
    assert "earth" not in [b.id for b in stepper.store.physics_bodies()]


def test_rotation_follows_sidereal_period() -> None:
    stepper = _stepper(RecordingIntegrator(), clock=SimulationClock(time_scale=100.0))
    stepper.store.update_many(
        {"earth": {"sidereal_rotation_period_s": 4.0, "axial_tilt": np.array([0.0, 1.0, 0.0])}}
    )
    stepper.tick(0.01)

    expected = [np.cos(np.pi / 4), 0.0, np.sin(np.pi / 4), 0.0]
    assert np.allclose(stepper.store["earth"].rotation, expected)
    assert stepper.store["saturn"].rotation is None
    assert stepper.pool.in_use == 0


def test_periodic_maintenance_assigns_parents() -> None:
    stepper = _stepper(RecordingIntegrator(), hierarchy_check_interval=2)
    stepper.store.add(_body("comet", BodyKind.COMET, 1e13, 2.0))

    stepper.tick(0.01)
    assert stepper.store["comet"].parent_id is None
    stepper.tick(0.01)
    assert stepper.store["comet"].parent_id == "sun"


def test_nested_tick_is_refused() -> None:
    stepper = _stepper(RecordingIntegrator())
    nested = []
    stepper.events.subscribe(TICK_COMPLETE, lambda _: nested.append(stepper.tick(0.01)))
    assert stepper.tick(0.01).ok
    assert nested[0].error == "tick already in progress"


def test_repeated_runs_are_deterministic() -> None:
    def run() -> np.ndarray:
        stepper = _stepper(NBodyIntegrator(), clock=SimulationClock(time_scale=86_400.0))
        for _ in range(50):
            assert stepper.tick(0.01).ok
        return np.array([b.position_m for b in stepper.store.physics_bodies()])

    assert np.array_equal(run(), run())


def test_config_validation() -> None:
    with pytest.raises(ValueError, match="max_delta_s"):
        StepperConfig(max_delta_s=0.0)
    with pytest.raises(ValueError, match="max_steps_per_frame"):
        StepperConfig(max_steps_per_frame=0)
    with pytest.raises(ValueError, match="hierarchy_check_interval"):
        StepperConfig(hierarchy_check_interval=-1)
