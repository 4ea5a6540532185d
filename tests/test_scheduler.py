from __future__ import annotations

import numpy as np

from celestial_sim.core.bodies import Body, BodyKind, PhysicsState
from celestial_sim.core.integrators import SimulationStepResult
from celestial_sim.core.state import BodyStore
from celestial_sim.core.stepper import (
    FixedTimestepScheduler,
    SimulationLoop,
    SimulationStepper,
    StepperConfig,
)


class CountingIntegrator:
    def __init__(self, fail_on: int | None = None) -> None:
        self.calls: list[float] = []
        self.fail_on = fail_on

    def advance(self, states, dt, radius_by_id, is_star_by_id, kind_by_id) -> SimulationStepResult:
        self.calls.append(dt)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError("integration diverged")
        return SimulationStepResult(states={s.id: s.copy() for s in states})


def _scheduler(integrator: CountingIntegrator) -> FixedTimestepScheduler:
    store = BodyStore(
        [
            Body(
                "sun",
                BodyKind.STAR,
                mass_kg=1.0,
                physics_state=PhysicsState("sun", 1.0, np.zeros(3), np.zeros(3)),
            )
        ]
    )
    config = StepperConfig(
        max_delta_s=0.25,
        fixed_step_s=0.25,
        max_frame_s=1.0,
        max_steps_per_frame=3,
        hierarchy_check_interval=0,
    )
    return FixedTimestepScheduler(SimulationStepper(store, integrator, config=config))


def test_whole_steps_are_consumed() -> None:
    integrator = CountingIntegrator()
    scheduler = _scheduler(integrator)
    results = scheduler.advance(0.5)
    assert len(results) == 2
    assert all(r.ok for r in results)
    assert integrator.calls == [0.25, 0.25]
    assert scheduler.alpha == 0.0


def test_remainder_carries_to_next_frame() -> None:
    integrator = CountingIntegrator()
    scheduler = _scheduler(integrator)
    assert scheduler.advance(0.125) == []
    assert scheduler.alpha == 0.5
    assert len(scheduler.advance(0.125)) == 1
    assert scheduler.stepper.simulation_time == 0.25


def test_long_frames_are_capped() -> None:
    integrator = CountingIntegrator()
    scheduler = _scheduler(integrator)
    results = scheduler.advance(10.0)
    assert len(results) == 3
    assert scheduler.accumulator == 0.0


def test_failure_ends_frame() -> None:
    integrator = CountingIntegrator(fail_on=2)
    scheduler = _scheduler(integrator)
    results = scheduler.advance(1.0)
    assert [r.ok for r in results] == [True, False]
    assert "integration diverged" in results[-1].error
    assert scheduler.advance(1.0)[0].error == "stopped"


def test_loop_measures_wall_time() -> None:
    ticks = iter([10.0, 10.5, 10.75])
    integrator = CountingIntegrator()
    loop = SimulationLoop(_scheduler(integrator), clock_fn=lambda: next(ticks))
    assert loop.frame() == []
    assert len(loop.frame()) == 2
    assert len(loop.frame()) == 1
    assert loop.stepper.simulation_time == 0.75


def test_loop_run_stops_on_failure() -> None:
    integrator = CountingIntegrator(fail_on=3)
    loop = SimulationLoop(_scheduler(integrator))
    results = loop.run(5, frame_dt=0.5)
    assert len(results) == 3
    assert not results[-1].ok
    assert not loop.stepper.running
    assert loop.run(5, frame_dt=0.5) == []
