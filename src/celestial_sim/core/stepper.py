"""Per-tick simulation driver.

`SimulationStepper.tick` clamps the frame delta, advances the integrator,
applies destructions and root replacement, writes states back to the
store, updates spin rotations and publishes tick events. Any unexpected
error stops the stepper; it does not tick again until `restart()`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from .bodies import BodyStatus
from .destruction import (
    collect_destruction_targets,
    destruction_status,
    is_root_worthy,
    plan_root_reassignment,
)
from .events import DESTRUCTION_OCCURRED, TICK_COMPLETE, TIME_RESET, EventChannel
from .hierarchy import reassign_planets_to_dominant_stars, validate_and_correct_hierarchy
from .integrators import Integrator, SimulationStepResult
from .math.pool import VectorPool
from .math.quat import spin_quaternion
from .math.vector import ArrayF
from .state.clock import SimulationClock
from .state.store import BodyStore

logger = logging.getLogger(__name__)

_STEP_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class StepperConfig:
    max_delta_s: float = 0.01
    fixed_step_s: float = 0.01
    max_frame_s: float = 0.25
    max_steps_per_frame: int = 25
    hierarchy_check_interval: int = 1000

    def __post_init__(self) -> None:
        if self.max_delta_s <= 0.0:
            raise ValueError("max_delta_s must be > 0")
        if self.fixed_step_s <= 0.0:
            raise ValueError("fixed_step_s must be > 0")
        if self.max_frame_s <= 0.0:
            raise ValueError("max_frame_s must be > 0")
        if self.max_steps_per_frame <= 0:
            raise ValueError("max_steps_per_frame must be > 0")
        if self.hierarchy_check_interval < 0:
            raise ValueError("hierarchy_check_interval must be >= 0")


@dataclass(slots=True)
class TickResult:
    ok: bool
    simulation_time: float
    stepped: bool = False
    step_s: float = 0.0
    destroyed_ids: list[str] = field(default_factory=list)
    new_root_id: str | None = None
    error: str | None = None

    @classmethod
    def success(
        cls,
        simulation_time: float,
        stepped: bool = True,
        step_s: float = 0.0,
        destroyed_ids: list[str] | None = None,
        new_root_id: str | None = None,
    ) -> "TickResult":
        return cls(
            ok=True,
            simulation_time=simulation_time,
            stepped=stepped,
            step_s=step_s,
            destroyed_ids=list(destroyed_ids or []),
            new_root_id=new_root_id,
        )

    @classmethod
    def failure(cls, simulation_time: float, error: str) -> "TickResult":
        return cls(ok=False, simulation_time=simulation_time, error=error)


@dataclass(slots=True)
class TickPayload:
    simulation_time: float
    positions: dict[str, ArrayF]


class SimulationStepper:
    def __init__(
        self,
        store: BodyStore,
        integrator: Integrator,
        clock: SimulationClock | None = None,
        config: StepperConfig | None = None,
        events: EventChannel | None = None,
    ) -> None:
        self.store = store
        self.integrator = integrator
        self.clock = clock if clock is not None else SimulationClock()
        self.config = config if config is not None else StepperConfig()
        self.events = events if events is not None else EventChannel()
        self.pool = VectorPool()
        self.tick_count = 0
        self._running = True
        self._in_tick = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def simulation_time(self) -> float:
        return self.clock.time

    def stop(self) -> None:
        self._running = False

    def restart(self) -> None:
        self._running = True

    def reset_time(self) -> None:
        self.clock.reset_time()
        self.events.publish(TIME_RESET, self.clock.time)

    def clamp_delta(self, delta_s: float) -> float:
        return min(max(float(delta_s), 0.0), self.config.max_delta_s)

    def tick(self, delta_s: float, force: bool = False) -> TickResult:
        """Advance the simulation by one (clamped, time-scaled) frame delta.

        `force` steps even while paused.
        """
        if not self._running:
            return TickResult.failure(self.clock.time, "stopped")
        if self._in_tick:
            return TickResult.failure(self.clock.time, "tick already in progress")

        dt = self.clamp_delta(delta_s)
        if self.clock.paused and not force:
            return TickResult.success(self.clock.time, stepped=False)

        scratch: list[ArrayF] = []
        self._in_tick = True
        try:
            return self._step(dt * self.clock.time_scale, scratch)
        except Exception as exc:
            logger.exception(f"Simulation tick failed at t={self.clock.time:.6g}s; stopping")
            self._running = False
            return TickResult.failure(self.clock.time, f"{type(exc).__name__}: {exc}")
        finally:
            self.pool.release_all(scratch)
            self._in_tick = False

    def _step(self, scaled_dt: float, scratch: list[ArrayF]) -> TickResult:
        self.clock.advance(scaled_dt)
        self.tick_count += 1

        bodies = self.store.physics_bodies()
        states = [body.physics_state for body in bodies if body.physics_state is not None]
        result = self.integrator.advance(
            states,
            scaled_dt,
            {b.id: b.radius_m for b in bodies},
            {b.id: b.is_star for b in bodies},
            {b.id: b.kind for b in bodies},
        )

        self.store.apply_states(result.states)
        self.store.set_accelerations(result.accelerations)

        destroyed: list[str] = []
        new_root_id: str | None = None
        if result.destroyed_ids:
            destroyed, new_root_id = self._apply_destruction(result)

        self._update_rotations(scratch)

        interval = self.config.hierarchy_check_interval
        if interval and self.tick_count % interval == 0:
            self.run_maintenance()

        for event in result.destruction_events:
            self.events.publish(DESTRUCTION_OCCURRED, event)
        self.events.publish(
            TICK_COMPLETE,
            TickPayload(self.clock.time, self._positions()),
        )
        logger.debug(
            f"Tick {self.tick_count}: dt={scaled_dt:.6g}s t={self.clock.time:.6g}s "
            f"bodies={len(states)}"
        )
        return TickResult.success(
            self.clock.time,
            step_s=scaled_dt,
            destroyed_ids=destroyed,
            new_root_id=new_root_id,
        )

    def _apply_destruction(self, result: SimulationStepResult) -> tuple[list[str], str | None]:
        by_id = self.store.as_mapping()
        targets = collect_destruction_targets(result.destroyed_ids, by_id)
        # Root status has to be read before the parents are touched.
        lost_roots = [
            body_id
            for body_id in sorted(targets)
            if body_id in by_id and is_root_worthy(by_id[body_id])
        ]

        destroyed: list[str] = []
        for body_id in sorted(targets):
            body = by_id.get(body_id)
            if body is None or not body.is_active:
                continue
            body.mark_destroyed()
            if destruction_status(body_id, result.destruction_events, by_id) == BodyStatus.ANNIHILATED:
                body.mark_annihilated()
            logger.info(f"Body {body_id} ({body.kind.value}) {body.status.value.lower()}")
            destroyed.append(body_id)

        new_root_id: str | None = None
        for root_id in lost_roots:
            plan = plan_root_reassignment(by_id, root_id)
            if plan.new_root_id is not None:
                new_root_id = plan.new_root_id
            if plan.orphan_ids:
                logger.info(f"Orphaned by loss of {root_id}: {', '.join(plan.orphan_ids)}")

        if destroyed:
            self.store.replace_all(validate_and_correct_hierarchy(self.store.as_mapping()))
        return destroyed, new_root_id

    def _update_rotations(self, scratch: list[ArrayF]) -> None:
        t = self.clock.time
        for body in self.store.active():
            period = body.sidereal_rotation_period_s
            if not period or period <= 0.0 or body.axial_tilt is None:
                continue
            axis = self.pool.acquire()
            scratch.append(axis)
            np.copyto(axis, body.axial_tilt)
            if not np.any(axis):
                continue
            body.rotation = spin_quaternion(axis, t, period)

    def _positions(self) -> dict[str, ArrayF]:
        return {
            body.id: body.physics_state.position_m.copy()
            for body in self.store.active()
            if body.physics_state is not None
        }

    def run_maintenance(self) -> None:
        """Revalidate the hierarchy and let dominant stars capture planets."""
        logger.debug(f"Periodic hierarchy maintenance at tick {self.tick_count}")
        corrected = validate_and_correct_hierarchy(self.store.as_mapping())
        self.store.replace_all(reassign_planets_to_dominant_stars(corrected))


class FixedTimestepScheduler:
    """Accumulates wall time and spends it in fixed ticks."""

    def __init__(self, stepper: SimulationStepper) -> None:
        self.stepper = stepper
        self.accumulator = 0.0

    @property
    def alpha(self) -> float:
        return self.accumulator / self.stepper.config.fixed_step_s

    def advance(self, frame_dt: float) -> list[TickResult]:
        config = self.stepper.config
        self.accumulator += min(max(float(frame_dt), 0.0), config.max_frame_s)

        # Tolerance keeps e.g. 0.3 / 0.1 from flooring to 2.
        steps = int(self.accumulator / config.fixed_step_s + _STEP_EPSILON)
        if steps > config.max_steps_per_frame:
            logger.debug(
                f"Dropping {steps - config.max_steps_per_frame} steps of backlog "
                f"after {config.max_steps_per_frame}"
            )
            steps = config.max_steps_per_frame
            self.accumulator = steps * config.fixed_step_s

        results: list[TickResult] = []
        for _ in range(steps):
            result = self.stepper.tick(config.fixed_step_s)
            results.append(result)
            if not result.ok:
                self.accumulator = 0.0
                return results
        self.accumulator = max(self.accumulator - steps * config.fixed_step_s, 0.0)
        return results


class SimulationLoop:
    def __init__(
        self,
        scheduler: FixedTimestepScheduler,
        clock_fn: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.scheduler = scheduler
        self.clock_fn = clock_fn
        self._last: float | None = None

    @property
    def stepper(self) -> SimulationStepper:
        return self.scheduler.stepper

    def frame(self, now: float | None = None) -> list[TickResult]:
        now = self.clock_fn() if now is None else now
        if self._last is None:
            self._last = now
            return []
        frame_dt = now - self._last
        self._last = now
        return self.scheduler.advance(frame_dt)

    def run(self, frames: int, frame_dt: float | None = None) -> list[TickResult]:
        """Drive `frames` frames; `frame_dt` replaces wall time when given."""
        results: list[TickResult] = []
        for _ in range(frames):
            if not self.stepper.running:
                break
            if frame_dt is None:
                batch = self.frame()
            else:
                batch = self.scheduler.advance(frame_dt)
            results.extend(batch)
            if any(not r.ok for r in batch):
                break
        return results
