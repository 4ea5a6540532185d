"""Merge a close companion into the root star and watch the hierarchy recover."""

from __future__ import annotations

import logging

import numpy as np

from celestial_sim.core.bodies import Body, BodyKind, PhysicsState, StarProperties
from celestial_sim.core.constants import AU, SOLAR_MASS
from celestial_sim.core.events import DESTRUCTION_OCCURRED
from celestial_sim.core.hierarchy import hierarchy_summary, validate_and_correct_hierarchy
from celestial_sim.core.integrators import NBodyIntegrator
from celestial_sim.core.state import BodyStore, SimulationClock
from celestial_sim.core.stepper import SimulationStepper, StepperConfig


def _body(body_id: str, kind: BodyKind, mass: float, radius: float, pos, vel, **kw) -> Body:
    return Body(
        body_id,
        kind,
        mass_kg=mass,
        radius_m=radius,
        physics_state=PhysicsState(body_id, mass, pos, vel),
        **kw,
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(module)s - %(message)s",
    )

    store = BodyStore(
        [
            _body(
                "primary",
                BodyKind.STAR,
                2 * SOLAR_MASS,
                7e8,
                [0.0, 0.0, 0.0],
                [0.0, 0.0, 0.0],
                properties=StarProperties(is_main_star=True),
            ),
            _body("companion", BodyKind.STAR, 0.5 * SOLAR_MASS, 5e8, [0.05 * AU, 0.0, 0.0], [-3e5, 0.0, 0.0]),
            _body("red_dwarf", BodyKind.STAR, 0.2 * SOLAR_MASS, 2e8, [40 * AU, 0.0, 0.0], [0.0, 0.0, 3e3]),
            _body("planet", BodyKind.PLANET, 6e24, 6.4e6, [0.0, 0.0, 1.0 * AU], [3e4, 0.0, 0.0]),
        ]
    )
    store.replace_all(validate_and_correct_hierarchy(store.as_mapping()))

    stepper = SimulationStepper(
        store,
        NBodyIntegrator(),
        clock=SimulationClock(time_scale=1000.0),
        config=StepperConfig(hierarchy_check_interval=0),
    )
    stepper.events.subscribe(
        DESTRUCTION_OCCURRED,
        lambda e: print(f"{e.destroyed_id} lost to {e.survivor_id} at {np.round(e.impact_position / AU, 4)} AU"),
    )

    for _ in range(5000):
        result = stepper.tick(0.01)
        if not result.ok:
            print("stopped:", result.error)
            break
        if result.destroyed_ids:
            print("destroyed:", result.destroyed_ids)
            break

    for line in hierarchy_summary(stepper.store).lines():
        print(line)
