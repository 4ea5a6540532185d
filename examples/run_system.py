"""Run a system definition JSON and print diagnostics every few frames."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from celestial_sim.core.diagnostics import (
    hierarchy_depth,
    linear_momentum,
    total_energy_gravity,
    total_mass,
)
from celestial_sim.core.hierarchy import hierarchy_summary, validate_and_correct_hierarchy
from celestial_sim.core.stepper import FixedTimestepScheduler
from celestial_sim.io import load_system, system_to_runtime


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("system", type=Path)
    parser.add_argument("--frames", type=int, default=600)
    parser.add_argument("--report-every", type=int, default=60)
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    runtime = system_to_runtime(load_system(args.system))
    runtime.store.replace_all(validate_and_correct_hierarchy(runtime.store.as_mapping()))
    stepper = runtime.stepper()
    scheduler = FixedTimestepScheduler(stepper)
    G = runtime.integrator.G

    e0 = total_energy_gravity(runtime.store, G=G)
    for frame in range(1, args.frames + 1):
        results = scheduler.advance(1.0 / 60.0)
        if any(not r.ok for r in results):
            print("stopped:", results[-1].error)
            return 1
        for r in results:
            if r.destroyed_ids:
                print(f"t={r.simulation_time:.3e}s destroyed {r.destroyed_ids}")
        if frame % args.report_every == 0:
            bodies = runtime.store
            e = total_energy_gravity(bodies, G=G)
            print(
                f"frame {frame:5d} | t={stepper.simulation_time / 86_400.0:9.2f} d | "
                f"M={total_mass(bodies):.4e} | |p|={float((linear_momentum(bodies) ** 2).sum()) ** 0.5:.3e} | "
                f"dE/E={(e - e0) / abs(e0):.3e}"
            )

    print("root star:", hierarchy_summary(runtime.store).root_id)
    print("hierarchy depth:", hierarchy_depth(runtime.store))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
