"""Run a system definition headless and print a summary."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import __version__
from .core.diagnostics import hierarchy_depth, total_energy_gravity, total_mass
from .core.hierarchy import hierarchy_summary, validate_and_correct_hierarchy
from .core.stepper import FixedTimestepScheduler, SimulationLoop
from .io import load_system, system_to_runtime

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="celestial_sim",
        description=f"celestial_sim v{__version__}: step a celestial system headless.",
    )
    parser.add_argument("system", type=Path)
    parser.add_argument("--ticks", type=int, default=100, help="frames to run")
    parser.add_argument(
        "--frame-dt",
        type=float,
        default=None,
        help="seconds of wall time per frame (default: fixed step)",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    runtime = system_to_runtime(load_system(args.system))
    runtime.store.replace_all(validate_and_correct_hierarchy(runtime.store.as_mapping()))
    stepper = runtime.stepper()
    loop = SimulationLoop(FixedTimestepScheduler(stepper))
    frame_dt = args.frame_dt if args.frame_dt is not None else runtime.config.fixed_step_s
    results = loop.run(args.ticks, frame_dt=frame_dt)

    bodies = runtime.store.as_mapping()
    summary = hierarchy_summary(bodies)
    print("ticks:", len(results))
    print("sim time:", stepper.simulation_time)
    print("active bodies:", len(runtime.store.active()))
    print("root star:", summary.root_id)
    print("hierarchy depth:", hierarchy_depth(bodies))
    print("total mass:", total_mass(bodies))
    print("total energy:", total_energy_gravity(bodies, G=runtime.integrator.G))
    failed = next((r for r in results if not r.ok), None)
    if failed is not None:
        print("stopped:", failed.error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
