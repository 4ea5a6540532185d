"""Sample an orbit polyline and check it against the analytic radius."""

from __future__ import annotations

import numpy as np

from celestial_sim.core.bodies import OrbitalElements
from celestial_sim.core.constants import AU, SOLAR_MASS
from celestial_sim.core.orbits import orbit_points, orbital_state, period_from_mass


if __name__ == "__main__":
    a = 1.524 * AU
    elements = OrbitalElements(
        semi_major_axis_m=a,
        eccentricity=0.0934,
        inclination=np.radians(1.85),
        longitude_of_ascending_node=np.radians(49.6),
        argument_of_periapsis=np.radians(286.5),
        period_s=period_from_mass(a, SOLAR_MASS),
    )

    points = orbit_points(elements, segments=128, scale=1.0)
    radii = np.linalg.norm(points, axis=1)
    print("points:", points.shape, "closed:", np.array_equal(points[0], points[-1]))
    print(f"periapsis: {radii.min() / AU:.4f} AU (expected {a * (1 - elements.eccentricity) / AU:.4f})")
    print(f"apoapsis:  {radii.max() / AU:.4f} AU (expected {a * (1 + elements.eccentricity) / AU:.4f})")
    print(f"max |y|:   {np.abs(points[:, 1]).max() / AU:.4f} AU")

    pos, vel = orbital_state(elements, SOLAR_MASS)
    print(f"speed at epoch: {np.linalg.norm(vel) / 1000.0:.3f} km/s")
