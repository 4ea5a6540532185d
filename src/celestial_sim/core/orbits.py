"""Analytic Keplerian orbit geometry.

Frame convention (Y-up): the reference plane is XZ and inclination lifts
the orbit towards +Y. Orbital-plane points are rotated by the argument of
periapsis, then the inclination, then the longitude of the ascending node.
`orbit_points`, `orbital_position` and `orbital_state` all share this
sequence, so drawn paths and placed bodies agree.
"""

from __future__ import annotations

import logging
from math import pi

import numpy as np

from .bodies import OrbitalElements
from .constants import G, RENDER_UNITS_PER_METER
from .math.vector import ArrayF

logger = logging.getLogger(__name__)

KEPLER_ITERATIONS = 5
TWO_PI = 2.0 * pi


def solve_kepler(
    mean_anomaly: ArrayF | float,
    eccentricity: float,
    iterations: int = KEPLER_ITERATIONS,
) -> ArrayF:
    """Solve E - e*sin(E) = M with a fixed number of Newton steps.

    No tolerance check: the cost is the same for every sample.
    """
    m = np.asarray(mean_anomaly, dtype=np.float64)
    e = float(eccentricity)
    ecc = m.copy()
    for _ in range(iterations):
        f = ecc - e * np.sin(ecc) - m
        df = 1.0 - e * np.cos(ecc)
        ecc = ecc - f / df
    return ecc


def true_anomaly(eccentric_anomaly: ArrayF, eccentricity: float) -> ArrayF:
    e = float(eccentricity)
    half = 0.5 * np.asarray(eccentric_anomaly, dtype=np.float64)
    return 2.0 * np.arctan2(
        np.sqrt(1.0 + e) * np.sin(half),
        np.sqrt(1.0 - e) * np.cos(half),
    )


def _to_parent_frame(x: ArrayF, y: ArrayF, elements: OrbitalElements) -> ArrayF:
    """Map orbital-plane (x, y) components into the parent-centred frame."""
    cos_w = np.cos(elements.argument_of_periapsis)
    sin_w = np.sin(elements.argument_of_periapsis)
    x_peri = x * cos_w - y * sin_w
    y_peri = x * sin_w + y * cos_w

    cos_i = np.cos(elements.inclination)
    sin_i = np.sin(elements.inclination)
    z_inc = y_peri * cos_i
    y_inc = y_peri * sin_i

    cos_o = np.cos(elements.longitude_of_ascending_node)
    sin_o = np.sin(elements.longitude_of_ascending_node)
    x_out = x_peri * cos_o - z_inc * sin_o
    z_out = x_peri * sin_o + z_inc * cos_o
    return np.stack([x_out, y_inc, z_out], axis=-1)


def _is_degenerate(elements: OrbitalElements) -> bool:
    return elements.period_s == 0.0 or elements.semi_major_axis_m == 0.0


def orbit_points(
    elements: OrbitalElements | None,
    segments: int = 256,
    scale: float = RENDER_UNITS_PER_METER,
) -> ArrayF:
    """Sample one full period as a closed polyline of `segments + 1` points.

    Points are relative to the focus at the origin and multiplied by
    `scale` (render units per metre). Degenerate elements give an empty
    (0, 3) array.
    """
    if segments < 1:
        raise ValueError("segments must be >= 1")
    if elements is None or _is_degenerate(elements):
        logger.warning(
            f"Degenerate orbital elements {elements!r}; no orbit points generated"
        )
        return np.zeros((0, 3), dtype=np.float64)

    e = elements.eccentricity
    t = np.arange(segments + 1, dtype=np.float64) / segments * elements.period_s
    mean_anomaly = elements.mean_anomaly + (TWO_PI / elements.period_s) * t
    ecc_anomaly = solve_kepler(mean_anomaly, e)
    nu = true_anomaly(ecc_anomaly, e)
    r = elements.semi_major_axis_m * (1.0 - e * np.cos(ecc_anomaly))

    points = _to_parent_frame(r * np.cos(nu), r * np.sin(nu), elements) * scale
    # Newton residue can leave a seam between the first and last samples.
    points[-1] = points[0]
    return points


def orbital_position(elements: OrbitalElements, t: float) -> ArrayF:
    """Position in metres relative to the parent at time `t` seconds."""
    if _is_degenerate(elements):
        return np.zeros(3, dtype=np.float64)
    e = elements.eccentricity
    mean_anomaly = elements.mean_anomaly + TWO_PI / elements.period_s * t
    ecc_anomaly = solve_kepler(mean_anomaly, e)
    nu = true_anomaly(ecc_anomaly, e)
    r = elements.semi_major_axis_m * (1.0 - e * np.cos(ecc_anomaly))
    return _to_parent_frame(r * np.cos(nu), r * np.sin(nu), elements)


def orbital_state(
    elements: OrbitalElements,
    parent_mass_kg: float,
    t: float = 0.0,
    G: float = G,
) -> tuple[ArrayF, ArrayF]:
    """Relative (position, velocity) in SI units on a two-body orbit.

    The velocity is the time derivative of the path traced by
    `orbital_position`, with gravitational parameter G * parent mass.
    """
    pos = orbital_position(elements, t)
    if _is_degenerate(elements) or parent_mass_kg <= 0.0:
        return pos, np.zeros(3, dtype=np.float64)

    e = elements.eccentricity
    mean_anomaly = elements.mean_anomaly + TWO_PI / elements.period_s * t
    nu = true_anomaly(solve_kepler(mean_anomaly, e), e)
    p = elements.semi_major_axis_m * (1.0 - e * e)
    speed = np.sqrt(G * parent_mass_kg / p)
    vel = _to_parent_frame(-speed * np.sin(nu), speed * (e + np.cos(nu)), elements)
    return pos, vel


def period_from_mass(semi_major_axis_m: float, total_mass_kg: float, G: float = G) -> float:
    """Kepler's third law; 0 when the mass or axis is not positive."""
    if semi_major_axis_m <= 0.0 or total_mass_kg <= 0.0:
        return 0.0
    return float(TWO_PI * np.sqrt(semi_major_axis_m**3 / (G * total_mass_kg)))
