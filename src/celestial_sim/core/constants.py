"""Physical constants and render scaling shared across the core."""

G = 6.67430e-11
AU = 149_597_870_700.0
SOLAR_MASS = 1.98847e30
SECONDS_PER_DAY = 86_400.0

# Scene units per AU used by the rendering collaborator.
RENDER_SCALE_AU = 1000.0
RENDER_UNITS_PER_METER = RENDER_SCALE_AU / AU
