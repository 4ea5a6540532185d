"""Force models."""

from .nbody_gravity import NBodyGravity  # noqa: F401
