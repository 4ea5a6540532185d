"""State namespace."""

from .clock import SimulationClock  # noqa: F401
from .store import BodyStore  # noqa: F401
