"""System definition loading and unit handling."""

from .scenario import SystemRuntime, load_system, system_to_runtime  # noqa: F401
from .units import PRESETS, UnitsConfig, config_from_defn, from_si, to_si  # noqa: F401
