"""Physical constants, render scale and unit presets for system definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from ..core.constants import (  # noqa: F401
    AU,
    G,
    RENDER_SCALE_AU,
    RENDER_UNITS_PER_METER,
    SECONDS_PER_DAY,
    SOLAR_MASS,
)


@dataclass(frozen=True, slots=True)
class UnitPreset:
    name: str
    L: float
    M: float
    T: float
    length_label: str
    mass_label: str
    time_label: str


@dataclass(frozen=True, slots=True)
class UnitsConfig:
    preset: str
    enabled: bool = True


PRESETS: dict[str, UnitPreset] = {
    "SI": UnitPreset("SI", 1.0, 1.0, 1.0, "m", "kg", "s"),
    "KM": UnitPreset("KM", 1000.0, 1.0, 1.0, "km", "kg", "s"),
    "ASTRO": UnitPreset(
        "ASTRO",
        AU,
        SOLAR_MASS,
        SECONDS_PER_DAY,
        "AU",
        "Msun",
        "day",
    ),
}


def get_preset(name: str) -> UnitPreset:
    if name not in PRESETS:
        raise ValueError(f"unknown units preset: {name}")
    return PRESETS[name]


def default_config() -> UnitsConfig:
    return UnitsConfig(preset="SI", enabled=True)


def config_from_defn(defn: dict[str, Any]) -> UnitsConfig:
    units = defn.get("units", {})
    if not isinstance(units, dict):
        return default_config()
    preset = str(units.get("preset", "SI")).upper()
    enabled = bool(units.get("enabled", True))
    if preset not in PRESETS:
        raise ValueError(f"unknown units preset: {preset}")
    return UnitsConfig(preset=preset, enabled=enabled)


def to_si(value: Any, kind: str, cfg: UnitsConfig) -> Any:
    scale = _scale_for_kind(kind, _effective_preset(cfg))
    return _apply_scale(value, scale)


def from_si(value: Any, kind: str, cfg: UnitsConfig) -> Any:
    scale = _scale_for_kind(kind, _effective_preset(cfg))
    return _apply_scale(value, 1.0 / scale)


def _effective_preset(cfg: UnitsConfig) -> UnitPreset:
    return get_preset(cfg.preset if cfg.enabled else "SI")


def _scale_for_kind(kind: str, preset: UnitPreset) -> float:
    if kind == "length":
        return preset.L
    if kind == "mass":
        return preset.M
    if kind == "time":
        return preset.T
    if kind == "velocity":
        return preset.L / preset.T
    if kind == "angle":
        return 1.0
    if kind == "G":
        return preset.L**3 / (preset.M * preset.T**2)
    raise ValueError(f"unsupported unit kind: {kind}")


def _apply_scale(value: Any, scale: float) -> Any:
    if isinstance(value, (list, tuple, np.ndarray)):
        arr = np.asarray(value, dtype=np.float64)
        return (arr * scale).astype(np.float64)
    return float(value) * scale
