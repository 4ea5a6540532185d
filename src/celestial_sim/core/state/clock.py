"""Simulation time and playback state."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SimulationClock:
    time: float = 0.0
    time_scale: float = 1.0
    paused: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.time_scale < 0.0:
            raise ValueError("time_scale must be >= 0")

    def set_time_scale(self, scale: float) -> None:
        if scale < 0.0:
            raise ValueError("time_scale must be >= 0")
        self.time_scale = float(scale)

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def advance(self, scaled_dt: float) -> float:
        self.time += scaled_dt
        return self.time

    def reset_time(self) -> None:
        """Zero the simulation time; pause and time scale are left alone."""
        self.time = 0.0
