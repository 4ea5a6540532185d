"""Orbital hierarchy and simulation kernel for gravitating celestial bodies."""

__version__ = "0.1.0"
