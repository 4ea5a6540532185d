"""Simulation core: bodies, state, stepper, hierarchy and orbit geometry."""
