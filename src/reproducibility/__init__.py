"""Seeded random streams for reproducible simulation runs."""

from .deterministic_rng import DeterministicRNG, RandomSource, SimulationRNG

__all__ = ["DeterministicRNG", "RandomSource", "SimulationRNG"]
