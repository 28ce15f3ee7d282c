"""EmpowerHer SafePath - personal safety maps, routing and SOS alerts."""

__version__ = "1.0.0"
