"""Shift scheduling, hour calculation and pay period tracking."""

__version__ = "0.1.0"
