"""Linkpulse: click tracking and link analytics."""

__version__ = "0.1.0"
