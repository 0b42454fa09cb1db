"""EditPilot - debounced, session-aware writing feedback from a local assistant CLI."""

__version__ = "0.1.0"
