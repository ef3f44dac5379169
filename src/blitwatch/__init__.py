"""blitwatch: live telemetry overlay for a tile-rendering farm."""

__version__ = "0.1.0"
