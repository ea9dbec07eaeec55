"""Route group exports."""

from . import fleet, health

__all__ = ["fleet", "health"]
