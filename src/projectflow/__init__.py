"""ProjectFlow - Formula evaluation engine for project sheets."""

__version__ = "0.1.0"
