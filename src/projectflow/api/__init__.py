"""HTTP API for the formula engine."""

from .app import create_app

__all__ = ["create_app"]
