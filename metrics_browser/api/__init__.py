"""HTTP facade for the Metrics Browser."""

from .app import create_app

__all__ = ["create_app"]
