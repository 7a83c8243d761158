"""Configuration for the Metrics Browser."""

from .settings import ServerConfig, CONNECTION_STRING_ENV, MIN_PAGE_SIZE, MAX_PAGE_SIZE

__all__ = ["ServerConfig", "CONNECTION_STRING_ENV", "MIN_PAGE_SIZE", "MAX_PAGE_SIZE"]
