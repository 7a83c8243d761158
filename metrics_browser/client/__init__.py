"""Table store client for the Metrics Browser."""

from .table_client import MetricsStoreClient, DEFAULT_PAGE_SIZE, DEFAULT_SAMPLE_SIZE

__all__ = ["MetricsStoreClient", "DEFAULT_PAGE_SIZE", "DEFAULT_SAMPLE_SIZE"]
