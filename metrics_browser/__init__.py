"""Read-only web browser for metrics stored in Azure Table Storage."""

__version__ = "0.1.0"
