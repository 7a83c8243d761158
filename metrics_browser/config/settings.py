"""Configuration settings for the Metrics Browser."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from ..errors import ConfigurationError, ErrorContext, get_logger

# Load environment variables from .env file if it exists
load_dotenv()

logger = get_logger(__name__)

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 500

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ServerConfig:
    """Server configuration settings."""

    # Table store connection; empty means "not configured"
    connection_string: Optional[str] = None

    # HTTP server settings
    host: str = "127.0.0.1"
    port: int = 8080

    # Query defaults
    default_page_size: int = 25
    default_sample_size: int = 50

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = None
    structured_logging: bool = True

    @property
    def is_configured(self) -> bool:
        """Whether a table store connection string is available."""
        return bool(self.connection_string and self.connection_string.strip())

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Create configuration from environment variables.

        A missing connection string is not an error here: the server still
        starts and answers store-backed endpoints with a configuration error.
        """
        connection_string = os.getenv(CONNECTION_STRING_ENV, "").strip() or None
        if connection_string is None:
            logger.warning(
                "Table store connection string is not set",
                config_key=CONNECTION_STRING_ENV,
            )

        return cls(
            connection_string=connection_string,
            host=os.getenv("METRICS_HOST", "127.0.0.1"),
            port=_int_env("METRICS_PORT", "8080"),
            default_page_size=_int_env("METRICS_DEFAULT_PAGE_SIZE", "25"),
            default_sample_size=_int_env("METRICS_DEFAULT_SAMPLE_SIZE", "50"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE"),
            structured_logging=os.getenv("STRUCTURED_LOGGING", "true").lower() == "true",
        )

    def require_connection_string(self) -> str:
        """Return the connection string or raise if none is configured."""
        if not self.is_configured:
            context = ErrorContext(operation="require_connection_string")
            raise ConfigurationError(
                "Storage connection string is not configured.",
                config_key=CONNECTION_STRING_ENV,
                error_code="STORE_NOT_CONFIGURED",
                context=context,
            )
        return self.connection_string.strip()

    def validate(self) -> None:
        """Validate configuration settings."""
        if not 0 < self.port < 65536:
            context = ErrorContext(operation="validate_config", additional_data={"value": self.port})
            raise ConfigurationError("port must be between 1 and 65535", config_key="port", context=context)

        for key in ("default_page_size", "default_sample_size"):
            value = getattr(self, key)
            if not MIN_PAGE_SIZE <= value <= MAX_PAGE_SIZE:
                context = ErrorContext(operation="validate_config", additional_data={"value": value})
                raise ConfigurationError(
                    f"{key} must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}",
                    config_key=key,
                    context=context,
                )

        if self.log_level not in LOG_LEVELS:
            context = ErrorContext(operation="validate_config", additional_data={"value": self.log_level})
            raise ConfigurationError(
                "log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL",
                config_key="log_level",
                context=context,
            )


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        context = ErrorContext(operation="load_config", additional_data={"value": raw})
        raise ConfigurationError(f"{name} must be an integer", config_key=name, context=context)
