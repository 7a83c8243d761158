"""HTTP endpoints for browsing metrics tables."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from ..client import MetricsStoreClient
from ..config import ServerConfig
from ..errors import get_logger, log_operation
from ..models import clamp_size


logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def get_config(request: Request) -> ServerConfig:
    return request.app.state.config


def get_store(request: Request) -> MetricsStoreClient:
    """Return the shared store client, or fail before any store call."""
    store = request.app.state.store
    if store is None:
        # Raises ConfigurationError, rendered as a 500 problem
        request.app.state.config.require_connection_string()
    return store


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


@router.get("/tables")
def list_tables(store: MetricsStoreClient = Depends(get_store)) -> List[str]:
    return store.list_tables()


@router.get("/schema/{table}")
def get_schema(
    table: str,
    machine: Optional[str] = None,
    sample: Optional[int] = None,
    store: MetricsStoreClient = Depends(get_store),
    config: ServerConfig = Depends(get_config),
) -> List[str]:
    """Ordered column names for ``table``, optionally sampled from one machine."""
    machine = machine.strip() if machine and machine.strip() else None
    sample_size = clamp_size(sample, config.default_sample_size)
    columns = store.infer_schema(table, partition_key=machine, sample_size=sample_size)
    log_operation(logger, "schema_served", table=table, column_count=len(columns), level="debug")
    return columns


@router.get("/metrics/{table}/{machine}/page")
def get_metrics_page(
    table: str,
    machine: str,
    take: Optional[int] = None,
    ct: Optional[str] = None,
    store: MetricsStoreClient = Depends(get_store),
    config: ServerConfig = Depends(get_config),
) -> Dict[str, Any]:
    """One page of ``machine``'s rows; pass the returned token as ``ct`` for the next."""
    page_size = clamp_size(take, config.default_page_size)
    page = store.get_page(table, machine, page_size=page_size, continuation_token=ct)
    return page.to_dict()
