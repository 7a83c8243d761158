"""Pytest configuration and fixtures."""

import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.data.tables import TableEntity
from fastapi.testclient import TestClient

from metrics_browser.api import create_app
from metrics_browser.client import MetricsStoreClient
from metrics_browser.config.settings import ServerConfig


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

_PARTITION_FILTER = re.compile(r"^PartitionKey eq '((?:[^']|'')*)'$")


def make_entity(partition_key, row_key, timestamp=None, **properties):
    """Build a TableEntity shaped like the ones the SDK returns."""
    entity = TableEntity(PartitionKey=partition_key, RowKey=row_key, **properties)
    entity._metadata = {"timestamp": timestamp or BASE_TIME, "etag": 'W/"datetime\'1\'"'}
    return entity


class FakePageIterator:
    """Mimics the SDK page iterator: dict continuation tokens keyed on the next row."""

    def __init__(self, entities, page_size, continuation_token=None):
        self._entities = entities
        self._page_size = page_size or 1000
        self._position = 0
        self._done = False
        self.continuation_token = continuation_token or None

        if continuation_token:
            keys = [(e["PartitionKey"], e["RowKey"]) for e in entities]
            self._position = keys.index(
                (continuation_token["PartitionKey"], continuation_token["RowKey"])
            )

    def __iter__(self):
        return self

    def __next__(self):
        if self._done:
            raise StopIteration
        page = self._entities[self._position:self._position + self._page_size]
        self._position += len(page)
        if self._position < len(self._entities):
            upcoming = self._entities[self._position]
            self.continuation_token = {
                "PartitionKey": upcoming["PartitionKey"],
                "RowKey": upcoming["RowKey"],
            }
        else:
            self.continuation_token = None
            self._done = True
        return iter(page)


class FakeItemPaged:
    def __init__(self, entities, results_per_page=None):
        self._entities = entities
        self.results_per_page = results_per_page

    def by_page(self, continuation_token=None):
        return FakePageIterator(self._entities, self.results_per_page, continuation_token)

    def __iter__(self):
        return iter(self._entities)


class FakeTableClient:
    """In-memory table answering the equality filters the store client builds."""

    def __init__(self, table_name, entities):
        self.table_name = table_name
        self.entities = entities
        self.queries = []

    def _check_exists(self):
        if self.entities is None:
            raise ResourceNotFoundError(message="The table specified does not exist.")

    def query_entities(self, query_filter, results_per_page=None, **kwargs):
        self._check_exists()
        self.queries.append(query_filter)
        match = _PARTITION_FILTER.match(query_filter)
        if not match:
            raise HttpResponseError(message=f"A syntax error occurred in filter: {query_filter}")
        partition_key = match.group(1).replace("''", "'")
        selected = [e for e in self.entities if e["PartitionKey"] == partition_key]
        return FakeItemPaged(selected, results_per_page)

    def list_entities(self, results_per_page=None, **kwargs):
        self._check_exists()
        self.queries.append(None)
        return FakeItemPaged(list(self.entities), results_per_page)


class FakeTableService:
    """Stand-in for azure.data.tables.TableServiceClient."""

    account_name = "fakeaccount"

    def __init__(self, tables):
        self.tables = tables
        self.clients = {}
        self.closed = False

    def list_tables(self):
        return [SimpleNamespace(name=name) for name in self.tables]

    def get_table_client(self, table_name):
        if table_name not in self.clients:
            self.clients[table_name] = FakeTableClient(table_name, self.tables.get(table_name))
        return self.clients[table_name]

    def close(self):
        self.closed = True


def cpu_rows(machine, count, start=0):
    return [
        make_entity(
            machine,
            f"{i:05d}",
            timestamp=BASE_TIME + timedelta(minutes=i),
            CpuPercent=10.0 + i,
        )
        for i in range(start, start + count)
    ]


@pytest.fixture
def mock_config():
    """Server configuration with a placeholder connection string."""
    return ServerConfig(
        connection_string="UseDevelopmentStorage=true",
        host="127.0.0.1",
        port=8080,
        log_level="DEBUG",
        structured_logging=False,
    )


@pytest.fixture
def unconfigured_config():
    return ServerConfig(connection_string=None, log_level="DEBUG")


@pytest.fixture
def fake_service():
    """Account with CPU, memory and ping tables plus an unlisted-schema table."""
    return FakeTableService({
        "CpuUsage": cpu_rows("srv-01", 3) + cpu_rows("srv-02", 2) + [
            make_entity("o'brien", "00000", CpuPercent=55.5),
        ],
        "MemoryUsage": [
            make_entity("srv-01", "00000", MemTotalMb=16384, MemUsedMb=8192.5),
            make_entity("srv-01", "00001", MemTotalMb=16384, MemUsedMb=9000.25, swapMb=12),
        ],
        "pingTime": [
            make_entity("srv-01", "00000", PingMs=12, Host="8.8.8.8"),
        ],
        "Events": [
            make_entity("srv-01", "00000", zeta=1, Alpha="a", beta=True),
        ],
        "Empty": [],
    })


@pytest.fixture
def store(fake_service):
    return MetricsStoreClient(fake_service)


@pytest.fixture
def api_client(mock_config, store):
    with TestClient(create_app(mock_config, store=store)) as client:
        yield client


@pytest.fixture
def unconfigured_api_client(unconfigured_config):
    with TestClient(create_app(unconfigured_config)) as client:
        yield client
