"""Azure Table Storage client for reading metrics tables."""

from itertools import islice
from typing import List, Optional

from azure.data.tables import TableServiceClient
from requests.structures import CaseInsensitiveDict

from ..models import (
    MetricsPage,
    clamp_size,
    partition_filter,
    encode_continuation_token,
    decode_continuation_token,
    entity_to_row,
    collect_keys,
    order_columns,
)
from ..errors import (
    ConfigurationError,
    ErrorContext,
    get_logger,
    log_operation,
    handle_store_error,
    OperationLogger,
)


logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 25
DEFAULT_SAMPLE_SIZE = 50


class MetricsStoreClient:
    """Read-only access to metrics tables in Azure Table Storage.

    Every call issues its own query; the client holds no per-request state
    and is shared by concurrent requests.
    """

    def __init__(self, service_client: TableServiceClient):
        """
        Initialize the store client.

        Args:
            service_client: Table service client for the storage account
        """
        self.service_client = service_client

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "MetricsStoreClient":
        """Build a client from a storage account connection string."""
        try:
            service_client = TableServiceClient.from_connection_string(connection_string)
        except ValueError as e:
            context = ErrorContext(operation="create_store_client")
            raise ConfigurationError(
                f"Storage connection string is invalid: {e}",
                config_key="connection_string",
                context=context,
            ) from e

        log_operation(logger, "store_client_initialized", account=service_client.account_name)
        return cls(service_client)

    @handle_store_error(operation="list_tables")
    def list_tables(self) -> List[str]:
        """
        List the names of all tables in the account.

        Returns:
            Table names sorted case-insensitively
        """
        with OperationLogger(logger, "list_tables"):
            names = [table.name for table in self.service_client.list_tables()]
            names.sort(key=str.lower)
            log_operation(logger, "tables_listed", count=len(names), level="debug")
            return names

    @handle_store_error(operation="infer_schema", resource_arg="table_name")
    def infer_schema(
        self,
        table_name: str,
        partition_key: Optional[str] = None,
        sample_size: Optional[int] = DEFAULT_SAMPLE_SIZE,
    ) -> List[str]:
        """
        Infer the ordered column list of a table from a sample of its rows.

        Only the first page of the sample query is read, so a property that
        first appears in later rows is not reported.

        Args:
            table_name: Table to sample
            partition_key: Restrict the sample to one partition (machine)
            sample_size: Page size hint for the sample, clamped to [1, 500]

        Returns:
            Column names: preferred columns for the table first, the rest
            in case-insensitive alphabetical order
        """
        take = clamp_size(sample_size, DEFAULT_SAMPLE_SIZE)
        table_client = self.service_client.get_table_client(table_name)

        with OperationLogger(logger, "infer_schema", table=table_name, sample_size=take):
            if partition_key:
                entities = table_client.query_entities(
                    partition_filter(partition_key), results_per_page=take
                )
            else:
                entities = table_client.list_entities(results_per_page=take)

            sample = next(entities.by_page(), [])
            columns = order_columns(table_name, collect_keys(sample))
            log_operation(logger, "schema_inferred", table=table_name, column_count=len(columns), level="debug")
            return columns

    @handle_store_error(operation="get_page", resource_arg="table_name")
    def get_page(
        self,
        table_name: str,
        partition_key: str,
        page_size: Optional[int] = DEFAULT_PAGE_SIZE,
        continuation_token: Optional[str] = None,
    ) -> MetricsPage:
        """
        Fetch one page of a partition's rows.

        Args:
            table_name: Table to read
            partition_key: Partition (machine) whose rows are returned
            page_size: Rows per page, clamped to [1, 500]
            continuation_token: Token from a previous page, replayed verbatim

        Returns:
            MetricsPage with the rows and the token for the following page
        """
        take = clamp_size(page_size, DEFAULT_PAGE_SIZE)
        resume_from = decode_continuation_token(continuation_token)
        table_client = self.service_client.get_table_client(table_name)

        with OperationLogger(logger, "get_page", table=table_name, page_size=take):
            entities = table_client.query_entities(
                partition_filter(partition_key), results_per_page=take
            )
            pages = entities.by_page(continuation_token=resume_from)

            page = next(pages, None)
            if page is None:
                return MetricsPage()

            items = [entity_to_row(entity) for entity in page]
            result = MetricsPage(items=items, continuation_token=encode_continuation_token(pages.continuation_token))
            log_operation(
                logger, "page_fetched",
                table=table_name, count=len(items), has_more=result.has_more,
                level="debug",
            )
            return result

    @handle_store_error(operation="tail_rows", resource_arg="table_name")
    def tail_rows(self, table_name: str, partition_key: str, count: int = 10) -> List[CaseInsensitiveDict]:
        """Return up to ``count`` rows of a partition, following pages as needed."""
        table_client = self.service_client.get_table_client(table_name)
        entities = table_client.query_entities(partition_filter(partition_key))
        return [entity_to_row(entity) for entity in islice(entities, max(count, 0))]

    def close(self) -> None:
        """Release the underlying HTTP pipeline."""
        self.service_client.close()
