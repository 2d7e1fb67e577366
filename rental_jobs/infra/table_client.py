# rental_jobs/infra/table_client.py
import uuid
from typing import Any, AsyncIterator, Dict, Iterable, Mapping, Optional, Tuple

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.data.tables.aio import TableServiceClient

from rental_jobs import config
from rental_jobs.infra.store import EntityStore, Record, RecordKey, StoreUnavailable
from rental_jobs.services.windows import Window
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)

# colecciones cuya PartitionKey no es el propio id
PARTITION_FIELDS = {"notifications": "userId"}


def build_filter(
    field: Optional[str] = None,
    window: Optional[Window] = None,
    equals: Optional[Mapping[str, Any]] = None,
) -> Tuple[str, Dict[str, Any]]:
    """
    Arma el query_filter OData con parámetros (@p0, @p1, ...).
    Las listas en `equals` se traducen a (campo eq a or campo eq b).
    """
    clauses = []
    params: Dict[str, Any] = {}

    def param(value) -> str:
        name = f"p{len(params)}"
        params[name] = value
        return f"@{name}"

    if window is not None:
        if window.lower is not None:
            op = "ge" if window.lower_inclusive else "gt"
            clauses.append(f"{field} {op} {param(window.lower)}")
        if window.upper is not None:
            op = "le" if window.upper_inclusive else "lt"
            clauses.append(f"{field} {op} {param(window.upper)}")

    for name, value in (equals or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            options = " or ".join(f"{name} eq {param(v)}" for v in sorted(value))
            clauses.append(f"({options})")
        else:
            clauses.append(f"{name} eq {param(value)}")

    return " and ".join(clauses), params


def _to_record(entity: Mapping[str, Any]) -> Record:
    record = {k: v for k, v in entity.items() if k not in ("PartitionKey", "RowKey")}
    record["id"] = entity["RowKey"]
    record["partition"] = entity["PartitionKey"]
    return record


class TableEntityStore(EntityStore):
    """
    Store sobre Azure Table Storage (cliente async).
    Una tabla por colección. Las entidades usan PartitionKey == RowKey == id,
    salvo las notificaciones, que se particionan por userId.
    """

    def __init__(self, conn_str: str, table_prefix: str = "", batch_limit: int = 100):
        self._service = TableServiceClient.from_connection_string(conn_str=conn_str)
        self._prefix = table_prefix
        self.batch_limit = batch_limit

    def _table(self, collection: str):
        return self._service.get_table_client(table_name=f"{self._prefix}{collection}")

    async def _run_query(self, collection: str, query_filter: str, params: Dict[str, Any]) -> AsyncIterator[Record]:
        table = self._table(collection)
        try:
            if query_filter:
                entities = table.query_entities(query_filter=query_filter, parameters=params)
            else:
                entities = table.list_entities()
            async for entity in entities:
                yield _to_record(entity)
        except AzureError as e:
            raise StoreUnavailable(f"query sobre '{collection}' falló: {e}") from e

    def query_range(self, collection, field, window, equals=None):
        query_filter, params = build_filter(field, window, equals)
        return self._run_query(collection, query_filter, params)

    def query(self, collection, equals):
        query_filter, params = build_filter(equals=equals)
        return self._run_query(collection, query_filter, params)

    async def get(self, collection, id, partition=None):
        table = self._table(collection)
        try:
            entity = await table.get_entity(partition_key=partition or id, row_key=id)
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            raise StoreUnavailable(f"lookup {collection}/{id} falló: {e}") from e
        return _to_record(entity)

    async def insert(self, collection, data, id=None, partition=None):
        row_key = id or str(uuid.uuid4())
        if partition is None:
            partition_field = PARTITION_FIELDS.get(collection)
            partition = data[partition_field] if partition_field else row_key

        entity = dict(data)
        entity["PartitionKey"] = partition
        entity["RowKey"] = row_key
        try:
            await self._table(collection).create_entity(entity=entity)
        except AzureError as e:
            raise StoreUnavailable(f"insert en '{collection}' falló: {e}") from e
        return RecordKey(partition=partition, id=row_key)

    async def delete_batch(self, collection, keys: Iterable[RecordKey]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        self._check_batch(keys)

        operations = [
            ("delete", {"PartitionKey": k.partition, "RowKey": k.id})
            for k in keys
        ]
        try:
            await self._table(collection).submit_transaction(operations)
        except AzureError as e:
            raise StoreUnavailable(f"batch delete en '{collection}' falló: {e}") from e
        return len(keys)

    async def close(self) -> None:
        await self._service.close()


# un solo cliente por proceso
_store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    global _store
    if _store is None:
        if not config.AZURE_STORAGE_CONNECTION_STRING:
            raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING no está configurada en .env")
        _store = TableEntityStore(
            config.AZURE_STORAGE_CONNECTION_STRING,
            table_prefix=config.TABLE_PREFIX,
            batch_limit=config.STORE_BATCH_LIMIT,
        )
        logger.info("Store de Table Storage inicializado")
    return _store


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
