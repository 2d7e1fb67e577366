# rental_jobs/infra/store.py
"""
Contrato del store de documentos que usan todos los jobs.
Los registros son dicts planos con 'id' y 'partition' además de sus campos.
"""
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Iterable, Mapping, NamedTuple, Optional

from rental_jobs.services.windows import Window

CONTRACTS = "contracts"
GUESTS = "guests"
APARTMENTS = "apartments"
ROOMS = "rooms"
USERS = "users"
TRANSACTIONS = "transactions"
NOTIFICATIONS = "notifications"

Record = Dict[str, Any]


class RecordKey(NamedTuple):
    partition: str
    id: str


def key_of(record: Record) -> RecordKey:
    return RecordKey(partition=record.get("partition") or record["id"], id=record["id"])


class StoreUnavailable(Exception):
    """Fallo de transporte o del servicio de almacenamiento. No se reintenta en la misma ejecución."""


class EntityStore(ABC):
    batch_limit: int = 100

    @abstractmethod
    def query_range(
        self,
        collection: str,
        field: str,
        window: Window,
        equals: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[Record]:
        """
        Registros cuyo `field` cae dentro de `window`.
        `equals` admite valores simples o listas (pertenencia).
        El orden lo decide el store.
        """

    @abstractmethod
    def query(self, collection: str, equals: Mapping[str, Any]) -> AsyncIterator[Record]:
        ...

    @abstractmethod
    async def get(self, collection: str, id: str, partition: Optional[str] = None) -> Optional[Record]:
        """Devuelve el registro o None si no existe."""

    @abstractmethod
    async def insert(
        self,
        collection: str,
        data: Mapping[str, Any],
        id: Optional[str] = None,
        partition: Optional[str] = None,
    ) -> RecordKey:
        ...

    @abstractmethod
    async def delete_batch(self, collection: str, keys: Iterable[RecordKey]) -> int:
        """Borra de forma atómica hasta `batch_limit` claves de una misma partición."""

    async def close(self) -> None:
        return None

    def _check_batch(self, keys: list) -> None:
        if len(keys) > self.batch_limit:
            raise ValueError(f"batch de {len(keys)} supera el límite de {self.batch_limit}")
        if len({k.partition for k in keys}) > 1:
            raise ValueError("un batch no puede mezclar particiones")
