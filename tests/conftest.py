import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from rental_jobs.infra.store import EntityStore, RecordKey, StoreUnavailable
from rental_jobs.services.push_relay import PushRelay

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class InMemoryStore(EntityStore):
    """EntityStore en memoria con ganchos para simular fallos."""

    def __init__(self, batch_limit: int = 100):
        self.batch_limit = batch_limit
        self.collections = {}
        self.fail_insert = None       # callable(collection, data) -> bool
        self.fail_get = None          # callable(collection, id) -> bool
        self.fail_delete_after = None  # número de batches que salen bien antes de fallar
        self.down = False
        self.delete_calls = []
        self.active_inserts = 0
        self.max_active_inserts = 0

    def _check_up(self):
        if self.down:
            raise StoreUnavailable("store caído")

    def seed(self, collection, id, partition=None, **fields):
        record = dict(fields, id=id, partition=partition or id)
        self.collections.setdefault(collection, {})[RecordKey(partition or id, id)] = record
        return record

    def all(self, collection):
        return list(self.collections.get(collection, {}).values())

    @staticmethod
    def _matches(record, equals):
        for name, expected in (equals or {}).items():
            value = record.get(name)
            if isinstance(expected, (list, tuple, set, frozenset)):
                if value not in expected:
                    return False
            elif value != expected:
                return False
        return True

    async def query_range(self, collection, field, window, equals=None):
        self._check_up()
        for record in list(self.collections.get(collection, {}).values()):
            await asyncio.sleep(0)
            value = record.get(field)
            if value is not None and window.contains(value) and self._matches(record, equals):
                yield dict(record)

    async def query(self, collection, equals):
        self._check_up()
        for record in list(self.collections.get(collection, {}).values()):
            if self._matches(record, equals):
                yield dict(record)

    async def get(self, collection, id, partition=None):
        self._check_up()
        if self.fail_get is not None and self.fail_get(collection, id):
            raise StoreUnavailable("lookup rechazado")
        record = self.collections.get(collection, {}).get(RecordKey(partition or id, id))
        return dict(record) if record is not None else None

    async def insert(self, collection, data, id=None, partition=None):
        self._check_up()
        self.active_inserts += 1
        self.max_active_inserts = max(self.max_active_inserts, self.active_inserts)
        try:
            await asyncio.sleep(0)
            if self.fail_insert is not None and self.fail_insert(collection, data):
                raise StoreUnavailable("escritura rechazada")
            row_key = id or str(uuid.uuid4())
            if partition is None:
                partition = data["userId"] if collection == "notifications" else row_key
            self.seed(collection, row_key, partition=partition, **data)
            return RecordKey(partition, row_key)
        finally:
            self.active_inserts -= 1

    async def delete_batch(self, collection, keys):
        self._check_up()
        keys = list(keys)
        self._check_batch(keys)
        if self.fail_delete_after is not None and len(self.delete_calls) >= self.fail_delete_after:
            raise StoreUnavailable("batch rechazado")
        self.delete_calls.append(keys)
        table = self.collections.get(collection, {})
        for key in keys:
            table.pop(key, None)
        return len(keys)


class RecordingSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.active = 0
        self.max_active = 0

    async def send(self, payload):
        if self.fail:
            raise RuntimeError("gateway caído")
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            self.sent.append(payload)
        finally:
            self.active -= 1


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def push(sender):
    return PushRelay(sender)


@pytest.fixture
def now():
    return NOW
