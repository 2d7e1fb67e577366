# rental_jobs/services/retention.py
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from rental_jobs.infra.store import NOTIFICATIONS, EntityStore, StoreUnavailable, key_of
from rental_jobs.services.windows import Direction, compute_window
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PurgeResult:
    notificationsDeleted: int = 0


class PurgeInterrupted(StoreUnavailable):
    def __init__(self, deleted: int, cause: Exception):
        super().__init__(f"purga interrumpida tras borrar {deleted}: {cause}")
        self.deleted = deleted


async def purge_notifications(
    store: EntityStore,
    now: datetime,
    retention_days: int = 30,
    batch_limit: int = 100,
) -> PurgeResult:
    """
    Borra las notificaciones con createdAt anterior a now - retention_days.
    Los batches van por partición y nunca superan batch_limit; cada uno se
    confirma por separado. Si uno falla, lo ya borrado queda borrado y la
    siguiente ejecución termina el resto.
    """
    window = compute_window(now, retention_days, Direction.BACKWARD)
    limit = min(batch_limit, store.batch_limit)

    by_partition = defaultdict(list)
    async for record in store.query_range(NOTIFICATIONS, "createdAt", window):
        key = key_of(record)
        by_partition[key.partition].append(key)

    result = PurgeResult()
    for partition in sorted(by_partition):
        keys = by_partition[partition]
        for start in range(0, len(keys), limit):
            chunk = keys[start:start + limit]
            try:
                result.notificationsDeleted += await store.delete_batch(NOTIFICATIONS, chunk)
            except StoreUnavailable as e:
                raise PurgeInterrupted(result.notificationsDeleted, e) from e

    logger.info("Borradas %s notificaciones anteriores a %s", result.notificationsDeleted, window.upper.isoformat())
    return result
