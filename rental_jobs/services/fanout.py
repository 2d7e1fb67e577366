# rental_jobs/services/fanout.py
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from rental_jobs.infra.store import NOTIFICATIONS, USERS, EntityStore, StoreUnavailable
from rental_jobs.models.entities import User, UserRole
from rental_jobs.models.notification import Notification
from rental_jobs.services.push_relay import PushRelay
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecipientFilter:
    roles: frozenset = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})
    active_only: bool = True


@dataclass(frozen=True)
class NotificationTemplate:
    title: str
    message: str
    type: str
    relatedId: Optional[str] = None


@dataclass
class FanOutFailure:
    userId: str
    error: str


@dataclass
class FanOutResult:
    created: List[str] = field(default_factory=list)
    failures: List[FanOutFailure] = field(default_factory=list)

    def merge(self, other: "FanOutResult") -> None:
        self.created.extend(other.created)
        self.failures.extend(other.failures)


async def resolve_recipients(store: EntityStore, recipients: RecipientFilter) -> List[User]:
    equals = {"role": sorted(recipients.roles)}
    if recipients.active_only:
        equals["isActive"] = True

    users = {}
    async for record in store.query(USERS, equals):
        users.setdefault(record["id"], User.model_validate(record))
    return list(users.values())


class FanOutDispatcher:
    """
    Una notificación por destinatario, cada escritura aislada.
    El semáforo es compartido por todos los dispatch de la misma ejecución,
    así el total de escrituras y pushes concurrentes nunca pasa de `concurrency`.
    `created_count` cuenta las escrituras confirmadas aunque la ejecución falle después.
    """

    def __init__(self, store: EntityStore, push: Optional[PushRelay] = None, concurrency: int = 10):
        self.store = store
        self.push = push
        self._pool = asyncio.Semaphore(max(1, concurrency))
        self.created_count = 0

    async def _write_one(self, template: NotificationTemplate, user: User, created_at: datetime) -> str:
        notification = Notification(
            userId=user.id,
            title=template.title,
            message=template.message,
            type=template.type,
            relatedId=template.relatedId,
            isRead=False,
            createdAt=created_at,
        )
        # escritura y push comparten el pool: ninguno de los dos pasa de `concurrency`
        async with self._pool:
            key = await self.store.insert(NOTIFICATIONS, notification.to_entity())
            self.created_count += 1
            notification.id = key.id

            if self.push is not None:
                await self.push.deliver(user, notification)
        return key.id

    async def dispatch(
        self,
        template: NotificationTemplate,
        recipients: Iterable[User],
        created_at: datetime,
    ) -> FanOutResult:
        # un destinatario repetido no recibe dos veces la misma notificación
        unique = {}
        for user in recipients:
            unique.setdefault(user.id, user)
        users = list(unique.values())

        outcomes = await asyncio.gather(
            *(self._write_one(template, user, created_at) for user in users),
            return_exceptions=True,
        )

        result = FanOutResult()
        for user, outcome in zip(users, outcomes):
            if isinstance(outcome, StoreUnavailable):
                logger.error("No se pudo crear la notificación para %s: %s", user.id, outcome)
                result.failures.append(FanOutFailure(userId=user.id, error=str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.created.append(outcome)
        return result
