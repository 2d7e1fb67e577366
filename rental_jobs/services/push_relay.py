# rental_jobs/services/push_relay.py
from typing import Optional, Protocol

from rental_jobs.models.entities import User
from rental_jobs.models.notification import Notification
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


class PushSender(Protocol):
    async def send(self, payload: dict) -> None: ...


def build_payload(token: str, notification: Notification) -> dict:
    return {
        "notification": {
            "title": notification.title,
            "body": notification.message,
        },
        "data": {
            "type": notification.type,
            "relatedId": notification.relatedId or "",
        },
        "token": token,
    }


class PushRelay:
    """
    Entrega best-effort: un solo intento, y sólo si el usuario tiene token.
    Los fallos se registran y nunca llegan al llamador; la notificación
    ya persistida se queda como está.
    """

    def __init__(self, sender: Optional[PushSender]):
        self.sender = sender

    async def deliver(self, user: User, notification: Notification) -> bool:
        if not user.pushToken:
            logger.debug("Usuario %s sin token de push, se omite", user.id)
            return False
        if self.sender is None:
            logger.warning("Push deshabilitado, no se envía a %s", user.id)
            return False

        try:
            await self.sender.send(build_payload(user.pushToken, notification))
        except Exception as e:
            logger.error("Error enviando push a %s: %s", user.id, e)
            return False

        logger.info("Push enviado a %s", user.id)
        return True
