# rental_jobs/services/provisioning.py
from datetime import datetime
from typing import Optional

from rental_jobs.infra.store import USERS, EntityStore
from rental_jobs.models.entities import UserRole
from rental_jobs.models.requests import AccountCreatedEvent
from rental_jobs.services.windows import utcnow
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


async def provision_user(store: EntityStore, event: AccountCreatedEvent, now: Optional[datetime] = None) -> bool:
    """
    Crea el documento de usuario la primera vez que alguien inicia sesión.
    Rol por defecto 'viewer'. Si ya existe no se toca.
    Devuelve True si lo creó.
    """
    if await store.get(USERS, event.uid) is not None:
        return False

    now = now or utcnow()
    user = {
        "uid": event.uid,
        "email": event.email or "",
        "name": event.displayName or "User",
        "role": UserRole.VIEWER.value,
        "createdAt": now,
        "lastLoginAt": now,
        "isActive": True,
    }
    if event.photoURL:
        user["photoUrl"] = event.photoURL

    await store.insert(USERS, user, id=event.uid)
    logger.info("Documento de usuario creado para: %s", event.uid)
    return True
