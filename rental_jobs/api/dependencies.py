# rental_jobs/api/dependencies.py
import secrets
from typing import Optional

from fastapi import Header, Request

from rental_jobs import config
from rental_jobs.errors import PermissionDenied, Unauthenticated
from rental_jobs.infra.push_client import get_push_sender
from rental_jobs.infra.store import EntityStore
from rental_jobs.infra.table_client import get_store
from rental_jobs.security.jwt_utils import get_caller_uid
from rental_jobs.services.push_relay import PushRelay


def store_dependency(request: Request) -> EntityStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = get_store()
        request.app.state.store = store
    return store


def push_dependency(request: Request) -> PushRelay:
    relay = getattr(request.app.state, "push_relay", None)
    if relay is None:
        relay = PushRelay(get_push_sender())
        request.app.state.push_relay = relay
    return relay


def caller_dependency(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    return get_caller_uid(authorization)


def require_jobs_key(x_jobs_key: Optional[str] = Header(default=None)) -> None:
    """Los endpoints /jobs los llama el scheduler externo con una clave compartida."""
    if not config.JOBS_API_KEY:
        raise PermissionDenied("JOBS_API_KEY no está configurada")
    if not x_jobs_key:
        raise Unauthenticated("Missing X-Jobs-Key header")
    if not secrets.compare_digest(x_jobs_key, config.JOBS_API_KEY):
        raise PermissionDenied("Invalid jobs key")
