# rental_jobs/api/notifications.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from rental_jobs.api.dependencies import caller_dependency, push_dependency, store_dependency
from rental_jobs.infra.servicebus_consumer import consumer_status
from rental_jobs.infra.store import EntityStore
from rental_jobs.models.results import SendResult
from rental_jobs.services.jobs import send_push_notification
from rental_jobs.services.push_relay import PushRelay

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/send", response_model=SendResult)
async def send_notification(
    data: Optional[Dict[str, Any]] = Body(default=None),
    caller: Optional[str] = Depends(caller_dependency),
    store: EntityStore = Depends(store_dependency),
    push: PushRelay = Depends(push_dependency),
):
    """
    Crea una notificación para un usuario y le manda push si tiene token.
    Sólo admin o manager.
    """
    return await send_push_notification(store, caller, data, push)


@router.get("/debug/consumer-status")
async def debug_consumer_status():
    """Estado del consumer de la cola de cuentas nuevas."""
    return consumer_status()
