# rental_jobs/infra/servicebus_consumer.py
import asyncio
import json
import time
from typing import Awaitable, Callable, Optional

from azure.servicebus import TransportType
from azure.servicebus.aio import ServiceBusClient
from pydantic import ValidationError

from rental_jobs import config
from rental_jobs.infra.table_client import get_store
from rental_jobs.models.requests import AccountCreatedEvent
from rental_jobs.services.provisioning import provision_user
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)

_status = {
    "startedAt": None,
    "lastMessageAt": None,
    "lastError": None,
}


def consumer_status() -> dict:
    return {
        **_status,
        "queue": config.ACCOUNT_EVENTS_QUEUE,
        "hasConnectionString": bool(config.AZURE_SERVICE_BUS_CONNECTION_STRING),
    }


def decode_body(msg) -> dict:
    # el body llega como generador de bytes
    body_bytes = b"".join(part for part in msg.body)
    return json.loads(body_bytes.decode("utf-8"))


async def handle_account_event(payload: dict) -> None:
    event = AccountCreatedEvent.model_validate(payload)
    await provision_user(get_store(), event)


async def consume_account_events(
    handler: Callable[[dict], Awaitable[None]] = handle_account_event,
    backoff: float = 5,
    stop: Optional[asyncio.Event] = None,
):
    """
    Consumer asíncrono de la cola de cuentas nuevas:
      - AMQP sobre WebSocket (443) para funcionar en App Service.
      - Confirma (complete) sólo si procesó OK; si no, el mensaje se reintenta
        (o acaba en la DLQ por MaxDeliveryCount).
      - Un mensaje mal formado va directo a dead-letter.
      - Reconecta con backoff si se cae.
    """
    if not config.AZURE_SERVICE_BUS_CONNECTION_STRING:
        logger.warning("Falta AZURE_SERVICE_BUS_CONNECTION_STRING. No se consumirá la cola.")
        return

    queue = config.ACCOUNT_EVENTS_QUEUE
    _status["startedAt"] = time.time()
    stop = stop or asyncio.Event()

    while not stop.is_set():
        try:
            logger.info("[consumer] Conectando a Service Bus (cola: %s)", queue)
            async with ServiceBusClient.from_connection_string(
                config.AZURE_SERVICE_BUS_CONNECTION_STRING,
                transport_type=TransportType.AmqpOverWebsocket,
            ) as sb_client:
                receiver = sb_client.get_queue_receiver(queue_name=queue, max_wait_time=20)
                async with receiver:
                    logger.info("[consumer] Escuchando cola: %s", queue)
                    while not stop.is_set():
                        messages = await receiver.receive_messages(
                            max_message_count=10,
                            max_wait_time=10,
                        )
                        if not messages:
                            await asyncio.sleep(0.5)
                            continue

                        for msg in messages:
                            try:
                                payload = decode_body(msg)
                                await handler(payload)
                            except (ValueError, ValidationError) as e:
                                logger.error("[consumer] Mensaje inválido, a dead-letter: %s", e)
                                _status["lastError"] = str(e)
                                await receiver.dead_letter_message(msg, reason="invalid-payload")
                                continue
                            except Exception as e:
                                # no completar => se reintenta
                                logger.error("[consumer] Error procesando mensaje: %s", e)
                                _status["lastError"] = str(e)
                                continue

                            await receiver.complete_message(msg)
                            _status["lastMessageAt"] = time.time()

            await asyncio.sleep(1)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("[consumer] Error de conexión, reintento en %ss: %s", backoff, e)
            _status["lastError"] = str(e)
            await asyncio.sleep(backoff)
