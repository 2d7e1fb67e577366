# rental_jobs/infra/push_client.py
import asyncio
import json
from typing import Optional

from azure.servicebus import ServiceBusMessage, TransportType
from azure.servicebus.aio import ServiceBusClient

from rental_jobs import config
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


class ServiceBusPushSender:
    """
    Publica el payload de push en la cola que consume el gateway externo.
    AMQP sobre WebSocket (443), igual que el consumer, para funcionar en App Service.
    La conexión se abre en el primer envío y se reutiliza hasta close().
    """

    def __init__(self, conn_str=None, queue_name=None):
        self.conn_str = conn_str or config.AZURE_SERVICE_BUS_CONNECTION_STRING
        self.queue_name = queue_name or config.PUSH_QUEUE
        self._client = None
        self._sender = None
        self._lock = asyncio.Lock()

    async def _get_sender(self):
        async with self._lock:
            if self._sender is None:
                self._client = ServiceBusClient.from_connection_string(
                    self.conn_str,
                    transport_type=TransportType.AmqpOverWebsocket,
                )
                self._sender = self._client.get_queue_sender(queue_name=self.queue_name)
                logger.info("Sender de push conectado a la cola %s", self.queue_name)
            return self._sender

    async def send(self, payload: dict) -> None:
        if not self.conn_str:
            raise RuntimeError("Falta AZURE_SERVICE_BUS_CONNECTION_STRING, no se puede enviar push")

        sender = await self._get_sender()
        try:
            await sender.send_messages(
                ServiceBusMessage(json.dumps(payload), content_type="application/json")
            )
        except Exception:
            # conexión rota: se descarta y el próximo envío reconecta
            await self.close()
            raise
        logger.debug("Push encolado en %s", self.queue_name)

    async def close(self) -> None:
        async with self._lock:
            sender, client = self._sender, self._client
            self._sender = self._client = None
        if sender is not None:
            await sender.close()
        if client is not None:
            await client.close()


# un solo sender por proceso
_push_sender: Optional[ServiceBusPushSender] = None


def get_push_sender() -> ServiceBusPushSender:
    global _push_sender
    if _push_sender is None:
        _push_sender = ServiceBusPushSender()
    return _push_sender


async def close_push_sender() -> None:
    global _push_sender
    if _push_sender is not None:
        await _push_sender.close()
        _push_sender = None
