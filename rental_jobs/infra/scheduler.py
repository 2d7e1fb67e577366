# rental_jobs/infra/scheduler.py
import asyncio
from typing import Awaitable, Callable

from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


async def run_every(name: str, interval_seconds: float, job: Callable[[], Awaitable[object]]):
    """
    Ejecuta `job` cada `interval_seconds`. Cada ejecución es independiente:
    un fallo se registra y el loop sigue con la siguiente.
    """
    while True:
        try:
            result = await job()
            logger.info("[scheduler] %s -> %s", name, result)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[scheduler] %s falló", name)
        await asyncio.sleep(interval_seconds)
