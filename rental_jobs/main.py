# rental_jobs/main.py
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rental_jobs import config
from rental_jobs.api.jobs import router as jobs_router
from rental_jobs.api.notifications import router as notifications_router
from rental_jobs.api.reports import router as reports_router
from rental_jobs.errors import JobError
from rental_jobs.infra.push_client import close_push_sender, get_push_sender
from rental_jobs.infra.scheduler import run_every
from rental_jobs.infra.servicebus_consumer import consume_account_events
from rental_jobs.infra.table_client import close_store, get_store
from rental_jobs.services.jobs import check_expiring_contracts, cleanup_old_notifications
from rental_jobs.services.push_relay import PushRelay
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)


def _background_tasks(app: FastAPI) -> list:
    tasks = [asyncio.create_task(consume_account_events())]

    if config.SCHEDULER_ENABLED:
        interval = config.JOB_INTERVAL_HOURS * 3600
        push = app.state.push_relay if config.EXPIRY_PUSH_ENABLED else None
        tasks.append(asyncio.create_task(run_every(
            "expiring-contracts", interval,
            lambda: check_expiring_contracts(get_store(), push=push),
        )))
        tasks.append(asyncio.create_task(run_every(
            "cleanup-notifications", interval,
            lambda: cleanup_old_notifications(get_store()),
        )))
        logger.info("Scheduler activo, intervalo %sh", config.JOB_INTERVAL_HOURS)
    return tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.push_relay = PushRelay(get_push_sender())
    tasks = _background_tasks(app)
    yield
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await close_push_sender()
    await close_store()


def create_app() -> FastAPI:
    app = FastAPI(title="Rental Jobs Service", lifespan=lifespan)

    # CORS (se puede limitar orígenes en prod)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JobError)
    async def job_error_handler(request: Request, exc: JobError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    app.include_router(reports_router)
    app.include_router(notifications_router)
    app.include_router(jobs_router)
    return app


app = create_app()
