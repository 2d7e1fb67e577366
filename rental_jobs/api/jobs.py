# rental_jobs/api/jobs.py
from fastapi import APIRouter, Depends

from rental_jobs import config
from rental_jobs.api.dependencies import push_dependency, require_jobs_key, store_dependency
from rental_jobs.infra.store import EntityStore
from rental_jobs.models.results import CleanupResult, ExpiryScanResult
from rental_jobs.services.jobs import check_expiring_contracts, cleanup_old_notifications
from rental_jobs.services.push_relay import PushRelay

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_jobs_key)])


@router.post("/expiring-contracts", response_model=ExpiryScanResult)
async def run_expiring_contracts(
    store: EntityStore = Depends(store_dependency),
    push: PushRelay = Depends(push_dependency),
):
    return await check_expiring_contracts(store, push=push if config.EXPIRY_PUSH_ENABLED else None)


@router.post("/cleanup-notifications", response_model=CleanupResult)
async def run_cleanup_notifications(store: EntityStore = Depends(store_dependency)):
    return await cleanup_old_notifications(store)
