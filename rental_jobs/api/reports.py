# rental_jobs/api/reports.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from rental_jobs.api.dependencies import caller_dependency, store_dependency
from rental_jobs.infra.store import EntityStore
from rental_jobs.models.report import MonthlyReport
from rental_jobs.services.jobs import generate_monthly_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/monthly", response_model=MonthlyReport)
async def monthly_report(
    data: Optional[Dict[str, Any]] = Body(default=None),
    caller: Optional[str] = Depends(caller_dependency),
    store: EntityStore = Depends(store_dependency),
):
    """
    Reporte de ingresos/gastos del mes.
    Body: {"month": 3, "year": 2024, "apartmentId": "A1", "timeFormat": "iso"}
    """
    return await generate_monthly_report(store, caller, data)
