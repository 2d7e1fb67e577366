# rental_jobs/models/results.py
from typing import Optional
from pydantic import BaseModel


class ExpiryScanResult(BaseModel):
    success: bool
    notificationsCreated: int = 0
    contractsExpiring: int = 0
    failedWrites: int = 0
    error: Optional[str] = None


class CleanupResult(BaseModel):
    success: bool
    notificationsDeleted: int = 0
    error: Optional[str] = None


class SendResult(BaseModel):
    success: bool
    notificationId: str
