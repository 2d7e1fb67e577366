# rental_jobs/models/notification.py
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class NotificationType(str, Enum):
    CONTRACT_EXPIRY = "contract_expiry"
    GENERAL = "general"
    PAYMENT = "payment"
    MAINTENANCE = "maintenance"


class Notification(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None   # RowKey, lo asigna el store
    userId: str                # PartitionKey
    title: str
    message: str
    type: str = NotificationType.GENERAL.value
    relatedId: Optional[str] = None
    isRead: bool = False
    createdAt: datetime

    def to_entity(self) -> dict:
        """Campos que se persisten (sin id y sin nulos: Table Storage no guarda None)."""
        return self.model_dump(exclude={"id"}, exclude_none=True)
