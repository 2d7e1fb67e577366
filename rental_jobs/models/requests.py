# rental_jobs/models/requests.py
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class MonthlyReportIn(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970, le=9999)
    apartmentId: Optional[str] = None
    timeFormat: Literal["iso", "epoch_ms"] = "iso"


class SendNotificationIn(BaseModel):
    userId: str = Field(min_length=1)
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: Optional[str] = None
    relatedId: Optional[str] = None


class AccountCreatedEvent(BaseModel):
    """Mensaje de la cola de cuentas nuevas (primer inicio de sesión)."""
    uid: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    photoURL: Optional[str] = None

    @field_validator("uid")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("uid vacío")
        return value
