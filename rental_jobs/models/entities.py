# rental_jobs/models/entities.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, Field, field_validator


class ContractStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    VIEWER = "viewer"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Contract(BaseModel):
    id: str
    guestId: Optional[str] = None
    apartmentId: Optional[str] = None
    roomId: Optional[str] = None
    endDate: datetime
    status: str = ContractStatus.ACTIVE.value


class User(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str = UserRole.VIEWER.value
    isActive: bool = True
    # las cuentas antiguas guardaban el token como fcmToken
    pushToken: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("pushToken", "fcmToken"),
    )


class Transaction(BaseModel):
    id: str
    date: datetime
    amount: Decimal
    category: str = "uncategorized"
    type: str
    apartmentId: Optional[str] = None
    description: Optional[str] = None
    createdAt: Optional[datetime] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _exact_amount(cls, value):
        # Table Storage devuelve float; pasar por str evita arrastrar el error binario
        if isinstance(value, float):
            return Decimal(str(value))
        return value
