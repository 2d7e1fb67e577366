# rental_jobs/services/joins.py
import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from rental_jobs.infra.store import APARTMENTS, GUESTS, ROOMS, EntityStore
from rental_jobs.models.entities import Contract

# Valor que toma cada campo cuando la entidad referenciada no existe.
# Los mensajes y los tests leen de aquí, no de literales sueltos.
FALLBACKS = {
    GUESTS: {"name": "Unknown Guest"},
    APARTMENTS: {"name": "Unknown Apartment"},
    ROOMS: {"roomNumber": "Unknown"},
}


@dataclass(frozen=True)
class ContractDetails:
    guestName: str
    apartmentName: str
    roomNumber: str


async def resolve_field(store: EntityStore, collection: str, id: Optional[str], field: str) -> Any:
    """
    Lookup de un campo de la entidad relacionada.
    Si falta la FK, el documento o el campo, devuelve el valor de FALLBACKS.
    StoreUnavailable se propaga tal cual.
    """
    fallback = FALLBACKS[collection][field]
    if not id:
        return fallback
    record = await store.get(collection, id)
    if record is None:
        return fallback
    value = record.get(field)
    return fallback if value in (None, "") else value


async def resolve_contract(store: EntityStore, contract: Contract) -> ContractDetails:
    guest, apartment, room = await asyncio.gather(
        resolve_field(store, GUESTS, contract.guestId, "name"),
        resolve_field(store, APARTMENTS, contract.apartmentId, "name"),
        resolve_field(store, ROOMS, contract.roomId, "roomNumber"),
    )
    return ContractDetails(guestName=str(guest), apartmentName=str(apartment), roomNumber=str(room))
