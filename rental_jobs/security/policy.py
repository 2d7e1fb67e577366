# rental_jobs/security/policy.py
from typing import Iterable, Optional

from rental_jobs.errors import PermissionDenied, Unauthenticated
from rental_jobs.models.entities import UserRole

STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})


def is_allowed(actor_role: Optional[str], required_roles: Iterable[str]) -> bool:
    return actor_role is not None and actor_role in set(required_roles)


def authorize(actor_role: Optional[str], required_roles: Iterable[str] = STAFF_ROLES) -> None:
    """Única comprobación de rol para todos los jobs invocables."""
    if not is_allowed(actor_role, required_roles):
        raise PermissionDenied("Insufficient permissions")


def require_caller(caller_uid: Optional[str]) -> str:
    if not caller_uid:
        raise Unauthenticated("User must be authenticated")
    return caller_uid
