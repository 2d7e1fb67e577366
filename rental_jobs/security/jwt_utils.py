# rental_jobs/security/jwt_utils.py
from typing import Optional

import jwt

from rental_jobs import config
from rental_jobs.errors import Unauthenticated


def decode_token(token: str) -> dict:
    """
    Decodifica y valida el JWT.
    Lanza Unauthenticated si es inválido o no trae 'sub'.
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
    except jwt.PyJWTError as e:
        raise Unauthenticated("Invalid token") from e

    if not payload.get("sub"):
        raise Unauthenticated("Token without subject")
    return payload


def get_caller_uid(authorization_header: Optional[str]) -> Optional[str]:
    """
    Toma el header: Authorization: Bearer <token>
    Sin header devuelve None (el job decide si exige identidad).
    Un header mal formado o un token inválido es Unauthenticated.
    """
    if not authorization_header:
        return None

    if not authorization_header.startswith("Bearer "):
        raise Unauthenticated("Invalid Authorization header format")

    token = authorization_header.removeprefix("Bearer ").strip()
    return decode_token(token)["sub"]
