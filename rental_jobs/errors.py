# rental_jobs/errors.py
"""
Errores que ven los clientes de los jobs invocables.
Cada subclase lleva su código ('invalid-argument', 'not-found', ...)
y el status HTTP con el que se responde.
"""


class JobError(Exception):
    code = "internal"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"status": self.code, "message": self.message}}


class Unauthenticated(JobError):
    code = "unauthenticated"
    http_status = 401


class InvalidArgument(JobError):
    code = "invalid-argument"
    http_status = 400


class PermissionDenied(JobError):
    code = "permission-denied"
    http_status = 403


class NotFound(JobError):
    code = "not-found"
    http_status = 404


class InternalError(JobError):
    code = "internal"
    http_status = 500
