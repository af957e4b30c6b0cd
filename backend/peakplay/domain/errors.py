"""
Erreurs metier typees.

Les services levent ServiceError avec un ErrorKind stable; les routers
traduisent le kind en code HTTP (voir api/routers/_shared.raise_http_error).
"""
from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UPSTREAM = "upstream"


class ServiceError(Exception):
    """Erreur levee par la couche service, discriminee par kind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value}, {self.message!r})"


def not_found(message: str) -> ServiceError:
    return ServiceError(ErrorKind.NOT_FOUND, message)


def forbidden(message: str) -> ServiceError:
    return ServiceError(ErrorKind.FORBIDDEN, message)


def invalid(message: str) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message)


def conflict(message: str) -> ServiceError:
    return ServiceError(ErrorKind.CONFLICT, message)
