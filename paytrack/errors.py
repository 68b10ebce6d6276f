"""
Failure kinds and result values.

Operations in the core return ``Ok(value)`` or ``Failure(kind, message)``
instead of raising; the HTTP layer maps a ``Failure`` to a status code in
one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    CRYPTO_FAILURE = "CRYPTO_FAILURE"
    STORE_FAILURE = "STORE_FAILURE"


HTTP_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_EMAIL: 400,
    ErrorKind.VALIDATION_FAILURE: 400,
    ErrorKind.INVALID_CREDENTIALS: 400,
    ErrorKind.CRYPTO_FAILURE: 500,
    ErrorKind.STORE_FAILURE: 500,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


Result = Union[Ok[T], Failure]


class CryptoFailure(Exception):
    """The hashing primitive itself failed; not attributable to ordinary input."""


def not_found(what: str = "User") -> Failure:
    return Failure(ErrorKind.NOT_FOUND, f"{what} not found")


def invalid(message: str) -> Failure:
    return Failure(ErrorKind.VALIDATION_FAILURE, message)
