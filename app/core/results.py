"""
Result vocabulary shared by the friendship and membership managers.

Business outcomes (duplicate request, full group, wrong actor) are returned
as ``Result`` values. Only routes turn a failed result into an HTTP error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    STORAGE_ERROR = "storage_error"


_HTTP_STATUS = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        """Only infrastructure faults are worth retrying; business rejections are final."""
        return self.kind == ErrorKind.STORAGE_ERROR


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(error=ServiceError(kind=kind, message=message))


def to_http_exception(error: ServiceError, retry_after: Optional[int] = None) -> HTTPException:
    """Map a service error to an HTTPException whose detail keeps the error kind visible to clients."""
    headers: Optional[Dict[str, Any]] = None
    if error.retryable and retry_after is not None:
        headers = {"Retry-After": str(retry_after)}
    return HTTPException(
        status_code=_HTTP_STATUS[error.kind],
        detail={"code": error.kind.value, "message": error.message},
        headers=headers,
    )


def unwrap_or_raise(result: Result[T], retry_after: Optional[int] = None) -> Optional[T]:
    if not result.ok:
        raise to_http_exception(result.error, retry_after)
    return result.value
