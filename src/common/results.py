from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar


T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TRANSPORT = "transport"
    SERVER = "server"
    STORAGE = "storage"


@dataclass(frozen=True)
class OperationError:
    """User-facing failure of a session or todo operation.

    `message` is always displayable; `status_code` is the HTTP status when the
    server answered, None for local and transport failures.
    """

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[OperationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
    ) -> "Result[T]":
        return cls(error=OperationError(kind=kind, message=message, status_code=status_code))


__all__ = ["ErrorKind", "OperationError", "Result"]
