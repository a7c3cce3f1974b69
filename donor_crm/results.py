"""Result values returned by store and backup operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    SYSTEM_ROLE = "system_role"
    ROLE_IN_USE = "role_in_use"
    INVALID_BACKUP = "invalid_backup"
    PARSE_ERROR = "parse_error"
    INVALID_VALUE = "invalid_value"


class CRMError(ValueError):
    """Raised when an `Err` result is unwrapped."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    ok: ClassVar[bool] = False

    def unwrap(self) -> NoReturn:
        raise CRMError(self.kind, self.message)


Result = Union[Ok[T], Err]


def not_found(entity: str, record_id: Any) -> Err:
    return Err(ErrorKind.NOT_FOUND, f"{entity} {record_id} was not found.")
