"""
OperationResult -- typed outcome returned at the public boundary.

``LedgerOperations`` converts every expected business failure (unknown id,
failed validation, wrong state, lost balance race) into an OperationResult
instead of letting the exception escape.  Callers branch on ``status``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class OperationStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"


# Error kind (LedgerKernelError.kind) -> result status
STATUS_BY_KIND = {
    "not_found": OperationStatus.NOT_FOUND,
    "validation": OperationStatus.VALIDATION_FAILED,
    "invalid_state": OperationStatus.INVALID_STATE,
    "conflict": OperationStatus.CONFLICT,
}


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Contract:
        ``value`` is set only on SUCCESS.  On failure ``error_code`` carries
        the machine-readable code of the underlying error and ``errors`` any
        individual validation errors.
    """

    status: OperationStatus
    value: T | None = None
    error_code: str | None = None
    message: str | None = None
    errors: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(status=OperationStatus.SUCCESS, value=value)

    @classmethod
    def failure(
        cls,
        status: OperationStatus,
        error_code: str,
        message: str,
        errors: tuple[Any, ...] = (),
    ) -> "OperationResult[T]":
        return cls(
            status=status,
            error_code=error_code,
            message=message,
            errors=tuple(errors),
        )
