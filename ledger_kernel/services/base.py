"""
BaseService -- common base for kernel services.

Responsibility:
    Holds the caller's SQLAlchemy ``Session`` together with the injected
    ``LedgerPolicy`` and ``Clock``.  Services persist with
    ``session.flush()`` and never commit or roll back the outer transaction;
    ``LedgerOperations`` or the caller owns the boundary.

Architecture position:
    Kernel > Services.  Every service in ``ledger_kernel/services/`` that
    writes extends this class.
"""

from abc import ABC
from enum import Enum
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.exceptions import LedgerValidationError


class BaseService(ABC):
    """
    Contract:
        Flush-only.  Multi-row work that must be all-or-nothing runs inside
        ``session.begin_nested()`` so a failure leaves the caller's
        transaction untouched.

    Non-goals:
        - Does NOT manage the outer transaction (commit/rollback).
        - Read-only queries live in ``ledger_kernel/selectors/``.
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.policy = policy or LedgerPolicy()
        self.clock = clock or SystemClock()


def coerce_uuid(ref: UUID | str) -> UUID | None:
    """Return ``ref`` as a UUID if it is (or parses as) one, else None."""
    if isinstance(ref, UUID):
        return ref
    try:
        return UUID(str(ref))
    except ValueError:
        return None


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: type[E], value, field: str) -> E:
    """
    Raises:
        LedgerValidationError: ``value`` is not a member of ``enum_cls``.
    """
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise LedgerValidationError(
            f"Invalid {field} {value!r}; expected one of: {allowed}"
        ) from None
