"""
Input specs -- what callers hand to the services.

Responsibility:
    Immutable descriptions of accounts, periods, budgets, journal entry
    drafts and credit transaction lines *before* they are validated and
    persisted.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Enumerated fields are typed ``str``
    and accept either the plain value or the matching ``str``-Enum member
    from ``ledger_kernel.models``; services coerce them.

Guarantees:
    - Line collections are stored as tuples (lists are converted).
    - Dimension mappings are copied so later mutation of the caller's dict
      cannot change a spec.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

# Reference to an entity by primary key or by its business code
Ref = UUID | str


def _tupled(instance, attr: str) -> None:
    object.__setattr__(instance, attr, tuple(getattr(instance, attr)))


def _copied(instance, attr: str) -> None:
    value = getattr(instance, attr)
    if value is not None:
        object.__setattr__(instance, attr, dict(value))


@dataclass(frozen=True)
class AccountSpec:
    """A GL account to create.  ``normal_balance`` defaults from the type."""

    code: str
    name: str
    account_type: str
    normal_balance: str | None = None
    parent_ref: Ref | None = None
    description: str | None = None
    account_category: str | None = None
    allow_direct_posting: bool = True
    require_department: bool = False
    require_cost_center: bool = False
    require_business_object: bool = False
    sort_order: int = 0


@dataclass(frozen=True)
class BudgetPeriodSpec:
    code: str
    name: str
    period_type: str
    fiscal_year: int
    start_date: date
    end_date: date
    description: str | None = None


@dataclass(frozen=True)
class BudgetLineSpec:
    account_ref: Ref
    amount: Decimal
    description: str | None = None
    dimensions: Mapping[str, str] | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _copied(self, "dimensions")


@dataclass(frozen=True)
class BudgetSpec:
    code: str
    name: str
    budget_period_id: UUID
    budget_type: str
    lines: tuple[BudgetLineSpec, ...] = field(default_factory=tuple)
    description: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _tupled(self, "lines")


@dataclass(frozen=True)
class JournalLineDraft:
    """
    One proposed journal line.

    Exactly one of ``debit`` / ``credit`` must be positive; the other stays
    zero.  ``account_ref`` is an account id or code.
    """

    account_ref: Ref
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None
    dimensions: Mapping[str, str] | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _copied(self, "dimensions")


@dataclass(frozen=True)
class JournalEntryDraft:
    """
    A candidate journal entry.

    Contract:
        Nothing is persisted until JournalEngine.post (or save_draft) accepts
        it.  ``entry_number`` is assigned on posting when left blank.  For a
        REVERSAL, ``source_document_id`` holds the id of the entry being
        reversed.
    """

    entry_date: date
    lines: tuple[JournalLineDraft, ...] = field(default_factory=tuple)
    entry_type: str = "manual"
    description: str | None = None
    entry_number: str | None = None
    source_type: str | None = None
    source_document_id: str | None = None
    source_document_number: str | None = None
    budget_period_id: UUID | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _tupled(self, "lines")


@dataclass(frozen=True)
class CreditLineSpec:
    product_ref: Ref
    quantity: int
    notes: str | None = None
