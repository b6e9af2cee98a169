"""
DTOs -- immutable read models returned by services and selectors.

Responsibility:
    Frozen snapshots of ORM rows (``*Info``), validation outcomes and
    pagination containers.  Callers never receive live ORM objects, so a
    returned value cannot be used to mutate ledger state behind a service's
    back.

Architecture position:
    Kernel > Domain -- zero I/O.  ``from_model()`` class methods are boundary
    converters invoked only from services and selectors; ORM types are
    imported for type checking only.

Guarantees:
    - Enumerated fields hold the plain string value (``"posted"``), which
      compares equal to the matching ``str``-Enum member.
    - Line collections are tuples ordered by line number.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from uuid import UUID

if TYPE_CHECKING:
    from ledger_kernel.models.account import GLAccount
    from ledger_kernel.models.budget import Budget, BudgetLine, BudgetPeriod
    from ledger_kernel.models.credit import CreditTransaction, CreditTransactionLine
    from ledger_kernel.models.customer import Customer, Product
    from ledger_kernel.models.journal import JournalEntry, JournalLine

T = TypeVar("T")


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Contract:
        Carries a machine-readable code, a human-readable message, and
        optionally the offending field path (``lines[2].account_ref``) and a
        details dict.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Aggregate of zero or more ValidationErrors.

    Guarantees:
        - ``is_valid`` is True only when ``errors`` is empty.
        - ``bool(result) == result.is_valid``.
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        return cls(is_valid=False, errors=tuple(errors))

    @classmethod
    def of(cls, errors: list[ValidationError]) -> ValidationResult:
        return cls.failure(*errors) if errors else cls.success()

    def __bool__(self) -> bool:
        return self.is_valid

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(error.code for error in self.errors)


# =============================================================================
# Pagination
# =============================================================================


@dataclass(frozen=True)
class PageRequest:
    """1-based page request."""

    page: int = 1
    page_size: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    items: tuple[T, ...]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


# =============================================================================
# Chart of accounts
# =============================================================================


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    code: str
    name: str
    account_type: str
    normal_balance: str
    parent_id: UUID | None
    allow_direct_posting: bool
    require_department: bool
    require_cost_center: bool
    require_business_object: bool
    is_active: bool
    sort_order: int = 0
    account_category: str | None = None
    description: str | None = None

    @property
    def is_postable(self) -> bool:
        return self.allow_direct_posting and self.is_active

    @classmethod
    def from_model(cls, model: GLAccount) -> AccountInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            account_type=_plain(model.account_type),
            normal_balance=_plain(model.normal_balance),
            parent_id=model.parent_id,
            allow_direct_posting=model.allow_direct_posting,
            require_department=model.require_department,
            require_cost_center=model.require_cost_center,
            require_business_object=model.require_business_object,
            is_active=model.is_active,
            sort_order=model.sort_order,
            account_category=model.account_category,
            description=model.description,
        )


# =============================================================================
# Budgets
# =============================================================================


@dataclass(frozen=True)
class BudgetPeriodInfo:
    id: UUID
    code: str
    name: str
    period_type: str
    fiscal_year: int
    start_date: date
    end_date: date
    status: str
    description: str | None = None

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    @classmethod
    def from_model(cls, model: BudgetPeriod) -> BudgetPeriodInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            period_type=_plain(model.period_type),
            fiscal_year=model.fiscal_year,
            start_date=model.start_date,
            end_date=model.end_date,
            status=_plain(model.status),
            description=model.description,
        )


@dataclass(frozen=True)
class BudgetLineInfo:
    id: UUID
    line_number: int
    gl_account_id: UUID
    account_code: str
    amount: Decimal
    description: str | None = None
    dimensions: dict[str, str] | None = None
    notes: str | None = None

    @classmethod
    def from_model(cls, model: BudgetLine) -> BudgetLineInfo:
        return cls(
            id=model.id,
            line_number=model.line_number,
            gl_account_id=model.gl_account_id,
            account_code=model.account.code,
            amount=model.amount,
            description=model.description,
            dimensions=dict(model.dimensions) if model.dimensions else None,
            notes=model.notes,
        )


@dataclass(frozen=True)
class BudgetInfo:
    id: UUID
    code: str
    name: str
    budget_period_id: UUID
    budget_type: str
    status: str
    total_amount: Decimal
    lines: tuple[BudgetLineInfo, ...]
    description: str | None = None
    notes: str | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None

    @classmethod
    def from_model(cls, model: Budget) -> BudgetInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            budget_period_id=model.budget_period_id,
            budget_type=_plain(model.budget_type),
            status=_plain(model.status),
            total_amount=model.total_amount,
            lines=tuple(
                BudgetLineInfo.from_model(line)
                for line in sorted(model.lines, key=lambda x: x.line_number)
            ),
            description=model.description,
            notes=model.notes,
            approved_by_id=model.approved_by_id,
            approved_at=model.approved_at,
        )


# =============================================================================
# Journal
# =============================================================================


@dataclass(frozen=True)
class JournalLineInfo:
    id: UUID
    line_number: int
    gl_account_id: UUID
    account_code: str
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None = None
    dimensions: dict[str, str] | None = None
    notes: str | None = None

    @classmethod
    def from_model(cls, model: JournalLine) -> JournalLineInfo:
        return cls(
            id=model.id,
            line_number=model.line_number,
            gl_account_id=model.gl_account_id,
            account_code=model.account.code,
            debit_amount=model.debit_amount,
            credit_amount=model.credit_amount,
            description=model.description,
            dimensions=dict(model.dimensions) if model.dimensions else None,
            notes=model.notes,
        )


@dataclass(frozen=True)
class JournalEntryInfo:
    """
    Immutable snapshot of a journal entry and its lines.

    Guarantees:
        - ``lines`` ordered by line_number.
        - For a POSTED entry ``total_debits == total_credits``.
    """

    id: UUID
    entry_number: str
    entry_date: date
    entry_type: str
    status: str
    lines: tuple[JournalLineInfo, ...]
    description: str | None = None
    source_type: str | None = None
    source_document_id: str | None = None
    source_document_number: str | None = None
    budget_period_id: UUID | None = None
    notes: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    reversal_of_id: UUID | None = None
    reversed_at: datetime | None = None

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    @classmethod
    def from_model(cls, model: JournalEntry) -> JournalEntryInfo:
        return cls(
            id=model.id,
            entry_number=model.entry_number,
            entry_date=model.entry_date,
            entry_type=_plain(model.entry_type),
            status=_plain(model.status),
            lines=tuple(
                JournalLineInfo.from_model(line)
                for line in sorted(model.lines, key=lambda x: x.line_number)
            ),
            description=model.description,
            source_type=_plain(model.source_type),
            source_document_id=model.source_document_id,
            source_document_number=model.source_document_number,
            budget_period_id=model.budget_period_id,
            notes=model.notes,
            posted_at=model.posted_at,
            posted_by_id=model.posted_by_id,
            reversal_of_id=model.reversal_of_id,
            reversed_at=model.reversed_at,
        )


# =============================================================================
# Customers, products, credit transactions
# =============================================================================


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    code: str
    company_name: str
    customer_type: str
    credit_limit: Decimal
    current_balance: Decimal
    is_active: bool
    version: int

    @property
    def over_credit_limit(self) -> bool:
        return self.current_balance > self.credit_limit

    @classmethod
    def from_model(cls, model: Customer) -> CustomerInfo:
        return cls(
            id=model.id,
            code=model.code,
            company_name=model.company_name,
            customer_type=_plain(model.customer_type),
            credit_limit=model.credit_limit,
            current_balance=model.current_balance,
            is_active=model.is_active,
            version=model.version,
        )


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    code: str
    name: str
    unit_price: Decimal
    unit_of_measure: str
    is_active: bool

    @classmethod
    def from_model(cls, model: Product) -> ProductInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            unit_price=model.unit_price,
            unit_of_measure=model.unit_of_measure,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class CreditTransactionLineInfo:
    id: UUID
    line_number: int
    product_id: UUID
    product_code: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    notes: str | None = None

    @classmethod
    def from_model(cls, model: CreditTransactionLine) -> CreditTransactionLineInfo:
        return cls(
            id=model.id,
            line_number=model.line_number,
            product_id=model.product_id,
            product_code=model.product_code,
            product_name=model.product_name,
            quantity=model.quantity,
            unit_price=model.unit_price,
            line_total=model.line_total,
            notes=model.notes,
        )


@dataclass(frozen=True)
class CreditTransactionInfo:
    id: UUID
    transaction_number: str
    seq: int
    customer_id: UUID
    customer_code: str
    customer_name: str
    transaction_type: str
    status: str
    performed_by: str
    performed_by_role: str
    transaction_date: date
    transaction_at: datetime
    total_amount: Decimal
    total_items: int
    lines: tuple[CreditTransactionLineInfo, ...]
    notes: str | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    signature_data: str | None = None
    cancellation_reason: str | None = None

    @classmethod
    def from_model(cls, model: CreditTransaction) -> CreditTransactionInfo:
        return cls(
            id=model.id,
            transaction_number=model.transaction_number,
            seq=model.seq,
            customer_id=model.customer_id,
            customer_code=model.customer.code,
            customer_name=model.customer.company_name,
            transaction_type=_plain(model.transaction_type),
            status=_plain(model.status),
            performed_by=model.performed_by,
            performed_by_role=_plain(model.performed_by_role),
            transaction_date=model.transaction_date,
            transaction_at=model.transaction_at,
            total_amount=model.total_amount,
            total_items=model.total_items,
            lines=tuple(
                CreditTransactionLineInfo.from_model(line)
                for line in sorted(model.lines, key=lambda x: x.line_number)
            ),
            notes=model.notes,
            confirmed_by=model.confirmed_by,
            confirmed_at=model.confirmed_at,
            signature_data=model.signature_data,
            cancellation_reason=model.cancellation_reason,
        )
