"""
Module: ledger_kernel.models.budget
Responsibility: ORM persistence for budget periods (fiscal calendar windows),
    budgets and budget lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - BudgetPeriod.code and Budget.code are unique.
    - start_date <= end_date (CHECK constraint; also validated by
      BudgetRegistry before insert).
    - A GL account appears at most once per budget
      (uq_budget_line_account).
    - Period structural fields are immutable once a budget or journal entry
      references the period (db/immutability.py).

Failure modes:
    - PeriodOverlapError / BudgetValidationError raised by BudgetRegistry.
    - PeriodImmutableError on structural edits of a referenced period.

Audit relevance:
    Budgets are the baseline against which posted actuals are compared;
    the period window decides which journal lines count as actuals.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import GLAccount


class PeriodType(str, Enum):
    YEAR = "year"
    QUARTER = "quarter"
    MONTH = "month"
    CUSTOM = "custom"


class PeriodStatus(str, Enum):
    """Lifecycle of a budget period: DRAFT -> ACTIVE -> CLOSED -> ARCHIVED."""

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    ARCHIVED = "archived"


class BudgetType(str, Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"
    CAPITAL = "capital"
    CASH_FLOW = "cash_flow"
    COMPREHENSIVE = "comprehensive"


class BudgetStatus(str, Enum):
    """Approval workflow of a budget."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BudgetPeriod(TrackedBase):
    """
    A fiscal time window used to scope budgets and postings.

    Contract:
        Periods of the same period_type within a fiscal_year never overlap
        (enforced by BudgetRegistry.create_period).
    """

    __tablename__ = "budget_periods"

    __table_args__ = (
        UniqueConstraint("code", name="uq_budget_period_code"),
        CheckConstraint("start_date <= end_date", name="ck_budget_period_dates"),
        Index("idx_budget_period_year_type", "fiscal_year", "period_type"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    period_type: Mapped[PeriodType] = mapped_column(String(10), nullable=False)

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(10), default=PeriodStatus.DRAFT, nullable=False
    )

    def __repr__(self) -> str:
        return f"<BudgetPeriod {self.code} {self.start_date}..{self.end_date}>"

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    @property
    def accepts_postings(self) -> bool:
        return self.status in (PeriodStatus.DRAFT, PeriodStatus.ACTIVE)


class Budget(TrackedBase):
    """
    Budget header: a set of per-account amounts for one period.

    Contract:
        Non-empty, one line per account, every account type compatible with
        budget_type (checked by BudgetRegistry.create_budget).
    """

    __tablename__ = "budgets"

    __table_args__ = (
        UniqueConstraint("code", name="uq_budget_code"),
        Index("idx_budget_period", "budget_period_id"),
        Index("idx_budget_status", "status"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    budget_period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budget_periods.id"),
        nullable=False,
    )

    budget_type: Mapped[BudgetType] = mapped_column(String(20), nullable=False)

    status: Mapped[BudgetStatus] = mapped_column(
        String(10), default=BudgetStatus.DRAFT, nullable=False
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    period: Mapped["BudgetPeriod"] = relationship(lazy="joined")

    lines: Mapped[list["BudgetLine"]] = relationship(
        back_populates="budget",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BudgetLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<Budget {self.code} status={BudgetStatus(self.status).value}>"


class BudgetLine(TrackedBase):
    """One budgeted amount for one GL account."""

    __tablename__ = "budget_lines"

    __table_args__ = (
        UniqueConstraint("budget_id", "gl_account_id", name="uq_budget_line_account"),
        CheckConstraint("amount >= 0", name="ck_budget_line_amount"),
        Index("idx_budget_line_account", "gl_account_id"),
    )

    budget_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budgets.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    gl_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("gl_accounts.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    dimensions: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    budget: Mapped["Budget"] = relationship(back_populates="lines")

    account: Mapped["GLAccount"] = relationship(lazy="joined")
