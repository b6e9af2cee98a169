"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in the ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - entry_number is unique (uq_journal_entry_number).
    - Every line is one-sided: exactly one of debit_amount / credit_amount
      is positive, the other zero (ck_journal_line_one_side).
    - Debits == credits per entry (checked by JournalEngine.validate before
      anything is flushed; is_balanced is a read-side convenience).
    - Posted and reversed entries and their lines are immutable except for
      the POSTED -> REVERSED status change (db/immutability.py).

Failure modes:
    - IntegrityError on duplicate entry_number or a two-sided line.
    - ImmutabilityViolationError on UPDATE/DELETE of a posted entry or line.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    A reversal is a new POSTED entry linked through reversal_of_id and
    source_document_id; the original is never edited beyond its status.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import GLAccount


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    Contract: Transitions are one-way: DRAFT -> POSTED -> REVERSED.
    """

    DRAFT = "draft"
    POSTED = "posted"
    REVERSED = "reversed"


class EntryType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    ADJUSTMENT = "adjustment"
    CLOSING = "closing"
    OPENING = "opening"
    REVERSAL = "reversal"


class SourceType(str, Enum):
    """Kind of document a journal entry was derived from."""

    ORDER = "order"
    INVOICE = "invoice"
    PAYMENT = "payment"
    RETURN = "return"
    CREDIT_TRANSACTION = "credit_transaction"
    INVENTORY = "inventory"
    JOURNAL_ENTRY = "journal_entry"


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Lines are written in the same flush as the header.  Once status is
        POSTED the header and all lines are frozen; only ``status`` may move
        to REVERSED (with ``reversed_at``).

    Non-goals:
        - Balance is not enforced at the ORM level; JournalEngine rejects
          unbalanced drafts before they are ever added to the session.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("entry_number", name="uq_journal_entry_number"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_source_document", "source_type", "source_document_id"),
        Index("idx_journal_budget_period", "budget_period_id"),
    )

    entry_number: Mapped[str] = mapped_column(String(50), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    entry_type: Mapped[EntryType] = mapped_column(String(20), nullable=False)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    # Traceability to the originating document
    source_type: Mapped[SourceType | None] = mapped_column(String(30), nullable=True)
    source_document_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    budget_period_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("budget_periods.id"),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Set on the reversing entry, pointing at the entry it reverses
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # Set on the original when it is reversed
    reversed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} status={JournalEntryStatus(self.status).value}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalEntryStatus.REVERSED

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class JournalLine(TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Contract:
        References exactly one GLAccount and carries a positive amount on
        exactly one side.  ``dimensions`` is a single mapping of dimension
        key (static kind or dynamic slot) to reference code.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) OR "
            "(debit_amount = 0 AND credit_amount > 0)",
            name="ck_journal_line_one_side",
        ),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "gl_account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    gl_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("gl_accounts.id"),
        nullable=False,
    )

    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    dimensions: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["GLAccount"] = relationship(lazy="joined")
