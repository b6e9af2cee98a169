"""
Module: ledger_kernel.models.credit
Responsibility: ORM persistence for credit transactions (PICKUP / RETURN)
    and their product lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - transaction_number and seq are unique.
    - quantity > 0 on every line (ck_credit_line_quantity).
    - total_amount / total_items are computed once at creation from the
      line snapshots and never recomputed.
    - Status moves PENDING -> CONFIRMED or PENDING -> CANCELLED only; a
      CONFIRMED or CANCELLED transaction is immutable, and lines are never
      updated after insert (db/immutability.py).

Audit relevance:
    A CONFIRMED transaction is always paired with exactly one balance
    adjustment on its customer; a CANCELLED one with none.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
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
from ledger_kernel.models.customer import Customer


class CreditTransactionType(str, Enum):
    PICKUP = "pickup"
    RETURN = "return"


class CreditTransactionStatus(str, Enum):
    """PENDING -> CONFIRMED (terminal) or PENDING -> CANCELLED (terminal)."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PerformedByRole(str, Enum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"
    ADMINISTRATOR = "administrator"


class CreditTransaction(TrackedBase):
    """
    A PICKUP or RETURN event against a customer's outstanding balance.

    Contract:
        Exclusively owned by its customer; lines are exclusively owned by the
        transaction.  Balance effects are applied on confirmation only.
    """

    __tablename__ = "credit_transactions"

    __table_args__ = (
        UniqueConstraint("transaction_number", name="uq_credit_transaction_number"),
        UniqueConstraint("seq", name="uq_credit_transaction_seq"),
        Index("idx_credit_customer_date", "customer_id", "transaction_date"),
        Index("idx_credit_status", "status"),
    )

    transaction_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Allocation order, used for stable chronological ordering
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    transaction_type: Mapped[CreditTransactionType] = mapped_column(
        String(10), nullable=False
    )

    status: Mapped[CreditTransactionStatus] = mapped_column(
        String(10),
        default=CreditTransactionStatus.PENDING,
        nullable=False,
    )

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)

    performed_by_role: Mapped[PerformedByRole] = mapped_column(String(20), nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    transaction_at: Mapped[datetime] = mapped_column(nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    total_items: Mapped[int] = mapped_column(Integer, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    confirmed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    customer: Mapped["Customer"] = relationship(lazy="joined")

    lines: Mapped[list["CreditTransactionLine"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CreditTransactionLine.line_number",
    )

    def __repr__(self) -> str:
        return (
            f"<CreditTransaction {self.transaction_number} "
            f"status={CreditTransactionStatus(self.status).value}>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == CreditTransactionStatus.PENDING


class CreditTransactionLine(TrackedBase):
    """One product line; unit_price is a snapshot taken at creation."""

    __tablename__ = "credit_transaction_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_credit_line_quantity"),
        Index("idx_credit_line_transaction", "transaction_id"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("credit_transactions.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    product_code: Mapped[str] = mapped_column(String(50), nullable=False)

    product_name: Mapped[str] = mapped_column(String(255), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    line_total: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transaction: Mapped["CreditTransaction"] = relationship(back_populates="lines")
