"""
Module: ledger_kernel.models.customer
Responsibility: ORM persistence for customers and products, the two lookup
    collaborators of the credit transaction ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Customer.code and Product.code are unique.
    - current_balance changes only through CustomerDirectory.adjust_balance,
      which bumps ``version`` with a compare-and-swap UPDATE.

Audit relevance:
    current_balance is the outstanding amount owed; every change is paired
    with a confirmed credit transaction.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import BigInteger, Boolean, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class CustomerType(str, Enum):
    RETAIL = "retail"
    BUSINESS = "business"
    CONTRACTOR = "contractor"


class Customer(TrackedBase):
    """
    A customer that owns credit transactions.

    Contract:
        ``version`` increases by one on every balance change; concurrent
        writers detect lost updates by comparing it.
    """

    __tablename__ = "customers"

    __table_args__ = (UniqueConstraint("code", name="uq_customer_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)

    customer_type: Mapped[CustomerType] = mapped_column(
        String(20), default=CustomerType.BUSINESS, nullable=False
    )

    credit_limit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    version: Mapped[int] = mapped_column(BigInteger, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Customer {self.code}: {self.company_name}>"


class Product(TrackedBase):
    """A sellable product; unit_price is copied onto transaction lines."""

    __tablename__ = "products"

    __table_args__ = (UniqueConstraint("code", name="uq_product_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    unit_of_measure: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Product {self.code}: {self.name}>"
