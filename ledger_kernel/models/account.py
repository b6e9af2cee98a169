"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts -- the target of
    every journal line and budget line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is globally unique (uq_gl_account_code).
    - code, account_type and normal_balance are immutable once the account
      is referenced by a posted journal line (db/immutability.py).
    - An account is never deleted once referenced by a posted line; it is
      soft-deactivated instead.

Failure modes:
    - AccountNotFoundError when a posting references an unknown account.
    - AccountReferencedError when deletion or a blocked flag change is
      attempted on a referenced account.

Audit relevance:
    The posting-rule flags decide which lines may reach the ledger.  The
    hierarchy (parent_id) drives roll-up reporting, so it is stored as an id
    reference and traversed by lookup.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"
    COST_OF_SALES = "cost_of_sales"


class NormalBalance(str, Enum):
    """Side on which the account balance increases."""

    DEBIT = "debit"
    CREDIT = "credit"


_DEBIT_NORMAL_TYPES = frozenset(
    {AccountType.ASSET, AccountType.EXPENSE, AccountType.COST_OF_SALES}
)


def default_normal_balance(account_type: AccountType | str) -> NormalBalance:
    """Conventional normal balance for an account type."""
    if AccountType(account_type) in _DEBIT_NORMAL_TYPES:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


class GLAccount(TrackedBase):
    """
    Chart of Accounts entry -- a single node in the general ledger tree.

    Contract:
        ``allow_direct_posting = False`` marks a summary node: no journal
        line may reference it.  ``require_*`` flags name the dimensions every
        line on this account must carry.

    Guarantees:
        - code is unique and non-null.
        - parent_id references another GLAccount (or is NULL for roots).

    Non-goals:
        - Cycle prevention lives in ChartOfAccounts.set_parent, not here.
    """

    __tablename__ = "gl_accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_gl_account_code"),
        Index("idx_gl_account_type", "account_type"),
        Index("idx_gl_account_parent", "parent_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    # Free-form sub-classification, e.g. CURRENT_ASSET, OPERATING_EXPENSE
    account_category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("gl_accounts.id"),
        nullable=True,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    # Posting rules
    allow_direct_posting: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    require_department: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    require_cost_center: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    require_business_object: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<GLAccount {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_postable(self) -> bool:
        """True iff lines may reference this account directly."""
        return bool(self.allow_direct_posting and self.is_active)
