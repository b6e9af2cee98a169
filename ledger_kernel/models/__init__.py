"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import (
    AccountType,
    GLAccount,
    NormalBalance,
    default_normal_balance,
)
from ledger_kernel.models.budget import (
    Budget,
    BudgetLine,
    BudgetPeriod,
    BudgetStatus,
    BudgetType,
    PeriodStatus,
    PeriodType,
)
from ledger_kernel.models.credit import (
    CreditTransaction,
    CreditTransactionLine,
    CreditTransactionStatus,
    CreditTransactionType,
    PerformedByRole,
)
from ledger_kernel.models.customer import Customer, CustomerType, Product
from ledger_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)

__all__ = [
    "AccountType",
    "Budget",
    "BudgetLine",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetType",
    "CreditTransaction",
    "CreditTransactionLine",
    "CreditTransactionStatus",
    "CreditTransactionType",
    "Customer",
    "CustomerType",
    "EntryType",
    "GLAccount",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "NormalBalance",
    "PerformedByRole",
    "PeriodStatus",
    "PeriodType",
    "Product",
    "SourceType",
    "default_normal_balance",
]
