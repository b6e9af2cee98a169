"""
Domain layer -- pure value objects and rules for the ledger kernel.

Nothing in this package performs I/O or imports the ORM at runtime.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dimensions import DimensionKind
from ledger_kernel.domain.dtos import (
    AccountInfo,
    BudgetInfo,
    BudgetLineInfo,
    BudgetPeriodInfo,
    CreditTransactionInfo,
    CreditTransactionLineInfo,
    CustomerInfo,
    JournalEntryInfo,
    JournalLineInfo,
    Page,
    PageRequest,
    ProductInfo,
    ValidationError,
    ValidationResult,
)
from ledger_kernel.domain.policy import LedgerPolicy, ReturnBalancePolicy
from ledger_kernel.domain.results import OperationResult, OperationStatus
from ledger_kernel.domain.specs import (
    AccountSpec,
    BudgetLineSpec,
    BudgetPeriodSpec,
    BudgetSpec,
    CreditLineSpec,
    JournalEntryDraft,
    JournalLineDraft,
)
from ledger_kernel.domain.variance import VarianceLine, VarianceReport, VarianceType

__all__ = [
    "AccountInfo",
    "AccountSpec",
    "BudgetInfo",
    "BudgetLineInfo",
    "BudgetLineSpec",
    "BudgetPeriodInfo",
    "BudgetPeriodSpec",
    "BudgetSpec",
    "Clock",
    "CreditLineSpec",
    "CreditTransactionInfo",
    "CreditTransactionLineInfo",
    "CustomerInfo",
    "DeterministicClock",
    "DimensionKind",
    "JournalEntryDraft",
    "JournalEntryInfo",
    "JournalLineDraft",
    "JournalLineInfo",
    "LedgerPolicy",
    "OperationResult",
    "OperationStatus",
    "Page",
    "PageRequest",
    "ProductInfo",
    "ReturnBalancePolicy",
    "SystemClock",
    "ValidationError",
    "ValidationResult",
    "VarianceLine",
    "VarianceReport",
    "VarianceType",
]
