"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.budget_registry import BudgetRegistry
from ledger_kernel.services.chart_of_accounts import ChartOfAccounts
from ledger_kernel.services.credit_ledger import CreditLedger
from ledger_kernel.services.customer_directory import CustomerDirectory
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_kernel.services.ledger_operations import LedgerOperations
from ledger_kernel.services.product_catalog import ProductCatalog
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BudgetRegistry",
    "ChartOfAccounts",
    "CreditLedger",
    "CustomerDirectory",
    "JournalEngine",
    "LedgerOperations",
    "ProductCatalog",
    "SequenceCounter",
    "SequenceService",
]
