"""Read-only query selectors."""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.credit_selector import CreditTransactionSelector
from ledger_kernel.selectors.journal_selector import JournalSelector

__all__ = ["BaseSelector", "CreditTransactionSelector", "JournalSelector"]
