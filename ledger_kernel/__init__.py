"""
Ledger Kernel

A double-entry accounting ledger engine with:
- Balanced, all-or-nothing journal posting
- Hierarchical chart of accounts with per-account posting rules
- Budget periods, budgets and variance reporting
- Credit transactions that mutate customer balances
- Auditable reversals and immutable posted records
"""

__version__ = "0.1.0"
