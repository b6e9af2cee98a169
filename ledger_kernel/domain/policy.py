"""
LedgerPolicy -- runtime knobs the kernel services read.

The kernel never loads configuration itself.  ``ledger_config`` builds a
LedgerPolicy from YAML (see ``ledger_config.bridges.build_ledger_policy``);
services fall back to ``LedgerPolicy()`` defaults when none is injected.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class ReturnBalancePolicy(str, Enum):
    """What confirming a RETURN does when it would push the balance below zero."""

    REJECT = "reject"
    CLAMP = "clamp"


@dataclass(frozen=True)
class LedgerPolicy:
    """
    Contract:
        Immutable.  Validated on construction so a bad value fails at startup
        rather than mid-posting.
    """

    currency: str = "EUR"
    minor_units: int = 2
    max_dynamic_dimensions: int = 15
    journal_entry_prefix: str = "JE"
    pickup_prefix: str = "P"
    return_prefix: str = "R"
    return_balance_policy: ReturnBalancePolicy = ReturnBalancePolicy.REJECT
    balance_retry_attempts: int = 3
    default_page_size: int = 20
    max_page_size: int = 200

    def __post_init__(self) -> None:
        if not 0 <= self.minor_units <= 9:
            raise ValueError(f"minor_units must be between 0 and 9, got {self.minor_units}")
        if self.max_dynamic_dimensions < 0:
            raise ValueError("max_dynamic_dimensions must not be negative")
        if self.balance_retry_attempts < 1:
            raise ValueError("balance_retry_attempts must be at least 1")
        if not 0 < self.default_page_size <= self.max_page_size:
            raise ValueError("default_page_size must be within 1..max_page_size")
        # Accept the plain string form coming from YAML
        object.__setattr__(
            self, "return_balance_policy", ReturnBalancePolicy(self.return_balance_policy)
        )

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount, e.g. Decimal('0.01')."""
        return Decimal(1).scaleb(-self.minor_units)
