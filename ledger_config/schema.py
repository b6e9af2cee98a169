"""
LedgerSettings schema.

The typed, frozen form of a ledger configuration file.  YAML is parsed into
these types by the loader; ``bridges.build_ledger_policy`` turns them into
the kernel's LedgerPolicy.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CurrencyDef:
    """Single ledger currency; amounts finer than the minor unit are rejected."""

    code: str = "EUR"
    minor_units: int = 2


@dataclass(frozen=True)
class NumberingDef:
    journal_entry_prefix: str = "JE"
    pickup_prefix: str = "P"
    return_prefix: str = "R"


@dataclass(frozen=True)
class CreditDef:
    return_balance_policy: str = "reject"  # reject | clamp
    balance_retry_attempts: int = 3


@dataclass(frozen=True)
class DimensionsDef:
    max_dynamic_dimensions: int = 15


@dataclass(frozen=True)
class PaginationDef:
    default_page_size: int = 20
    max_page_size: int = 200


@dataclass(frozen=True)
class DatabaseDef:
    url: str = "sqlite://"
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


@dataclass(frozen=True)
class LoggingDef:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """
    Root configuration object.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    mapping, so two files with the same content share a checksum.
    """

    config_id: str
    version: int
    currency: CurrencyDef = field(default_factory=CurrencyDef)
    numbering: NumberingDef = field(default_factory=NumberingDef)
    credit: CreditDef = field(default_factory=CreditDef)
    dimensions: DimensionsDef = field(default_factory=DimensionsDef)
    pagination: PaginationDef = field(default_factory=PaginationDef)
    database: DatabaseDef = field(default_factory=DatabaseDef)
    logging: LoggingDef = field(default_factory=LoggingDef)
    checksum: str = ""
