"""
Config -> Kernel Bridges.

Functions that convert LedgerSettings into kernel inputs.  They live in
ledger_config because the kernel must never import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_ledger_policy, init_engine_from_settings

    settings = get_active_config()
    policy = build_ledger_policy(settings)
    engine = init_engine_from_settings(settings)
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import init_engine_from_url
from ledger_kernel.domain.policy import LedgerPolicy, ReturnBalancePolicy
from ledger_kernel.logging_config import configure_logging


def build_ledger_policy(settings: LedgerSettings) -> LedgerPolicy:
    """Map every policy-relevant setting onto a frozen LedgerPolicy."""
    return LedgerPolicy(
        currency=settings.currency.code,
        minor_units=settings.currency.minor_units,
        max_dynamic_dimensions=settings.dimensions.max_dynamic_dimensions,
        journal_entry_prefix=settings.numbering.journal_entry_prefix,
        pickup_prefix=settings.numbering.pickup_prefix,
        return_prefix=settings.numbering.return_prefix,
        return_balance_policy=ReturnBalancePolicy(settings.credit.return_balance_policy),
        balance_retry_attempts=settings.credit.balance_retry_attempts,
        default_page_size=settings.pagination.default_page_size,
        max_page_size=settings.pagination.max_page_size,
    )


def init_engine_from_settings(settings: LedgerSettings) -> Engine:
    db = settings.database
    return init_engine_from_url(
        db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        echo=db.echo,
    )


def configure_logging_from_settings(settings: LedgerSettings) -> None:
    configure_logging(level=getattr(logging, settings.logging.level))
