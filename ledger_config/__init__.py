"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services never read configuration files or
    environment variables themselves; they receive a LedgerPolicy built by
    ``ledger_config.bridges``.

Architecture position:
    Configuration -- sits above ``ledger_kernel``.  The kernel MUST NEVER
    import from ``ledger_config``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML or an invalid
      value.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config_id, version and
    checksum, tying the run to the exact configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import load_settings
from ledger_config.schema import LedgerSettings
from ledger_kernel.logging_config import get_logger

__all__ = ["LedgerSettings", "get_active_config", "DEFAULT_CONFIG_PATH"]

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            ``ledger_config/sets/default.yaml``.

    Returns:
        Frozen, validated LedgerSettings.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
            "currency": settings.currency.code,
            "return_balance_policy": settings.credit.return_balance_policy,
        },
    )
    return settings
