"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``ledger_config.schema`` dataclasses.  Runtime callers go through
``ledger_config.get_active_config()``; this module is its tooling.

Invariants enforced
-------------------
* Every parse error raises ``ConfigurationError`` naming the offending key;
  unknown keys in a section are rejected rather than ignored.
* ``compute_checksum`` is deterministic: key order in the YAML does not
  change it.

Failure modes
-------------
* Missing file  -> ``ConfigurationError``.
* Malformed YAML  -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
* Wrong value types or missing ``config_id``/``version``  ->
  ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    CreditDef,
    CurrencyDef,
    DatabaseDef,
    DimensionsDef,
    LedgerSettings,
    LoggingDef,
    NumberingDef,
    PaginationDef,
)
from ledger_kernel.exceptions import ConfigurationError

_RETURN_POLICIES = ("reject", "clamp")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: File missing, unreadable YAML, or the document
            is not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _parse_section(data: dict[str, Any], name: str, cls: type) -> Any:
    """Build a section dataclass, type-checking each value against its default."""
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{name}': {', '.join(unknown)}")

    defaults = cls()
    values: dict[str, Any] = {}
    for key, value in raw.items():
        expected = type(getattr(defaults, key))
        # bool is an int subclass; keep the two apart
        if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
            raise ConfigurationError(f"'{name}.{key}' must be an integer, got {value!r}")
        if expected is not int and not isinstance(value, expected):
            raise ConfigurationError(
                f"'{name}.{key}' must be {expected.__name__}, got {value!r}"
            )
        values[key] = value
    return cls(**values)


def parse_currency(data: dict[str, Any]) -> CurrencyDef:
    currency = _parse_section(data, "currency", CurrencyDef)
    if len(currency.code) != 3 or not currency.code.isalpha():
        raise ConfigurationError(f"currency.code must be an ISO 4217 code, got {currency.code!r}")
    if not 0 <= currency.minor_units <= 9:
        raise ConfigurationError("currency.minor_units must be between 0 and 9")
    return currency


def parse_credit(data: dict[str, Any]) -> CreditDef:
    credit = _parse_section(data, "credit", CreditDef)
    if credit.return_balance_policy not in _RETURN_POLICIES:
        raise ConfigurationError(
            f"credit.return_balance_policy must be one of {_RETURN_POLICIES}, "
            f"got {credit.return_balance_policy!r}"
        )
    if credit.balance_retry_attempts < 1:
        raise ConfigurationError("credit.balance_retry_attempts must be at least 1")
    return credit


def parse_pagination(data: dict[str, Any]) -> PaginationDef:
    pagination = _parse_section(data, "pagination", PaginationDef)
    if not 0 < pagination.default_page_size <= pagination.max_page_size:
        raise ConfigurationError(
            "pagination.default_page_size must be between 1 and max_page_size"
        )
    return pagination


def parse_logging(data: dict[str, Any]) -> LoggingDef:
    logging_def = _parse_section(data, "logging", LoggingDef)
    if logging_def.level.upper() not in _LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be one of {_LOG_LEVELS}")
    return LoggingDef(level=logging_def.level.upper())


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse the top-level mapping into LedgerSettings.

    Raises:
        ConfigurationError: On any missing or malformed value.
    """
    config_id = data.get("config_id")
    version = data.get("version")
    if not isinstance(config_id, str) or not config_id:
        raise ConfigurationError("config_id is required")
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigurationError("version must be an integer")

    numbering = _parse_section(data, "numbering", NumberingDef)
    for key in ("journal_entry_prefix", "pickup_prefix", "return_prefix"):
        if not getattr(numbering, key):
            raise ConfigurationError(f"numbering.{key} must not be empty")
    if numbering.pickup_prefix == numbering.return_prefix:
        raise ConfigurationError("pickup and return prefixes must differ")

    dimensions = _parse_section(data, "dimensions", DimensionsDef)
    if dimensions.max_dynamic_dimensions < 0:
        raise ConfigurationError("dimensions.max_dynamic_dimensions must not be negative")

    return LedgerSettings(
        config_id=config_id,
        version=version,
        currency=parse_currency(data),
        numbering=numbering,
        credit=parse_credit(data),
        dimensions=dimensions,
        pagination=parse_pagination(data),
        database=_parse_section(data, "database", DatabaseDef),
        logging=parse_logging(data),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> LedgerSettings:
    return parse_settings(load_yaml_file(path))
