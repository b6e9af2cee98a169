"""
Dimensions -- analytical tags carried on journal and budget lines.

Responsibility:
    A line's ``dimensions`` is a single mapping of dimension key to reference
    code.  Keys are either one of the static kinds below or a dynamic slot
    ``dimension1`` .. ``dimensionN`` (N from ``LedgerPolicy``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Only well-formed keys are accepted (validate_dimension_keys).
    - Blank values count as absent; a required dimension must carry a
      non-blank value.
"""

import re
from collections.abc import Iterable, Mapping
from enum import Enum


class DimensionKind(str, Enum):
    """Static dimension kinds an account can require."""

    DEPARTMENT = "department"
    BUSINESS_OBJECT = "business_object"
    COST_CENTER = "cost_center"
    SERIES = "series"
    PERSON = "person"


STATIC_DIMENSION_KEYS = frozenset(kind.value for kind in DimensionKind)

_DYNAMIC_SLOT = re.compile(r"^dimension([1-9][0-9]*)$")


def dynamic_slot_key(slot: int) -> str:
    return f"dimension{slot}"


def is_valid_dimension_key(key: str, max_dynamic_dimensions: int) -> bool:
    if key in STATIC_DIMENSION_KEYS:
        return True
    match = _DYNAMIC_SLOT.match(key)
    return bool(match) and int(match.group(1)) <= max_dynamic_dimensions


def normalize_dimensions(dimensions: Mapping[str, object] | None) -> dict[str, str] | None:
    """
    Return a plain ``dict`` with stripped string values and blanks removed.

    ``None`` or an all-blank mapping normalizes to ``None`` so that "no
    dimensions" has one stored representation.
    """
    if not dimensions:
        return None
    normalized: dict[str, str] = {}
    for key, value in dimensions.items():
        if value is None:
            continue
        text = str(value).strip()
        if text:
            normalized[str(key).strip()] = text
    return normalized or None


def validate_dimension_keys(
    dimensions: Mapping[str, object] | None,
    max_dynamic_dimensions: int,
) -> list[str]:
    """Keys in ``dimensions`` that are neither static kinds nor allowed slots."""
    if not dimensions:
        return []
    return sorted(
        key
        for key in dimensions
        if not is_valid_dimension_key(str(key), max_dynamic_dimensions)
    )


def missing_dimensions(
    dimensions: Mapping[str, object] | None,
    required: Iterable[DimensionKind],
) -> list[DimensionKind]:
    present = normalize_dimensions(dimensions) or {}
    return [kind for kind in required if kind.value not in present]
