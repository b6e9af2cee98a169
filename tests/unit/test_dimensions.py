"""
Unit tests for line dimensions (ledger_kernel/domain/dimensions.py).

Covers:
- Static and dynamic-slot key validation, including the slot limit
- Normalization: stripping, blank removal, empty -> None
- Required-dimension detection
"""

from ledger_kernel.domain.dimensions import (
    STATIC_DIMENSION_KEYS,
    DimensionKind,
    dynamic_slot_key,
    is_valid_dimension_key,
    missing_dimensions,
    normalize_dimensions,
    validate_dimension_keys,
)


class TestDimensionKeys:

    def test_static_kinds_are_valid(self):
        for key in STATIC_DIMENSION_KEYS:
            assert is_valid_dimension_key(key, 15)

    def test_dynamic_slot_within_limit(self):
        assert dynamic_slot_key(3) == "dimension3"
        assert is_valid_dimension_key("dimension1", 15)
        assert is_valid_dimension_key("dimension15", 15)

    def test_dynamic_slot_beyond_limit_rejected(self):
        assert not is_valid_dimension_key("dimension16", 15)
        assert not is_valid_dimension_key("dimension1", 0)

    def test_malformed_keys_rejected(self):
        assert not is_valid_dimension_key("dimension0", 15)
        assert not is_valid_dimension_key("dimension01", 15)
        assert not is_valid_dimension_key("Department", 15)
        assert not is_valid_dimension_key("project", 15)

    def test_validate_returns_sorted_bad_keys(self):
        bad = validate_dimension_keys(
            {"zeta": "1", "department": "D1", "alpha": "2", "dimension99": "x"}, 15
        )
        assert bad == ["alpha", "dimension99", "zeta"]

    def test_validate_none_is_clean(self):
        assert validate_dimension_keys(None, 15) == []


class TestNormalizeDimensions:

    def test_strips_and_drops_blanks(self):
        result = normalize_dimensions(
            {"department": "  SALES ", "cost_center": "   ", "series": None}
        )
        assert result == {"department": "SALES"}

    def test_empty_normalizes_to_none(self):
        assert normalize_dimensions(None) is None
        assert normalize_dimensions({}) is None
        assert normalize_dimensions({"department": ""}) is None

    def test_non_string_values_become_strings(self):
        assert normalize_dimensions({"dimension1": 42}) == {"dimension1": "42"}


class TestMissingDimensions:

    def test_reports_each_missing_kind(self):
        missing = missing_dimensions(
            {"department": "D1"},
            [DimensionKind.DEPARTMENT, DimensionKind.COST_CENTER],
        )
        assert missing == [DimensionKind.COST_CENTER]

    def test_blank_value_counts_as_missing(self):
        assert missing_dimensions({"department": " "}, [DimensionKind.DEPARTMENT]) == [
            DimensionKind.DEPARTMENT
        ]

    def test_nothing_required(self):
        assert missing_dimensions(None, []) == []
