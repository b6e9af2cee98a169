"""
Unit tests for the small domain value types.

Covers:
- LedgerPolicy validation and the minor unit
- DeterministicClock
- ValidationResult / PageRequest / Page
- OperationResult and the error-kind -> status mapping
- Spec immutability (lists become tuples, dimension dicts are copied)
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import Page, PageRequest, ValidationError, ValidationResult
from ledger_kernel.domain.policy import LedgerPolicy, ReturnBalancePolicy
from ledger_kernel.domain.results import STATUS_BY_KIND, OperationResult, OperationStatus
from ledger_kernel.domain.specs import JournalEntryDraft, JournalLineDraft
from ledger_kernel.exceptions import (
    BalanceConflictError,
    CustomerNotFoundError,
    EntryAlreadyReversedError,
    NegativeBalanceError,
)


class TestLedgerPolicy:

    def test_defaults(self):
        policy = LedgerPolicy()
        assert policy.minor_unit == Decimal("0.01")
        assert policy.return_balance_policy is ReturnBalancePolicy.REJECT

    def test_string_return_policy_is_coerced(self):
        policy = LedgerPolicy(return_balance_policy="clamp")
        assert policy.return_balance_policy is ReturnBalancePolicy.CLAMP

    def test_zero_minor_units(self):
        assert LedgerPolicy(minor_units=0).minor_unit == Decimal("1")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"minor_units": 10},
            {"balance_retry_attempts": 0},
            {"default_page_size": 500, "max_page_size": 100},
            {"max_dynamic_dimensions": -1},
            {"return_balance_policy": "ignore"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            LedgerPolicy(**kwargs)


class TestDeterministicClock:

    def test_fixed_and_advancing(self):
        clock = DeterministicClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))
        assert clock.today() == date(2024, 3, 1)
        first = clock.now()
        clock.advance(60)
        assert (clock.now() - first).total_seconds() == 60

    def test_naive_time_is_utc(self):
        clock = DeterministicClock()
        clock.set_time(datetime(2024, 12, 31, 23, 59))
        assert clock.now().tzinfo is timezone.utc
        assert clock.tick() == datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


class TestValidationResult:

    def test_success_is_truthy(self):
        result = ValidationResult.success()
        assert result and result.is_valid and result.errors == ()

    def test_of_collects_codes(self):
        result = ValidationResult.of(
            [ValidationError("A", "first"), ValidationError("B", "second")]
        )
        assert not result
        assert result.codes == ("A", "B")


class TestPagination:

    def test_offset(self):
        assert PageRequest(page=3, page_size=20).offset == 40

    def test_invalid_request(self):
        with pytest.raises(ValueError):
            PageRequest(page=0)
        with pytest.raises(ValueError):
            PageRequest(page_size=0)

    def test_page_math(self):
        page = Page(items=(), page=2, page_size=10, total=25)
        assert page.total_pages == 3
        assert page.has_next
        assert Page(items=(), page=1, page_size=10, total=0).total_pages == 0


class TestOperationResult:

    def test_every_error_family_maps_to_a_status(self):
        assert STATUS_BY_KIND[CustomerNotFoundError.kind] is OperationStatus.NOT_FOUND
        assert STATUS_BY_KIND[NegativeBalanceError.kind] is OperationStatus.VALIDATION_FAILED
        assert STATUS_BY_KIND[EntryAlreadyReversedError.kind] is OperationStatus.INVALID_STATE
        assert STATUS_BY_KIND[BalanceConflictError.kind] is OperationStatus.CONFLICT

    def test_success_and_failure(self):
        ok = OperationResult.success(42)
        assert ok.is_success and ok.value == 42

        failed = OperationResult.failure(
            OperationStatus.NOT_FOUND, "CUSTOMER_NOT_FOUND", "missing"
        )
        assert not failed.is_success
        assert failed.value is None
        assert failed.error_code == "CUSTOMER_NOT_FOUND"


class TestSpecs:

    def test_lines_become_tuple_and_dimensions_are_copied(self):
        dims = {"department": "SALES"}
        line = JournalLineDraft("6100", debit=Decimal("1"), dimensions=dims)
        draft = JournalEntryDraft(entry_date=date(2024, 1, 1), lines=[line])

        dims["department"] = "CHANGED"
        assert isinstance(draft.lines, tuple)
        assert draft.lines[0].dimensions == {"department": "SALES"}
