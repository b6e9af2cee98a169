"""
Tests for CustomerDirectory and ProductCatalog.

Covers:
- Customer and product creation, duplicate codes, lookup by id or code
- adjust_balance compare-and-swap: version bump, retry, exhaustion
- Negative-balance handling (reject vs floor at zero)
- Credit-limit report
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.exceptions import (
    BalanceConflictError,
    CustomerNotFoundError,
    DuplicateCodeError,
    LedgerValidationError,
    NegativeBalanceError,
    ProductNotFoundError,
)
from ledger_kernel.services.customer_directory import CustomerDirectory


class TestCustomers:

    def test_create_and_resolve(self, customer_directory, test_customer):
        assert test_customer.current_balance == Decimal("0")
        assert test_customer.version == 1
        assert customer_directory.resolve(test_customer.id).code == "TEST001"
        assert customer_directory.resolve("TEST001").id == test_customer.id

    def test_duplicate_code(self, customer_directory, test_customer, test_actor_id):
        with pytest.raises(DuplicateCodeError):
            customer_directory.create_customer("TEST001", "Other", test_actor_id)

    def test_negative_credit_limit(self, customer_directory, test_actor_id):
        with pytest.raises(LedgerValidationError):
            customer_directory.create_customer(
                "NEG", "Negative", test_actor_id, credit_limit=Decimal("-1")
            )

    def test_unknown(self, customer_directory):
        with pytest.raises(CustomerNotFoundError):
            customer_directory.resolve("MISSING")

    def test_over_credit_limit(self, customer_directory, test_customer, test_actor_id):
        customer_directory.create_customer(
            "TEST002", "Second Ltd", test_actor_id, credit_limit=Decimal("50.00")
        )
        customer_directory.adjust_balance(test_customer.id, Decimal("500.00"), test_actor_id)
        second = customer_directory.resolve("TEST002")
        customer_directory.adjust_balance(second.id, Decimal("50.01"), test_actor_id)

        over = customer_directory.customers_over_credit_limit()
        assert [c.code for c in over] == ["TEST002"]
        assert over[0].over_credit_limit


class TestAdjustBalance:

    def test_delta_applied_and_version_bumped(self, customer_directory, test_customer, test_actor_id):
        first = customer_directory.adjust_balance(test_customer.id, Decimal("110.00"), test_actor_id)
        second = customer_directory.adjust_balance(test_customer.id, Decimal("-10.00"), test_actor_id)

        assert first.current_balance == Decimal("110.00")
        assert first.version == 2
        assert second.current_balance == Decimal("100.00")
        assert second.version == 3

    def test_reject_negative(self, customer_directory, test_customer):
        with pytest.raises(NegativeBalanceError) as exc_info:
            customer_directory.adjust_balance(
                test_customer.id, Decimal("-5.00"), reject_negative=True
            )
        assert exc_info.value.delta == "-5.00"
        assert customer_directory.resolve("TEST001").version == 1

    def test_floor_at_zero(self, customer_directory, test_customer):
        result = customer_directory.adjust_balance(
            test_customer.id, Decimal("-5.00"), floor_at_zero=True
        )
        assert result.current_balance == Decimal("0")
        assert result.version == 2

    def test_negative_allowed_without_flags(self, customer_directory, test_customer):
        result = customer_directory.adjust_balance(test_customer.id, Decimal("-5.00"))
        assert result.current_balance == Decimal("-5.00")

    def test_stale_snapshot_is_retried(
        self, customer_directory, test_customer, test_actor_id, captured_logs
    ):
        """A writer that lost the race re-reads and applies its delta once."""
        real = CustomerDirectory._load_balance_snapshot
        calls = []

        def stale_then_real(self, customer_id):
            calls.append(customer_id)
            if len(calls) == 1:
                return Decimal("0"), 0  # version nobody holds any more
            return real(self, customer_id)

        with patch.object(CustomerDirectory, "_load_balance_snapshot", stale_then_real):
            result = customer_directory.adjust_balance(
                test_customer.id, Decimal("25.00"), test_actor_id
            )

        assert len(calls) == 2
        assert result.current_balance == Decimal("25.00")
        assert result.version == 2
        assert any(r["message"] == "balance_update_conflict_retry" for r in captured_logs())

    def test_conflict_exhausts_retries(
        self, session, deterministic_clock, test_customer, test_actor_id
    ):
        directory = CustomerDirectory(
            session, LedgerPolicy(balance_retry_attempts=2), deterministic_clock
        )
        with patch.object(
            CustomerDirectory,
            "_load_balance_snapshot",
            return_value=(Decimal("0"), 999),
        ) as snapshot:
            with pytest.raises(BalanceConflictError) as exc_info:
                directory.adjust_balance(test_customer.id, Decimal("10.00"), test_actor_id)

        assert snapshot.call_count == 2
        assert exc_info.value.attempts == 2
        assert directory.resolve("TEST001").current_balance == Decimal("0")


class TestProducts:

    def test_create_and_update_price(self, product_catalog, test_products, test_actor_id):
        updated = product_catalog.update_price("PROD-001", Decimal("12.50"), test_actor_id)
        assert updated.unit_price == Decimal("12.50")
        assert product_catalog.resolve(test_products["PROD-001"].id).code == "PROD-001"

    def test_negative_price(self, product_catalog, test_actor_id):
        with pytest.raises(LedgerValidationError):
            product_catalog.create_product("BAD", "Bad", Decimal("-1"), test_actor_id)

    def test_duplicate_and_unknown(self, product_catalog, test_products, test_actor_id):
        with pytest.raises(DuplicateCodeError):
            product_catalog.create_product("PROD-001", "Again", Decimal("1"), test_actor_id)
        with pytest.raises(ProductNotFoundError):
            product_catalog.resolve("PROD-404")
