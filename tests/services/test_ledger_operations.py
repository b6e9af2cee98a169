"""
Tests for LedgerOperations, the public boundary.

Covers:
- Expected failures become typed OperationResults (never exceptions)
- A rejected call leaves nothing behind (savepoint rollback)
- validate_entry returns the ValidationResult as its value
- Unexpected exceptions are logged and re-raised
- Every call logs under a correlation_id and operation name
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import ValidationResult
from ledger_kernel.domain.results import OperationStatus
from ledger_kernel.domain.specs import AccountSpec, CreditLineSpec
from ledger_kernel.exceptions import ConfigurationError
from ledger_kernel.services.journal_engine import JournalEngine
from tests.conftest import make_balanced_draft


class TestResults:

    def test_success(self, ledger_ops, standard_accounts, test_actor_id):
        result = ledger_ops.post_entry(make_balanced_draft(), test_actor_id)
        assert result.status is OperationStatus.SUCCESS
        assert result.value.entry_number == "JE-2024-000001"

    def test_not_found(self, ledger_ops):
        result = ledger_ops.get_customer("NOBODY")
        assert result.status is OperationStatus.NOT_FOUND
        assert result.error_code == "CUSTOMER_NOT_FOUND"
        assert result.value is None

    def test_validation_failed_carries_errors(self, ledger_ops, standard_accounts, test_actor_id):
        result = ledger_ops.post_entry(
            make_balanced_draft(debit_account="1000"), test_actor_id
        )
        assert result.status is OperationStatus.VALIDATION_FAILED
        assert result.error_code == "JOURNAL_VALIDATION_FAILED"
        assert [e.code for e in result.errors] == ["ACCOUNT_NOT_POSTABLE"]

    def test_invalid_state(self, ledger_ops, pending_pickup, test_actor_id):
        ledger_ops.cancel_transaction(pending_pickup.id, "Test cancellation", test_actor_id)
        result = ledger_ops.confirm_transaction(pending_pickup.id, "Test Manager", test_actor_id)
        assert result.status is OperationStatus.INVALID_STATE
        assert result.error_code == "TRANSACTION_NOT_PENDING"

    def test_conflict(self, ledger_ops, pending_pickup, test_actor_id):
        with patch(
            "ledger_kernel.services.customer_directory.CustomerDirectory._load_balance_snapshot",
            return_value=(Decimal("0"), 999),
        ):
            result = ledger_ops.confirm_transaction(
                pending_pickup.id, "Test Manager", test_actor_id
            )
        assert result.status is OperationStatus.CONFLICT
        assert result.error_code == "BALANCE_CONFLICT"
        assert ledger_ops.get_transaction(pending_pickup.id).value.status == "pending"


class TestValidateEntry:

    def test_valid(self, ledger_ops, standard_accounts):
        result = ledger_ops.validate_entry(make_balanced_draft())
        assert result.is_success
        assert isinstance(result.value, ValidationResult)
        assert result.value.is_valid

    def test_invalid_keeps_value(self, ledger_ops, standard_accounts):
        result = ledger_ops.validate_entry(make_balanced_draft(credit_account="9999"))
        assert result.status is OperationStatus.VALIDATION_FAILED
        assert result.value.codes == ("ACCOUNT_NOT_FOUND",)
        assert result.errors == result.value.errors

    def test_oversized_amount_is_a_validation_failure(
        self, ledger_ops, standard_accounts, test_actor_id
    ):
        draft = make_balanced_draft(Decimal("1e30"))
        assert ledger_ops.validate_entry(draft).value.codes == (
            "AMOUNT_TOO_LARGE",
            "AMOUNT_TOO_LARGE",
        )
        posted = ledger_ops.post_entry(draft, test_actor_id)
        assert posted.status is OperationStatus.VALIDATION_FAILED
        assert "AMOUNT_TOO_LARGE" in [e.code for e in posted.errors]


class TestAtomicity:

    def test_failed_reversal_leaves_original_posted(
        self, ledger_ops, chart, posted_entry, test_actor_id
    ):
        chart.deactivate_account("4000", test_actor_id)
        result = ledger_ops.reverse_entry(posted_entry.id, "refund", test_actor_id)

        assert result.status is OperationStatus.VALIDATION_FAILED
        assert ledger_ops.get_entry(posted_entry.id).value.status == "posted"
        assert ledger_ops.list_entries_by_status("reversed").value == ()

    def test_failure_after_flush_is_rolled_back(
        self, ledger_ops, standard_accounts, test_actor_id
    ):
        """An error raised after the entry was flushed still leaves no row."""

        def explode(self, entry, checked):
            raise RuntimeError("disk on fire")

        with patch.object(JournalEngine, "_log_posted", explode):
            with pytest.raises(RuntimeError):
                ledger_ops.post_entry(make_balanced_draft(), test_actor_id)

        listed = ledger_ops.list_entries_by_date_range(date(2024, 1, 1), date(2024, 12, 31))
        assert listed.value == ()

    def test_negative_return_leaves_pending(
        self, ledger_ops, test_customer, test_products, test_actor_id
    ):
        created = ledger_ops.create_return(
            "TEST001", [CreditLineSpec("PROD-001", 1)], "Jane Driver", "customer", test_actor_id
        )
        result = ledger_ops.confirm_transaction(created.value.id, "Test Manager", test_actor_id)

        assert result.status is OperationStatus.VALIDATION_FAILED
        assert result.error_code == "NEGATIVE_BALANCE"
        assert ledger_ops.get_customer("TEST001").value.current_balance == Decimal("0")


class TestUnexpectedErrors:

    def test_non_ledger_error_is_reraised(self, ledger_ops, captured_logs):
        with patch.object(
            type(ledger_ops.accounts), "get_account", side_effect=ValueError("boom")
        ):
            with pytest.raises(ValueError):
                ledger_ops.get_account("1100")
        failed = [r for r in captured_logs() if r["message"] == "ledger_operation_failed"]
        assert failed[0]["exc_type"] == "ValueError"
        assert failed[0]["operation"] == "get_account"

    def test_configuration_error_is_not_mapped(self, ledger_ops):
        with patch.object(
            type(ledger_ops.accounts),
            "create_account",
            side_effect=ConfigurationError("broken"),
        ):
            with pytest.raises(ConfigurationError):
                ledger_ops.create_account(AccountSpec("7000", "X", "expense"), uuid4())


class TestLogging:

    def test_context_fields(self, ledger_ops, standard_accounts, test_actor_id, captured_logs):
        ledger_ops.post_entry(make_balanced_draft(), test_actor_id)
        logs = captured_logs()

        completed = [r for r in logs if r["message"] == "ledger_operation_completed"][0]
        posted = [r for r in logs if r["message"] == "journal_entry_posted"][0]
        assert completed["operation"] == "post_entry"
        assert completed["actor_id"] == str(test_actor_id)
        assert completed["mutating"] is True
        assert posted["correlation_id"] == completed["correlation_id"]

    def test_rejection_logged(self, ledger_ops, captured_logs):
        ledger_ops.get_product("NOPE")
        rejected = [r for r in captured_logs() if r["message"] == "ledger_operation_rejected"]
        assert rejected[0]["status"] == "not_found"
        assert rejected[0]["error_code"] == "PRODUCT_NOT_FOUND"
