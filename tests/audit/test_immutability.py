"""
Append-only persistence tests for the ORM immutability listeners.

Verifies:
- Posted and reversed journal entries and their lines cannot be edited
  or deleted; POSTED -> REVERSED is the only allowed change
- Draft entries stay editable
- Account structure is frozen once posted to; names and flags are not
- Referenced budget periods keep their structural fields
- Confirmed/cancelled credit transactions and all credit lines are frozen
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.exceptions import (
    AccountReferencedError,
    ImmutabilityViolationError,
    PeriodImmutableError,
)
from ledger_kernel.models.account import GLAccount
from ledger_kernel.models.budget import BudgetPeriod
from ledger_kernel.models.credit import CreditTransaction
from ledger_kernel.models.journal import JournalEntry
from tests.conftest import make_balanced_draft


def _flush_expecting(session, exc_type, mutate):
    """Apply ``mutate`` inside a savepoint and expect the flush to fail."""
    with pytest.raises(exc_type) as exc_info:
        with session.begin_nested():
            mutate()
            session.flush()
    return exc_info


class TestJournalEntryImmutability:

    def test_posted_entry_field_change_blocked(self, session, posted_entry):
        entry = session.get(JournalEntry, posted_entry.id)

        def mutate():
            entry.description = "Edited after posting"

        exc_info = _flush_expecting(session, ImmutabilityViolationError, mutate)
        assert exc_info.value.entity_type == "JournalEntry"
        assert "description" in exc_info.value.reason

    def test_posted_line_change_blocked(self, session, posted_entry):
        entry = session.get(JournalEntry, posted_entry.id)

        def mutate():
            entry.lines[0].debit_amount = Decimal("1.00")

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_posted_entry_delete_blocked(self, session, posted_entry):
        entry = session.get(JournalEntry, posted_entry.id)
        _flush_expecting(session, ImmutabilityViolationError, lambda: session.delete(entry))

    def test_reversed_entry_frozen(self, session, journal_engine, posted_entry, test_actor_id):
        journal_engine.reverse(posted_entry.id, "refund", test_actor_id)
        entry = session.get(JournalEntry, posted_entry.id)

        def mutate():
            entry.status = "posted"

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_violation_is_logged(self, session, posted_entry, captured_logs):
        entry = session.get(JournalEntry, posted_entry.id)

        def mutate():
            entry.notes = "late note"

        _flush_expecting(session, ImmutabilityViolationError, mutate)
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["entity_type"] == "JournalEntry"
        assert blocked[0]["operation"] == "UPDATE"
        assert blocked[0]["field"] == "notes"

    def test_draft_is_editable(self, session, journal_engine, standard_accounts, test_actor_id):
        draft = journal_engine.save_draft(make_balanced_draft(), test_actor_id)
        entry = session.get(JournalEntry, draft.id)
        entry.description = "Reworded"
        entry.lines[0].description = "Till 2"
        session.flush()
        assert journal_engine.get_entry(draft.id).description == "Reworded"

    def test_listeners_can_be_suspended(self, session, posted_entry):
        entry = session.get(JournalEntry, posted_entry.id)
        unregister_immutability_listeners()
        try:
            entry.notes = "data repair"
            session.flush()
        finally:
            register_immutability_listeners()
        assert session.get(JournalEntry, posted_entry.id).notes == "data repair"


class TestAccountImmutability:

    def test_code_frozen_once_posted(self, session, posted_entry):
        account = session.get(GLAccount, posted_entry.lines[0].gl_account_id)

        def mutate():
            account.code = "1101"

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_parent_summary_type_frozen_through_child_lines(
        self, session, standard_accounts, posted_entry
    ):
        parent = session.get(GLAccount, standard_accounts["1000"].id)

        def mutate():
            parent.account_type = "liability"

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_name_still_editable(self, session, chart, posted_entry):
        account = session.get(GLAccount, posted_entry.lines[0].gl_account_id)
        account.name = "Cash at Bank"
        session.flush()
        assert chart.get_account("1100").name == "Cash at Bank"

    def test_unposted_account_structure_editable(self, session, chart, standard_accounts):
        account = session.get(GLAccount, standard_accounts["2000"].id)
        account.code = "2001"
        session.flush()
        assert chart.get_account("2001").id == standard_accounts["2000"].id

    def test_delete_with_posted_lines_blocked(self, session, posted_entry):
        account = session.get(GLAccount, posted_entry.lines[0].gl_account_id)
        _flush_expecting(session, AccountReferencedError, lambda: session.delete(account))


class TestBudgetPeriodImmutability:

    def test_referenced_period_dates_frozen(
        self, session, journal_engine, standard_accounts, q1_period, test_actor_id
    ):
        journal_engine.post(make_balanced_draft(budget_period_id=q1_period.id), test_actor_id)
        period = session.get(BudgetPeriod, q1_period.id)

        def mutate():
            period.end_date = date(2024, 4, 30)

        exc_info = _flush_expecting(session, PeriodImmutableError, mutate)
        assert exc_info.value.field == "end_date"

    def test_unreferenced_period_editable(self, session, q1_period):
        period = session.get(BudgetPeriod, q1_period.id)
        period.end_date = date(2024, 3, 30)
        session.flush()

    def test_referenced_period_name_editable(
        self, session, journal_engine, standard_accounts, q1_period, test_actor_id
    ):
        journal_engine.post(make_balanced_draft(budget_period_id=q1_period.id), test_actor_id)
        period = session.get(BudgetPeriod, q1_period.id)
        period.name = "First quarter"
        session.flush()


class TestCreditTransactionImmutability:

    def test_confirmed_transaction_frozen(self, session, credit_ledger, pending_pickup, test_actor_id):
        credit_ledger.confirm(pending_pickup.id, "Test Manager", test_actor_id)
        transaction = session.get(CreditTransaction, pending_pickup.id)

        def mutate():
            transaction.notes = "changed my mind"

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_cancelled_transaction_frozen(self, session, credit_ledger, pending_pickup, test_actor_id):
        credit_ledger.cancel(pending_pickup.id, "Test cancellation", test_actor_id)
        transaction = session.get(CreditTransaction, pending_pickup.id)

        def mutate():
            transaction.status = "pending"

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_pending_totals_frozen(self, session, pending_pickup):
        transaction = session.get(CreditTransaction, pending_pickup.id)

        def mutate():
            transaction.total_amount = Decimal("1.00")

        exc_info = _flush_expecting(session, ImmutabilityViolationError, mutate)
        assert "total_amount" in exc_info.value.reason

    def test_credit_lines_frozen(self, session, pending_pickup):
        transaction = session.get(CreditTransaction, pending_pickup.id)

        def mutate():
            transaction.lines[0].quantity = 50

        _flush_expecting(session, ImmutabilityViolationError, mutate)

    def test_confirmed_delete_blocked(self, session, credit_ledger, pending_pickup, test_actor_id):
        credit_ledger.confirm(pending_pickup.id, "Test Manager", test_actor_id)
        transaction = session.get(CreditTransaction, pending_pickup.id)
        _flush_expecting(session, ImmutabilityViolationError, lambda: session.delete(transaction))
