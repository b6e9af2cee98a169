"""
Tests for JournalSelector read paths.

Covers:
- Lookups by id and number
- Listing by status, date range, source document and account
- Drafts excluded from ledger listings unless asked for
- Reversal lookup and account totals windows, optionally filtered by dimensions
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from ledger_kernel.domain.specs import JournalEntryDraft, JournalLineDraft
from tests.conftest import make_balanced_draft


class TestLookups:

    def test_get_entry_and_by_number(self, journal_selector, posted_entry):
        assert journal_selector.get_entry(posted_entry.id).entry_number == "JE-2024-000001"
        assert journal_selector.get_by_number("JE-2024-000001").id == posted_entry.id
        assert journal_selector.get_entry(uuid4()) is None
        assert journal_selector.entry_number_exists("JE-2024-000001")
        assert not journal_selector.entry_number_exists("JE-2024-000099")


class TestListings:

    def test_by_status_and_date_range(
        self, journal_engine, journal_selector, posted_entry, test_actor_id
    ):
        journal_engine.save_draft(
            make_balanced_draft(entry_date=date(2024, 2, 1)), test_actor_id
        )

        assert [e.id for e in journal_selector.list_by_status("posted")] == [posted_entry.id]
        assert len(journal_selector.list_by_status("draft")) == 1
        assert len(journal_selector.list_by_date_range(date(2024, 1, 1), date(2024, 1, 31))) == 1
        assert len(journal_selector.list_by_date_range(date(2024, 1, 1), date(2024, 2, 29))) == 2
        february_posted = journal_selector.list_by_date_range(
            date(2024, 2, 1), date(2024, 2, 29), status="posted"
        )
        assert february_posted == ()

    def test_by_source_document(self, journal_engine, journal_selector, standard_accounts, test_actor_id):
        journal_engine.post(
            make_balanced_draft(source_type="invoice", source_document_id="INV-1"), test_actor_id
        )
        assert len(journal_selector.list_by_source_document("INV-1")) == 1
        assert len(journal_selector.list_by_source_document("INV-1", "invoice")) == 1
        assert journal_selector.list_by_source_document("INV-1", "payment") == ()

    def test_by_account_skips_drafts(
        self, journal_engine, journal_selector, standard_accounts, posted_entry, test_actor_id
    ):
        journal_engine.save_draft(make_balanced_draft(), test_actor_id)
        cash_id = standard_accounts["1100"].id
        assert len(journal_selector.list_by_account(cash_id)) == 1
        assert len(journal_selector.list_by_account(cash_id, include_drafts=True)) == 2
        assert journal_selector.list_by_account(standard_accounts["2000"].id) == ()


class TestReversalQueries:

    def test_find_reversal_of(self, journal_engine, journal_selector, posted_entry, test_actor_id):
        assert journal_selector.find_reversal_of(posted_entry.id) is None
        reversal = journal_engine.reverse(posted_entry.id, "refund", test_actor_id)
        assert journal_selector.find_reversal_of(posted_entry.id).id == reversal.id


class TestAccountTotals:

    def test_drafts_excluded_and_empty_accounts_zero(
        self, journal_engine, journal_selector, standard_accounts, posted_entry, test_actor_id
    ):
        journal_engine.save_draft(make_balanced_draft(Decimal("999.00")), test_actor_id)
        cash, revenue, payables = (standard_accounts[c].id for c in ("1100", "4000", "2000"))

        totals = journal_selector.account_totals(
            [cash, revenue, payables], date(2024, 1, 1), date(2024, 1, 31)
        )
        assert totals[cash] == (Decimal("250.00"), Decimal("0"))
        assert totals[revenue] == (Decimal("0"), Decimal("250.00"))
        assert totals[payables] == (Decimal("0"), Decimal("0"))

    def test_empty_window(self, journal_selector, standard_accounts, posted_entry):
        cash = standard_accounts["1100"].id
        totals = journal_selector.account_totals([cash], date(2024, 2, 1), date(2024, 1, 1))
        assert totals == {cash: (Decimal("0"), Decimal("0"))}

    def test_matching_dimensions(
        self, journal_engine, journal_selector, standard_accounts, test_actor_id
    ):
        for department, amount in (("SALES", "40.00"), ("ADMIN", "15.00"), ("ADMIN", "5.00")):
            journal_engine.post(
                JournalEntryDraft(
                    entry_date=date(2024, 1, 20),
                    lines=(
                        JournalLineDraft(
                            "6100", debit=Decimal(amount), dimensions={"department": department}
                        ),
                        JournalLineDraft("1100", credit=Decimal(amount)),
                    ),
                ),
                test_actor_id,
            )
        supplies = standard_accounts["6100"].id
        window = (date(2024, 1, 1), date(2024, 1, 31))

        assert journal_selector.account_totals_matching(
            supplies, *window, {"department": "ADMIN"}
        ) == (Decimal("20.00"), Decimal("0"))
        assert journal_selector.account_totals_matching(
            supplies, *window, {"department": "ADMIN", "cost_center": "CC1"}
        ) == (Decimal("0"), Decimal("0"))
        assert journal_selector.account_totals_matching(supplies, *window, None) == (
            Decimal("60.00"),
            Decimal("0"),
        )
