"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only queries over journal entries and lines, including
    the per-account debit/credit totals that feed budget variance.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Multi-entry results are ordered by (entry_date, entry_number).
    - Totals only count entries that reached the ledger (POSTED or
      REVERSED); drafts never contribute.

Failure modes:
    - Returns None or an empty tuple on absence of data; never raises.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dimensions import normalize_dimensions
from ledger_kernel.domain.dtos import JournalEntryInfo
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.selectors.base import BaseSelector

# Entries whose lines count toward balances and actuals
LEDGER_STATUSES = (JournalEntryStatus.POSTED.value, JournalEntryStatus.REVERSED.value)


class JournalSelector(BaseSelector):
    """
    Selector for journal entry queries.

    Non-goals:
        - Does NOT validate or post; see JournalEngine.
    """

    def _entries(self, query) -> tuple[JournalEntryInfo, ...]:
        rows = self.session.execute(
            query.order_by(JournalEntry.entry_date, JournalEntry.entry_number)
        ).scalars().unique().all()
        return tuple(JournalEntryInfo.from_model(entry) for entry in rows)

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo | None:
        entry = self.session.get(JournalEntry, entry_id)
        return JournalEntryInfo.from_model(entry) if entry else None

    def get_by_number(self, entry_number: str) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.entry_number == entry_number)
        ).scalar_one_or_none()
        return JournalEntryInfo.from_model(entry) if entry else None

    def entry_number_exists(self, entry_number: str) -> bool:
        return (
            self.session.execute(
                select(JournalEntry.id).where(JournalEntry.entry_number == entry_number)
            ).first()
            is not None
        )

    def list_by_status(self, status: JournalEntryStatus | str) -> tuple[JournalEntryInfo, ...]:
        return self._entries(
            select(JournalEntry).where(
                JournalEntry.status == JournalEntryStatus(status).value
            )
        )

    def list_by_date_range(
        self,
        start_date: date,
        end_date: date,
        status: JournalEntryStatus | str | None = None,
    ) -> tuple[JournalEntryInfo, ...]:
        """Entries with start_date <= entry_date <= end_date."""
        query = select(JournalEntry).where(
            JournalEntry.entry_date >= start_date,
            JournalEntry.entry_date <= end_date,
        )
        if status is not None:
            query = query.where(JournalEntry.status == JournalEntryStatus(status).value)
        return self._entries(query)

    def list_by_source_document(
        self,
        source_document_id: str,
        source_type: str | None = None,
    ) -> tuple[JournalEntryInfo, ...]:
        query = select(JournalEntry).where(
            JournalEntry.source_document_id == str(source_document_id)
        )
        if source_type is not None:
            query = query.where(
                JournalEntry.source_type == getattr(source_type, "value", source_type)
            )
        return self._entries(query)

    def list_by_account(
        self,
        account_id: UUID,
        include_drafts: bool = False,
    ) -> tuple[JournalEntryInfo, ...]:
        """Entries with at least one line on ``account_id``."""
        query = select(JournalEntry).where(
            JournalEntry.id.in_(
                select(JournalLine.journal_entry_id).where(
                    JournalLine.gl_account_id == account_id
                )
            )
        )
        if not include_drafts:
            query = query.where(JournalEntry.status.in_(LEDGER_STATUSES))
        return self._entries(query)

    def find_reversal_of(self, entry_id: UUID) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalars().first()
        return JournalEntryInfo.from_model(entry) if entry else None

    def account_totals(
        self,
        account_ids: Iterable[UUID],
        start_date: date,
        end_date: date,
    ) -> dict[UUID, tuple[Decimal, Decimal]]:
        """
        Raw (debits, credits) per account over ledger entries in the window.

        Accounts without movement map to (0, 0).  An empty window
        (start_date > end_date) yields zeros for every account.
        """
        ids = list(account_ids)
        totals = {account_id: (Decimal("0"), Decimal("0")) for account_id in ids}
        if not ids or start_date > end_date:
            return totals

        rows = self.session.execute(
            select(
                JournalLine.gl_account_id,
                func.coalesce(func.sum(JournalLine.debit_amount), 0),
                func.coalesce(func.sum(JournalLine.credit_amount), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.gl_account_id.in_(ids),
                JournalEntry.status.in_(LEDGER_STATUSES),
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .group_by(JournalLine.gl_account_id)
        ).all()

        for account_id, debits, credits in rows:
            totals[account_id] = (Decimal(str(debits)), Decimal(str(credits)))
        return totals

    def account_totals_matching(
        self,
        account_id: UUID,
        start_date: date,
        end_date: date,
        dimensions: Mapping[str, str] | None,
    ) -> tuple[Decimal, Decimal]:
        """
        Raw (debits, credits) on one account, counting only lines tagged
        with every key/value pair of ``dimensions``.

        Lines may carry extra tags beyond ``dimensions``.  With no
        dimensions this equals ``account_totals`` for the account.
        """
        required = normalize_dimensions(dimensions) or {}
        if not required:
            return self.account_totals([account_id], start_date, end_date)[account_id]

        debits = credits = Decimal("0")
        if start_date > end_date:
            return debits, credits

        # JSON columns are not portably filterable; match tags in Python
        rows = self.session.execute(
            select(
                JournalLine.debit_amount,
                JournalLine.credit_amount,
                JournalLine.dimensions,
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.gl_account_id == account_id,
                JournalEntry.status.in_(LEDGER_STATUSES),
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
        ).all()

        for debit, credit, line_dimensions in rows:
            tags = normalize_dimensions(line_dimensions) or {}
            if all(tags.get(key) == value for key, value in required.items()):
                debits += Decimal(str(debit))
                credits += Decimal(str(credit))
        return debits, credits

    def account_has_ledger_lines(self, account_id: UUID) -> bool:
        return (
            self.session.execute(
                select(JournalLine.id)
                .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
                .where(
                    JournalLine.gl_account_id == account_id,
                    JournalEntry.status.in_(LEDGER_STATUSES),
                )
                .limit(1)
            ).first()
            is not None
        )
