"""
Module: ledger_kernel.selectors.credit_selector
Responsibility: Read-only queries over credit transactions: lookups,
    paginated listings, free-text search and the monthly statement.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Listings are newest first: (transaction_at DESC, seq DESC).
    - The monthly statement is oldest first and contains CONFIRMED
      transactions only; pending and cancelled ones never reach a statement.
"""

import calendar
from datetime import date
from uuid import UUID

from sqlalchemy import or_, select

from ledger_kernel.domain.dtos import CreditTransactionInfo, Page, PageRequest
from ledger_kernel.models.credit import CreditTransaction, CreditTransactionStatus
from ledger_kernel.models.customer import Customer
from ledger_kernel.selectors.base import BaseSelector

_NEWEST_FIRST = (CreditTransaction.transaction_at.desc(), CreditTransaction.seq.desc())


class CreditTransactionSelector(BaseSelector):
    """Selector for credit transaction queries."""

    def _page(self, query, page: PageRequest) -> Page[CreditTransactionInfo]:
        total = self._count(query)
        rows = self._page_rows(query.order_by(*_NEWEST_FIRST), page)
        return Page(
            items=tuple(CreditTransactionInfo.from_model(row) for row in rows),
            page=page.page,
            page_size=page.page_size,
            total=total,
        )

    def get_by_id(self, transaction_id: UUID) -> CreditTransactionInfo | None:
        transaction = self.session.get(CreditTransaction, transaction_id)
        return CreditTransactionInfo.from_model(transaction) if transaction else None

    def get_by_number(self, transaction_number: str) -> CreditTransactionInfo | None:
        transaction = self.session.execute(
            select(CreditTransaction).where(
                CreditTransaction.transaction_number == transaction_number
            )
        ).scalar_one_or_none()
        return CreditTransactionInfo.from_model(transaction) if transaction else None

    def list_by_customer(
        self, customer_id: UUID, page: PageRequest
    ) -> Page[CreditTransactionInfo]:
        return self._page(
            select(CreditTransaction).where(CreditTransaction.customer_id == customer_id),
            page,
        )

    def list_all(self, page: PageRequest) -> Page[CreditTransactionInfo]:
        return self._page(select(CreditTransaction), page)

    def search(self, query_text: str, page: PageRequest) -> Page[CreditTransactionInfo]:
        """
        Case-insensitive substring match on transaction number, customer
        code, customer company name and performed_by.
        """
        pattern = f"%{query_text.strip()}%"
        query = (
            select(CreditTransaction)
            .join(Customer, CreditTransaction.customer_id == Customer.id)
            .where(
                or_(
                    CreditTransaction.transaction_number.ilike(pattern),
                    Customer.code.ilike(pattern),
                    Customer.company_name.ilike(pattern),
                    CreditTransaction.performed_by.ilike(pattern),
                )
            )
        )
        return self._page(query, page)

    def monthly_statement(
        self, customer_id: UUID, year: int, month: int
    ) -> tuple[CreditTransactionInfo, ...]:
        first_day = date(year, month, 1)
        last_day = date(year, month, calendar.monthrange(year, month)[1])
        rows = self.session.execute(
            select(CreditTransaction)
            .where(
                CreditTransaction.customer_id == customer_id,
                CreditTransaction.status == CreditTransactionStatus.CONFIRMED.value,
                CreditTransaction.transaction_date >= first_day,
                CreditTransaction.transaction_date <= last_day,
            )
            .order_by(CreditTransaction.transaction_at, CreditTransaction.seq)
        ).scalars().unique().all()
        return tuple(CreditTransactionInfo.from_model(row) for row in rows)

    def list_pending(self, customer_id: UUID | None = None) -> tuple[CreditTransactionInfo, ...]:
        query = select(CreditTransaction).where(
            CreditTransaction.status == CreditTransactionStatus.PENDING.value
        )
        if customer_id is not None:
            query = query.where(CreditTransaction.customer_id == customer_id)
        rows = self.session.execute(
            query.order_by(CreditTransaction.transaction_at, CreditTransaction.seq)
        ).scalars().unique().all()
        return tuple(CreditTransactionInfo.from_model(row) for row in rows)

    def list_recent(
        self, customer_id: UUID, limit: int = 10
    ) -> tuple[CreditTransactionInfo, ...]:
        rows = self.session.execute(
            select(CreditTransaction)
            .where(CreditTransaction.customer_id == customer_id)
            .order_by(*_NEWEST_FIRST)
            .limit(limit)
        ).scalars().unique().all()
        return tuple(CreditTransactionInfo.from_model(row) for row in rows)
