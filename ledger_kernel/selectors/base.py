"""
Module: ledger_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from models/ and the
    DTOs in domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit, and never
      take row locks.
    - Results are frozen DTOs, never ORM instances.
"""

from abc import ABC

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import PageRequest


class BaseSelector(ABC):
    """
    Contract:
        Accepts a Session from the caller and performs read-only queries
        inside the caller's transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def _count(self, query: Select) -> int:
        return self.session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        ).scalar_one()

    def _page_rows(self, query: Select, page: PageRequest) -> list:
        return list(
            self.session.execute(query.limit(page.page_size).offset(page.offset))
            .scalars()
            .unique()
            .all()
        )
