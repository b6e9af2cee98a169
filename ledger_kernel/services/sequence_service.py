"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers per named sequence and formats
    them into document numbers (``JE-2024-000001``, ``P-2024-000007``).  A
    dedicated counter table with ``SELECT ... FOR UPDATE`` serializes
    concurrent allocations.

Architecture position:
    Kernel > Services.  Called by JournalEngine (entry numbers, one scope
    per fiscal year), CreditLedger (one shared credit transaction
    sequence) and BudgetRegistry (a lock-only scope for period creation).

Invariants enforced:
    - The locked counter row is the sole source of the next value; the
      aggregate max-plus-one pattern is never used.
    - The increment is transactional: a rolled-back caller gives the value
      back.

Failure modes:
    - IntegrityError when two transactions create the same counter
      concurrently; handled by a savepoint rollback and re-read.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")

NUMBER_WIDTH = 6


class SequenceCounter(Base):
    """One row per named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


def format_number(scope: str, value: int) -> str:
    return f"{scope}-{value:0{NUMBER_WIDTH}d}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic per sequence name.
        - Gap-free under normal operation; a rolled-back caller returns
          its value.

    Non-goals:
        - Does NOT commit -- the caller controls boundaries.
    """

    # Shared by PICKUP and RETURN so ``seq`` orders all credit transactions
    CREDIT_TRANSACTION = "credit_transaction"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _locked_or_created(self, sequence_name: str) -> SequenceCounter:
        counter = self._locked_counter(sequence_name)
        if counter is not None:
            return counter

        # First use; another session may be creating the same row
        savepoint = self._session.begin_nested()
        try:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)
            self._session.flush()
            savepoint.commit()
            return counter
        except IntegrityError:
            logger.debug(
                "sequence_counter_race_retry",
                extra={"sequence_name": sequence_name},
            )
            savepoint.rollback()
            counter = self._locked_counter(sequence_name)
            if counter is None:
                raise
            return counter

    def next_value(self, sequence_name: str) -> int:
        """
        Allocate the next value for a named sequence.

        Preconditions:
            - The caller is inside an active transaction.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for ``sequence_name``.
            - The counter row stays locked until the caller's transaction
              ends.
        """
        counter = self._locked_or_created(sequence_name)

        # INVARIANT: increment through the locked row only
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def lock(self, sequence_name: str) -> None:
        """
        Take the counter row lock of ``sequence_name`` without allocating.

        Serializes check-then-insert work (e.g. period overlap checks)
        across sessions; the lock is held until the caller's transaction
        ends.
        """
        self._locked_or_created(sequence_name)

    def next_number(self, scope: str) -> str:
        """
        Allocate the next document number in ``scope``.

        ``next_number("JE-2024")`` -> ``"JE-2024-000001"``.
        """
        return format_number(scope, self.next_value(scope))

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing; None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
