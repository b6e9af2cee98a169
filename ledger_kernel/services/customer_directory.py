"""
CustomerDirectory -- customer lookup and the single balance mutation point.

Responsibility:
    Resolves customers by id or code and applies balance deltas.  No other
    code path writes ``Customer.current_balance``.

Architecture position:
    Kernel > Services.  Called by CreditLedger when a transaction is
    confirmed.

Invariants enforced:
    - Lost updates are impossible: every write is a compare-and-swap
      ``UPDATE customers ... WHERE id = :id AND version = :expected`` that
      also bumps ``version``.  A zero rowcount means another writer got
      there first; the delta is re-applied to a fresh snapshot.
    - Retries are bounded by ``LedgerPolicy.balance_retry_attempts``.

Failure modes:
    - CustomerNotFoundError for unknown ids/codes.
    - NegativeBalanceError when ``reject_negative`` and the new balance
      would be below zero (nothing is written).
    - BalanceConflictError when every attempt lost the race.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from ledger_kernel.domain.dtos import CustomerInfo
from ledger_kernel.exceptions import (
    BalanceConflictError,
    CustomerNotFoundError,
    DuplicateCodeError,
    LedgerValidationError,
    NegativeBalanceError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.customer import Customer, CustomerType
from ledger_kernel.services.base import BaseService, coerce_uuid

logger = get_logger("services.customer_directory")

ZERO = Decimal("0")


class CustomerDirectory(BaseService):
    """
    Contract:
        ``adjust_balance`` is safe to call concurrently from separate
        sessions for the same customer; each delta is applied exactly once
        or the call raises.
    """

    def find_customer(self, ref: UUID | str) -> Customer | None:
        customer_id = coerce_uuid(ref)
        if customer_id is not None:
            customer = self.session.get(Customer, customer_id)
            if customer is not None:
                return customer
        return self.session.execute(
            select(Customer).where(Customer.code == str(ref))
        ).scalar_one_or_none()

    def resolve(self, ref: UUID | str) -> CustomerInfo:
        """
        Raises:
            CustomerNotFoundError: No customer with that id or code.
        """
        customer = self.find_customer(ref)
        if customer is None:
            raise CustomerNotFoundError(str(ref))
        return CustomerInfo.from_model(customer)

    def create_customer(
        self,
        code: str,
        company_name: str,
        actor_id: UUID,
        customer_type: CustomerType | str = CustomerType.BUSINESS,
        credit_limit: Decimal = ZERO,
    ) -> CustomerInfo:
        if credit_limit < 0:
            raise LedgerValidationError(f"Credit limit must not be negative, got {credit_limit}")
        if self.session.execute(select(Customer.id).where(Customer.code == code)).first():
            raise DuplicateCodeError("Customer", code)

        customer = Customer(
            code=code,
            company_name=company_name,
            customer_type=CustomerType(customer_type).value,
            credit_limit=credit_limit,
            current_balance=ZERO,
            is_active=True,
            version=1,
            created_by_id=actor_id,
        )
        self.session.add(customer)
        self.session.flush()
        logger.info("customer_created", extra={"customer_code": code})
        return CustomerInfo.from_model(customer)

    def set_active(self, ref: UUID | str, is_active: bool, actor_id: UUID) -> CustomerInfo:
        customer = self.find_customer(ref)
        if customer is None:
            raise CustomerNotFoundError(str(ref))
        customer.is_active = is_active
        customer.updated_by_id = actor_id
        self.session.flush()
        return CustomerInfo.from_model(customer)

    def customers_over_credit_limit(self) -> tuple[CustomerInfo, ...]:
        rows = self.session.execute(
            select(Customer)
            .where(Customer.current_balance > Customer.credit_limit)
            .order_by(Customer.code)
        ).scalars()
        return tuple(CustomerInfo.from_model(c) for c in rows)

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def _load_balance_snapshot(self, customer_id: UUID) -> tuple[Decimal, int]:
        """Committed (current_balance, version), bypassing the identity map."""
        row = self.session.execute(
            select(Customer.current_balance, Customer.version).where(
                Customer.id == customer_id
            )
        ).one_or_none()
        if row is None:
            raise CustomerNotFoundError(str(customer_id))
        return Decimal(str(row[0])), row[1]

    def adjust_balance(
        self,
        customer_id: UUID,
        delta: Decimal,
        actor_id: UUID | None = None,
        *,
        floor_at_zero: bool = False,
        reject_negative: bool = False,
    ) -> CustomerInfo:
        """
        Add ``delta`` to the customer's balance.

        Preconditions:
            - At most one of ``floor_at_zero`` / ``reject_negative`` is set.

        Postconditions:
            - On return the balance moved by exactly ``delta`` (or was
              floored at zero) and ``version`` advanced by one.

        Raises:
            NegativeBalanceError: ``reject_negative`` and the result would
                be below zero.
            BalanceConflictError: Every attempt lost a concurrent update.
        """
        attempts = self.policy.balance_retry_attempts

        for attempt in range(1, attempts + 1):
            current_balance, version = self._load_balance_snapshot(customer_id)
            new_balance = current_balance + delta

            if new_balance < 0:
                if reject_negative:
                    logger.warning(
                        "negative_balance_rejected",
                        extra={
                            "customer_id": str(customer_id),
                            "current_balance": current_balance,
                            "delta": delta,
                        },
                    )
                    raise NegativeBalanceError(
                        str(customer_id), str(current_balance), str(delta)
                    )
                if floor_at_zero:
                    new_balance = ZERO

            values = {"current_balance": new_balance, "version": version + 1}
            if actor_id is not None:
                values["updated_by_id"] = actor_id

            result = self.session.execute(
                update(Customer)
                .where(Customer.id == customer_id, Customer.version == version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 1:
                customer = self.session.get(Customer, customer_id, populate_existing=True)
                logger.info(
                    "customer_balance_adjusted",
                    extra={
                        "customer_id": str(customer_id),
                        "delta": delta,
                        "new_balance": new_balance,
                        "version": version + 1,
                        "attempt": attempt,
                    },
                )
                return CustomerInfo.from_model(customer)

            logger.warning(
                "balance_update_conflict_retry",
                extra={
                    "customer_id": str(customer_id),
                    "expected_version": version,
                    "attempt": attempt,
                    "max_attempts": attempts,
                },
            )

        logger.error(
            "balance_update_conflict_exhausted",
            extra={"customer_id": str(customer_id), "attempts": attempts},
        )
        raise BalanceConflictError(str(customer_id), attempts)
