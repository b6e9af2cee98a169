"""
CreditLedger -- PICKUP / RETURN transactions against customer balances.

Responsibility:
    Records credit transactions with a snapshot of product prices, then
    applies their balance effect exactly once on confirmation.

Architecture position:
    Kernel > Services.  Uses ProductCatalog and CustomerDirectory for
    lookups, SequenceService for numbering and CustomerDirectory for every
    balance change.

Invariants enforced:
    - total_amount = sum(quantity * unit_price snapshot), total_items =
      sum(quantity), both fixed at creation.
    - Numbers are ``<P|R>-<year>-<seq:06d>`` where seq comes from one
      sequence shared by pickups and returns, so seq alone orders
      transactions.
    - PENDING -> CONFIRMED applies +total (pickup) or -total (return) to the
      customer balance in the same unit of work; PENDING -> CANCELLED has no
      balance effect.  No other transition exists.
    - The transaction row is locked while confirming or cancelling, so a
      transaction is confirmed at most once.

Failure modes:
    - CustomerNotFoundError, ProductNotFoundError for unknown references.
    - InactiveReferenceError for inactive customers or products.
    - InvalidQuantityError for quantities that are not positive integers.
    - TransactionNotPendingError when confirming/cancelling twice.
    - NegativeBalanceError when a return would push the balance below zero
      under the ``reject`` return policy.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import CreditTransactionInfo, Page, PageRequest
from ledger_kernel.domain.policy import ReturnBalancePolicy
from ledger_kernel.domain.specs import CreditLineSpec
from ledger_kernel.exceptions import (
    CreditTransactionNotFoundError,
    CustomerNotFoundError,
    InactiveReferenceError,
    InvalidQuantityError,
    LedgerValidationError,
    ProductNotFoundError,
    TransactionNotPendingError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.credit import (
    CreditTransaction,
    CreditTransactionLine,
    CreditTransactionStatus,
    CreditTransactionType,
    PerformedByRole,
)
from ledger_kernel.selectors.credit_selector import CreditTransactionSelector
from ledger_kernel.services.base import BaseService, coerce_enum, coerce_uuid
from ledger_kernel.services.customer_directory import CustomerDirectory
from ledger_kernel.services.product_catalog import ProductCatalog
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.credit_ledger")


class CreditLedger(BaseService):
    """
    Contract:
        Mutations flush within the caller's transaction and return
        CreditTransactionInfo snapshots.
    """

    def _selector(self) -> CreditTransactionSelector:
        return CreditTransactionSelector(self.session)

    def _customers(self) -> CustomerDirectory:
        return CustomerDirectory(self.session, self.policy, self.clock)

    def _page_request(self, page: int, page_size: int | None) -> PageRequest:
        size = self.policy.default_page_size if page_size is None else page_size
        if page < 1 or size < 1:
            raise LedgerValidationError(
                f"page and page_size must be positive, got {page} and {size}"
            )
        return PageRequest(page=page, page_size=min(size, self.policy.max_page_size))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_pickup(
        self,
        customer_ref: UUID | str,
        lines: list[CreditLineSpec] | tuple[CreditLineSpec, ...],
        performed_by: str,
        performed_by_role: PerformedByRole | str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> CreditTransactionInfo:
        """Record a PENDING pickup; the balance is untouched until confirmed."""
        return self._create(
            CreditTransactionType.PICKUP,
            customer_ref,
            lines,
            performed_by,
            performed_by_role,
            actor_id,
            notes,
        )

    def create_return(
        self,
        customer_ref: UUID | str,
        lines: list[CreditLineSpec] | tuple[CreditLineSpec, ...],
        performed_by: str,
        performed_by_role: PerformedByRole | str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> CreditTransactionInfo:
        """Record a PENDING return; the balance is untouched until confirmed."""
        return self._create(
            CreditTransactionType.RETURN,
            customer_ref,
            lines,
            performed_by,
            performed_by_role,
            actor_id,
            notes,
        )

    def _create(
        self,
        transaction_type: CreditTransactionType,
        customer_ref: UUID | str,
        lines,
        performed_by: str,
        performed_by_role: PerformedByRole | str,
        actor_id: UUID,
        notes: str | None,
    ) -> CreditTransactionInfo:
        role = coerce_enum(PerformedByRole, performed_by_role, "performed_by_role")
        if not lines:
            raise LedgerValidationError("A credit transaction needs at least one line")
        if not performed_by or not performed_by.strip():
            raise LedgerValidationError("performed_by is required")

        customer = self._customers().find_customer(customer_ref)
        if customer is None:
            raise CustomerNotFoundError(str(customer_ref))
        if not customer.is_active:
            raise InactiveReferenceError("Customer", customer.code)

        catalog = ProductCatalog(self.session, self.policy, self.clock)
        built: list[CreditTransactionLine] = []
        total_amount = Decimal("0")
        total_items = 0
        for number, spec in enumerate(lines, start=1):
            quantity = spec.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidQuantityError(str(spec.product_ref), quantity)
            product = catalog.find_product(spec.product_ref)
            if product is None:
                raise ProductNotFoundError(str(spec.product_ref))
            if not product.is_active:
                raise InactiveReferenceError("Product", product.code)

            line_total = product.unit_price * quantity
            total_amount += line_total
            total_items += quantity
            built.append(
                CreditTransactionLine(
                    line_number=number,
                    product_id=product.id,
                    product_code=product.code,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price=product.unit_price,
                    line_total=line_total,
                    notes=spec.notes,
                    created_by_id=actor_id,
                )
            )

        seq = SequenceService(self.session).next_value(SequenceService.CREDIT_TRANSACTION)
        prefix = (
            self.policy.pickup_prefix
            if transaction_type == CreditTransactionType.PICKUP
            else self.policy.return_prefix
        )
        today = self.clock.today()

        transaction = CreditTransaction(
            transaction_number=f"{prefix}-{today.year}-{seq:06d}",
            seq=seq,
            customer_id=customer.id,
            customer=customer,
            transaction_type=transaction_type.value,
            status=CreditTransactionStatus.PENDING.value,
            performed_by=performed_by.strip(),
            performed_by_role=role.value,
            transaction_date=today,
            transaction_at=self.clock.now(),
            total_amount=total_amount,
            total_items=total_items,
            notes=notes,
            created_by_id=actor_id,
        )
        transaction.lines.extend(built)
        self.session.add(transaction)
        self.session.flush()

        logger.info(
            "credit_transaction_created",
            extra={
                "transaction_number": transaction.transaction_number,
                "transaction_type": transaction_type.value,
                "customer_code": customer.code,
                "total_amount": total_amount,
                "total_items": total_items,
            },
        )
        return CreditTransactionInfo.from_model(transaction)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _locked(self, transaction_id: UUID | str) -> CreditTransaction:
        key = coerce_uuid(transaction_id)
        query = select(CreditTransaction)
        if key is not None:
            query = query.where(CreditTransaction.id == key)
        else:
            query = query.where(CreditTransaction.transaction_number == str(transaction_id))
        transaction = self.session.execute(
            query.with_for_update(of=CreditTransaction).execution_options(
                populate_existing=True
            )
        ).scalars().unique().one_or_none()
        if transaction is None:
            raise CreditTransactionNotFoundError(str(transaction_id))
        return transaction

    def confirm(
        self,
        transaction_id: UUID | str,
        confirmed_by: str,
        actor_id: UUID,
        signature_data: str | None = None,
        notes: str | None = None,
    ) -> CreditTransactionInfo:
        """
        Confirm a PENDING transaction and apply its balance effect.

        A pickup raises the balance by total_amount, a return lowers it.
        Under the ``reject`` return policy a return that would make the
        balance negative fails and nothing changes; under ``clamp`` the
        balance stops at zero.

        Raises:
            CreditTransactionNotFoundError: Unknown transaction.
            TransactionNotPendingError: Already confirmed or cancelled.
            NegativeBalanceError: See above.
            BalanceConflictError: Concurrent balance writers exhausted the
                retry budget.
        """
        transaction = self._locked(transaction_id)
        status = CreditTransactionStatus(transaction.status)
        if status != CreditTransactionStatus.PENDING:
            raise TransactionNotPendingError(str(transaction.id), status.value, "confirm")

        transaction_type = CreditTransactionType(transaction.transaction_type)
        is_return = transaction_type == CreditTransactionType.RETURN
        delta = -transaction.total_amount if is_return else transaction.total_amount
        return_policy = ReturnBalancePolicy(self.policy.return_balance_policy)

        customer = self._customers().adjust_balance(
            transaction.customer_id,
            delta,
            actor_id,
            floor_at_zero=is_return and return_policy == ReturnBalancePolicy.CLAMP,
            reject_negative=is_return and return_policy == ReturnBalancePolicy.REJECT,
        )

        transaction.status = CreditTransactionStatus.CONFIRMED.value
        transaction.confirmed_by = confirmed_by
        transaction.confirmed_at = self.clock.now()
        if signature_data is not None:
            transaction.signature_data = signature_data
        if notes:
            transaction.notes = f"{transaction.notes}\n{notes}" if transaction.notes else notes
        transaction.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "credit_transaction_confirmed",
            extra={
                "transaction_number": transaction.transaction_number,
                "transaction_type": transaction_type.value,
                "delta": delta,
                "new_balance": customer.current_balance,
            },
        )
        return CreditTransactionInfo.from_model(transaction)

    def cancel(
        self,
        transaction_id: UUID | str,
        reason: str,
        actor_id: UUID,
    ) -> CreditTransactionInfo:
        """
        Cancel a PENDING transaction.  The reason is kept in
        ``cancellation_reason`` and appended to the notes.

        Raises:
            CreditTransactionNotFoundError: Unknown transaction.
            TransactionNotPendingError: Already confirmed or cancelled.
        """
        transaction = self._locked(transaction_id)
        status = CreditTransactionStatus(transaction.status)
        if status != CreditTransactionStatus.PENDING:
            raise TransactionNotPendingError(str(transaction.id), status.value, "cancel")

        marker = f"CANCELLED: {reason}"
        transaction.status = CreditTransactionStatus.CANCELLED.value
        transaction.cancellation_reason = reason
        transaction.notes = f"{transaction.notes}\n{marker}" if transaction.notes else marker
        transaction.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "credit_transaction_cancelled",
            extra={"transaction_number": transaction.transaction_number, "reason": reason},
        )
        return CreditTransactionInfo.from_model(transaction)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_ref: UUID | str) -> CreditTransactionInfo:
        """Look up by id or transaction number."""
        key = coerce_uuid(transaction_ref)
        selector = self._selector()
        info = (
            selector.get_by_id(key)
            if key is not None
            else selector.get_by_number(str(transaction_ref))
        )
        if info is None:
            raise CreditTransactionNotFoundError(str(transaction_ref))
        return info

    def list_for_customer(
        self,
        customer_ref: UUID | str,
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[CreditTransactionInfo]:
        customer = self._customers().resolve(customer_ref)
        return self._selector().list_by_customer(
            customer.id, self._page_request(page, page_size)
        )

    def list_all(self, page: int = 1, page_size: int | None = None) -> Page[CreditTransactionInfo]:
        return self._selector().list_all(self._page_request(page, page_size))

    def search(
        self,
        query_text: str,
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[CreditTransactionInfo]:
        return self._selector().search(query_text, self._page_request(page, page_size))

    def monthly_statement(
        self,
        customer_ref: UUID | str,
        year: int,
        month: int,
    ) -> tuple[CreditTransactionInfo, ...]:
        if not 1 <= month <= 12:
            raise LedgerValidationError(f"Month must be between 1 and 12, got {month}")
        customer = self._customers().resolve(customer_ref)
        return self._selector().monthly_statement(customer.id, year, month)

    def list_pending(self, customer_ref: UUID | str | None = None) -> tuple[CreditTransactionInfo, ...]:
        customer_id = None
        if customer_ref is not None:
            customer_id = self._customers().resolve(customer_ref).id
        return self._selector().list_pending(customer_id)

    def recent_for_customer(
        self, customer_ref: UUID | str, limit: int = 10
    ) -> tuple[CreditTransactionInfo, ...]:
        customer = self._customers().resolve(customer_ref)
        return self._selector().list_recent(customer.id, limit)
