"""
LedgerOperations -- the public boundary of the ledger kernel.

Responsibility:
    Wraps every kernel service call in a savepoint and converts expected
    business failures into typed ``OperationResult`` values.  Owns the
    commit when ``auto_commit=True``.

Architecture position:
    Kernel > Services.  The only class callers outside the kernel should
    need; it composes ChartOfAccounts, BudgetRegistry, JournalEngine,
    CreditLedger, CustomerDirectory and ProductCatalog over one session.

Invariants enforced:
    - All-or-nothing per call: a rejected call rolls its savepoint back, so
      nothing it flushed survives.
    - Expected failures (NotFound, Validation, InvalidState, Conflict
      kinds) never escape as exceptions.
    - Unexpected exceptions roll back, are logged with ``exc_info`` and
      re-raised unchanged.

Audit relevance:
    Every call runs under a LogContext carrying a fresh correlation_id, the
    operation name and the actor, so its log lines can be grouped.
"""

import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import ValidationResult
from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.domain.results import STATUS_BY_KIND, OperationResult, OperationStatus
from ledger_kernel.domain.specs import (
    AccountSpec,
    BudgetPeriodSpec,
    BudgetSpec,
    CreditLineSpec,
    JournalEntryDraft,
)
from ledger_kernel.exceptions import JournalValidationError, LedgerKernelError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.budget_registry import BudgetRegistry
from ledger_kernel.services.chart_of_accounts import ChartOfAccounts
from ledger_kernel.services.credit_ledger import CreditLedger
from ledger_kernel.services.customer_directory import CustomerDirectory
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_kernel.services.product_catalog import ProductCatalog

logger = get_logger("services.ledger_operations")

T = TypeVar("T")


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


class LedgerOperations:
    """
    Contract:
        Every public method returns an ``OperationResult``.  ``value`` holds
        the service's DTO on SUCCESS; on failure ``error_code`` is the code
        of the underlying LedgerKernelError and ``errors`` its individual
        validation errors, if any.

    Non-goals:
        - Does NOT open sessions; the caller provides one.
        - Does NOT retry whole operations; only balance updates retry
          internally.

    Usage:
        ops = LedgerOperations(session, policy=build_ledger_policy(settings))
        result = ops.post_entry(draft, actor_id)
        if result.status is OperationStatus.VALIDATION_FAILED:
            ...
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        self.accounts = ChartOfAccounts(session, self._policy, self._clock)
        self.budgets = BudgetRegistry(session, self._policy, self._clock)
        self.journal = JournalEngine(session, self._policy, self._clock)
        self.credit = CreditLedger(session, self._policy, self._clock)
        self.customers = CustomerDirectory(session, self._policy, self._clock)
        self.products = ProductCatalog(session, self._policy, self._clock)

    # ------------------------------------------------------------------
    # Execution wrapper
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        call: Callable[[], T],
        actor_id: UUID | None = None,
        mutating: bool = True,
        **context: Any,
    ) -> OperationResult[T]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=operation,
            actor_id=_str_or_none(actor_id),
            **{key: _str_or_none(value) for key, value in context.items()},
        ):
            t0 = time.monotonic()
            savepoint = self._session.begin_nested() if mutating else None
            try:
                value = call()
                if savepoint is not None:
                    savepoint.commit()
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if savepoint is not None and savepoint.is_active:
                    savepoint.rollback()

                status = (
                    STATUS_BY_KIND.get(exc.kind)
                    if isinstance(exc, LedgerKernelError)
                    else None
                )
                if status is None:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.error(
                        "ledger_operation_failed",
                        extra={"duration_ms": duration_ms},
                        exc_info=True,
                    )
                    raise

                logger.warning(
                    "ledger_operation_rejected",
                    extra={
                        "status": status.value,
                        "error_code": exc.code,
                        "duration_ms": duration_ms,
                    },
                )
                return OperationResult.failure(
                    status,
                    exc.code,
                    str(exc),
                    getattr(exc, "errors", ()),
                )

            if mutating and self._auto_commit:
                self._session.commit()

            logger.info(
                "ledger_operation_completed",
                extra={
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    "mutating": mutating,
                },
            )
            return OperationResult.success(value)

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def validate_entry(self, draft: JournalEntryDraft) -> OperationResult[ValidationResult]:
        """
        ``value`` is the ValidationResult in both outcomes; status is
        VALIDATION_FAILED when it lists errors.
        """
        outcome = self._run("validate_entry", lambda: self.journal.validate(draft), mutating=False)
        if outcome.is_success and not outcome.value.is_valid:
            return OperationResult(
                status=OperationStatus.VALIDATION_FAILED,
                value=outcome.value,
                error_code=JournalValidationError.code,
                message="Journal entry draft is invalid",
                errors=outcome.value.errors,
            )
        return outcome

    def post_entry(self, draft: JournalEntryDraft, actor_id: UUID):
        return self._run("post_entry", lambda: self.journal.post(draft, actor_id), actor_id)

    def reverse_entry(
        self,
        entry_id: UUID,
        reason: str,
        actor_id: UUID,
        reversal_date: date | None = None,
    ):
        return self._run(
            "reverse_entry",
            lambda: self.journal.reverse(entry_id, reason, actor_id, reversal_date),
            actor_id,
            entry_id=entry_id,
        )

    def save_draft(self, draft: JournalEntryDraft, actor_id: UUID):
        return self._run("save_draft", lambda: self.journal.save_draft(draft, actor_id), actor_id)

    def post_draft(self, entry_id: UUID, actor_id: UUID):
        return self._run(
            "post_draft",
            lambda: self.journal.post_draft(entry_id, actor_id),
            actor_id,
            entry_id=entry_id,
        )

    def delete_draft(self, entry_id: UUID, actor_id: UUID):
        return self._run(
            "delete_draft",
            lambda: self.journal.delete_draft(entry_id),
            actor_id,
            entry_id=entry_id,
        )

    def get_entry(self, entry_id: UUID):
        return self._run("get_entry", lambda: self.journal.get_entry(entry_id), mutating=False)

    def list_entries_by_status(self, status: str):
        return self._run(
            "list_entries_by_status",
            lambda: JournalSelector(self._session).list_by_status(status),
            mutating=False,
        )

    def list_entries_by_date_range(
        self, start_date: date, end_date: date, status: str | None = None
    ):
        return self._run(
            "list_entries_by_date_range",
            lambda: JournalSelector(self._session).list_by_date_range(
                start_date, end_date, status
            ),
            mutating=False,
        )

    def list_entries_by_source_document(
        self, source_document_id: str, source_type: str | None = None
    ):
        return self._run(
            "list_entries_by_source_document",
            lambda: JournalSelector(self._session).list_by_source_document(
                source_document_id, source_type
            ),
            mutating=False,
        )

    def list_entries_by_account(self, account_ref: UUID | str, include_drafts: bool = False):
        def call():
            account = self.accounts.resolve_account(account_ref)
            return JournalSelector(self._session).list_by_account(account.id, include_drafts)

        return self._run("list_entries_by_account", call, mutating=False)

    # ------------------------------------------------------------------
    # Chart of accounts
    # ------------------------------------------------------------------

    def create_account(self, spec: AccountSpec, actor_id: UUID):
        return self._run(
            "create_account", lambda: self.accounts.create_account(spec, actor_id), actor_id
        )

    def get_account(self, ref: UUID | str):
        return self._run("get_account", lambda: self.accounts.get_account(ref), mutating=False)

    def account_ancestors(self, ref: UUID | str):
        return self._run("account_ancestors", lambda: self.accounts.ancestors(ref), mutating=False)

    def update_posting_rules(self, ref: UUID | str, actor_id: UUID, **rules: Any):
        return self._run(
            "update_posting_rules",
            lambda: self.accounts.update_posting_rules(ref, actor_id, **rules),
            actor_id,
        )

    def set_account_parent(
        self, ref: UUID | str, parent_ref: UUID | str | None, actor_id: UUID
    ):
        return self._run(
            "set_account_parent",
            lambda: self.accounts.set_parent(ref, parent_ref, actor_id),
            actor_id,
        )

    def deactivate_account(self, ref: UUID | str, actor_id: UUID):
        return self._run(
            "deactivate_account", lambda: self.accounts.deactivate_account(ref, actor_id), actor_id
        )

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def create_period(self, spec: BudgetPeriodSpec, actor_id: UUID):
        return self._run(
            "create_period", lambda: self.budgets.create_period(spec, actor_id), actor_id
        )

    def activate_period(self, period_id: UUID, actor_id: UUID):
        return self._run(
            "activate_period", lambda: self.budgets.activate_period(period_id, actor_id), actor_id
        )

    def close_period(self, period_id: UUID, actor_id: UUID):
        return self._run(
            "close_period", lambda: self.budgets.close_period(period_id, actor_id), actor_id
        )

    def archive_period(self, period_id: UUID, actor_id: UUID):
        return self._run(
            "archive_period", lambda: self.budgets.archive_period(period_id, actor_id), actor_id
        )

    def get_period(self, period_id: UUID):
        return self._run("get_period", lambda: self.budgets.get_period(period_id), mutating=False)

    def list_periods(self, fiscal_year: int | None = None):
        return self._run(
            "list_periods", lambda: self.budgets.list_periods(fiscal_year), mutating=False
        )

    def create_budget(self, spec: BudgetSpec, actor_id: UUID):
        return self._run(
            "create_budget", lambda: self.budgets.create_budget(spec, actor_id), actor_id
        )

    def submit_budget(self, budget_id: UUID, actor_id: UUID):
        return self._run(
            "submit_budget", lambda: self.budgets.submit_budget(budget_id, actor_id), actor_id
        )

    def approve_budget(self, budget_id: UUID, actor_id: UUID):
        return self._run(
            "approve_budget", lambda: self.budgets.approve_budget(budget_id, actor_id), actor_id
        )

    def reject_budget(self, budget_id: UUID, reason: str, actor_id: UUID):
        return self._run(
            "reject_budget",
            lambda: self.budgets.reject_budget(budget_id, reason, actor_id),
            actor_id,
        )

    def activate_budget(self, budget_id: UUID, actor_id: UUID):
        return self._run(
            "activate_budget", lambda: self.budgets.activate_budget(budget_id, actor_id), actor_id
        )

    def complete_budget(self, budget_id: UUID, actor_id: UUID):
        return self._run(
            "complete_budget", lambda: self.budgets.complete_budget(budget_id, actor_id), actor_id
        )

    def cancel_budget(self, budget_id: UUID, actor_id: UUID):
        return self._run(
            "cancel_budget", lambda: self.budgets.cancel_budget(budget_id, actor_id), actor_id
        )

    def get_budget(self, budget_id: UUID):
        return self._run("get_budget", lambda: self.budgets.get_budget(budget_id), mutating=False)

    def list_budgets(self, period_id: UUID | None = None, status: str | None = None):
        return self._run(
            "list_budgets", lambda: self.budgets.list_budgets(period_id, status), mutating=False
        )

    def total_budgeted_amount(self, account_ref: UUID | str) -> OperationResult[Decimal]:
        return self._run(
            "total_budgeted_amount",
            lambda: self.budgets.total_budgeted_amount(account_ref),
            mutating=False,
        )

    def budget_variance(self, budget_id: UUID, as_of_date: date):
        return self._run(
            "budget_variance",
            lambda: self.budgets.variance(budget_id, as_of_date),
            mutating=False,
        )

    # ------------------------------------------------------------------
    # Credit transactions
    # ------------------------------------------------------------------

    def create_pickup(
        self,
        customer_ref: UUID | str,
        lines: list[CreditLineSpec],
        performed_by: str,
        performed_by_role: str,
        actor_id: UUID,
        notes: str | None = None,
    ):
        return self._run(
            "create_pickup",
            lambda: self.credit.create_pickup(
                customer_ref, lines, performed_by, performed_by_role, actor_id, notes
            ),
            actor_id,
            customer_id=customer_ref,
        )

    def create_return(
        self,
        customer_ref: UUID | str,
        lines: list[CreditLineSpec],
        performed_by: str,
        performed_by_role: str,
        actor_id: UUID,
        notes: str | None = None,
    ):
        return self._run(
            "create_return",
            lambda: self.credit.create_return(
                customer_ref, lines, performed_by, performed_by_role, actor_id, notes
            ),
            actor_id,
            customer_id=customer_ref,
        )

    def confirm_transaction(
        self,
        transaction_id: UUID | str,
        confirmed_by: str,
        actor_id: UUID,
        signature_data: str | None = None,
        notes: str | None = None,
    ):
        return self._run(
            "confirm_transaction",
            lambda: self.credit.confirm(
                transaction_id, confirmed_by, actor_id, signature_data, notes
            ),
            actor_id,
            transaction_id=transaction_id,
        )

    def cancel_transaction(self, transaction_id: UUID | str, reason: str, actor_id: UUID):
        return self._run(
            "cancel_transaction",
            lambda: self.credit.cancel(transaction_id, reason, actor_id),
            actor_id,
            transaction_id=transaction_id,
        )

    def get_transaction(self, transaction_ref: UUID | str):
        return self._run(
            "get_transaction",
            lambda: self.credit.get_transaction(transaction_ref),
            mutating=False,
        )

    def list_customer_transactions(
        self, customer_ref: UUID | str, page: int = 1, page_size: int | None = None
    ):
        return self._run(
            "list_customer_transactions",
            lambda: self.credit.list_for_customer(customer_ref, page, page_size),
            mutating=False,
        )

    def list_transactions(self, page: int = 1, page_size: int | None = None):
        return self._run(
            "list_transactions", lambda: self.credit.list_all(page, page_size), mutating=False
        )

    def search_transactions(self, query_text: str, page: int = 1, page_size: int | None = None):
        return self._run(
            "search_transactions",
            lambda: self.credit.search(query_text, page, page_size),
            mutating=False,
        )

    def monthly_statement(self, customer_ref: UUID | str, year: int, month: int):
        return self._run(
            "monthly_statement",
            lambda: self.credit.monthly_statement(customer_ref, year, month),
            mutating=False,
        )

    def list_pending_transactions(self, customer_ref: UUID | str | None = None):
        return self._run(
            "list_pending_transactions",
            lambda: self.credit.list_pending(customer_ref),
            mutating=False,
        )

    def recent_transactions(self, customer_ref: UUID | str, limit: int = 10):
        return self._run(
            "recent_transactions",
            lambda: self.credit.recent_for_customer(customer_ref, limit),
            mutating=False,
        )

    # ------------------------------------------------------------------
    # Customers and products
    # ------------------------------------------------------------------

    def create_customer(self, code: str, company_name: str, actor_id: UUID, **kwargs: Any):
        return self._run(
            "create_customer",
            lambda: self.customers.create_customer(code, company_name, actor_id, **kwargs),
            actor_id,
        )

    def get_customer(self, ref: UUID | str):
        return self._run("get_customer", lambda: self.customers.resolve(ref), mutating=False)

    def customers_over_credit_limit(self):
        return self._run(
            "customers_over_credit_limit",
            self.customers.customers_over_credit_limit,
            mutating=False,
        )

    def create_product(
        self, code: str, name: str, unit_price: Decimal, actor_id: UUID, **kwargs: Any
    ):
        return self._run(
            "create_product",
            lambda: self.products.create_product(code, name, unit_price, actor_id, **kwargs),
            actor_id,
        )

    def get_product(self, ref: UUID | str):
        return self._run("get_product", lambda: self.products.resolve(ref), mutating=False)

    def update_product_price(self, ref: UUID | str, unit_price: Decimal, actor_id: UUID):
        return self._run(
            "update_product_price",
            lambda: self.products.update_price(ref, unit_price, actor_id),
            actor_id,
        )
