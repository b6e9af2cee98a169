"""
BudgetRegistry -- budget periods, budgets and budget-vs-actual variance.

Responsibility:
    Creates budget periods (fiscal calendar windows) and budgets, drives
    their status lifecycles, and compares budgeted amounts with posted
    actuals.

Architecture position:
    Kernel > Services.  Uses ChartOfAccounts to resolve budget line
    accounts and JournalSelector for actuals; the arithmetic lives in
    ``domain/variance.py``.

Invariants enforced:
    - start_date <= end_date for every period.
    - Periods of the same type never overlap within a fiscal year
      (start1 <= end2 AND start2 <= end1 means overlap).  Period creation
      holds a sequence row lock, so concurrent creators cannot both pass
      the overlap check.
    - A budget has at least one line, each account at most once, no negative
      amount, and only account types its budget type allows.
    - total_amount is always the sum of the line amounts.

Failure modes:
    - BudgetPeriodNotFoundError / BudgetNotFoundError / AccountNotFoundError.
    - PeriodOverlapError, DuplicateCodeError, BudgetValidationError.
    - PeriodStatusError / BudgetStatusError for lifecycle steps taken from
      the wrong status.

Audit relevance:
    Approval records approver and time; rejection reasons are appended to
    the budget notes.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dimensions import normalize_dimensions, validate_dimension_keys
from ledger_kernel.domain.dtos import BudgetInfo, BudgetPeriodInfo, ValidationError
from ledger_kernel.domain.specs import BudgetPeriodSpec, BudgetSpec
from ledger_kernel.domain.variance import (
    BUDGET_ACCOUNT_TYPES,
    VarianceLine,
    VarianceReport,
    is_account_type_allowed,
    signed_actual,
)
from ledger_kernel.exceptions import (
    BudgetNotFoundError,
    BudgetPeriodNotFoundError,
    BudgetStatusError,
    BudgetValidationError,
    DuplicateCodeError,
    PeriodOverlapError,
    PeriodStatusError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.budget import (
    Budget,
    BudgetLine,
    BudgetPeriod,
    BudgetStatus,
    BudgetType,
    PeriodStatus,
    PeriodType,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService, coerce_enum
from ledger_kernel.services.chart_of_accounts import ChartOfAccounts
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.budget_registry")

# Lock-only sequence scope serializing period creation
PERIOD_LOCK_SCOPE = "budget_period"

# action -> (statuses it may start from, resulting status)
_PERIOD_TRANSITIONS = {
    "activate": ({PeriodStatus.DRAFT}, PeriodStatus.ACTIVE),
    "close": ({PeriodStatus.DRAFT, PeriodStatus.ACTIVE}, PeriodStatus.CLOSED),
    "archive": ({PeriodStatus.CLOSED}, PeriodStatus.ARCHIVED),
}

_BUDGET_TRANSITIONS = {
    "submit": ({BudgetStatus.DRAFT}, BudgetStatus.SUBMITTED),
    "approve": ({BudgetStatus.SUBMITTED}, BudgetStatus.APPROVED),
    "reject": ({BudgetStatus.SUBMITTED}, BudgetStatus.REJECTED),
    "activate": ({BudgetStatus.APPROVED}, BudgetStatus.ACTIVE),
    "complete": ({BudgetStatus.ACTIVE}, BudgetStatus.COMPLETED),
    "cancel": (
        {BudgetStatus.DRAFT, BudgetStatus.SUBMITTED, BudgetStatus.APPROVED},
        BudgetStatus.CANCELLED,
    ),
}


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class BudgetRegistry(BaseService):
    """
    Contract:
        Every mutation either fully succeeds or raises before anything is
        flushed; budgets and their lines are added in a single flush.

    Non-goals:
        - Does NOT block postings that exceed a budget; variance is
          reported, not enforced.
    """

    def _chart(self) -> ChartOfAccounts:
        return ChartOfAccounts(self.session, self.policy, self.clock)

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    def _period(self, period_id: UUID, for_update: bool = False) -> BudgetPeriod:
        query = select(BudgetPeriod).where(BudgetPeriod.id == period_id)
        if for_update:
            query = query.with_for_update()
        period = self.session.execute(query).scalar_one_or_none()
        if period is None:
            raise BudgetPeriodNotFoundError(str(period_id))
        return period

    def get_period(self, period_id: UUID) -> BudgetPeriodInfo:
        return BudgetPeriodInfo.from_model(self._period(period_id))

    def list_periods(self, fiscal_year: int | None = None) -> tuple[BudgetPeriodInfo, ...]:
        query = select(BudgetPeriod).order_by(BudgetPeriod.start_date, BudgetPeriod.code)
        if fiscal_year is not None:
            query = query.where(BudgetPeriod.fiscal_year == fiscal_year)
        return tuple(
            BudgetPeriodInfo.from_model(p) for p in self.session.execute(query).scalars()
        )

    def create_period(self, spec: BudgetPeriodSpec, actor_id: UUID) -> BudgetPeriodInfo:
        """
        Create a budget period in DRAFT.

        Raises:
            BudgetValidationError: start_date after end_date.
            PeriodOverlapError: Overlaps a same-type period of the fiscal year.
            DuplicateCodeError: Code already used.
        """
        period_type = coerce_enum(PeriodType, spec.period_type, "period type")

        if spec.start_date > spec.end_date:
            raise BudgetValidationError(
                (
                    ValidationError(
                        code="INVALID_DATE_RANGE",
                        message=(
                            f"start_date {spec.start_date} is after "
                            f"end_date {spec.end_date}"
                        ),
                        field="start_date",
                    ),
                )
            )

        # Held until the transaction ends, so the checks below and the
        # insert cannot interleave with another session's
        SequenceService(self.session).lock(PERIOD_LOCK_SCOPE)

        if self.session.execute(
            select(BudgetPeriod.id).where(BudgetPeriod.code == spec.code)
        ).first():
            raise DuplicateCodeError("BudgetPeriod", spec.code)

        overlapping = self.session.execute(
            select(BudgetPeriod)
            .where(
                BudgetPeriod.period_type == period_type.value,
                BudgetPeriod.fiscal_year == spec.fiscal_year,
                BudgetPeriod.start_date <= spec.end_date,
                BudgetPeriod.end_date >= spec.start_date,
            )
            .order_by(BudgetPeriod.start_date)
        ).scalars().first()
        if overlapping is not None:
            logger.warning(
                "budget_period_overlap_rejected",
                extra={"period_code": spec.code, "existing_period_code": overlapping.code},
            )
            raise PeriodOverlapError(
                spec.code,
                overlapping.code,
                str(spec.start_date),
                str(spec.end_date),
            )

        period = BudgetPeriod(
            code=spec.code,
            name=spec.name,
            description=spec.description,
            period_type=period_type.value,
            fiscal_year=spec.fiscal_year,
            start_date=spec.start_date,
            end_date=spec.end_date,
            status=PeriodStatus.DRAFT.value,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "budget_period_created",
            extra={
                "period_code": spec.code,
                "period_type": period_type.value,
                "fiscal_year": spec.fiscal_year,
                "start_date": spec.start_date,
                "end_date": spec.end_date,
            },
        )
        return BudgetPeriodInfo.from_model(period)

    def _transition_period(self, period_id: UUID, action: str, actor_id: UUID) -> BudgetPeriodInfo:
        allowed, target = _PERIOD_TRANSITIONS[action]
        period = self._period(period_id, for_update=True)
        current = PeriodStatus(period.status)
        if current not in allowed:
            raise PeriodStatusError(str(period.id), current.value, action)
        period.status = target.value
        period.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "budget_period_status_changed",
            extra={"period_code": period.code, "from_status": current.value, "to_status": target.value},
        )
        return BudgetPeriodInfo.from_model(period)

    def activate_period(self, period_id: UUID, actor_id: UUID) -> BudgetPeriodInfo:
        return self._transition_period(period_id, "activate", actor_id)

    def close_period(self, period_id: UUID, actor_id: UUID) -> BudgetPeriodInfo:
        """Closed periods reject new journal postings."""
        return self._transition_period(period_id, "close", actor_id)

    def archive_period(self, period_id: UUID, actor_id: UUID) -> BudgetPeriodInfo:
        return self._transition_period(period_id, "archive", actor_id)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def _budget(self, budget_id: UUID, for_update: bool = False) -> Budget:
        query = select(Budget).where(Budget.id == budget_id)
        if for_update:
            query = query.with_for_update(of=Budget)
        budget = self.session.execute(query).unique().scalar_one_or_none()
        if budget is None:
            raise BudgetNotFoundError(str(budget_id))
        return budget

    def get_budget(self, budget_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._budget(budget_id))

    def list_budgets(
        self,
        period_id: UUID | None = None,
        status: BudgetStatus | str | None = None,
    ) -> tuple[BudgetInfo, ...]:
        query = select(Budget).order_by(Budget.code)
        if period_id is not None:
            query = query.where(Budget.budget_period_id == period_id)
        if status is not None:
            query = query.where(Budget.status == BudgetStatus(status).value)
        return tuple(
            BudgetInfo.from_model(b) for b in self.session.execute(query).unique().scalars()
        )

    def create_budget(self, spec: BudgetSpec, actor_id: UUID) -> BudgetInfo:
        """
        Create a budget in DRAFT with its lines.

        Preconditions:
            - ``spec.budget_period_id`` names an existing period.

        Postconditions:
            - ``total_amount`` equals the sum of line amounts.

        Raises:
            BudgetPeriodNotFoundError: Unknown period.
            AccountNotFoundError: A line references an unknown account.
            DuplicateCodeError: Budget code already used.
            BudgetValidationError: Empty lines, duplicate account, negative
                amount, account type not allowed for the budget type, or
                malformed dimension keys.  Every problem is reported.
        """
        budget_type = coerce_enum(BudgetType, spec.budget_type, "budget type")
        period = self._period(spec.budget_period_id)

        if self.session.execute(select(Budget.id).where(Budget.code == spec.code)).first():
            raise DuplicateCodeError("Budget", spec.code)

        errors: list[ValidationError] = []
        if not spec.lines:
            errors.append(
                ValidationError(code="EMPTY_BUDGET", message="Budget must have at least one line")
            )

        chart = self._chart()
        seen_accounts: set[UUID] = set()
        resolved = []
        for index, line in enumerate(spec.lines):
            field_path = f"lines[{index}]"
            account = chart.resolve_account(line.account_ref)
            resolved.append(account)

            if account.id in seen_accounts:
                errors.append(
                    ValidationError(
                        code="DUPLICATE_BUDGET_ACCOUNT",
                        message=f"Account {account.code} appears more than once",
                        field=f"{field_path}.account_ref",
                    )
                )
            seen_accounts.add(account.id)

            if not is_account_type_allowed(budget_type, account.account_type):
                allowed = ", ".join(sorted(BUDGET_ACCOUNT_TYPES[budget_type.value]))
                errors.append(
                    ValidationError(
                        code="ACCOUNT_TYPE_NOT_ALLOWED",
                        message=(
                            f"Account {account.code} is {account.account_type}; "
                            f"{budget_type.value} budgets allow: {allowed}"
                        ),
                        field=f"{field_path}.account_ref",
                    )
                )

            if line.amount < 0:
                errors.append(
                    ValidationError(
                        code="NEGATIVE_AMOUNT",
                        message=f"Budget amount must not be negative, got {line.amount}",
                        field=f"{field_path}.amount",
                    )
                )

            bad_keys = validate_dimension_keys(
                line.dimensions, self.policy.max_dynamic_dimensions
            )
            if bad_keys:
                errors.append(
                    ValidationError(
                        code="INVALID_DIMENSION_KEY",
                        message=f"Unknown dimension keys: {', '.join(bad_keys)}",
                        field=f"{field_path}.dimensions",
                    )
                )

        if errors:
            logger.warning(
                "budget_validation_failed",
                extra={"budget_code": spec.code, "error_codes": [e.code for e in errors]},
            )
            raise BudgetValidationError(tuple(errors))

        budget = Budget(
            code=spec.code,
            name=spec.name,
            description=spec.description,
            budget_period_id=period.id,
            budget_type=budget_type.value,
            status=BudgetStatus.DRAFT.value,
            total_amount=sum((line.amount for line in spec.lines), Decimal("0")),
            notes=spec.notes,
            created_by_id=actor_id,
        )
        for number, (line, account) in enumerate(zip(spec.lines, resolved), start=1):
            budget.lines.append(
                BudgetLine(
                    line_number=number,
                    gl_account_id=account.id,
                    account=account,
                    amount=line.amount,
                    description=line.description,
                    dimensions=normalize_dimensions(line.dimensions),
                    notes=line.notes,
                    created_by_id=actor_id,
                )
            )
        self.session.add(budget)
        self.session.flush()

        logger.info(
            "budget_created",
            extra={
                "budget_code": budget.code,
                "budget_type": budget_type.value,
                "period_code": period.code,
                "line_count": len(budget.lines),
                "total_amount": budget.total_amount,
            },
        )
        return BudgetInfo.from_model(budget)

    def _transition_budget(
        self,
        budget_id: UUID,
        action: str,
        actor_id: UUID,
        note: str | None = None,
    ) -> Budget:
        allowed, target = _BUDGET_TRANSITIONS[action]
        budget = self._budget(budget_id, for_update=True)
        current = BudgetStatus(budget.status)
        if current not in allowed:
            raise BudgetStatusError(str(budget.id), current.value, action)
        budget.status = target.value
        budget.updated_by_id = actor_id
        if note:
            budget.notes = _append_note(budget.notes, note)
        if target == BudgetStatus.APPROVED:
            budget.approved_by_id = actor_id
            budget.approved_at = self.clock.now()
        self.session.flush()
        logger.info(
            "budget_status_changed",
            extra={
                "budget_code": budget.code,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return budget

    def submit_budget(self, budget_id: UUID, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._transition_budget(budget_id, "submit", actor_id))

    def approve_budget(self, budget_id: UUID, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._transition_budget(budget_id, "approve", actor_id))

    def reject_budget(self, budget_id: UUID, reason: str, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(
            self._transition_budget(budget_id, "reject", actor_id, note=f"Rejection: {reason}")
        )

    def activate_budget(self, budget_id: UUID, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._transition_budget(budget_id, "activate", actor_id))

    def complete_budget(self, budget_id: UUID, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._transition_budget(budget_id, "complete", actor_id))

    def cancel_budget(self, budget_id: UUID, actor_id: UUID) -> BudgetInfo:
        return BudgetInfo.from_model(self._transition_budget(budget_id, "cancel", actor_id))

    def total_budgeted_amount(self, account_ref: UUID | str) -> Decimal:
        """Sum of budget line amounts for the account across ACTIVE budgets."""
        account = self._chart().resolve_account(account_ref)
        total = self.session.execute(
            select(func.coalesce(func.sum(BudgetLine.amount), 0))
            .join(Budget, BudgetLine.budget_id == Budget.id)
            .where(
                BudgetLine.gl_account_id == account.id,
                Budget.status == BudgetStatus.ACTIVE.value,
            )
        ).scalar_one()
        return Decimal(str(total))

    # ------------------------------------------------------------------
    # Variance
    # ------------------------------------------------------------------

    def variance(self, budget_id: UUID, as_of_date: date) -> VarianceReport:
        """
        Compare each budget line with actuals up to ``as_of_date``.

        Actuals are the signed net of POSTED and REVERSED entry lines dated
        within [period.start_date, min(period.end_date, as_of_date)].  A
        reversal is itself a POSTED entry, so a reversed entry nets to zero
        once its reversal falls inside the window.

        A budget line with dimensions only counts journal lines tagged with
        all of them (a line budgeted for department ADMIN is not charged
        with SALES spending on the same account).
        """
        budget = self._budget(budget_id)
        period = budget.period
        window_end = min(period.end_date, as_of_date)

        selector = JournalSelector(self.session)
        lines = sorted(budget.lines, key=lambda x: x.line_number)
        totals = selector.account_totals(
            [line.gl_account_id for line in lines if not line.dimensions],
            period.start_date,
            window_end,
        )

        variance_lines = []
        for line in lines:
            account = line.account
            if line.dimensions:
                debits, credits = selector.account_totals_matching(
                    line.gl_account_id, period.start_date, window_end, line.dimensions
                )
            else:
                debits, credits = totals[line.gl_account_id]
            variance_lines.append(
                VarianceLine.compute(
                    gl_account_id=account.id,
                    account_code=account.code,
                    account_type=account.account_type,
                    budgeted=line.amount,
                    actual=signed_actual(account.normal_balance, debits, credits),
                )
            )

        report = VarianceReport(
            budget_id=budget.id,
            budget_code=budget.code,
            budget_type=BudgetType(budget.budget_type).value,
            period_code=period.code,
            as_of_date=as_of_date,
            window_start=period.start_date,
            window_end=window_end,
            lines=tuple(variance_lines),
        )
        logger.info(
            "budget_variance_computed",
            extra={
                "budget_code": budget.code,
                "as_of_date": as_of_date,
                "total_budgeted": report.total_budgeted,
                "total_actual": report.total_actual,
            },
        )
        return report
