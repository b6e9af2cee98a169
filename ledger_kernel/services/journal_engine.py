"""
JournalEngine -- double-entry validation, posting and reversal.

Responsibility:
    Turns a JournalEntryDraft into a POSTED journal entry, or explains in a
    ValidationResult why it cannot.  Reverses posted entries with an exact
    mirror entry.  Manages saved drafts.

Architecture position:
    Kernel > Services.  Consults ChartOfAccounts for account rules,
    SequenceService for entry numbers and JournalSelector for reads.

Invariants enforced:
    - Balance: sum of debits == sum of credits, exact Decimal comparison,
      after rejecting amounts finer than the currency's minor unit or too
      large for the Numeric(38, 9) money columns.
    - Every line is one-sided and nonzero, and posts to an existing,
      postable account carrying every dimension that account requires.
    - An entry tied to a budget period is dated inside it, and the period
      is not CLOSED or ARCHIVED.
    - A REVERSAL mirrors a POSTED, not-yet-reversed original line for line;
      posting it marks the original REVERSED in the same unit of work.
    - Any other entry naming a source document is rejected while a POSTED
      entry already carries that (source_type, source_document_id).
    - Entry numbers come from a locked per-fiscal-year sequence.
    - Nothing is written unless the whole entry is accepted; the entry and
      its lines are flushed inside one savepoint.

Failure modes:
    - JournalValidationError (carries every ValidationError) from post,
      save_draft and post_draft.
    - JournalEntryNotFoundError, EntryNotPostedError,
      EntryAlreadyReversedError, EntryNotDraftError.

Audit relevance:
    A reversal never edits the original beyond status/reversed_at; it is a
    new POSTED entry linked by reversal_of_id and source_document_id, with
    "Reversal of <number>: <reason>" as its description.  Its lines carry
    the original line descriptions prefixed with "Reversal: ".
"""

from dataclasses import dataclass
from datetime import date
from decimal import Context, Decimal, InvalidOperation, localcontext
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_kernel.domain.dimensions import (
    missing_dimensions,
    normalize_dimensions,
    validate_dimension_keys,
)
from ledger_kernel.domain.dtos import JournalEntryInfo, ValidationError, ValidationResult
from ledger_kernel.domain.specs import JournalEntryDraft, JournalLineDraft
from ledger_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryNotDraftError,
    EntryNotPostedError,
    JournalEntryNotFoundError,
    JournalValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import GLAccount
from ledger_kernel.models.budget import BudgetPeriod
from ledger_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService, coerce_uuid
from ledger_kernel.services.chart_of_accounts import ChartOfAccounts
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal_engine")

ZERO = Decimal("0")

# Numeric(38, 9) keeps 29 integer digits
MAX_LINE_AMOUNT = Decimal(10) ** 29

# Room for a full-width amount plus its fraction digits, and for totals
_AMOUNT_CONTEXT = Context(prec=60)

# Saved drafts without a caller-supplied number get a placeholder until posted
DRAFT_NUMBER_PREFIX = "DRAFT-"

REVERSAL_LINE_PREFIX = "Reversal: "


@dataclass
class _Checked:
    """Outcome of validation plus what it resolved, reused when posting."""

    result: ValidationResult
    entry_type: EntryType | None
    source_type: SourceType | None
    accounts: list[GLAccount | None]
    period: BudgetPeriod | None
    original: JournalEntry | None


def _as_decimal(value) -> Decimal | None:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _reversal_line_description(line: JournalLine, entry_number: str) -> str:
    text = f"{REVERSAL_LINE_PREFIX}{line.description or entry_number}"
    return text[: JournalLine.description.type.length]


class JournalEngine(BaseService):
    """
    Contract:
        ``validate`` is side-effect free.  ``post`` either persists the
        complete entry as POSTED or raises without writing anything.

    Non-goals:
        - Does NOT commit; LedgerOperations or the caller owns the
          transaction.
        - Does NOT translate currencies.
    """

    def _chart(self) -> ChartOfAccounts:
        return ChartOfAccounts(self.session, self.policy, self.clock)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, draft: JournalEntryDraft) -> ValidationResult:
        """
        Check a draft against every posting rule without persisting.

        Returns:
            ValidationResult listing every problem found (not just the
            first).
        """
        checked = self._check(draft)
        return checked.result

    def _check(
        self,
        draft: JournalEntryDraft,
        existing_entry_id: UUID | None = None,
        lock_original: bool = False,
    ) -> _Checked:
        errors: list[ValidationError] = []

        entry_type = self._parse_enum(EntryType, draft.entry_type, "entry_type", errors)
        source_type = None
        if draft.source_type is not None:
            source_type = self._parse_enum(
                SourceType, draft.source_type, "source_type", errors
            )

        if not draft.lines:
            errors.append(
                ValidationError(
                    code="EMPTY_ENTRY",
                    message="Journal entry must have at least one line",
                    field="lines",
                )
            )

        with localcontext(_AMOUNT_CONTEXT):
            accounts, total_debits, total_credits = self._check_lines(draft.lines, errors)

        if draft.lines and total_debits != total_credits:
            errors.append(
                ValidationError(
                    code="UNBALANCED_ENTRY",
                    message=(
                        f"Debits {total_debits} do not equal credits {total_credits}"
                    ),
                    details={
                        "total_debits": str(total_debits),
                        "total_credits": str(total_credits),
                    },
                )
            )

        period = self._check_period(draft, errors)

        if draft.entry_number:
            self._check_entry_number(draft.entry_number, existing_entry_id, errors)

        original = None
        if entry_type == EntryType.REVERSAL:
            original = self._check_reversal(draft, accounts, errors, lock_original)
        elif source_type is not None and draft.source_document_id:
            self._check_source_document(
                source_type, str(draft.source_document_id), existing_entry_id, errors
            )

        result = ValidationResult.of(errors)
        if not result.is_valid:
            logger.warning(
                "journal_entry_validation_failed",
                extra={
                    "entry_date": draft.entry_date,
                    "line_count": len(draft.lines),
                    "error_codes": list(result.codes),
                },
            )
        return _Checked(result, entry_type, source_type, accounts, period, original)

    @staticmethod
    def _parse_enum(enum_cls, value, field: str, errors: list[ValidationError]):
        try:
            return enum_cls(value)
        except ValueError:
            errors.append(
                ValidationError(
                    code=f"INVALID_{field.upper()}",
                    message=f"Unknown {field} {value!r}",
                    field=field,
                )
            )
            return None

    def _check_lines(
        self,
        lines: tuple[JournalLineDraft, ...],
        errors: list[ValidationError],
    ) -> tuple[list[GLAccount | None], Decimal, Decimal]:
        chart = self._chart()
        quantum = self.policy.minor_unit
        total_debits = ZERO
        total_credits = ZERO
        accounts: list[GLAccount | None] = []

        for index, line in enumerate(lines):
            path = f"lines[{index}]"
            debit = _as_decimal(line.debit)
            credit = _as_decimal(line.credit)

            if debit is None or credit is None or not (debit.is_finite() and credit.is_finite()):
                errors.append(
                    ValidationError(
                        code="INVALID_AMOUNT",
                        message="Line amounts must be finite decimal numbers",
                        field=path,
                    )
                )
                debit = credit = ZERO
            else:
                for side, amount in (("debit", debit), ("credit", credit)):
                    if amount < 0:
                        errors.append(
                            ValidationError(
                                code="NEGATIVE_AMOUNT",
                                message=f"{side} must not be negative, got {amount}",
                                field=f"{path}.{side}",
                            )
                        )
                    elif amount >= MAX_LINE_AMOUNT:
                        errors.append(
                            ValidationError(
                                code="AMOUNT_TOO_LARGE",
                                message=f"{side} {amount} exceeds {MAX_LINE_AMOUNT:f}",
                                field=f"{path}.{side}",
                            )
                        )
                    elif amount != amount.quantize(quantum):
                        errors.append(
                            ValidationError(
                                code="AMOUNT_PRECISION",
                                message=(
                                    f"{side} {amount} has more than "
                                    f"{self.policy.minor_units} decimal places"
                                ),
                                field=f"{path}.{side}",
                            )
                        )
                if debit > 0 and credit > 0:
                    errors.append(
                        ValidationError(
                            code="TWO_SIDED_LINE",
                            message="A line carries either a debit or a credit, not both",
                            field=path,
                        )
                    )
                elif debit == 0 and credit == 0:
                    errors.append(
                        ValidationError(
                            code="ZERO_AMOUNT_LINE",
                            message="A line must carry a nonzero amount",
                            field=path,
                        )
                    )

            total_debits += debit
            total_credits += credit

            account = chart.find_account(line.account_ref)
            accounts.append(account)
            if account is None:
                errors.append(
                    ValidationError(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Unknown account {line.account_ref}",
                        field=f"{path}.account_ref",
                    )
                )
            elif not account.is_active:
                errors.append(
                    ValidationError(
                        code="ACCOUNT_INACTIVE",
                        message=f"Account {account.code} is inactive",
                        field=f"{path}.account_ref",
                    )
                )
            elif not account.allow_direct_posting:
                errors.append(
                    ValidationError(
                        code="ACCOUNT_NOT_POSTABLE",
                        message=f"Account {account.code} is a summary account",
                        field=f"{path}.account_ref",
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
                        field=f"{path}.dimensions",
                    )
                )
            if account is not None:
                for kind in missing_dimensions(
                    line.dimensions, sorted(chart.required_dimensions(account))
                ):
                    errors.append(
                        ValidationError(
                            code="MISSING_DIMENSION",
                            message=f"Account {account.code} requires {kind.value}",
                            field=f"{path}.dimensions.{kind.value}",
                        )
                    )

        return accounts, total_debits, total_credits

    def _check_period(
        self, draft: JournalEntryDraft, errors: list[ValidationError]
    ) -> BudgetPeriod | None:
        if draft.budget_period_id is None:
            return None
        period = self.session.get(BudgetPeriod, draft.budget_period_id)
        if period is None:
            errors.append(
                ValidationError(
                    code="PERIOD_NOT_FOUND",
                    message=f"Unknown budget period {draft.budget_period_id}",
                    field="budget_period_id",
                )
            )
            return None
        if not period.contains_date(draft.entry_date):
            errors.append(
                ValidationError(
                    code="DATE_OUTSIDE_PERIOD",
                    message=(
                        f"Entry date {draft.entry_date} is outside period {period.code} "
                        f"({period.start_date} to {period.end_date})"
                    ),
                    field="entry_date",
                )
            )
        if not period.accepts_postings:
            errors.append(
                ValidationError(
                    code="PERIOD_CLOSED",
                    message=f"Period {period.code} is {period.status}",
                    field="budget_period_id",
                )
            )
        return period

    def _check_entry_number(
        self,
        entry_number: str,
        existing_entry_id: UUID | None,
        errors: list[ValidationError],
    ) -> None:
        owner = self.session.execute(
            select(JournalEntry.id).where(JournalEntry.entry_number == entry_number)
        ).scalar_one_or_none()
        if owner is not None and owner != existing_entry_id:
            errors.append(
                ValidationError(
                    code="DUPLICATE_ENTRY_NUMBER",
                    message=f"Entry number {entry_number} is already used",
                    field="entry_number",
                )
            )

    def _check_source_document(
        self,
        source_type: SourceType,
        source_document_id: str,
        existing_entry_id: UUID | None,
        errors: list[ValidationError],
    ) -> None:
        """A source document reaches the ledger through one POSTED entry at a time."""
        query = select(JournalEntry.entry_number).where(
            JournalEntry.source_type == source_type.value,
            JournalEntry.source_document_id == source_document_id,
            JournalEntry.status == JournalEntryStatus.POSTED.value,
        )
        if existing_entry_id is not None:
            query = query.where(JournalEntry.id != existing_entry_id)
        posted_as = self.session.execute(query.limit(1)).scalar_one_or_none()
        if posted_as is not None:
            errors.append(
                ValidationError(
                    code="DUPLICATE_SOURCE_POSTING",
                    message=(
                        f"{source_type.value} {source_document_id} is already "
                        f"posted as {posted_as}"
                    ),
                    field="source_document_id",
                )
            )

    def _check_reversal(
        self,
        draft: JournalEntryDraft,
        accounts: list[GLAccount | None],
        errors: list[ValidationError],
        lock_original: bool,
    ) -> JournalEntry | None:
        original_id = coerce_uuid(draft.source_document_id) if draft.source_document_id else None
        if original_id is None:
            errors.append(
                ValidationError(
                    code="REVERSAL_SOURCE_MISSING",
                    message="A reversal must reference the original entry id",
                    field="source_document_id",
                )
            )
            return None

        original = self._load_entry(original_id, for_update=lock_original)
        if original is None:
            errors.append(
                ValidationError(
                    code="REVERSAL_SOURCE_NOT_FOUND",
                    message=f"Original entry {original_id} does not exist",
                    field="source_document_id",
                )
            )
            return None

        status = JournalEntryStatus(original.status)
        already_reversed = status == JournalEntryStatus.REVERSED or (
            JournalSelector(self.session).find_reversal_of(original.id) is not None
        )
        if already_reversed:
            errors.append(
                ValidationError(
                    code="REVERSAL_SOURCE_ALREADY_REVERSED",
                    message=f"Entry {original.entry_number} is already reversed",
                    field="source_document_id",
                )
            )
        elif status != JournalEntryStatus.POSTED:
            errors.append(
                ValidationError(
                    code="REVERSAL_SOURCE_NOT_POSTED",
                    message=f"Entry {original.entry_number} is {status.value}, not posted",
                    field="source_document_id",
                )
            )

        original_lines = sorted(original.lines, key=lambda x: x.line_number)
        if len(original_lines) != len(draft.lines):
            errors.append(
                ValidationError(
                    code="REVERSAL_NOT_MIRROR",
                    message=(
                        f"Reversal has {len(draft.lines)} lines, "
                        f"original has {len(original_lines)}"
                    ),
                    field="lines",
                )
            )
            return original

        for index, (line, account, source) in enumerate(
            zip(draft.lines, accounts, original_lines)
        ):
            mirrored = (
                account is not None
                and account.id == source.gl_account_id
                and _as_decimal(line.debit) == source.credit_amount
                and _as_decimal(line.credit) == source.debit_amount
                and normalize_dimensions(line.dimensions)
                == normalize_dimensions(source.dimensions)
            )
            if not mirrored:
                errors.append(
                    ValidationError(
                        code="REVERSAL_NOT_MIRROR",
                        message=(
                            f"Line {index + 1} does not mirror original line "
                            f"{source.line_number}"
                        ),
                        field=f"lines[{index}]",
                    )
                )
        return original

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _load_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry | None:
        query = select(JournalEntry).where(JournalEntry.id == entry_id)
        if for_update:
            query = query.with_for_update(of=JournalEntry).execution_options(
                populate_existing=True
            )
        return self.session.execute(query).scalar_one_or_none()

    def _require_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        entry = self._load_entry(entry_id, for_update=for_update)
        if entry is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry

    def _next_entry_number(self, entry_date: date, period: BudgetPeriod | None) -> str:
        fiscal_year = period.fiscal_year if period is not None else entry_date.year
        scope = f"{self.policy.journal_entry_prefix}-{fiscal_year}"
        sequence = SequenceService(self.session)
        while True:
            number = sequence.next_number(scope)
            # Skip numbers a caller already claimed explicitly
            taken = self.session.execute(
                select(JournalEntry.id).where(JournalEntry.entry_number == number)
            ).first()
            if not taken:
                return number

    def _build_entry(
        self,
        draft: JournalEntryDraft,
        checked: _Checked,
        status: JournalEntryStatus,
        entry_number: str,
        actor_id: UUID,
    ) -> JournalEntry:
        entry = JournalEntry(
            entry_number=entry_number,
            entry_date=draft.entry_date,
            entry_type=checked.entry_type.value,
            status=status.value,
            source_type=checked.source_type.value if checked.source_type else None,
            source_document_id=draft.source_document_id,
            source_document_number=draft.source_document_number,
            description=draft.description,
            budget_period_id=draft.budget_period_id,
            notes=draft.notes,
            created_by_id=actor_id,
        )
        for number, (line, account) in enumerate(
            zip(draft.lines, checked.accounts), start=1
        ):
            entry.lines.append(
                JournalLine(
                    line_number=number,
                    gl_account_id=account.id,
                    account=account,
                    debit_amount=_as_decimal(line.debit),
                    credit_amount=_as_decimal(line.credit),
                    description=line.description,
                    dimensions=normalize_dimensions(line.dimensions),
                    notes=line.notes,
                    created_by_id=actor_id,
                )
            )
        return entry

    def _mark_posted(
        self,
        entry: JournalEntry,
        checked: _Checked,
        actor_id: UUID,
    ) -> None:
        now = self.clock.now()
        entry.status = JournalEntryStatus.POSTED.value
        entry.posted_at = now
        entry.posted_by_id = actor_id
        if checked.original is not None:
            entry.reversal_of_id = checked.original.id
            checked.original.status = JournalEntryStatus.REVERSED.value
            checked.original.reversed_at = now
            checked.original.updated_by_id = actor_id

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post(self, draft: JournalEntryDraft, actor_id: UUID) -> JournalEntryInfo:
        """
        Validate and persist a draft as a POSTED entry.

        Preconditions:
            - Caller is inside a transaction; the entry becomes durable when
              the caller commits.

        Postconditions:
            - Entry and all lines are flushed as one unit, status POSTED,
              entry_number assigned when blank.
            - For a REVERSAL, the original is REVERSED in the same unit.

        Raises:
            JournalValidationError: Draft rejected; nothing written.
        """
        checked = self._check(draft, lock_original=True)
        if not checked.result.is_valid:
            raise JournalValidationError(checked.result.errors)

        with self.session.begin_nested():
            entry_number = draft.entry_number or self._next_entry_number(
                draft.entry_date, checked.period
            )
            entry = self._build_entry(
                draft, checked, JournalEntryStatus.POSTED, entry_number, actor_id
            )
            self._mark_posted(entry, checked, actor_id)
            self.session.add(entry)
            self.session.flush()

        self._log_posted(entry, checked)
        return JournalEntryInfo.from_model(entry)

    def _log_posted(self, entry: JournalEntry, checked: _Checked) -> None:
        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "entry_type": EntryType(entry.entry_type).value,
                "entry_date": entry.entry_date,
                "line_count": len(entry.lines),
                "total_debits": entry.total_debits,
            },
        )
        if checked.original is not None:
            logger.info(
                "journal_entry_reversed",
                extra={
                    "entry_id": str(checked.original.id),
                    "entry_number": checked.original.entry_number,
                    "reversal_entry_id": str(entry.id),
                    "reversal_entry_number": entry.entry_number,
                },
            )

    def reverse(
        self,
        entry_id: UUID,
        reason: str,
        actor_id: UUID,
        reversal_date: date | None = None,
    ) -> JournalEntryInfo:
        """
        Reverse a POSTED entry with its exact debit/credit mirror.

        The original row stays locked until the caller's transaction ends,
        so two concurrent reversals cannot both succeed.

        Args:
            reversal_date: Date of the reversal entry; defaults to today.
                The original's budget period is carried over only when this
                date falls inside it.

        Raises:
            JournalEntryNotFoundError: Unknown entry.
            EntryAlreadyReversedError: Entry is already REVERSED.
            EntryNotPostedError: Entry is still a DRAFT.
            JournalValidationError: The mirror cannot be posted (e.g. an
                account was deactivated since).
        """
        original = self._require_entry(entry_id, for_update=True)
        status = JournalEntryStatus(original.status)
        if status == JournalEntryStatus.REVERSED:
            raise EntryAlreadyReversedError(str(original.id))
        if status != JournalEntryStatus.POSTED:
            raise EntryNotPostedError(str(original.id), status.value)

        reversal_date = reversal_date or self.clock.today()

        budget_period_id = None
        if original.budget_period_id is not None:
            period = self.session.get(BudgetPeriod, original.budget_period_id)
            if period is not None and period.contains_date(reversal_date):
                budget_period_id = period.id

        draft = JournalEntryDraft(
            entry_date=reversal_date,
            entry_type=EntryType.REVERSAL.value,
            description=f"Reversal of {original.entry_number}: {reason}",
            source_type=SourceType.JOURNAL_ENTRY.value,
            source_document_id=str(original.id),
            source_document_number=original.entry_number,
            budget_period_id=budget_period_id,
            lines=tuple(
                JournalLineDraft(
                    account_ref=line.gl_account_id,
                    debit=line.credit_amount,
                    credit=line.debit_amount,
                    description=_reversal_line_description(line, original.entry_number),
                    dimensions=line.dimensions,
                )
                for line in sorted(original.lines, key=lambda x: x.line_number)
            ),
        )
        return self.post(draft, actor_id)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def save_draft(self, draft: JournalEntryDraft, actor_id: UUID) -> JournalEntryInfo:
        """
        Persist a draft that passes validation, without posting it.

        Raises:
            JournalValidationError: Draft rejected; nothing written.
        """
        checked = self._check(draft)
        if not checked.result.is_valid:
            raise JournalValidationError(checked.result.errors)

        entry_number = draft.entry_number or f"{DRAFT_NUMBER_PREFIX}{uuid4().hex[:12].upper()}"
        with self.session.begin_nested():
            entry = self._build_entry(
                draft, checked, JournalEntryStatus.DRAFT, entry_number, actor_id
            )
            self.session.add(entry)
            self.session.flush()

        logger.info(
            "journal_draft_saved",
            extra={"entry_id": str(entry.id), "entry_number": entry.entry_number},
        )
        return JournalEntryInfo.from_model(entry)

    def _draft_of(self, entry: JournalEntry) -> JournalEntryDraft:
        return JournalEntryDraft(
            entry_date=entry.entry_date,
            entry_type=EntryType(entry.entry_type).value,
            description=entry.description,
            entry_number=entry.entry_number,
            source_type=entry.source_type,
            source_document_id=entry.source_document_id,
            source_document_number=entry.source_document_number,
            budget_period_id=entry.budget_period_id,
            notes=entry.notes,
            lines=tuple(
                JournalLineDraft(
                    account_ref=line.gl_account_id,
                    debit=line.debit_amount,
                    credit=line.credit_amount,
                    description=line.description,
                    dimensions=line.dimensions,
                    notes=line.notes,
                )
                for line in sorted(entry.lines, key=lambda x: x.line_number)
            ),
        )

    def post_draft(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """
        Re-validate a saved draft against current rules and post it.

        Raises:
            JournalEntryNotFoundError: Unknown entry.
            EntryNotDraftError: Entry already posted or reversed.
            JournalValidationError: Draft no longer valid; it stays a draft.
        """
        entry = self._require_entry(entry_id, for_update=True)
        status = JournalEntryStatus(entry.status)
        if status != JournalEntryStatus.DRAFT:
            raise EntryNotDraftError(str(entry.id), status.value, "post")

        checked = self._check(
            self._draft_of(entry), existing_entry_id=entry.id, lock_original=True
        )
        if not checked.result.is_valid:
            raise JournalValidationError(checked.result.errors)

        with self.session.begin_nested():
            if entry.entry_number.startswith(DRAFT_NUMBER_PREFIX):
                entry.entry_number = self._next_entry_number(entry.entry_date, checked.period)
            entry.updated_by_id = actor_id
            self._mark_posted(entry, checked, actor_id)
            self.session.flush()

        self._log_posted(entry, checked)
        return JournalEntryInfo.from_model(entry)

    def delete_draft(self, entry_id: UUID) -> None:
        """
        Raises:
            JournalEntryNotFoundError: Unknown entry.
            EntryNotDraftError: Only drafts may be deleted.
        """
        entry = self._require_entry(entry_id, for_update=True)
        status = JournalEntryStatus(entry.status)
        if status != JournalEntryStatus.DRAFT:
            raise EntryNotDraftError(str(entry.id), status.value, "delete")
        number = entry.entry_number
        self.session.delete(entry)
        self.session.flush()
        logger.info("journal_draft_deleted", extra={"entry_id": str(entry_id), "entry_number": number})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo:
        """
        Raises:
            JournalEntryNotFoundError: Unknown entry.
        """
        entry = JournalSelector(self.session).get_entry(entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry
