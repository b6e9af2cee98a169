"""
ORM-Level Immutability Enforcement.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Posted ledger data is append-only: it can be reversed by a new entry but never
edited in place.  SQLAlchemy fires mapper events before UPDATE/DELETE reach
the database; the listeners below check those events and raise before any SQL
is sent.

    session.flush()
         |
         v
    [before_flush]   --> account deletions with posted lines -> AccountReferencedError
    [before_update]  --> _check_*_immutability()              -> ImmutabilityViolationError
    [before_delete]  --> _check_*_delete()                    -> ImmutabilityViolationError

Entity              | When Immutable                         | Still mutable
--------------------|----------------------------------------|-----------------------------
JournalEntry        | status POSTED or REVERSED              | POSTED -> REVERSED, reversed_at
JournalLine         | parent POSTED or REVERSED              | nothing
GLAccount           | code/type/normal_balance once posted   | name, flags, parent, is_active
BudgetPeriod        | structural fields once referenced      | name, description, status
CreditTransaction   | status CONFIRMED or CANCELLED          | nothing
                    | customer/type/number/totals always     |
CreditTransactionLine | always (after insert)                | nothing

updated_at / updated_by_id are audit metadata and are never blocked.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to stage forbidden states call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event, inspect, text
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import (
    AccountReferencedError,
    ImmutabilityViolationError,
    PeriodImmutableError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

FINAL_ENTRY_STATUSES = frozenset({"posted", "reversed"})

ACCOUNT_STRUCTURAL_FIELDS = frozenset({"account_type", "normal_balance", "code"})

PERIOD_STRUCTURAL_FIELDS = frozenset(
    {"code", "period_type", "fiscal_year", "start_date", "end_date"}
)

CREDIT_FROZEN_FIELDS = frozenset(
    {
        "transaction_number",
        "seq",
        "customer_id",
        "transaction_type",
        "total_amount",
        "total_items",
    }
)

FINAL_CREDIT_STATUSES = frozenset({"confirmed", "cancelled"})


def _value(status) -> str | None:
    """Status columns load back as plain strings; normalize enums to match."""
    if status is None:
        return None
    return getattr(status, "value", status)


def _previous_value(target, field: str):
    """Value of ``field`` as last flushed (before this unit of work)."""
    history = get_history(target, field)
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return getattr(target, field)


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in AUDIT_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, entity_id, operation: str, reason: str, **extra) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


# =============================================================================
# Journal entries and lines
# =============================================================================


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Block edits to an entry that was already POSTED or REVERSED.

    The posting workflow itself sets DRAFT -> POSTED, which is allowed because
    the previous status is DRAFT.  Marking an entry REVERSED is the only
    change accepted afterwards.
    """
    old_status = _value(_previous_value(target, "status"))
    if old_status not in FINAL_ENTRY_STATUSES:
        return

    new_status = _value(target.status)
    for field in _changed_fields(target):
        if field == "reversed_at" and old_status == "posted":
            continue
        if field == "status" and old_status == "posted" and new_status == "reversed":
            continue
        _block(
            "JournalEntry",
            target.id,
            "UPDATE",
            f"Cannot modify field '{field}' on {old_status} journal entry",
            field=field,
        )


def _check_journal_entry_delete(mapper, connection, target):
    old_status = _value(_previous_value(target, "status"))
    if old_status in FINAL_ENTRY_STATUSES:
        _block(
            "JournalEntry",
            target.id,
            "DELETE",
            f"{old_status.capitalize()} journal entries cannot be deleted",
        )


def _parent_is_final(connection, target) -> bool:
    result = connection.execute(
        text("SELECT status FROM journal_entries WHERE id = :entry_id"),
        {"entry_id": str(target.journal_entry_id)},
    )
    status = result.scalar()
    return status in FINAL_ENTRY_STATUSES


def _check_journal_line_immutability(mapper, connection, target):
    if _parent_is_final(connection, target):
        _block(
            "JournalLine",
            target.id,
            "UPDATE",
            "Journal lines cannot be modified after the entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    if _parent_is_final(connection, target):
        _block(
            "JournalLine",
            target.id,
            "DELETE",
            "Journal lines cannot be deleted after the entry is posted",
        )


# =============================================================================
# GL accounts
# =============================================================================


def _account_has_posted_references(connection, account_id: str) -> bool:
    """True if the account or any descendant carries posted/reversed lines."""
    result = connection.execute(
        text("""
            WITH RECURSIVE account_tree AS (
                SELECT id FROM gl_accounts WHERE id = :account_id
                UNION ALL
                SELECT a.id
                FROM gl_accounts a
                JOIN account_tree t ON a.parent_id = t.id
            )
            SELECT EXISTS (
                SELECT 1 FROM journal_lines jl
                JOIN journal_entries je ON jl.journal_entry_id = je.id
                WHERE jl.gl_account_id IN (SELECT id FROM account_tree)
                AND je.status IN ('posted', 'reversed')
            )
        """),
        {"account_id": account_id},
    )
    return bool(result.scalar())


def _check_account_structural_immutability(mapper, connection, target):
    changed = [
        field
        for field in sorted(ACCOUNT_STRUCTURAL_FIELDS)
        if get_history(target, field).has_changes()
    ]
    if not changed:
        return
    if _account_has_posted_references(connection, str(target.id)):
        _block(
            "GLAccount",
            target.id,
            "UPDATE",
            f"Cannot change {', '.join(changed)} on an account with posted lines",
            fields=changed,
        )


def _check_account_deletion_before_flush(session, flush_context, instances):
    """
    Refuse to delete accounts referenced by posted lines.

    Runs in before_flush: mapper-level delete events fire after the flush
    plan is fixed, too late to veto cleanly.
    """
    from ledger_kernel.models.account import GLAccount

    for obj in list(session.deleted):
        if not isinstance(obj, GLAccount):
            continue
        with session.no_autoflush:
            referenced = _account_has_posted_references(
                session.connection(), str(obj.id)
            )
        if referenced:
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "GLAccount",
                    "entity_id": str(obj.id),
                    "operation": "DELETE",
                    "reason": "account_has_posted_references",
                },
            )
            raise AccountReferencedError(account_id=str(obj.id))


# =============================================================================
# Budget periods
# =============================================================================


def _period_is_referenced(connection, period_id: str) -> bool:
    result = connection.execute(
        text("""
            SELECT EXISTS (SELECT 1 FROM budgets WHERE budget_period_id = :period_id)
                OR EXISTS (
                    SELECT 1 FROM journal_entries WHERE budget_period_id = :period_id
                )
        """),
        {"period_id": period_id},
    )
    return bool(result.scalar())


def _check_budget_period_immutability(mapper, connection, target):
    changed = [
        field
        for field in sorted(PERIOD_STRUCTURAL_FIELDS)
        if get_history(target, field).has_changes()
    ]
    if not changed:
        return
    if _period_is_referenced(connection, str(target.id)):
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": "BudgetPeriod",
                "entity_id": str(target.id),
                "operation": "UPDATE",
                "fields": changed,
            },
        )
        raise PeriodImmutableError(
            period_code=_previous_value(target, "code"),
            field=changed[0],
        )


# =============================================================================
# Credit transactions
# =============================================================================


def _check_credit_transaction_immutability(mapper, connection, target):
    old_status = _value(_previous_value(target, "status"))
    changed = _changed_fields(target)

    if old_status in FINAL_CREDIT_STATUSES and changed:
        _block(
            "CreditTransaction",
            target.id,
            "UPDATE",
            f"Cannot modify a {old_status} credit transaction",
            fields=changed,
        )

    frozen = [field for field in changed if field in CREDIT_FROZEN_FIELDS]
    if frozen:
        _block(
            "CreditTransaction",
            target.id,
            "UPDATE",
            f"Cannot change {', '.join(sorted(frozen))} on a credit transaction",
            fields=frozen,
        )


def _check_credit_transaction_delete(mapper, connection, target):
    old_status = _value(_previous_value(target, "status"))
    if old_status == "confirmed":
        _block(
            "CreditTransaction",
            target.id,
            "DELETE",
            "Confirmed credit transactions cannot be deleted",
        )


def _check_credit_line_immutability(mapper, connection, target):
    if _changed_fields(target):
        _block(
            "CreditTransactionLine",
            target.id,
            "UPDATE",
            "Credit transaction lines cannot be modified",
        )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from ledger_kernel.models.account import GLAccount
    from ledger_kernel.models.budget import BudgetPeriod
    from ledger_kernel.models.credit import CreditTransaction, CreditTransactionLine
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return [
        (Session, "before_flush", _check_account_deletion_before_flush),
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (GLAccount, "before_update", _check_account_structural_immutability),
        (BudgetPeriod, "before_update", _check_budget_period_immutability),
        (CreditTransaction, "before_update", _check_credit_transaction_immutability),
        (CreditTransaction, "before_delete", _check_credit_transaction_delete),
        (CreditTransactionLine, "before_update", _check_credit_line_immutability),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already attached are not attached twice.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """Remove immutability listeners (tests only)."""
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
