"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to tell "unknown customer" from "unbalanced entry" from
"lost a race on the customer balance" without parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception has a KIND attribute naming its error family
  4. Exceptions carry structured DATA (not just a message string)

Inside the kernel, services raise these exceptions.  At the public boundary
(services/ledger_operations.py) they are converted into typed
``OperationResult`` values, so expected business outcomes such as
"not found" never escape as exceptions.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- NotFoundError                       kind = "not_found"
    |   +-- AccountNotFoundError
    |   +-- BudgetPeriodNotFoundError
    |   +-- BudgetNotFoundError
    |   +-- JournalEntryNotFoundError
    |   +-- CustomerNotFoundError
    |   +-- ProductNotFoundError
    |   +-- CreditTransactionNotFoundError
    |
    +-- LedgerValidationError               kind = "validation"
    |   +-- JournalValidationError
    |   +-- BudgetValidationError
    |   +-- PeriodOverlapError
    |   +-- DuplicateCodeError
    |   +-- AccountHierarchyError
    |   +-- InvalidQuantityError
    |   +-- InactiveReferenceError
    |   +-- NegativeBalanceError
    |
    +-- InvalidStateError                   kind = "invalid_state"
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |   +-- EntryNotDraftError
    |   +-- TransactionNotPendingError
    |   +-- BudgetStatusError
    |   +-- PeriodStatusError
    |   +-- AccountReferencedError
    |   +-- PeriodImmutableError
    |   +-- ImmutabilityViolationError
    |
    +-- ConflictError                       kind = "conflict"
    |   +-- BalanceConflictError
    |
    +-- ConfigurationError                  kind = "internal"

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
not_found       | ACCOUNT_NOT_FOUND           | GL account id/code unknown
                | BUDGET_PERIOD_NOT_FOUND     | Budget period id unknown
                | BUDGET_NOT_FOUND            | Budget id unknown
                | JOURNAL_ENTRY_NOT_FOUND     | Journal entry id unknown
                | CUSTOMER_NOT_FOUND          | Customer id/code unknown
                | PRODUCT_NOT_FOUND           | Product id/code unknown
                | CREDIT_TRANSACTION_NOT_FOUND| Credit transaction id/number unknown
----------------|-----------------------------|-----------------------------------------
validation      | JOURNAL_VALIDATION_FAILED   | Draft failed JournalEngine.validate
                | BUDGET_VALIDATION_FAILED    | Malformed budget
                | PERIOD_OVERLAP              | Same-type period overlaps in fiscal year
                | DUPLICATE_CODE              | Code already used
                | ACCOUNT_HIERARCHY_INVALID   | Parent cycle / missing parent
                | INVALID_QUANTITY            | Quantity <= 0
                | INACTIVE_REFERENCE          | Inactive customer/product/account
                | NEGATIVE_BALANCE            | Return would drive balance below zero
----------------|-----------------------------|-----------------------------------------
invalid_state   | ENTRY_NOT_POSTED            | Reversing a non-posted entry
                | ENTRY_ALREADY_REVERSED      | Reversing twice
                | ENTRY_NOT_DRAFT             | Draft-only operation on posted entry
                | TRANSACTION_NOT_PENDING     | Confirm/cancel outside PENDING
                | BUDGET_STATUS_INVALID       | Budget workflow step from wrong status
                | PERIOD_STATUS_INVALID       | Period lifecycle step from wrong status
                | ACCOUNT_REFERENCED          | Account change blocked by posted lines
                | PERIOD_IMMUTABLE            | Structural change to referenced period
                | IMMUTABILITY_VIOLATION      | Modifying an immutable record
----------------|-----------------------------|-----------------------------------------
conflict        | BALANCE_CONFLICT            | Balance update lost every retry
"""

from typing import Any


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification and a ``kind`` naming the error family.
    """

    code: str = "LEDGER_KERNEL_ERROR"
    kind: str = "internal"


# Not-found errors


class NotFoundError(LedgerKernelError):
    """Base exception for unknown ids or codes."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"

    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} not found: {key}")


class AccountNotFoundError(NotFoundError):
    """GL account with given id or code was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        super().__init__("GLAccount", account_ref)


class BudgetPeriodNotFoundError(NotFoundError):
    code: str = "BUDGET_PERIOD_NOT_FOUND"

    def __init__(self, period_ref: str):
        super().__init__("BudgetPeriod", period_ref)


class BudgetNotFoundError(NotFoundError):
    code: str = "BUDGET_NOT_FOUND"

    def __init__(self, budget_ref: str):
        super().__init__("Budget", budget_ref)


class JournalEntryNotFoundError(NotFoundError):
    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_ref: str):
        super().__init__("JournalEntry", entry_ref)


class CustomerNotFoundError(NotFoundError):
    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_ref: str):
        super().__init__("Customer", customer_ref)


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_ref: str):
        super().__init__("Product", product_ref)


class CreditTransactionNotFoundError(NotFoundError):
    code: str = "CREDIT_TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_ref: str):
        super().__init__("CreditTransaction", transaction_ref)


# Validation errors


class LedgerValidationError(LedgerKernelError):
    """
    Base exception for rejected input.

    ``errors`` holds the individual ``ValidationError`` items (domain DTOs)
    so callers can report every problem at once.
    """

    code: str = "VALIDATION_FAILED"
    kind: str = "validation"

    def __init__(self, message: str, errors: tuple[Any, ...] = ()):
        self.errors = tuple(errors)
        super().__init__(message)


class JournalValidationError(LedgerValidationError):
    """Journal entry draft failed validation; nothing was persisted."""

    code: str = "JOURNAL_VALIDATION_FAILED"

    def __init__(self, errors: tuple[Any, ...]):
        summary = "; ".join(f"{e.code}: {e.message}" for e in errors)
        super().__init__(f"Journal entry rejected: {summary}", errors)


class BudgetValidationError(LedgerValidationError):
    code: str = "BUDGET_VALIDATION_FAILED"

    def __init__(self, errors: tuple[Any, ...]):
        summary = "; ".join(f"{e.code}: {e.message}" for e in errors)
        super().__init__(f"Budget rejected: {summary}", errors)


class PeriodOverlapError(LedgerValidationError):
    """New budget period overlaps a period of the same type and fiscal year."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        new_period_code: str,
        existing_period_code: str,
        start_date: str,
        end_date: str,
    ):
        self.new_period_code = new_period_code
        self.existing_period_code = existing_period_code
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Period {new_period_code} ({start_date} to {end_date}) "
            f"overlaps existing period {existing_period_code}"
        )


class DuplicateCodeError(LedgerValidationError):
    code: str = "DUPLICATE_CODE"

    def __init__(self, entity_type: str, entity_code: str):
        self.entity_type = entity_type
        self.entity_code = entity_code
        super().__init__(f"{entity_type} code already exists: {entity_code}")


class AccountHierarchyError(LedgerValidationError):
    """Parent assignment would break the account tree."""

    code: str = "ACCOUNT_HIERARCHY_INVALID"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid hierarchy for account {account_code}: {reason}")


class InvalidQuantityError(LedgerValidationError):
    code: str = "INVALID_QUANTITY"

    def __init__(self, product_ref: str, quantity: Any):
        self.product_ref = product_ref
        self.quantity = quantity
        super().__init__(
            f"Quantity must be positive for product {product_ref}, got {quantity}"
        )


class InactiveReferenceError(LedgerValidationError):
    code: str = "INACTIVE_REFERENCE"

    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} {key} is inactive")


class NegativeBalanceError(LedgerValidationError):
    """Balance adjustment would drive the customer balance below zero."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(self, customer_id: str, current_balance: str, delta: str):
        self.customer_id = customer_id
        self.current_balance = current_balance
        self.delta = delta
        super().__init__(
            f"Adjusting balance of customer {customer_id} by {delta} "
            f"from {current_balance} would make it negative"
        )


# Invalid-state errors


class InvalidStateError(LedgerKernelError):
    """Base exception for transitions attempted from a non-eligible status."""

    code: str = "INVALID_STATE"
    kind: str = "invalid_state"


class EntryNotPostedError(InvalidStateError):
    """Cannot reverse an entry that is not posted."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, journal_entry_id: str, status: str):
        self.journal_entry_id = journal_entry_id
        self.status = status
        super().__init__(
            f"Cannot reverse entry {journal_entry_id}: status is {status}, not posted"
        )


class EntryAlreadyReversedError(InvalidStateError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Entry {journal_entry_id} has already been reversed")


class EntryNotDraftError(InvalidStateError):
    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, journal_entry_id: str, status: str, action: str):
        self.journal_entry_id = journal_entry_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} entry {journal_entry_id}: status is {status}, not draft"
        )


class TransactionNotPendingError(InvalidStateError):
    """Credit transaction is no longer PENDING."""

    code: str = "TRANSACTION_NOT_PENDING"

    def __init__(self, transaction_id: str, status: str, action: str):
        self.transaction_id = transaction_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} transaction {transaction_id}: "
            f"status is {status}, only pending transactions allowed"
        )


class BudgetStatusError(InvalidStateError):
    code: str = "BUDGET_STATUS_INVALID"

    def __init__(self, budget_id: str, status: str, action: str):
        self.budget_id = budget_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} budget {budget_id} in status {status}")


class PeriodStatusError(InvalidStateError):
    code: str = "PERIOD_STATUS_INVALID"

    def __init__(self, period_id: str, status: str, action: str):
        self.period_id = period_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} budget period {period_id} in status {status}")


class AccountReferencedError(InvalidStateError):
    """Account has posted lines and the requested change is not allowed."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, reason: str = "account has posted journal lines"):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Account {account_id} cannot be changed: {reason}")


class PeriodImmutableError(InvalidStateError):
    """Structural change to a budget period that is already referenced."""

    code: str = "PERIOD_IMMUTABLE"

    def __init__(self, period_code: str, field: str):
        self.period_code = period_code
        self.field = field
        super().__init__(
            f"Cannot modify '{field}' on budget period {period_code}: "
            "period is referenced by budgets or journal entries"
        )


class ImmutabilityViolationError(InvalidStateError):
    """
    Attempted to modify or delete an immutable record.

    Posted journal entries and their lines, and confirmed or cancelled
    credit transactions, are immutable.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Conflict errors


class ConflictError(LedgerKernelError):
    """Base exception for lost concurrent-update races."""

    code: str = "CONFLICT"
    kind: str = "conflict"


class BalanceConflictError(ConflictError):
    """Customer balance changed under every retry attempt."""

    code: str = "BALANCE_CONFLICT"

    def __init__(self, customer_id: str, attempts: int):
        self.customer_id = customer_id
        self.attempts = attempts
        super().__init__(
            f"Balance update for customer {customer_id} conflicted "
            f"with concurrent updates {attempts} time(s)"
        )


# Configuration errors


class ConfigurationError(LedgerKernelError):
    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
