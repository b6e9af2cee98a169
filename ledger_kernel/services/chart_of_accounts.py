"""
ChartOfAccounts -- the GL account tree and its posting rules.

Responsibility:
    Resolves accounts by id or code, answers "may a line post here" and
    "which dimensions must a line here carry", walks the hierarchy, and
    owns every mutation of an account's flags and parent.

Architecture position:
    Kernel > Services.  Consulted by JournalEngine during validation and by
    BudgetRegistry when creating budget lines.

Invariants enforced:
    - The parent graph is a tree: no self-parenting, no cycles.  Ancestors
      are found by repeated id lookup, so a corrupt cycle is detected and
      reported instead of looping forever.
    - Summary accounts (allow_direct_posting = False) are never postable.
    - Posting rules of an account with ledger lines are only loosened with
      an explicit ``force=True``.

Failure modes:
    - AccountNotFoundError for unknown ids/codes.
    - DuplicateCodeError, AccountHierarchyError on bad input.
    - AccountReferencedError when a rule change is blocked by posted lines.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dimensions import DimensionKind
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.domain.specs import AccountSpec
from ledger_kernel.exceptions import (
    AccountHierarchyError,
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateCodeError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import (
    AccountType,
    GLAccount,
    NormalBalance,
    default_normal_balance,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService, coerce_enum, coerce_uuid

logger = get_logger("services.chart_of_accounts")

# Account flag -> dimension it makes mandatory
_REQUIRED_DIMENSION_FLAGS = (
    ("require_department", DimensionKind.DEPARTMENT),
    ("require_cost_center", DimensionKind.COST_CENTER),
    ("require_business_object", DimensionKind.BUSINESS_OBJECT),
)


class ChartOfAccounts(BaseService):
    """
    Contract:
        Mutations flush within the caller's transaction.  Reads return
        AccountInfo DTOs except ``resolve_account``/``find_account``, which
        hand ORM rows to sibling services.
    """

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_account(self, ref: UUID | str) -> GLAccount | None:
        """Look up by primary key when ``ref`` is a UUID, else by code."""
        account_id = coerce_uuid(ref)
        if account_id is not None:
            account = self.session.get(GLAccount, account_id)
            if account is not None:
                return account
        return self.session.execute(
            select(GLAccount).where(GLAccount.code == str(ref))
        ).scalar_one_or_none()

    def resolve_account(self, ref: UUID | str) -> GLAccount:
        """
        Raises:
            AccountNotFoundError: No account with that id or code.
        """
        account = self.find_account(ref)
        if account is None:
            raise AccountNotFoundError(str(ref))
        return account

    def get_account(self, ref: UUID | str) -> AccountInfo:
        return AccountInfo.from_model(self.resolve_account(ref))

    def list_accounts(self, active_only: bool = False) -> tuple[AccountInfo, ...]:
        query = select(GLAccount).order_by(GLAccount.sort_order, GLAccount.code)
        if active_only:
            query = query.where(GLAccount.is_active.is_(True))
        return tuple(
            AccountInfo.from_model(a) for a in self.session.execute(query).scalars()
        )

    def children(self, ref: UUID | str) -> tuple[AccountInfo, ...]:
        parent = self.resolve_account(ref)
        rows = self.session.execute(
            select(GLAccount)
            .where(GLAccount.parent_id == parent.id)
            .order_by(GLAccount.sort_order, GLAccount.code)
        ).scalars()
        return tuple(AccountInfo.from_model(a) for a in rows)

    # ------------------------------------------------------------------
    # Posting rules
    # ------------------------------------------------------------------

    @staticmethod
    def is_postable(account: GLAccount | AccountInfo) -> bool:
        return bool(account.allow_direct_posting and account.is_active)

    @staticmethod
    def required_dimensions(account: GLAccount | AccountInfo) -> frozenset[DimensionKind]:
        return frozenset(
            kind for flag, kind in _REQUIRED_DIMENSION_FLAGS if getattr(account, flag)
        )

    def has_posted_lines(self, account_id: UUID) -> bool:
        return JournalSelector(self.session).account_has_ledger_lines(account_id)

    def update_posting_rules(
        self,
        ref: UUID | str,
        actor_id: UUID,
        *,
        allow_direct_posting: bool | None = None,
        require_department: bool | None = None,
        require_cost_center: bool | None = None,
        require_business_object: bool | None = None,
        force: bool = False,
    ) -> AccountInfo:
        """
        Change an account's posting flags.  ``None`` leaves a flag as is.

        Raises:
            AccountReferencedError: Turning off direct posting on an account
                that already carries ledger lines, without ``force``.
        """
        account = self.resolve_account(ref)

        disabling = allow_direct_posting is False and account.allow_direct_posting
        if disabling and not force and self.has_posted_lines(account.id):
            logger.warning(
                "posting_rule_change_blocked",
                extra={"account_code": account.code},
            )
            raise AccountReferencedError(
                str(account.id),
                reason="cannot disable direct posting on an account with posted lines",
            )

        changes = {
            "allow_direct_posting": allow_direct_posting,
            "require_department": require_department,
            "require_cost_center": require_cost_center,
            "require_business_object": require_business_object,
        }
        for field, value in changes.items():
            if value is not None:
                setattr(account, field, value)
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "posting_rules_updated",
            extra={
                "account_code": account.code,
                "forced": force,
                **{k: v for k, v in changes.items() if v is not None},
            },
        )
        return AccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def ancestors(self, ref: UUID | str) -> list[AccountInfo]:
        """
        The account itself followed by each parent up to the root.

        Raises:
            AccountHierarchyError: The stored parent chain loops.
        """
        account = self.resolve_account(ref)
        chain: list[AccountInfo] = []
        seen: set[UUID] = set()
        current: GLAccount | None = account
        while current is not None:
            if current.id in seen:
                raise AccountHierarchyError(account.code, "parent chain contains a cycle")
            seen.add(current.id)
            chain.append(AccountInfo.from_model(current))
            if current.parent_id is None:
                break
            current = self.session.get(GLAccount, current.parent_id)
        return chain

    def set_parent(
        self,
        ref: UUID | str,
        parent_ref: UUID | str | None,
        actor_id: UUID,
    ) -> AccountInfo:
        account = self.resolve_account(ref)
        if parent_ref is None:
            account.parent_id = None
        else:
            parent = self.resolve_account(parent_ref)
            if parent.id == account.id:
                raise AccountHierarchyError(account.code, "account cannot be its own parent")
            if any(a.id == account.id for a in self.ancestors(parent.id)):
                raise AccountHierarchyError(
                    account.code, f"{parent.code} is a descendant of {account.code}"
                )
            account.parent_id = parent.id
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_parent_changed",
            extra={"account_code": account.code, "parent_id": account.parent_id},
        )
        return AccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_account(self, spec: AccountSpec, actor_id: UUID) -> AccountInfo:
        """
        Create a GL account.

        ``normal_balance`` defaults from the account type (assets and
        expenses are debit-normal).

        Raises:
            DuplicateCodeError: Code already used.
            AccountNotFoundError: ``parent_ref`` unknown.
            LedgerValidationError: Unknown account type or normal balance.
        """
        account_type = coerce_enum(AccountType, spec.account_type, "account type")
        normal_balance = (
            coerce_enum(NormalBalance, spec.normal_balance, "normal balance")
            if spec.normal_balance
            else default_normal_balance(account_type)
        )

        if self.session.execute(
            select(GLAccount.id).where(GLAccount.code == spec.code)
        ).first():
            raise DuplicateCodeError("GLAccount", spec.code)

        parent_id = None
        if spec.parent_ref is not None:
            parent_id = self.resolve_account(spec.parent_ref).id

        account = GLAccount(
            code=spec.code,
            name=spec.name,
            description=spec.description,
            account_type=account_type.value,
            account_category=spec.account_category,
            parent_id=parent_id,
            normal_balance=normal_balance.value,
            allow_direct_posting=spec.allow_direct_posting,
            require_department=spec.require_department,
            require_cost_center=spec.require_cost_center,
            require_business_object=spec.require_business_object,
            sort_order=spec.sort_order,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_code": account.code,
                "account_type": account_type.value,
                "normal_balance": normal_balance.value,
            },
        )
        return AccountInfo.from_model(account)

    def deactivate_account(self, ref: UUID | str, actor_id: UUID) -> AccountInfo:
        """Soft-deactivate; the row and its history stay in place."""
        account = self.resolve_account(ref)
        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_deactivated", extra={"account_code": account.code})
        return AccountInfo.from_model(account)
