"""
Budget variance -- pure comparison of budgeted amounts against actuals.

Responsibility:
    Budget-type/account-type compatibility rules, signing of raw debit and
    credit totals by normal balance, and assembly of the VarianceReport.
    BudgetRegistry supplies the numbers; nothing here touches the database.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - variance = actual - budgeted, exact Decimal arithmetic.
    - variance_percentage is quantized to 4 places ROUND_HALF_UP and is None
      when nothing was budgeted.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

PERCENT_QUANTUM = Decimal("0.0001")

ALL_ACCOUNT_TYPES = frozenset(
    {"asset", "liability", "equity", "revenue", "expense", "cost_of_sales"}
)

# budget_type -> account types its lines may reference
BUDGET_ACCOUNT_TYPES: dict[str, frozenset[str]] = {
    "revenue": frozenset({"revenue"}),
    "expense": frozenset({"expense", "cost_of_sales"}),
    "capital": frozenset({"asset"}),
    "cash_flow": frozenset({"asset", "liability", "equity"}),
    "comprehensive": ALL_ACCOUNT_TYPES,
}


def _plain(value) -> str:
    return getattr(value, "value", value)


def is_account_type_allowed(budget_type, account_type) -> bool:
    allowed = BUDGET_ACCOUNT_TYPES.get(_plain(budget_type), frozenset())
    return _plain(account_type) in allowed


class VarianceType(str, Enum):
    FAVORABLE = "favorable"
    UNFAVORABLE = "unfavorable"
    NEUTRAL = "neutral"


def signed_actual(normal_balance, debits: Decimal, credits: Decimal) -> Decimal:
    """Net movement with the account's increase side positive."""
    if _plain(normal_balance) == "debit":
        return debits - credits
    return credits - debits


def variance_percentage(budgeted: Decimal, variance: Decimal) -> Decimal | None:
    if budgeted == 0:
        return None
    return (variance / budgeted * 100).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def classify_variance(account_type, variance: Decimal) -> VarianceType:
    """
    Revenue over budget is good, spending over budget is bad.

    Balance-sheet accounts have no favorable direction.
    """
    if variance == 0:
        return VarianceType.NEUTRAL
    kind = _plain(account_type)
    if kind == "revenue":
        return VarianceType.FAVORABLE if variance > 0 else VarianceType.UNFAVORABLE
    if kind in ("expense", "cost_of_sales"):
        return VarianceType.FAVORABLE if variance < 0 else VarianceType.UNFAVORABLE
    return VarianceType.NEUTRAL


@dataclass(frozen=True)
class VarianceLine:
    gl_account_id: UUID
    account_code: str
    account_type: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal
    variance_percentage: Decimal | None
    variance_type: VarianceType

    @classmethod
    def compute(
        cls,
        gl_account_id: UUID,
        account_code: str,
        account_type,
        budgeted: Decimal,
        actual: Decimal,
    ) -> "VarianceLine":
        variance = actual - budgeted
        return cls(
            gl_account_id=gl_account_id,
            account_code=account_code,
            account_type=_plain(account_type),
            budgeted=budgeted,
            actual=actual,
            variance=variance,
            variance_percentage=variance_percentage(budgeted, variance),
            variance_type=classify_variance(account_type, variance),
        )


@dataclass(frozen=True)
class VarianceReport:
    """
    Budget vs. actual for every line of one budget.

    Contract:
        ``window_start``..``window_end`` is the date range actuals were taken
        from: the budget period clipped at ``as_of_date``.  When
        ``as_of_date`` precedes the period, the window is empty and every
        actual is zero.
    """

    budget_id: UUID
    budget_code: str
    budget_type: str
    period_code: str
    as_of_date: date
    window_start: date
    window_end: date
    lines: tuple[VarianceLine, ...]

    @property
    def total_budgeted(self) -> Decimal:
        return sum((line.budgeted for line in self.lines), Decimal("0"))

    @property
    def total_actual(self) -> Decimal:
        return sum((line.actual for line in self.lines), Decimal("0"))

    @property
    def total_variance(self) -> Decimal:
        return self.total_actual - self.total_budgeted

    @property
    def favorable_count(self) -> int:
        return sum(1 for line in self.lines if line.variance_type == VarianceType.FAVORABLE)

    @property
    def unfavorable_count(self) -> int:
        return sum(
            1 for line in self.lines if line.variance_type == VarianceType.UNFAVORABLE
        )

    @property
    def utilization_percentage(self) -> Decimal | None:
        """Share of the budget consumed so far, as a percentage."""
        if self.total_budgeted == 0:
            return None
        return (self.total_actual / self.total_budgeted * 100).quantize(
            PERCENT_QUANTUM, rounding=ROUND_HALF_UP
        )

    def line_for(self, account_code: str) -> VarianceLine | None:
        for line in self.lines:
            if line.account_code == account_code:
                return line
        return None
