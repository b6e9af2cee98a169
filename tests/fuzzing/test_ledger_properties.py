"""
Property-based tests using Hypothesis.

Boundaries fuzzed here:
- Balanced drafts over postable accounts always validate
- Any imbalance is reported as UNBALANCED_ENTRY and nothing is written
- Amounts with more minor units than the currency allows are rejected
- Credit transaction totals equal the sum of quantity x snapshotted price
- Variance arithmetic: sign, percentage and classification agree
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.specs import CreditLineSpec, JournalEntryDraft, JournalLineDraft
from ledger_kernel.domain.variance import VarianceLine, VarianceType
from ledger_kernel.exceptions import JournalValidationError

FIXTURE_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture, HealthCheck.too_slow],
)

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("999999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

postable_pairs = st.sampled_from(
    [("1100", "4000"), ("1200", "4000"), ("1100", "2000"), ("2000", "1200")]
)


def _draft(lines):
    return JournalEntryDraft(entry_date=date(2024, 1, 15), lines=tuple(lines))


class TestJournalValidationProperties:

    @FIXTURE_SETTINGS
    @given(pair_amounts=st.lists(st.tuples(postable_pairs, amounts), min_size=1, max_size=20))
    def test_balanced_drafts_validate(self, journal_engine, standard_accounts, pair_amounts):
        lines = []
        for (debit_code, credit_code), amount in pair_amounts:
            lines.append(JournalLineDraft(debit_code, debit=amount))
            lines.append(JournalLineDraft(credit_code, credit=amount))

        result = journal_engine.validate(_draft(lines))

        assert result.is_valid, result.codes

    @FIXTURE_SETTINGS
    @given(debit=amounts, credit=amounts)
    def test_imbalance_reported(self, journal_engine, standard_accounts, debit, credit):
        assume(debit != credit)
        result = journal_engine.validate(
            _draft([JournalLineDraft("1100", debit=debit), JournalLineDraft("4000", credit=credit)])
        )
        assert result.codes == ("UNBALANCED_ENTRY",)

    @FIXTURE_SETTINGS
    @given(
        cents=st.integers(min_value=1, max_value=10**9),
        extra=st.integers(min_value=1, max_value=9),
    )
    def test_excess_precision_rejected(self, journal_engine, standard_accounts, cents, extra):
        amount = Decimal(cents) / 100 + Decimal(extra) / 1000
        result = journal_engine.validate(
            _draft([JournalLineDraft("1100", debit=amount), JournalLineDraft("4000", credit=amount)])
        )
        assert "AMOUNT_PRECISION" in result.codes

    @FIXTURE_SETTINGS
    @given(debit=amounts, credit=amounts)
    def test_rejected_post_writes_nothing(
        self, journal_engine, journal_selector, standard_accounts, test_actor_id, debit, credit
    ):
        assume(debit != credit)
        draft = _draft(
            [JournalLineDraft("1100", debit=debit), JournalLineDraft("4000", credit=credit)]
        )
        with pytest.raises(JournalValidationError):
            journal_engine.post(draft, test_actor_id)
        assert journal_selector.list_by_status("posted") == ()


class TestCreditTotalsProperties:

    @FIXTURE_SETTINGS
    @given(
        quantities=st.lists(
            st.tuples(st.sampled_from(["PROD-001", "PROD-002"]), st.integers(1, 1000)),
            min_size=1,
            max_size=10,
        )
    )
    def test_total_is_sum_of_lines(
        self, credit_ledger, test_customer, test_products, test_actor_id, quantities
    ):
        transaction = credit_ledger.create_pickup(
            "TEST001",
            [CreditLineSpec(code, qty) for code, qty in quantities],
            performed_by="Jane Driver",
            performed_by_role="customer",
            actor_id=test_actor_id,
        )
        prices = {code: product.unit_price for code, product in test_products.items()}

        expected = sum(prices[code] * qty for code, qty in quantities)
        assert Decimal(transaction.total_amount) == expected
        assert transaction.total_items == sum(qty for _, qty in quantities)
        assert sum(Decimal(line.line_total) for line in transaction.lines) == expected


class TestVarianceProperties:

    @given(budgeted=amounts, actual=amounts)
    def test_variance_is_actual_minus_budget(self, budgeted, actual):
        line = VarianceLine.compute(uuid4(), "4000", "revenue", budgeted, actual)
        assert line.variance == actual - budgeted
        assert line.variance_percentage is not None

    @given(budgeted=amounts, actual=amounts)
    def test_revenue_and_expense_are_opposites(self, budgeted, actual):
        assume(budgeted != actual)
        revenue = VarianceLine.compute(uuid4(), "4000", "revenue", budgeted, actual)
        expense = VarianceLine.compute(uuid4(), "6100", "expense", budgeted, actual)
        assert {revenue.variance_type, expense.variance_type} == {
            VarianceType.FAVORABLE,
            VarianceType.UNFAVORABLE,
        }

    @given(amount=amounts)
    def test_on_budget_is_neutral(self, amount):
        line = VarianceLine.compute(uuid4(), "6100", "expense", amount, amount)
        assert line.variance_type == VarianceType.NEUTRAL
        assert line.variance_percentage == Decimal("0.0000")
