"""
Concurrency tests against a real PostgreSQL database.

Each worker thread gets its own session and really commits. Verifies:
- Concurrent confirmations of one credit transaction apply its balance once
- Concurrent balance adjustments never lose an update
- Concurrent reversals of one entry produce exactly one reversal
- Concurrent postings receive unique, gap-free entry numbers
- Concurrent overlapping period creations leave exactly one period

Run with: DATABASE_URL=postgresql://... pytest tests/concurrency -v
Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier

import pytest

from ledger_kernel.domain.results import OperationStatus
from ledger_kernel.domain.specs import BudgetPeriodSpec, CreditLineSpec
from ledger_kernel.exceptions import BalanceConflictError
from ledger_kernel.services.customer_directory import CustomerDirectory
from ledger_kernel.services.ledger_operations import LedgerOperations
from tests.conftest import STANDARD_ACCOUNT_SPECS, make_balanced_draft

pytestmark = [pytest.mark.postgres, pytest.mark.slow_locks]

WORKERS = 8


def _ops(session_factory, policy, clock) -> LedgerOperations:
    return LedgerOperations(session_factory(), policy, clock, auto_commit=True)


def _run_together(worker, count=WORKERS):
    """Start ``count`` workers behind a barrier and return their results."""
    barrier = Barrier(count)

    def gated(index):
        barrier.wait(timeout=10)
        return worker(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(gated, range(count)))


@pytest.fixture
def seeded(pg_session_factory, policy, deterministic_clock, test_actor_id):
    """Committed chart of accounts, one customer and two products."""
    ops = _ops(pg_session_factory, policy, deterministic_clock)
    for spec in STANDARD_ACCOUNT_SPECS:
        assert ops.create_account(spec, test_actor_id).is_success
    ops.create_customer("TEST001", "Test Company Ltd", test_actor_id)
    ops.create_product("PROD-001", "Test Product 1", Decimal("10.00"), test_actor_id)
    ops.create_product("PROD-002", "Test Product 2", Decimal("20.00"), test_actor_id)
    return ops


class TestConcurrentConfirmation:

    def test_balance_applied_once(
        self, seeded, pg_session_factory, policy, deterministic_clock, test_actor_id
    ):
        pickup = seeded.create_pickup(
            "TEST001",
            [CreditLineSpec("PROD-001", 5), CreditLineSpec("PROD-002", 3)],
            "Jane Driver",
            "customer",
            test_actor_id,
        ).value

        def confirm(_):
            ops = _ops(pg_session_factory, policy, deterministic_clock)
            return ops.confirm_transaction(pickup.id, "Test Manager", test_actor_id).status

        statuses = _run_together(confirm)

        assert statuses.count(OperationStatus.SUCCESS) == 1
        assert set(statuses) <= {OperationStatus.SUCCESS, OperationStatus.INVALID_STATE}

        checker = _ops(pg_session_factory, policy, deterministic_clock)
        customer = checker.get_customer("TEST001").value
        assert customer.current_balance == Decimal("110.00")
        assert customer.version == 2


class TestConcurrentBalanceAdjustment:

    def test_no_lost_updates(
        self, seeded, pg_session_factory, policy, deterministic_clock, test_actor_id
    ):
        customer_id = seeded.get_customer("TEST001").value.id

        def adjust(_):
            session = pg_session_factory()
            directory = CustomerDirectory(session, policy, deterministic_clock)
            try:
                directory.adjust_balance(customer_id, Decimal("1.00"), test_actor_id)
            except BalanceConflictError:
                session.rollback()
                return False
            session.commit()
            return True

        landed = sum(_run_together(adjust))

        assert landed >= 1
        customer = _ops(pg_session_factory, policy, deterministic_clock).get_customer(
            "TEST001"
        ).value
        assert customer.current_balance == Decimal(landed)
        assert customer.version == 1 + landed


class TestConcurrentReversal:

    def test_single_reversal(
        self, seeded, pg_session_factory, policy, deterministic_clock, test_actor_id
    ):
        entry = seeded.post_entry(make_balanced_draft(), test_actor_id).value

        def reverse(_):
            ops = _ops(pg_session_factory, policy, deterministic_clock)
            return ops.reverse_entry(entry.id, "duplicate", test_actor_id).status

        statuses = _run_together(reverse)

        assert statuses.count(OperationStatus.SUCCESS) == 1
        checker = _ops(pg_session_factory, policy, deterministic_clock)
        assert len(checker.list_entries_by_status("reversed").value) == 1
        assert checker.get_entry(entry.id).value.status == "reversed"


class TestConcurrentNumbering:

    def test_entry_numbers_unique_and_contiguous(
        self, seeded, pg_session_factory, policy, deterministic_clock, test_actor_id
    ):
        def post(_):
            ops = _ops(pg_session_factory, policy, deterministic_clock)
            result = ops.post_entry(make_balanced_draft(), test_actor_id)
            assert result.is_success, result.message
            return result.value.entry_number

        numbers = _run_together(post)

        assert sorted(numbers) == [f"JE-2024-{n:06d}" for n in range(1, WORKERS + 1)]


class TestConcurrentPeriodCreation:

    def test_overlapping_periods_created_once(
        self, pg_session_factory, policy, deterministic_clock, test_actor_id
    ):
        def create(index):
            ops = _ops(pg_session_factory, policy, deterministic_clock)
            spec = BudgetPeriodSpec(
                code=f"Q1-2024-{index}",
                name=f"Q1 2024 ({index})",
                period_type="quarter",
                fiscal_year=2024,
                start_date=date(2024, 1, 1 + index),
                end_date=date(2024, 3, 31),
            )
            return ops.create_period(spec, test_actor_id).status

        statuses = _run_together(create)

        assert statuses.count(OperationStatus.SUCCESS) == 1
        assert set(statuses) <= {OperationStatus.SUCCESS, OperationStatus.VALIDATION_FAILED}
        checker = _ops(pg_session_factory, policy, deterministic_clock)
        assert len(checker.list_periods(2024).value) == 1
