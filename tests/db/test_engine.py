"""Tests for engine helpers: session_scope boundaries and dialect detection."""

import pytest
from sqlalchemy import delete, select

from ledger_kernel.db.engine import is_postgres, session_scope
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService


def _counter_value(name):
    with session_scope() as session:
        return session.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == name)
        ).scalar_one_or_none()


class TestSessionScope:

    def test_commits_on_success(self, db_tables):
        try:
            with session_scope() as session:
                SequenceService(session).next_value("scope-commit")
            assert _counter_value("scope-commit") == 1
        finally:
            with session_scope() as session:
                session.execute(delete(SequenceCounter).where(SequenceCounter.name == "scope-commit"))

    def test_rolls_back_and_reraises(self, db_tables, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                SequenceService(session).next_value("scope-rollback")
                raise RuntimeError("abort")

        assert _counter_value("scope-rollback") is None
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())


class TestDialect:

    def test_is_postgres_matches_engine(self, db_engine):
        assert is_postgres() == (db_engine.dialect.name == "postgresql")
