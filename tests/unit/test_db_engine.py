"""Tests for localbiz_kernel.db.engine: initialization and transactional scope."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from localbiz_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)
from localbiz_kernel.models.sequence_counter import InvoiceSequenceCounter


@pytest.fixture
def sqlite_engine(tmp_path):
    reset_engine()
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'engine.db'}")
    create_tables()
    yield engine
    reset_engine()


def _counter_rows() -> int:
    with get_session() as session:
        return session.execute(
            select(func.count()).select_from(InvoiceSequenceCounter)
        ).scalar_one()


def test_uninitialized_engine_raises():
    reset_engine()
    with pytest.raises(RuntimeError):
        get_engine()
    with pytest.raises(RuntimeError):
        get_session()


def test_sqlite_engine(sqlite_engine):
    assert get_engine() is sqlite_engine
    assert not is_postgres()


def test_session_scope_commits(sqlite_engine):
    with session_scope() as session:
        session.add(InvoiceSequenceCounter(owner_id=uuid4(), year=2025, current_value=1))
    assert _counter_rows() == 1


def test_session_scope_rolls_back(sqlite_engine):
    with pytest.raises(ValueError):
        with session_scope() as session:
            session.add(InvoiceSequenceCounter(owner_id=uuid4(), year=2025, current_value=1))
            session.flush()
            raise ValueError("boom")
    assert _counter_rows() == 0
