"""
Pytest fixtures for the invoicing kernel test suite.

Provides:
- In-memory SQLite sessions with the real ORM models (fast tests)
- A file-backed SQLite engine for two-session race tests
- A deterministic clock and ready-made services
- Structured log capture

SQLite stores DateTime without a timezone, so the test clock is naive.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import localbiz_kernel.models  # noqa: F401  (registers tables)
from localbiz_kernel.db.base import Base
from localbiz_kernel.domain.clock import DeterministicClock
from localbiz_kernel.domain.dtos import ClientSnapshot, InvoiceRequest, InvoiceStatus, LineItem
from localbiz_kernel.domain.settings import InvoiceSettings
from localbiz_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from localbiz_kernel.services.invoice_gateway import InvoiceGateway
from localbiz_kernel.services.invoice_service import InvoiceService
from localbiz_kernel.services.sequence_service import InvoiceSequenceService

TEST_NOW = datetime(2025, 3, 10, 9, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture localbiz_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, invoice_service):
            invoice_service.create_invoice(...)
            logs = captured_logs()
            assert any(r["message"] == "invoice_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("localbiz_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with all invoicing tables."""
    eng = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine so two sessions use two real connections."""
    eng = create_engine(f"sqlite:///{tmp_path / 'invoices.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_session_factory(file_engine):
    return sessionmaker(bind=file_engine, expire_on_commit=False)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_owner_id():
    return uuid4()


@pytest.fixture
def settings():
    return InvoiceSettings()


@pytest.fixture
def client():
    return ClientSnapshot(
        name="Martin Plomberie",
        email="contact@martin-plomberie.fr",
        address={"street": "12 rue des Lilas", "city": "Lyon", "postal_code": "69003"},
    )


@pytest.fixture
def line_items():
    """The three lines of the reference invoice: 100 + 100 + 30, tax 30."""
    return (
        LineItem("A", Decimal("2"), Decimal("50"), Decimal("20")),
        LineItem("B", Decimal("1"), Decimal("100"), Decimal("10")),
        LineItem("C", Decimal("3"), Decimal("10"), Decimal("0")),
    )


@pytest.fixture
def client_id():
    return uuid4()


@pytest.fixture
def make_request(client, client_id, line_items):
    """Factory for InvoiceRequest with sensible defaults."""

    def _make(**overrides) -> InvoiceRequest:
        fields = {
            "line_items": line_items,
            "status": InvoiceStatus.PENDING,
            "client_id": client_id,
            "client": client,
            "invoice_date": date(2025, 3, 10),
            "due_date": None,
            "notes": None,
            "terms": None,
        }
        fields.update(overrides)
        return InvoiceRequest(**fields)

    return _make


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def gateway(db_session, clock):
    return InvoiceGateway(db_session, clock)


@pytest.fixture
def sequence_service(gateway):
    return InvoiceSequenceService(gateway)


@pytest.fixture
def invoice_service(db_session, settings, clock):
    return InvoiceService(db_session, settings=settings, clock=clock)
