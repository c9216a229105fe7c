"""
BaseService -- abstract base for kernel persistence services.

Responsibility:
    Provides the common constructor and session-handling contract.  Concrete
    services receive a SQLAlchemy ``Session`` and use ``session.flush()``
    -- never ``session.commit()``.  ``InvoiceService`` is the one exception:
    it is the request boundary and owns the transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from localbiz_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-model queries; those belong in
          ``localbiz_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
