"""Database layer - engine, base classes and money types."""

from localbiz_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from localbiz_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from localbiz_kernel.db.types import Money, Rate, Sequence, round_money

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Rate",
    "Sequence",
    "round_money",
]
