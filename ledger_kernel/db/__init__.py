"""Database layer - engine, base classes and column types."""

from ledger_kernel.db.base import Base, EpochDate, EpochDateTime, TrackedBase
from ledger_kernel.db.engine import create_tables, get_engine, get_session
from ledger_kernel.db.types import Amount, IntPK

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "EpochDate",
    "EpochDateTime",
    "Amount",
    "IntPK",
]
