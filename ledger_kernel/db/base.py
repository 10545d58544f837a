"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the epoch-integer date/time column types, the type annotation
    map for consistent column types, and the TrackedBase mixin for audit
    timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST
    NOT import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Epoch storage: every ``date`` and ``datetime`` column is persisted as a
      Unix-epoch integer (seconds, UTC).  Dates are stored as midnight UTC.
      The schema never mixes storage modes for time values.
    - Integer money: ``int`` maps to BigInteger; monetary columns are minor
      units.  NEVER use float for monetary amounts.
    - Audit timestamps: TrackedBase provides created_at and updated_at.

Failure modes:
    - TypeError on binding a value that is not a date/datetime to an epoch
      column.
"""

import calendar
from datetime import UTC, date, datetime
from typing import ClassVar

from sqlalchemy import BigInteger
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


class EpochDateTime(TypeDecorator):
    """
    Timestamp stored as integer seconds since the Unix epoch.

    Contract:
        Transparently converts between timezone-aware ``datetime`` objects and
        epoch seconds.  Naive datetimes are interpreted as UTC.

    Guarantees:
        - process_bind_param: datetime -> int on INSERT/UPDATE/WHERE.
        - process_result_value: int -> datetime (UTC) on SELECT.
        - Sub-second precision is truncated.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Convert datetime to epoch seconds when storing.

        Preconditions: value is a datetime or None.
        Postconditions: Returns int seconds or None.
        """
        if value is None:
            return None
        if not isinstance(value, datetime):
            raise TypeError(f"EpochDateTime expects datetime, got {type(value).__name__}")
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp())

    def process_result_value(self, value, dialect):
        """Convert epoch seconds back to an aware UTC datetime."""
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=UTC)


class EpochDate(TypeDecorator):
    """
    Calendar date stored as the epoch seconds of its midnight UTC.

    Contract:
        ``date(2024, 3, 1)`` is stored as 1709251200.  Ordering and range
        comparisons on the integer column match calendar ordering.

    Guarantees:
        - process_bind_param: date -> int.  A datetime is truncated to its
          date first.
        - process_result_value: int -> date.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, datetime):
            value = value.astimezone(UTC).date() if value.tzinfo else value.date()
        if not isinstance(value, date):
            raise TypeError(f"EpochDate expects date, got {type(value).__name__}")
        return calendar.timegm(value.timetuple())

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=UTC).date()


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base (or TrackedBase).
        Base provides a type_annotation_map that enforces consistent column
        types across the entire schema.  Primary keys are declared per model
        (account codes are natural keys; documents use ``IntPK``).

    Guarantees:
        - datetime maps to EpochDateTime, date maps to EpochDate.
        - int maps to BigInteger -- safe for minor-unit amounts.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: EpochDateTime(),
        date: EpochDate(),
        int: BigInteger,
    }


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Contract:
        Every model that inherits TrackedBase records when the row was
        created and last modified.  These fields are audit metadata, not
        financial data.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        EpochDateTime(),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        EpochDateTime(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
