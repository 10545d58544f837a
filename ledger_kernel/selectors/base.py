"""
BaseSelector -- common constructor for the kernel's read side.

Selectors run queries against the caller's session and return frozen
dataclasses (``TrialBalanceRow``, ``AccountBalance``, ``JournalEntryRecord``
...), never ORM instances.  They do not add, delete or flush, so a report
or an integrity check can run in the same transaction as a posting
without side effects.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Holds the session; ``ModelType`` names the table a selector reads."""

    def __init__(self, session: Session):
        self.session = session
