"""
BaseService -- common constructor for the kernel's write services.

Journal, period, reversal and account services all work inside the
caller's unit of work: they ``flush()`` and may open SAVEPOINTs with
``session.begin_nested()``, but the commit or rollback of the outer
transaction belongs to whoever opened it (``session_scope``, a test
fixture, or ``ModulePostingService`` with ``auto_commit``).
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the session; ``ModelType`` names the table a service writes."""

    def __init__(self, session: Session):
        self.session = session
