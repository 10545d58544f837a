"""
Module: ledger_kernel.models.settings
Responsibility: The single persisted ledger-state record (period lock date).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - key is UNIQUE; PeriodService reads and writes exactly the
      ``"financials"`` row.  Static configuration (chart, roles, tolerances)
      lives in ledger_config, not here.
"""

from datetime import date

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import IntPK

FINANCIALS_KEY = "financials"


class LedgerSettings(TrackedBase):
    """Persisted ledger state keyed by name."""

    __tablename__ = "ledger_settings"

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)

    key: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    # Entries dated on or before this date are rejected
    lock_date: Mapped[date | None] = mapped_column(EpochDate(), nullable=True)

    def __repr__(self) -> str:
        return f"<LedgerSettings {self.key} lock_date={self.lock_date}>"
