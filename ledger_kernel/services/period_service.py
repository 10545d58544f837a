"""
PeriodService -- period lock and fiscal close.

Responsibility:
    Owns the single ``financials`` settings row and its lock date.  Every
    write path (create, update, reverse, depreciation) asks this service
    whether its date is still open before anything is written.

Architecture position:
    Kernel > Services -- imperative shell.  Called by JournalService,
    ReversalService and the sub-ledger modules.

Invariants enforced:
    - Closed period enforcement: no entry may be dated on or before the
      lock date.
    - Close requires a balanced trial balance over all posted lines.
    - The lock date only moves forward.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ClosedPeriodError: Entry date is on or before the lock date.
    - TrialBalanceMismatchError: Total debits != total credits at close.
    - InvalidPeriodError: Closing date earlier than the current lock date.

Audit relevance:
    Period close is logged with the closing date, the previous lock date and
    the trial-balance totals.  Rejected dates are logged at WARNING.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidPeriodError,
    TrialBalanceMismatchError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.models.settings import FINANCIALS_KEY, LedgerSettings
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[LedgerSettings]):
    """
    Service for the period lock.

    Contract:
        ``assert_open(d)`` passes iff no lock date is set or ``d`` is after
        it.  ``close_fiscal_period(d)`` moves the lock date to ``d``.

    Non-goals:
        - Per-period status rows (open/closing/closed).  The ledger tracks a
          single moving lock date.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _settings(self) -> LedgerSettings | None:
        return self.session.execute(
            select(LedgerSettings).where(LedgerSettings.key == FINANCIALS_KEY)
        ).scalar_one_or_none()

    def get_lock_date(self) -> date | None:
        """Current lock date, or None when no period has been closed."""
        settings = self._settings()
        return settings.lock_date if settings is not None else None

    def is_open(self, entry_date: date) -> bool:
        lock_date = self.get_lock_date()
        return lock_date is None or entry_date > lock_date

    def assert_open(self, entry_date: date) -> None:
        """
        Reject dates inside a closed period.

        Raises:
            ClosedPeriodError: entry_date <= lock_date.
        """
        lock_date = self.get_lock_date()
        if lock_date is not None and entry_date <= lock_date:
            logger.warning(
                "period_closed_rejected",
                extra={
                    "entry_date": entry_date.isoformat(),
                    "lock_date": lock_date.isoformat(),
                },
            )
            raise ClosedPeriodError(entry_date, lock_date)

    def trial_balance_totals(self) -> tuple[int, int]:
        """Sum of debits and credits over every posted line."""
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.is_posted.is_(True))
        ).one()
        return int(debits), int(credits)

    def close_fiscal_period(self, closing_date: date) -> LedgerSettings:
        """
        Lock the books through ``closing_date``.

        Preconditions:
            - Global trial balance is balanced.
            - closing_date is not before the current lock date.

        Postconditions:
            - The ``financials`` row exists with lock_date == closing_date.

        Raises:
            TrialBalanceMismatchError: Debits != credits.
            InvalidPeriodError: closing_date precedes the current lock date.
        """
        debits, credits = self.trial_balance_totals()
        if debits != credits:
            logger.error(
                "period_close_trial_balance_mismatch",
                extra={"debits": debits, "credits": credits},
            )
            raise TrialBalanceMismatchError(debits, credits)

        settings = self._settings()
        previous = settings.lock_date if settings is not None else None
        if previous is not None and closing_date < previous:
            raise InvalidPeriodError(
                f"closing date {closing_date.isoformat()} precedes the current "
                f"lock date {previous.isoformat()}"
            )

        if settings is None:
            settings = LedgerSettings(key=FINANCIALS_KEY, lock_date=closing_date)
            self.session.add(settings)
        else:
            settings.lock_date = closing_date
        self.session.flush()

        logger.info(
            "fiscal_period_closed",
            extra={
                "closing_date": closing_date.isoformat(),
                "previous_lock_date": previous.isoformat() if previous else None,
                "total_debits": debits,
                "total_credits": credits,
                "closed_at": self._clock.now().isoformat(),
            },
        )
        return settings
