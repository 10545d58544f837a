"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Generates the trial balance, balance sheet, profit & loss and the general
ledger (account register) by bridging ``LedgerSelector`` to the pure
functions in ``statements.py``.  This is a **read-only** service: no
journal entries are posted.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  Unlike the posting modules it does
NOT use ``ModulePostingService`` or profiles.  Constructor: ``session`` +
``config`` + optional ``clock``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal or cached balances.
* Reports are derived from posted journal lines, never from cached
  balances.
* Excluding reversals drops reversal pairs lying wholly inside the report
  window; totals are the same either way because each such pair nets to
  zero.  A pair straddling the window edge stays in the report.

Failure modes
-------------
* ``start > end`` -> ``ValueError`` before any query runs.
* Unknown account in ``get_general_ledger`` -> ``AccountNotFoundError``.
* An unbalanced balance sheet is returned with ``is_balanced == False``
  and logged as a warning; it is not raised.

Audit relevance
---------------
A structured log event is emitted for every report generated, carrying the
report type and parameters.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import AccountRegister, LedgerSelector
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial statement generation service.

    Contract
    --------
    * Every public method returns a frozen report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * No financial logic lives in this class; classification and totals are
      computed by ``statements.py``.
    * Clock is injectable for deterministic ``generated_at`` stamps.

    Non-goals
    ---------
    * Does NOT enforce period locks (read-only).
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._ledger = LedgerSelector(session)

    def _metadata(
        self,
        report_type: ReportType,
        as_of: date | None,
        period_start: date | None = None,
        period_end: date | None = None,
        exclude_reversals: bool = True,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            as_of_date=as_of,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            exclude_reversals=exclude_reversals,
        )

    # =========================================================================
    # Reports
    # =========================================================================

    def get_trial_balance(self, as_of: date | None = None) -> TrialBalanceReport:
        """Cumulative debit and credit totals per account up to ``as_of``."""
        rows = self._ledger.trial_balance(as_of=as_of)
        report = build_trial_balance(
            rows, self._metadata(ReportType.TRIAL_BALANCE, as_of, exclude_reversals=False)
        )
        logger.info("trial_balance_generated", extra={
            "as_of": as_of.isoformat() if as_of else None,
            "account_count": len(report.lines),
            "is_balanced": report.is_balanced,
        })
        return report

    def get_balance_sheet(
        self,
        as_of: date,
        exclude_reversals: bool = True,
    ) -> BalanceSheetReport:
        """
        Classified balance sheet as of a date.

        Postconditions:
            - ``is_balanced`` iff ``|assets - (liabilities + equity)|`` is
              within the configured tolerance.
        """
        rows = self._ledger.trial_balance(as_of=as_of, exclude_reversals=exclude_reversals)
        report = build_balance_sheet(
            rows,
            self._config.classification,
            self._metadata(ReportType.BALANCE_SHEET, as_of, exclude_reversals=exclude_reversals),
            tolerance=self._config.balance_tolerance,
        )

        if not report.is_balanced:
            logger.warning("balance_sheet_imbalanced", extra={
                "as_of": as_of.isoformat(),
                "total_assets": report.total_assets,
                "total_liabilities_and_equity": report.total_liabilities_and_equity,
                "difference": report.difference,
            })
        logger.info("balance_sheet_generated", extra={
            "as_of": as_of.isoformat(),
            "total_assets": report.total_assets,
            "is_balanced": report.is_balanced,
        })
        return report

    def get_profit_and_loss(
        self,
        start: date,
        end: date,
        exclude_reversals: bool = True,
    ) -> ProfitAndLossReport:
        """
        Profit & loss for entries dated within ``[start, end]``.

        Raises:
            ValueError: start is after end.
        """
        if start > end:
            raise ValueError(f"start ({start}) must not be after end ({end})")

        rows = self._ledger.trial_balance(
            as_of=end, start=start, exclude_reversals=exclude_reversals
        )
        report = build_profit_and_loss(
            rows,
            self._config.classification,
            self._metadata(
                ReportType.PROFIT_AND_LOSS,
                end,
                period_start=start,
                period_end=end,
                exclude_reversals=exclude_reversals,
            ),
        )
        logger.info("profit_and_loss_generated", extra={
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "gross_profit": report.gross_profit,
            "net_income": report.net_income,
        })
        return report

    def get_general_ledger(
        self,
        account_code: str,
        start: date | None = None,
        end: date | None = None,
        include_reversals: bool = False,
    ) -> AccountRegister:
        """
        Chronological lines of one account with a running balance.

        Raises:
            ValueError: start is after end.
            AccountNotFoundError: unknown account.
        """
        if start is not None and end is not None and start > end:
            raise ValueError(f"start ({start}) must not be after end ({end})")
        return self._ledger.account_register(
            account_code, start=start, end=end, include_reversals=include_reversals
        )
