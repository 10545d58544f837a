#!/usr/bin/env python3
"""
Ledger administration tool: on-demand integrity sweep, cached balance
recalculation, period close and statement printing.

Usage:
    python3 scripts/ledger_admin.py [--database-url URL] [--config PATH] [--verbose] <command>

Commands:
    init                          Create tables and seed the configured chart
    sweep [--repair]              Report (and optionally repair) ledger drift
    recalc                        Reset cached balances from posted lines
    close-period YYYY-MM-DD       Move the period lock date forward
    report trial-balance [--as-of YYYY-MM-DD]
    report balance-sheet --as-of YYYY-MM-DD [--include-reversals]
    report pnl --start YYYY-MM-DD --end YYYY-MM-DD [--include-reversals]

The database URL defaults to $DATABASE_URL, then sqlite:///ledger.db.
Every command runs in one transaction: committed on success, rolled back on
any error.  Output is JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ledger_config import LedgerConfig, load_ledger_config
from ledger_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from ledger_kernel.domain.clock import SystemClock
from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.period_service import PeriodService
from ledger_modules.reporting import ReportingService, render_to_dict
from ledger_services.integrity_service import IntegrityService

DEFAULT_DB_URL = "sqlite:///ledger.db"


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value!r}") from None


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ledger administration: integrity sweep, recalculation, period close.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL", DEFAULT_DB_URL),
        help="SQLAlchemy database URL (default: $DATABASE_URL or sqlite:///ledger.db).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Ledger YAML configuration (default: the packaged defaults).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log INFO events to stderr (default: warnings only).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create tables and seed the chart of accounts.")

    sweep = sub.add_parser("sweep", help="Run the integrity sweep.")
    sweep.add_argument(
        "--repair",
        action="store_true",
        help="Repost missing entries, purge orphans and recalculate balances.",
    )

    sub.add_parser("recalc", help="Recalculate cached account balances.")

    close = sub.add_parser("close-period", help="Lock the books through a date.")
    close.add_argument("closing_date", type=_iso_date)

    report = sub.add_parser("report", help="Print a financial statement as JSON.")
    report.add_argument("kind", choices=("trial-balance", "balance-sheet", "pnl"))
    report.add_argument("--as-of", type=_iso_date, default=None)
    report.add_argument("--start", type=_iso_date, default=None)
    report.add_argument("--end", type=_iso_date, default=None)
    report.add_argument("--include-reversals", action="store_true")

    return parser.parse_args(argv)


def _run(args: argparse.Namespace, config: LedgerConfig) -> dict:
    clock = SystemClock()
    with session_scope() as session:
        if args.command == "init":
            inserted = AccountService(session).seed_chart(config.accounts)
            return {"accounts_inserted": inserted}

        if args.command == "sweep":
            report = IntegrityService(session, config, clock=clock).sweep(repair=args.repair)
            return {
                "is_clean": report.is_clean,
                "issue_count": report.issue_count,
                **render_to_dict(report),
            }

        if args.command == "recalc":
            corrections = AccountService(session).recalculate_cached_balances()
            return {"corrections": render_to_dict(corrections)}

        if args.command == "close-period":
            settings = PeriodService(session, clock).close_fiscal_period(args.closing_date)
            return {"lock_date": settings.lock_date.isoformat()}

        reporting = ReportingService(session, config, clock=clock)
        exclude_reversals = not args.include_reversals
        if args.kind == "trial-balance":
            return render_to_dict(reporting.get_trial_balance(args.as_of))
        if args.kind == "balance-sheet":
            if args.as_of is None:
                raise ValueError("report balance-sheet requires --as-of")
            return render_to_dict(
                reporting.get_balance_sheet(args.as_of, exclude_reversals=exclude_reversals)
            )
        if args.start is None or args.end is None:
            raise ValueError("report pnl requires --start and --end")
        return render_to_dict(
            reporting.get_profit_and_loss(
                args.start, args.end, exclude_reversals=exclude_reversals
            )
        )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)
    try:
        config = load_ledger_config(args.config)
        init_engine_from_url(args.database_url)
        if args.command == "init":
            create_tables()
        output = _run(args, config)
    except (LedgerError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
