"""
IntegrityService -- on-demand consistency sweep between sub-ledgers and GL.

Responsibility:
    Detects, and on request repairs, the four ways the ledger can drift
    from its sources:
      1. missing postings  -- a document that must have an entry has none;
      2. orphaned entries  -- an entry whose source document is gone;
      3. unbalanced entries -- stored lines with debits != credits;
      4. balance discrepancies -- cached account balance != posted lines.

Architecture: Services -- imperative shell over the kernel selectors and
    the modules' ``SourceHandler`` hooks (via ``SourceRegistry``).

Invariants enforced:
    - Reversed entries and their reversals are never reported as orphans
      and never purged; a reversal pair already nets to zero.
    - Repair reposts idempotently (``post_for_source``), so running the
      sweep twice never double-posts.
    - Cached balances are recalculated last, after reposts and purges.

Failure modes:
    - A repost the kernel rejects (closed period, inactive account) is
      recorded as a failed ``PostingResult`` in the report; the sweep
      continues.
    - Unbalanced entries are reported only; they are never rewritten.
    - Database errors propagate.  The service flushes; the caller commits.

Audit relevance:
    Every sweep logs ``integrity_sweep_completed`` with its counts; each
    repair step logs its own event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector, UnbalancedEntry
from ledger_kernel.selectors.ledger_selector import AccountBalance, LedgerSelector
from ledger_kernel.services.account_service import AccountService, BalanceCorrection
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.module_posting_service import PostingResult
from ledger_services.source_registry import SourceRegistry, build_default_registry

logger = get_logger("services.integrity")


@dataclass(frozen=True)
class MissingPosting:
    """A source document without its journal entry."""

    kind: str
    key: str

    @property
    def transaction_id(self) -> str:
        return f"{self.kind}-{self.key}"


@dataclass(frozen=True)
class OrphanedEntry:
    """A journal entry whose source document no longer exists."""

    journal_entry_id: int
    transaction_id: str
    kind: str
    key: str


@dataclass(frozen=True)
class IntegrityReport:
    """
    Outcome of one sweep.

    The finding tuples describe the state before any repair.  The repair
    tuples are empty unless the sweep ran with ``repair=True``.
    """

    checked_at: datetime
    missing_postings: tuple[MissingPosting, ...]
    orphaned_entries: tuple[OrphanedEntry, ...]
    unbalanced_entries: tuple[UnbalancedEntry, ...]
    balance_discrepancies: tuple[AccountBalance, ...]
    repaired: bool = False
    reposted: tuple[PostingResult, ...] = ()
    purged_entry_ids: tuple[int, ...] = ()
    balance_corrections: tuple[BalanceCorrection, ...] = ()

    @property
    def issue_count(self) -> int:
        return (
            len(self.missing_postings)
            + len(self.orphaned_entries)
            + len(self.unbalanced_entries)
            + len(self.balance_discrepancies)
        )

    @property
    def is_clean(self) -> bool:
        return self.issue_count == 0

    @property
    def failed_reposts(self) -> tuple[PostingResult, ...]:
        return tuple(r for r in self.reposted if not r.is_success)


class IntegrityService:
    """Sweeps the ledger against its source documents.

    Contract:
        - ``find_*`` methods are read-only.
        - ``sweep(repair=False)`` is read-only; ``sweep(repair=True)``
          reposts missing entries, purges orphans and recalculates cached
          balances, then flushes.

    Non-goals:
        - Does NOT run on a schedule; callers invoke it on demand.
        - Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        registry: SourceRegistry | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._registry = registry or build_default_registry(session, config, self._clock)
        self._journal_selector = JournalSelector(session)
        self._ledger_selector = LedgerSelector(session)

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    # =========================================================================
    # Detection
    # =========================================================================

    def find_missing_postings(self) -> list[MissingPosting]:
        """Documents whose ``{kind}-{key}`` entry does not exist."""
        posted = self._journal_selector.posted_transaction_ids()
        missing: list[MissingPosting] = []
        for handler in self._registry:
            for key in handler.document_keys():
                candidate = MissingPosting(kind=handler.kind, key=key)
                if candidate.transaction_id not in posted:
                    missing.append(candidate)
        return missing

    def find_orphaned_entries(self) -> list[OrphanedEntry]:
        """
        Entries that reference a source document that no longer exists.

        Entries of unregistered kinds and entries that have been reversed
        are skipped.
        """
        orphans: list[OrphanedEntry] = []
        for ref in self._journal_selector.source_entries():
            if ref.is_reversed:
                continue
            if ref.source_kind is not None and ref.source_kind in self._registry:
                kind, key = ref.source_kind, ref.source_key
            else:
                parsed = self._registry.parse(ref.transaction_id)
                if parsed is None:
                    continue
                kind, key = parsed.kind, parsed.key
            if not self._registry.handler(kind).document_exists(key):
                orphans.append(
                    OrphanedEntry(
                        journal_entry_id=ref.journal_entry_id,
                        transaction_id=ref.transaction_id,
                        kind=kind,
                        key=key,
                    )
                )
        return orphans

    def find_unbalanced_entries(self) -> list[UnbalancedEntry]:
        return self._journal_selector.unbalanced_entries()

    def find_balance_discrepancies(self) -> list[AccountBalance]:
        return self._ledger_selector.balance_discrepancies()

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep(self, repair: bool = False) -> IntegrityReport:
        """
        Run every check and optionally repair what can be repaired.

        Repair order: repost missing entries, purge orphans, recalculate
        cached balances.
        """
        missing = tuple(self.find_missing_postings())
        orphans = tuple(self.find_orphaned_entries())
        unbalanced = tuple(self.find_unbalanced_entries())
        discrepancies = tuple(self.find_balance_discrepancies())

        reposted: list[PostingResult] = []
        purged: list[int] = []
        corrections: list[BalanceCorrection] = []
        if repair:
            reposted = [self._repost(item) for item in missing]
            journal = JournalService(self._session, self._clock)
            for orphan in orphans:
                journal.delete_orphaned_entry(orphan.journal_entry_id)
                purged.append(orphan.journal_entry_id)
            corrections = AccountService(self._session).recalculate_cached_balances()
            self._session.flush()

        report = IntegrityReport(
            checked_at=self._clock.now(),
            missing_postings=missing,
            orphaned_entries=orphans,
            unbalanced_entries=unbalanced,
            balance_discrepancies=discrepancies,
            repaired=repair,
            reposted=tuple(reposted),
            purged_entry_ids=tuple(purged),
            balance_corrections=tuple(corrections),
        )

        log = logger.info if report.is_clean else logger.warning
        log("integrity_sweep_completed", extra={
            "repair": repair,
            "missing_postings": len(missing),
            "orphaned_entries": len(orphans),
            "unbalanced_entries": len(unbalanced),
            "balance_discrepancies": len(discrepancies),
            "reposted": sum(1 for r in reposted if r.is_success),
            "repost_failures": len(report.failed_reposts),
            "purged_entries": len(purged),
            "balance_corrections": len(corrections),
        })
        return report

    def _repost(self, item: MissingPosting) -> PostingResult:
        result = self._registry.handler(item.kind).repost(item.key)
        if result.is_success:
            logger.info("integrity_entry_reposted", extra={
                "transaction_id": item.transaction_id,
                "entry_id": result.journal_entry_id,
            })
        else:
            logger.warning("integrity_repost_failed", extra={
                "transaction_id": item.transaction_id,
                "error_code": result.error_code,
                "error_message": result.message,
            })
        return result
