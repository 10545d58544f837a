"""
Fixed Assets Module Service (``ledger_modules.assets.service``).

Responsibility
--------------
Registers fixed assets (optionally posting the acquisition) and runs
monthly straight-line depreciation as one batch journal entry per period.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  Depreciation arithmetic lives in
``profiles.py``; posting goes through ``ModulePostingService``.

Invariants enforced
-------------------
* One depreciation entry per period: transaction id ``dep-{YYYY}-{MM}``,
  dated the first of the month.
* One depreciation record per (asset, year, month) (unique constraint).
* A charge never exceeds the remaining depreciable amount; an asset whose
  book value reaches salvage becomes FULLY_DEPRECIATED and is skipped.
* Assets depreciate from their purchase month onwards.
* Asset records, accumulated totals and the journal entry are written in
  one SAVEPOINT.

Failure modes
-------------
* Year outside 2000-2100 or month outside 1-12 -> VALIDATION_FAILED.
* Period on or before the lock date -> PERIOD_CLOSED.

Audit relevance
---------------
``depreciation_run_completed`` is logged with processed / skipped counts
and the total charged.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import SourceRef
from ledger_kernel.exceptions import InvalidSourceDocumentError, SourceDocumentNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.module_posting_service import (
    ModulePostingService,
    PostingResult,
    PostingStatus,
)
from ledger_modules._posting_helpers import (
    SourceHandler,
    document_exists,
    document_id,
    document_keys,
    require_amount,
    require_posting_account,
)
from ledger_modules.assets.models import (
    AssetStatus,
    AssetType,
    DepreciationCharge,
    DepreciationRecord,
    FixedAsset,
)
from ledger_modules.assets.orm import DepreciationRecordModel, FixedAssetModel
from ledger_modules.assets.profiles import (
    ACQUISITION,
    DEPRECIATION,
    acquisition_lines,
    depreciation_lines,
    in_service,
    monthly_depreciation,
    parse_period_key,
    period_key,
    period_start,
    validate_period,
)

logger = get_logger("modules.assets.service")


class AssetService:
    """
    Orchestrates fixed-asset operations through the kernel.

    Contract
    --------
    * ``register_asset`` and ``run_monthly_depreciation`` return
      ``PostingResult``.
    * ``preview_depreciation`` computes a period's charges without writing.

    Guarantees
    ----------
    * Re-running a posted period returns ALREADY_POSTED and writes nothing.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._roles = config.roles
        self._clock = clock or SystemClock()
        self._poster = ModulePostingService(session, self._clock, auto_commit=auto_commit)

    # =========================================================================
    # Registration
    # =========================================================================

    def register_asset(
        self,
        name: str,
        cost: int,
        useful_life_months: int,
        purchase_date: date,
        salvage_value: int = 0,
        asset_type: AssetType | str = AssetType.EQUIPMENT,
        asset_number: str | None = None,
        asset_account_code: str | None = None,
        depreciation_expense_account_code: str | None = None,
        accumulated_depreciation_account_code: str | None = None,
        acquisition_credit_account_code: str | None = None,
    ) -> PostingResult:
        """
        Register an asset.

        Account codes default to the configured ``fixed_assets``,
        ``depreciation_expense`` and ``accumulated_depreciation`` roles.
        When ``acquisition_credit_account_code`` is given (AP or bank), the
        purchase is posted as ``asset-{id}``: Dr asset / Cr that account.

        Returns:
            POSTED with the acquisition entry, or COMPLETED when nothing was
            posted; ``document_id`` is the asset id either way.
        """

        def work() -> PostingResult:
            value = require_amount(ACQUISITION, "cost", cost)
            salvage = require_amount(ACQUISITION, "salvage_value", salvage_value, allow_zero=True)
            life = require_amount(ACQUISITION, "useful_life_months", useful_life_months)
            if salvage > value:
                raise InvalidSourceDocumentError(
                    ACQUISITION, f"salvage_value {salvage} exceeds cost {value}"
                )

            asset = FixedAssetModel(
                asset_number=asset_number,
                name=name,
                asset_type=AssetType(asset_type).value,
                cost=value,
                salvage_value=salvage,
                useful_life_months=life,
                purchase_date=purchase_date,
                accumulated_depreciation=0,
                status=(
                    AssetStatus.ACTIVE.value if value > salvage
                    else AssetStatus.FULLY_DEPRECIATED.value
                ),
                asset_account_code=require_posting_account(
                    self._session, asset_account_code or self._roles.fixed_assets
                ),
                depreciation_expense_account_code=require_posting_account(
                    self._session,
                    depreciation_expense_account_code or self._roles.depreciation_expense,
                ),
                accumulated_depreciation_account_code=require_posting_account(
                    self._session,
                    accumulated_depreciation_account_code or self._roles.accumulated_depreciation,
                ),
                acquisition_credit_account_code=(
                    require_posting_account(self._session, acquisition_credit_account_code)
                    if acquisition_credit_account_code is not None
                    else None
                ),
            )
            self._session.add(asset)
            self._session.flush()
            if asset.asset_number is None:
                asset.asset_number = f"FA-{purchase_date.year}-{asset.id:03d}"
                self._session.flush()

            logger.info("asset_registered", extra={
                "asset_id": asset.id,
                "asset_number": asset.asset_number,
                "cost": value,
                "useful_life_months": life,
            })
            if acquisition_credit_account_code is None:
                return PostingResult(PostingStatus.COMPLETED, document_id=asset.id)
            return self._post_acquisition(asset).with_document(asset.id)

        return self._poster.run("assets.register", work)

    def get_asset(self, asset_id: int) -> FixedAsset | None:
        asset = self._session.get(FixedAssetModel, asset_id)
        return asset.to_dto() if asset is not None else None

    # =========================================================================
    # Depreciation
    # =========================================================================

    def preview_depreciation(self, year: int, month: int) -> list[DepreciationCharge]:
        """Charges a run for (year, month) would record now.  Writes nothing."""
        validate_period(year, month)
        return [charge for _, charge in self._compute_charges(year, month)]

    def run_monthly_depreciation(self, year: int, month: int) -> PostingResult:
        """
        Depreciate every eligible asset for (year, month) and post one batch
        entry ``dep-{YYYY}-{MM}``.

        Returns:
            POSTED; ALREADY_POSTED if the period was run before; COMPLETED
            when no asset had anything to depreciate.
        """

        def work() -> PostingResult:
            validate_period(year, month)
            source = SourceRef.of(DEPRECIATION, period_key(year, month))
            entry_date = period_start(year, month)

            existing = JournalSelector(self._session).find_by_transaction_id(
                source.transaction_id
            )
            if existing is not None:
                logger.info("depreciation_run_skipped_already_posted", extra={
                    "period": source.key,
                    "journal_entry_id": existing.id,
                })
                return PostingResult(
                    PostingStatus.ALREADY_POSTED,
                    transaction_id=source.transaction_id,
                    journal_entry_ids=(existing.id,),
                )
            self._poster.periods.assert_open(entry_date)

            active_count = self._session.scalar(
                select(func.count())
                .select_from(FixedAssetModel)
                .where(FixedAssetModel.status == AssetStatus.ACTIVE.value)
            ) or 0
            computed = self._compute_charges(year, month)
            records: list[DepreciationRecordModel] = []
            for asset, charge in computed:
                record = DepreciationRecordModel(
                    asset_id=asset.id,
                    period_year=year,
                    period_month=month,
                    amount=charge.amount,
                    accumulated_before=charge.accumulated_before,
                    accumulated_after=charge.accumulated_after,
                    book_value=charge.book_value_after,
                    expense_account_code=charge.expense_account_code,
                    accumulated_account_code=charge.accumulated_account_code,
                )
                self._session.add(record)
                records.append(record)
                asset.accumulated_depreciation = charge.accumulated_after
                if charge.completes_asset:
                    asset.status = AssetStatus.FULLY_DEPRECIATED.value
            self._session.flush()

            total = sum(charge.amount for _, charge in computed)
            if not records:
                logger.info("depreciation_run_completed", extra={
                    "period": source.key,
                    "processed_count": 0,
                    "skipped_count": active_count,
                    "total_amount": 0,
                })
                return PostingResult(PostingStatus.COMPLETED, transaction_id=source.transaction_id)

            result = self._poster.post(
                source,
                entry_date,
                f"Depreciation for {source.key}",
                depreciation_lines(charge for _, charge in computed),
                reference=source.transaction_id,
            )
            for record in records:
                record.journal_entry_id = result.journal_entry_id
            self._session.flush()

            logger.info("depreciation_run_completed", extra={
                "period": source.key,
                "processed_count": len(records),
                "skipped_count": active_count - len(records),
                "total_amount": total,
                "journal_entry_id": result.journal_entry_id,
            })
            return result

        return self._poster.run("assets.run_depreciation", work)

    def list_depreciation(self, year: int, month: int) -> list[DepreciationRecord]:
        return [record.to_dto() for record in self._period_records(year, month)]

    # =========================================================================
    # Integrity hooks
    # =========================================================================

    def source_handlers(self) -> list[SourceHandler]:
        return [
            SourceHandler(
                kind=ACQUISITION,
                document_keys=lambda: document_keys(
                    self._session,
                    FixedAssetModel,
                    FixedAssetModel.acquisition_credit_account_code.is_not(None),
                ),
                document_exists=lambda key: document_exists(self._session, FixedAssetModel, key),
                repost=self.repost_acquisition,
            ),
            SourceHandler(
                kind=DEPRECIATION,
                document_keys=self._depreciation_keys,
                document_exists=self._depreciation_exists,
                repost=self.repost_depreciation,
            ),
        ]

    def repost_acquisition(self, key: str) -> PostingResult:
        def work() -> PostingResult:
            asset = self._session.get(FixedAssetModel, document_id(ACQUISITION, key))
            if asset is None or asset.acquisition_credit_account_code is None:
                raise SourceDocumentNotFoundError(ACQUISITION, key)
            return self._post_acquisition(asset)

        return self._poster.run(
            "assets.repost_acquisition",
            work,
            transaction_id=SourceRef.of(ACQUISITION, key).transaction_id,
        )

    def repost_depreciation(self, key: str) -> PostingResult:
        """Rebuild a period's batch entry from its stored depreciation records."""
        source = SourceRef.of(DEPRECIATION, key)

        def work() -> PostingResult:
            period = parse_period_key(key)
            records = self._period_records(*period) if period else []
            if not records:
                raise SourceDocumentNotFoundError(DEPRECIATION, key)
            result = self._poster.post(
                source,
                period_start(*period),
                f"Depreciation for {source.key}",
                depreciation_lines(records),
                reference=source.transaction_id,
            )
            for record in records:
                record.journal_entry_id = result.journal_entry_id
            self._session.flush()
            return result

        return self._poster.run(
            "assets.repost_depreciation", work, transaction_id=source.transaction_id
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _compute_charges(
        self, year: int, month: int
    ) -> list[tuple[FixedAssetModel, DepreciationCharge]]:
        recorded = set(
            self._session.scalars(
                select(DepreciationRecordModel.asset_id).where(
                    DepreciationRecordModel.period_year == year,
                    DepreciationRecordModel.period_month == month,
                )
            )
        )
        assets = self._session.scalars(
            select(FixedAssetModel)
            .where(FixedAssetModel.status == AssetStatus.ACTIVE.value)
            .order_by(FixedAssetModel.id)
        )
        charges: list[tuple[FixedAssetModel, DepreciationCharge]] = []
        for asset in assets:
            if asset.id in recorded or not in_service(asset.purchase_date, year, month):
                continue
            amount = monthly_depreciation(
                asset.cost,
                asset.salvage_value,
                asset.useful_life_months,
                asset.accumulated_depreciation,
            )
            if amount <= 0:
                continue
            charges.append((
                asset,
                DepreciationCharge(
                    asset_id=asset.id,
                    amount=amount,
                    expense_account_code=asset.depreciation_expense_account_code,
                    accumulated_account_code=asset.accumulated_depreciation_account_code,
                    accumulated_before=asset.accumulated_depreciation,
                    cost=asset.cost,
                    salvage_value=asset.salvage_value,
                ),
            ))
        return charges

    def _post_acquisition(self, asset: FixedAssetModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(ACQUISITION, asset.id),
            asset.purchase_date,
            f"Acquisition of {asset.asset_number} {asset.name}",
            acquisition_lines(
                asset.cost, asset.asset_account_code, asset.acquisition_credit_account_code
            ),
            reference=asset.asset_number,
        )

    def _period_records(self, year: int, month: int) -> list[DepreciationRecordModel]:
        return list(
            self._session.scalars(
                select(DepreciationRecordModel)
                .where(
                    DepreciationRecordModel.period_year == year,
                    DepreciationRecordModel.period_month == month,
                )
                .order_by(DepreciationRecordModel.asset_id)
            )
        )

    def _depreciation_keys(self) -> list[str]:
        periods = self._session.execute(
            select(DepreciationRecordModel.period_year, DepreciationRecordModel.period_month)
            .distinct()
            .order_by(DepreciationRecordModel.period_year, DepreciationRecordModel.period_month)
        )
        return [period_key(year, month) for year, month in periods]

    def _depreciation_exists(self, key: str) -> bool:
        period = parse_period_key(key)
        return period is not None and bool(self._period_records(*period))
