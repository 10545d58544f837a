"""
Fixed Assets ORM Models (``ledger_modules.assets.orm``).

Responsibility
--------------
SQLAlchemy persistence models for fixed assets and depreciation records.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import Amount, IntPK


class FixedAssetModel(TrackedBase):
    """
    ORM model for fixed assets.

    Guarantees:
        - asset_number is unique.
        - 0 <= salvage_value <= cost, useful_life_months > 0.
        - 0 <= accumulated_depreciation <= cost - salvage_value.
    """

    __tablename__ = "fixed_assets"

    __table_args__ = (
        UniqueConstraint("asset_number", name="uq_fixed_assets_number"),
        CheckConstraint(
            "salvage_value >= 0 AND salvage_value <= cost",
            name="ck_fixed_assets_salvage_range",
        ),
        CheckConstraint("useful_life_months > 0", name="ck_fixed_assets_life_positive"),
        CheckConstraint(
            "accumulated_depreciation >= 0 "
            "AND accumulated_depreciation <= cost - salvage_value",
            name="ck_fixed_assets_accumulated_range",
        ),
        Index("idx_fixed_assets_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    asset_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(20), default="EQUIPMENT", nullable=False)
    cost: Mapped[Amount] = mapped_column(nullable=False)
    salvage_value: Mapped[Amount] = mapped_column(default=0, nullable=False)
    useful_life_months: Mapped[int] = mapped_column(nullable=False)
    purchase_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    accumulated_depreciation: Mapped[Amount] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False)
    asset_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    depreciation_expense_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    accumulated_depreciation_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    # Set when the acquisition was posted (asset-{id})
    acquisition_credit_account_code: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=True
    )

    depreciation_records: Mapped[list["DepreciationRecordModel"]] = relationship(
        back_populates="asset",
        order_by="DepreciationRecordModel.id",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.assets.models import AssetStatus, AssetType, FixedAsset

        return FixedAsset(
            id=self.id,
            asset_number=self.asset_number or "",
            name=self.name,
            asset_type=AssetType(self.asset_type),
            cost=self.cost,
            salvage_value=self.salvage_value,
            useful_life_months=self.useful_life_months,
            purchase_date=self.purchase_date,
            accumulated_depreciation=self.accumulated_depreciation,
            status=AssetStatus(self.status),
            asset_account_code=self.asset_account_code,
            depreciation_expense_account_code=self.depreciation_expense_account_code,
            accumulated_depreciation_account_code=self.accumulated_depreciation_account_code,
        )

    def __repr__(self) -> str:
        return f"<FixedAssetModel {self.asset_number}: {self.name} {self.status}>"


class DepreciationRecordModel(TrackedBase):
    """
    ORM model for per-asset, per-period depreciation.

    Guarantees:
        - at most one row per (asset, year, month)
          (uq_depreciation_asset_period), the idempotency backstop for
          monthly runs.
        - amount > 0.
    """

    __tablename__ = "depreciation_entries"

    __table_args__ = (
        UniqueConstraint(
            "asset_id", "period_year", "period_month",
            name="uq_depreciation_asset_period",
        ),
        CheckConstraint("amount > 0", name="ck_depreciation_amount_positive"),
        Index("idx_depreciation_period", "period_year", "period_month"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    asset_id: Mapped[int] = mapped_column(
        IntPK, ForeignKey("fixed_assets.id"), nullable=False
    )
    period_year: Mapped[int] = mapped_column(nullable=False)
    period_month: Mapped[int] = mapped_column(nullable=False)
    amount: Mapped[Amount] = mapped_column(nullable=False)
    accumulated_before: Mapped[Amount] = mapped_column(nullable=False)
    accumulated_after: Mapped[Amount] = mapped_column(nullable=False)
    book_value: Mapped[Amount] = mapped_column(nullable=False)
    expense_account_code: Mapped[str] = mapped_column(String(50), nullable=False)
    accumulated_account_code: Mapped[str] = mapped_column(String(50), nullable=False)
    journal_entry_id: Mapped[int | None] = mapped_column(
        IntPK, ForeignKey("journal_entries.id", ondelete="SET NULL"), nullable=True
    )

    asset: Mapped[FixedAssetModel] = relationship(back_populates="depreciation_records")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.assets.models import DepreciationRecord

        return DepreciationRecord(
            asset_id=self.asset_id,
            period_year=self.period_year,
            period_month=self.period_month,
            amount=self.amount,
            accumulated_before=self.accumulated_before,
            accumulated_after=self.accumulated_after,
            book_value=self.book_value,
            journal_entry_id=self.journal_entry_id,
        )

    def __repr__(self) -> str:
        return (
            f"<DepreciationRecordModel asset {self.asset_id} "
            f"{self.period_year}-{self.period_month:02d}: {self.amount}>"
        )
