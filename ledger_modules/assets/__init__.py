"""
Fixed Assets Module (``ledger_modules.assets``).

Asset register, optional acquisition posting (``asset-{id}``) and monthly
straight-line depreciation batches (``dep-{YYYY}-{MM}``).
"""

from ledger_modules.assets.models import (
    AssetStatus,
    AssetType,
    DepreciationCharge,
    DepreciationRecord,
    FixedAsset,
)
from ledger_modules.assets.profiles import ACQUISITION, DEPRECIATION, monthly_depreciation
from ledger_modules.assets.service import AssetService

__all__ = [
    "AssetStatus",
    "AssetType",
    "DepreciationCharge",
    "DepreciationRecord",
    "FixedAsset",
    "ACQUISITION",
    "DEPRECIATION",
    "monthly_depreciation",
    "AssetService",
]
