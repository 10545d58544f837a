"""
Ledger Services.

Cross-module orchestration over the kernel and the sub-ledger modules:
the source registry and the on-demand integrity sweep.
"""

from ledger_services.integrity_service import (
    IntegrityReport,
    IntegrityService,
    MissingPosting,
    OrphanedEntry,
)
from ledger_services.source_registry import SourceRegistry, build_default_registry

__all__ = [
    "IntegrityReport",
    "IntegrityService",
    "MissingPosting",
    "OrphanedEntry",
    "SourceRegistry",
    "build_default_registry",
]
