"""Cross-document reconciliation of fiscal manifests and loading notes."""

from reconciliation.engine import (
    Band,
    ToleranceConfig,
    build_report,
    compare_numeric,
    compare_text,
    reconcile_documents,
)

__all__ = [
    "Band",
    "ToleranceConfig",
    "build_report",
    "compare_numeric",
    "compare_text",
    "reconcile_documents",
]
