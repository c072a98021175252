"""Core data models - typed records shared by every engine component.

This package contains the canonical records produced by extraction and the
result types produced by reconciliation.
"""

from core.models.canonical import (
    # Base
    CanonicalBase,
    Quantity,
    Text,
    IsoDate,
    TradeDirection,

    # Batch manifest
    OrderRecord,
    BatchHeader,
    BatchManifestRecord,

    # Loading note
    LoadingNoteRecord,

    # Fiscal manifest
    FiscalManifestRecord,
    ManifestDocumentInfo,
    ManifestSenderInfo,
    ManifestDepositorInfo,
    ManifestRecipientInfo,
    ManifestTransportInfo,
    ManifestProductInfo,

    # Invoice
    InvoiceRecord,
    InvoiceLine,
    InvoiceAmounts,
    Party,
    TransportDetails,
)

from core.models.results import (
    Severity,
    ReportStatus,
    ValidationResult,
    ReconciliationReport,
)

__all__ = [
    # Base
    "CanonicalBase",
    "Quantity",
    "Text",
    "IsoDate",
    "TradeDirection",

    # Batch manifest
    "OrderRecord",
    "BatchHeader",
    "BatchManifestRecord",

    # Loading note
    "LoadingNoteRecord",

    # Fiscal manifest
    "FiscalManifestRecord",
    "ManifestDocumentInfo",
    "ManifestSenderInfo",
    "ManifestDepositorInfo",
    "ManifestRecipientInfo",
    "ManifestTransportInfo",
    "ManifestProductInfo",

    # Invoice
    "InvoiceRecord",
    "InvoiceLine",
    "InvoiceAmounts",
    "Party",
    "TransportDetails",

    # Results
    "Severity",
    "ReportStatus",
    "ValidationResult",
    "ReconciliationReport",
]
