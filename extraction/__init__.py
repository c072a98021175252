"""Schema-driven extraction of fuel shipment and fiscal documents."""

from extraction.batch import (
    DocumentError,
    DocumentInput,
    DocumentKind,
    IngestionResult,
    ingest_documents,
)
from extraction.extractor import (
    NO_DATA_EXTRACTED,
    extract_batch_header,
    extract_batch_manifest,
    extract_fiscal_manifest,
    extract_invoice,
    extract_invoice_text,
    extract_invoice_xml,
    extract_loading_note,
    extract_order,
    from_structured,
)
from extraction.schemas import SchemaName
from extraction.segmenter import OrderSegment, segment_batch

__all__ = [
    "NO_DATA_EXTRACTED",
    "SchemaName",
    "OrderSegment",
    "segment_batch",
    "extract_batch_header",
    "extract_batch_manifest",
    "extract_order",
    "extract_loading_note",
    "extract_fiscal_manifest",
    "extract_invoice",
    "extract_invoice_text",
    "extract_invoice_xml",
    "from_structured",
    "DocumentError",
    "DocumentInput",
    "DocumentKind",
    "IngestionResult",
    "ingest_documents",
]
