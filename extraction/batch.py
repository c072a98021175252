"""
Bulk document ingestion.

Runs the extractor over many independent documents in sequence. Each
document is isolated: an exception, a malformed structured payload or a
"no data extracted" outcome is recorded as a DocumentError and the loop
moves on.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from core.models import BatchManifestRecord, TradeDirection
from core.observability import get_logger, with_correlation
from extraction.extractor import (
    NO_DATA_EXTRACTED,
    extract_batch_manifest,
    extract_fiscal_manifest,
    extract_invoice,
    extract_loading_note,
    from_structured,
)
from extraction.schemas import SchemaName


logger = get_logger(__name__)


class DocumentKind(str, Enum):
    BATCH_MANIFEST = "batch_manifest"
    LOADING_NOTE = "loading_note"
    FISCAL_MANIFEST = "fiscal_manifest"
    INVOICE = "invoice"


# Structured payloads are validated with the record schema of their kind
_STRUCTURED_SCHEMA = {
    DocumentKind.LOADING_NOTE: SchemaName.LOADING_NOTE,
    DocumentKind.FISCAL_MANIFEST: SchemaName.FISCAL_MANIFEST,
    DocumentKind.INVOICE: SchemaName.INVOICE_XML,
}


@dataclass
class DocumentInput:
    """
    One document to ingest.

    Attributes:
        document_id: Caller's identifier (file name, upload id)
        kind: Document family
        payload: Raw text, XML, or a structured JSON mapping
        direction: Trade direction, for invoices
    """
    document_id: str
    kind: DocumentKind
    payload: Union[str, bytes, Mapping[str, Any]]
    direction: TradeDirection = TradeDirection.PURCHASE


@dataclass
class DocumentError:
    document_id: str
    kind: DocumentKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"document_id": self.document_id, "kind": self.kind.value, "message": self.message}


@dataclass
class IngestionResult:
    """Records extracted per document id, plus per-document failures."""
    records: Dict[str, BaseModel] = field(default_factory=dict)
    errors: List[DocumentError] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.records)

    @property
    def failed(self) -> int:
        return len(self.errors)


def extract_document(document: DocumentInput) -> Optional[BaseModel]:
    """Extract one document with the extractor for its kind."""
    payload = document.payload

    if isinstance(payload, Mapping):
        if document.kind == DocumentKind.BATCH_MANIFEST:
            return BatchManifestRecord.model_validate(payload) if payload else None
        record = from_structured(_STRUCTURED_SCHEMA[document.kind], payload)
        if record is not None and document.kind == DocumentKind.INVOICE and "direction" not in payload:
            record = record.model_copy(update={"direction": document.direction})
        return record

    if isinstance(payload, bytes):
        payload = payload.decode("utf-8-sig", errors="replace")

    if document.kind == DocumentKind.INVOICE:
        return extract_invoice(payload, document.direction)

    extractors: Dict[DocumentKind, Callable[[str], Optional[BaseModel]]] = {
        DocumentKind.BATCH_MANIFEST: extract_batch_manifest,
        DocumentKind.LOADING_NOTE: extract_loading_note,
        DocumentKind.FISCAL_MANIFEST: extract_fiscal_manifest,
    }
    return extractors[document.kind](payload)


def ingest_documents(
    documents: Iterable[DocumentInput],
    batch_id: Optional[str] = None,
) -> IngestionResult:
    """
    Extract every document, isolating failures per document.

    Args:
        documents: Documents to ingest, processed in order
        batch_id: Correlation id attached to every log line of the run

    Returns:
        IngestionResult with the records that were produced and one
        DocumentError per document that was not
    """
    result = IngestionResult()

    with with_correlation(batch_id=batch_id):
        for document in documents:
            with with_correlation(document_id=document.document_id, document_type=document.kind.value):
                try:
                    record = extract_document(document)
                except ValidationError as e:
                    logger.warning("Structured payload rejected", extra_fields={"errors": e.error_count()})
                    result.errors.append(DocumentError(
                        document.document_id, document.kind, f"Invalid structured data: {e.error_count()} error(s)",
                    ))
                    continue
                except Exception as e:
                    logger.exception("Document extraction failed")
                    result.errors.append(DocumentError(document.document_id, document.kind, str(e)))
                    continue

                if record is None:
                    logger.warning("No data extracted")
                    result.errors.append(DocumentError(document.document_id, document.kind, NO_DATA_EXTRACTED))
                    continue

                result.records[document.document_id] = record

        logger.info(
            "Ingestion finished",
            extra_fields={"succeeded": result.succeeded, "failed": result.failed},
        )

    return result
