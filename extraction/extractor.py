"""Extraction pipeline for fuel shipment and fiscal documents.

Exposes high-level functions, one per document family:
- extract_batch_manifest(text) -> BatchManifestRecord
- extract_batch_header(text) -> BatchHeader
- extract_order(order_id, text) -> OrderRecord
- extract_loading_note(text) -> LoadingNoteRecord
- extract_fiscal_manifest(text) -> FiscalManifestRecord
- extract_invoice_text(text) / extract_invoice_xml(xml) / extract_invoice(payload) -> InvoiceRecord
- from_structured(schema, data) -> record built from collaborator JSON

Every function returns None ("no data extracted") instead of a
half-populated record when mandatory identifying fields are missing or the
input is not recognized at all.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from core.models import (
    BatchHeader,
    BatchManifestRecord,
    FiscalManifestRecord,
    InvoiceRecord,
    LoadingNoteRecord,
    OrderRecord,
    TradeDirection,
)
from core.observability import get_logger, with_correlation
from extraction.rules import extract_fields, is_empty, looks_like_xml
from extraction.schemas import DocumentSchema, SchemaName, get_schema
from extraction.segmenter import segment_batch


logger = get_logger(__name__)

NO_DATA_EXTRACTED = "NO_DATA_EXTRACTED"


# =============================================================================
# Generic Schema Runner
# =============================================================================

def _lookup(values: Mapping[str, Any], dotted: str) -> Any:
    current: Any = values
    for part in dotted.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def missing_fields(values: Mapping[str, Any], names: Sequence[str]) -> List[str]:
    """Mandatory field names whose value is absent or empty."""
    return [name for name in names if is_empty(_lookup(values, name))]


def _line_is_kept(line: Mapping[str, Any]) -> bool:
    return line["line_number"] > 0 and bool(line["description"]) and line["quantity"] > 0


def extract_lines(schema: DocumentSchema, text: str) -> List[Dict[str, Any]]:
    """Parse every repeating block with the line schema; invalid lines are dropped."""
    if schema.lines is None:
        return []
    line_schema = get_schema(schema.lines.schema)
    lines = []
    for block in schema.lines.blocks(text):
        line = extract_fields(line_schema.rules, block).nested()
        if _line_is_kept(line):
            lines.append(line)
        else:
            logger.debug(
                "Dropped line item",
                extra_fields={"line_number": line["line_number"], "quantity": str(line["quantity"])},
            )
    return lines


def run_schema(
    name: SchemaName,
    text: str,
    overrides: Optional[Dict[str, Any]] = None,
) -> Optional[BaseModel]:
    """
    Run one schema's rule table over text and build its record.

    Args:
        name: Schema to apply
        text: Plain text or XML, depending on the schema
        overrides: Values that replace extracted ones (e.g. the order id
            already read by the segmenter)

    Returns:
        The record, or None when mandatory fields are missing or nothing at
        all was recognized
    """
    schema = get_schema(name)
    extraction = extract_fields(schema.rules, text or "")
    values = extraction.nested()
    if overrides:
        values.update(overrides)

    if schema.lines is not None:
        values[schema.lines.target] = extract_lines(schema, text or "")

    if schema.mandatory:
        missing = missing_fields(values, schema.mandatory)
        if missing:
            logger.info(
                "Record suppressed: mandatory fields missing",
                extra_fields={"schema": schema.name.value, "missing": missing},
            )
            return None
    elif extraction.is_empty:
        logger.info(
            "No recognized fields",
            extra_fields={"schema": schema.name.value, "outcome": NO_DATA_EXTRACTED},
        )
        return None

    if schema.finalize is not None:
        values = schema.finalize(values)

    return schema.model.model_validate(values)


# =============================================================================
# Batch Manifest
# =============================================================================

def extract_batch_header(text: str) -> Optional[BatchHeader]:
    """Carrier, loading and driver block of a batch manifest."""
    return run_schema(SchemaName.BATCH_HEADER, text)


def extract_order(order_id: str, text: str) -> Optional[OrderRecord]:
    """One order section; None unless it has an order number and a product."""
    overrides = {"order_number": order_id} if order_id else None
    with with_correlation(order_number=order_id or None):
        return run_schema(SchemaName.ORDER_LINE, text, overrides)


def extract_batch_manifest(text: str) -> Optional[BatchManifestRecord]:
    """
    Header plus every valid order of a batch manifest, in source order.

    Returns None when neither a header field nor any order is recognized.
    """
    with with_correlation(document_type="batch_manifest"):
        header = extract_batch_header(text)
        orders = []
        for segment in segment_batch(text):
            order = extract_order(segment.order_id, segment.text)
            if order is not None:
                orders.append(order)

        if header is None and not orders:
            logger.warning("Batch manifest not recognized", extra_fields={"outcome": NO_DATA_EXTRACTED})
            return None

        logger.info("Batch manifest extracted", extra_fields={"orders": len(orders)})
        return BatchManifestRecord(header=header or BatchHeader(), orders=tuple(orders))


# =============================================================================
# Loading Note / Fiscal Manifest
# =============================================================================

def extract_loading_note(text: str) -> Optional[LoadingNoteRecord]:
    with with_correlation(document_type=SchemaName.LOADING_NOTE.value):
        return run_schema(SchemaName.LOADING_NOTE, text)


def extract_fiscal_manifest(text: str) -> Optional[FiscalManifestRecord]:
    with with_correlation(document_type=SchemaName.FISCAL_MANIFEST.value):
        return run_schema(SchemaName.FISCAL_MANIFEST, text)


# =============================================================================
# Invoice
# =============================================================================

def extract_invoice_text(
    text: str,
    direction: TradeDirection = TradeDirection.PURCHASE,
) -> Optional[InvoiceRecord]:
    """Invoice from its rendered text (PDF text or OCR output)."""
    with with_correlation(document_type=SchemaName.INVOICE_TEXT.value):
        return run_schema(SchemaName.INVOICE_TEXT, text, {"direction": direction})


def extract_invoice_xml(
    xml: str,
    direction: TradeDirection = TradeDirection.PURCHASE,
) -> Optional[InvoiceRecord]:
    """Invoice from FatturaPA XML."""
    with with_correlation(document_type=SchemaName.INVOICE_XML.value):
        return run_schema(SchemaName.INVOICE_XML, xml, {"direction": direction})


def extract_invoice(
    payload: Union[str, bytes],
    direction: TradeDirection = TradeDirection.PURCHASE,
) -> Optional[InvoiceRecord]:
    """Invoice from either XML or text; the format is sniffed from the payload."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8-sig", errors="replace")
    if looks_like_xml(payload):
        return extract_invoice_xml(payload, direction)
    return extract_invoice_text(payload, direction)


# =============================================================================
# Structured JSON Intake
# =============================================================================

def from_structured(
    schema: Union[SchemaName, str],
    data: Optional[Mapping[str, Any]],
) -> Optional[BaseModel]:
    """
    Build a record from already-structured JSON (camelCase or snake_case).

    The same normalization applies as for text extraction. Mandatory fields
    are enforced and invalid invoice lines are dropped.

    Raises:
        pydantic.ValidationError: If the mapping has values of the wrong shape
    """
    document_schema = get_schema(SchemaName(schema))
    if not data:
        return None

    record = document_schema.model.model_validate(data)

    missing = [name for name in document_schema.mandatory if is_empty(_lookup(record.model_dump(), name))]
    if missing:
        logger.info(
            "Structured record suppressed: mandatory fields missing",
            extra_fields={"schema": document_schema.name.value, "missing": missing},
        )
        return None

    if isinstance(record, InvoiceRecord):
        kept = tuple(line for line in record.lines if line.is_valid)
        if len(kept) != len(record.lines):
            record = record.model_copy(update={"lines": kept})
    return record


__all__ = [
    "NO_DATA_EXTRACTED",
    "run_schema",
    "extract_lines",
    "missing_fields",
    "extract_batch_header",
    "extract_order",
    "extract_batch_manifest",
    "extract_loading_note",
    "extract_fiscal_manifest",
    "extract_invoice_text",
    "extract_invoice_xml",
    "extract_invoice",
    "from_structured",
]
