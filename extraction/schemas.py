"""
Document schemas: one declarative rule table per document family.

Schemas:
- BATCH_HEADER: carrier, loading and driver block of a batch manifest
- ORDER_LINE: one "Ordine:" section of a batch manifest
- LOADING_NOTE: carrier loading note
- FISCAL_MANIFEST: e-DAS excise accompanying document
- INVOICE_TEXT / INVOICE_TEXT_LINE: rendered FatturaPA invoice text
- INVOICE_XML / INVOICE_XML_LINE: FatturaPA XML
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from core.config import get_settings
from core.models import (
    BatchHeader,
    FiscalManifestRecord,
    InvoiceLine,
    InvoiceRecord,
    LoadingNoteRecord,
    OrderRecord,
)
from extraction.parsers import (
    carrier_address,
    carrier_name,
    collapse_whitespace,
    composite_code,
    composite_name,
    first_line,
    unit_label,
    vat_id,
)
from extraction.rules import (
    Between,
    FieldKind,
    FieldRule,
    FirstOf,
    Label,
    QuantityChain,
    Section,
    XmlAll,
    XmlElement,
    XmlJoin,
    XmlSum,
    XmlTag,
    xml_elements,
)


class SchemaName(str, Enum):
    BATCH_HEADER = "batch_header"
    ORDER_LINE = "order_line"
    LOADING_NOTE = "loading_note"
    FISCAL_MANIFEST = "fiscal_manifest"
    INVOICE_TEXT = "invoice_text"
    INVOICE_XML = "invoice_xml"
    INVOICE_TEXT_LINE = "invoice_text_line"
    INVOICE_XML_LINE = "invoice_xml_line"


@dataclass(frozen=True)
class LineItems:
    """Repeating blocks parsed with their own rule table."""
    schema: SchemaName
    blocks: Callable[[str], List[str]]
    target: str = "lines"


@dataclass(frozen=True)
class DocumentSchema:
    """
    A document family: its rule table and how the values become a record.

    Attributes:
        name: Schema identifier
        rules: Ordered rule table
        model: Record type built from the extracted values
        mandatory: Fields that must be non-empty, or no record is produced
        finalize: Derives fields from other fields (nested dict in, out)
        lines: Repeating line items, if the family has them
    """
    name: SchemaName
    rules: Tuple[FieldRule, ...]
    model: Type[BaseModel]
    mandatory: Tuple[str, ...] = ()
    finalize: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    lines: Optional[LineItems] = None


NUMBER = FieldKind.NUMBER
PLAIN = FieldKind.PLAIN_NUMBER
DATE = FieldKind.DATE
DATETIME = FieldKind.DATETIME


def _text_label(label: str) -> Label:
    """`<label> (optional bracket note): value` up to the end of the line."""
    return Label(rf"{label}[ \t]*(?:\([^)\n]*\))?[ \t]*[:.]?[ \t]*([^\n]+)")


def _number_label(label: str) -> Label:
    """`<label> ... : 1.234,56` on one line."""
    return Label(rf"{label}(?:[^:\n]*:)?[ \t]*(\d[\d.,]*)")


_DATE_VALUE = r"(\d{1,4}[/.\-]\d{1,2}[/.\-]\d{1,4}(?:[ \t,]+\d{1,2}[:.]\d{2}(?:[:.]\d{2})?)?)"


def _date_label(label: str) -> Label:
    return Label(rf"{label}[^\n\d]*?{_DATE_VALUE}")


# "DAS n. 25ITB0012345678901" / "e-DAS: 25IT..."; the code contains a digit
DAS_NUMBER = Label(
    r"\b(?:e-)?DAS\b[ \t]*(?:numero|nr\.?|n[.°]?|ARC)?[ \t]*:?[ \t]*(?=[A-Z/-]*\d)([A-Z0-9][A-Z0-9/-]{5,})"
)


# =============================================================================
# Batch Manifest
# =============================================================================

_CARRIER_BLOCK = Between(r"Vettore:", r"Autista")

BATCH_HEADER_RULES = (
    FieldRule("carrier_name", _CARRIER_BLOCK, carrier_name),
    FieldRule("carrier_vat_id", _CARRIER_BLOCK, vat_id),
    FieldRule("carrier_address", _CARRIER_BLOCK, carrier_address),
    FieldRule("loading_date", Label(r"Data di carico:\s*(\S+)"), kind=DATE),
    FieldRule("loading_location", Label(r"Base di carico:[ \t]*(.+?)(?=[ \t]*Data\b|$)")),
    FieldRule("loading_status", Label(r"Stato:[ \t]*([^\n]+)")),
    FieldRule("driver_name", Label(r"Autista:[ \t]*([^(\n]+)")),
    FieldRule("driver_code", Label(r"Autista:[^(\n]*\(([^)]+)\)")),
    FieldRule("tractor_plate", Label(r"Targa motrice:\s*([^\s(]+)")),
    FieldRule("trailer_plate", Label(r"Targa rimorchio:\s*(\S+)")),
    FieldRule("tank_container", Label(r"Tank container:\s*(\S+)")),
    FieldRule("batch_reference", Label(r"Numero BDC:\s*(\S+)")),
)

_CUSTOMER_BLOCK = Between(r"Cliente:", r"Destinazione:")
_DESTINATION_BLOCK = Between(r"Destinazione:", r"Quantit[àa]:")

ORDER_LINE_RULES = (
    FieldRule("order_number", Label(r"Ordine:\s*([\d-]+)")),
    FieldRule("product", Between(r"Prodotto:", r"Cliente:"), collapse_whitespace),
    FieldRule("customer_name", _CUSTOMER_BLOCK, composite_name),
    FieldRule("customer_code", _CUSTOMER_BLOCK, composite_code),
    FieldRule("delivery_address", _DESTINATION_BLOCK, composite_name),
    FieldRule("destination_code", _DESTINATION_BLOCK, composite_code),
    FieldRule("quantity", Label(r"Quantit[àa]:\s*(\d[\d.,]*)"), kind=NUMBER),
    FieldRule(
        "quantity_unit",
        Label(r"Quantit[àa]:\s*\d[\d.,]*[ \t]*(\(?[A-Za-z]+\)?)"),
        unit_label,
        default="L",
    ),
    FieldRule("identifier", Label(r"Identificativo:\s*(\S+)")),
)


# =============================================================================
# Loading Note
# =============================================================================

_KG_QUANTITY = r"(?:Qnt|Quantit[àa])\.?\s*in\s*kg"


def _finalize_loading_note(values: Dict[str, Any]) -> Dict[str, Any]:
    if not values["net_weight_kg"] and values["gross_weight_kg"]:
        values["net_weight_kg"] = values["gross_weight_kg"]
    values["notes"] = (
        f"Autista: {values['driver_name'] or 'N/A'} | "
        f"Densità 15°C: {values['density_at_15c'] or 'N/A'} | "
        f"Densità ambiente: {values['density_at_ambient'] or 'N/A'}"
    )
    return values


LOADING_NOTE_RULES = (
    FieldRule("document_number", FirstOf((
        DAS_NUMBER,
        _text_label(r"(?:Numero documento|Documento n[.°]?)"),
    ))),
    FieldRule("loading_date", _date_label(r"\bData(?: di carico)?\b"), kind=DATETIME),
    FieldRule("carrier_name", _text_label(r"\bVettore")),
    FieldRule("shipper_name", _text_label(r"\bDeposito(?=[ \t]*:)")),
    FieldRule("consignee_name", _text_label(r"\bDestinazione(?=[ \t]*:)")),
    FieldRule("product_description", _text_label(r"\bProdotto(?=[ \t]*:)")),
    FieldRule("gross_weight_kg", FirstOf((
        _number_label(r"Peso lordo"),
        _number_label(_KG_QUANTITY),
    )), kind=NUMBER),
    FieldRule("net_weight_kg", FirstOf((
        _number_label(r"Peso netto"),
        _number_label(_KG_QUANTITY),
    )), kind=NUMBER),
    FieldRule("volume_liters", _number_label(r"Quantit[àa] consegnata"), kind=NUMBER),
    FieldRule("density_at_15c", _number_label(r"Densit[àa][ \t]*(?:a[ \t]*)?15"), kind=NUMBER),
    FieldRule("density_at_ambient", _number_label(r"Densit[àa][ \t]*(?:a[ \t]*)?(?:temp\.?[ \t]*)?ambiente"), kind=NUMBER),
    FieldRule("principal_name", _text_label(r"\bCommittente")),
    FieldRule("company_name", _text_label(r"\bSociet[àa]")),
    FieldRule("depot_location", _text_label(r"\bDeposito(?=[ \t]*:)")),
    FieldRule("supplier_location", _text_label(r"\bFornitore")),
    FieldRule("driver_name", _text_label(r"\bAutista")),
    FieldRule("destination_name", _text_label(r"\bDestinatario")),
)


# =============================================================================
# Fiscal Manifest (e-DAS)
# =============================================================================

_BLOCK_SENDER = r"^[ \t]*(?:Speditore|Mittente)\b"
_BLOCK_DEPOSITOR = r"^[ \t]*Depositante\b"
_BLOCK_RECIPIENT = r"^[ \t]*Destinatario\b"
_BLOCK_TRANSPORT = r"^[ \t]*(?:Dati (?:del )?)?Trasporto\b"
_BLOCK_PRODUCT = r"^[ \t]*(?:Dati )?Prodotto\b"

_SENDER = Section(_BLOCK_SENDER, rf"{_BLOCK_DEPOSITOR}|{_BLOCK_RECIPIENT}")
_DEPOSITOR = Section(_BLOCK_DEPOSITOR, _BLOCK_RECIPIENT)
_RECIPIENT = Section(_BLOCK_RECIPIENT, rf"{_BLOCK_TRANSPORT}|{_BLOCK_PRODUCT}")
_TRANSPORT = Section(_BLOCK_TRANSPORT, _BLOCK_PRODUCT)
_PRODUCT = Section(_BLOCK_PRODUCT)

_NAME = _text_label(r"(?:Nome|Denominazione|Ragione sociale)")
_ADDRESS = _text_label(r"Indirizzo")

FISCAL_MANIFEST_RULES = (
    FieldRule("document_info.das_number", DAS_NUMBER),
    FieldRule("document_info.version", Label(r"Versione[ \t]*:?[ \t]*(\d+)"), default="1"),
    FieldRule("document_info.local_reference_number", _text_label(r"(?:Numero di )?riferimento locale")),
    FieldRule("document_info.invoice_number", Label(
        r"Fattura[ \t]*(?:numero|nr\.?|n[.°]?)?[ \t]*:?[ \t]*(?!\d{1,2}[/.-]\d{1,2}[/.-])([A-Z0-9][\w/-]*)"
    )),
    FieldRule("document_info.invoice_date", FirstOf((
        _date_label(r"Data fattura"),
        _date_label(r"Fattura[^\n]*?\bdel\b"),
    )), kind=DATE),
    FieldRule("document_info.registration_datetime", _date_label(r"registrazione"), kind=DATETIME),
    FieldRule("document_info.shipping_datetime", _date_label(r"spedizione"), kind=DATETIME),
    FieldRule("document_info.validity_expiration_datetime", _date_label(r"scadenza"), kind=DATETIME),

    FieldRule("sender_info.depot_code", Label(
        r"(?:Codice[ \t]*)?deposito[ \t]*mittente[ \t]*:?[ \t]*([A-Z0-9]{5,})"
    )),
    FieldRule("sender_info.name", _NAME, scope=_SENDER),
    FieldRule("sender_info.address", _ADDRESS, scope=_SENDER),
    FieldRule("sender_info.organization_name", _text_label(r"(?:Organizzazione|Societ[àa])"), scope=_SENDER),

    FieldRule("depositor_info.name", _NAME, scope=_DEPOSITOR),
    FieldRule("depositor_info.id", _text_label(r"(?:Codice|ID|Codice accisa)"), scope=_DEPOSITOR),
    FieldRule("depositor_info.location", _text_label(r"(?:Localit[àa]|Luogo)"), scope=_DEPOSITOR),

    FieldRule("recipient_info.name", _NAME, scope=_RECIPIENT),
    FieldRule("recipient_info.address", _ADDRESS, scope=_RECIPIENT),
    FieldRule("recipient_info.tax_code", _text_label(r"(?:Codice fiscale|Partita IVA|P\.?[ \t]*IVA)"), scope=_RECIPIENT),
    FieldRule("recipient_info.facility_code", _text_label(r"(?:Codice[ \t]*)?impianto ricevente"), scope=_RECIPIENT),

    FieldRule("transport_info.transport_manager", _text_label(r"Gestore"), scope=_TRANSPORT),
    FieldRule("transport_info.transport_mode", _text_label(r"Modalit[àa]"), scope=_TRANSPORT),
    FieldRule("transport_info.vehicle_type", _text_label(r"Tipo(?: veicolo)?"), scope=_TRANSPORT),
    FieldRule("transport_info.vehicle_id", _text_label(r"(?:Targa|Identificativo veicolo|Veicolo)"), scope=_TRANSPORT),
    FieldRule("transport_info.estimated_duration", _text_label(r"Durata"), scope=_TRANSPORT),
    FieldRule("transport_info.first_carrier_name", _text_label(r"^[ \t]*(?:Primo )?vettore"), scope=_TRANSPORT),
    FieldRule("transport_info.first_carrier_id", _text_label(r"(?:Codice|ID|Partita IVA) vettore"), scope=_TRANSPORT),
    FieldRule("transport_info.driver_name", _text_label(
        r"(?:Primo incaricato del trasporto|Autista|Conducente)"
    ), scope=_TRANSPORT),

    FieldRule("product_info.product_code", _text_label(r"Codice(?: prodotto| NC)?"), scope=_PRODUCT),
    FieldRule("product_info.description", FirstOf((
        _text_label(r"Descrizione(?: prodotto)?"),
        _text_label(r"^[ \t]*Prodotto"),
    ))),
    FieldRule("product_info.un_code", Label(r"\bUN[ \t]*:?[ \t]*(\d{4})\b"), scope=_PRODUCT),
    FieldRule("product_info.net_weight_kg", _number_label(r"Peso netto"), kind=NUMBER, scope=_PRODUCT),
    FieldRule("product_info.volume_at_ambient_l", _number_label(
        r"Volume[ \t]*(?:a[ \t]*)?temp(?:eratura|\.)?[ \t]*ambiente"
    ), kind=NUMBER, scope=_PRODUCT),
    FieldRule("product_info.volume_at_15c_l", _number_label(r"Volume[ \t]*a[ \t]*15"), kind=NUMBER, scope=_PRODUCT),
    FieldRule("product_info.density_at_ambient", _number_label(
        r"Densit[àa][ \t]*(?:a[ \t]*)?temp(?:eratura|\.)?[ \t]*ambiente"
    ), kind=NUMBER, scope=_PRODUCT),
    FieldRule("product_info.density_at_15c", _number_label(r"Densit[àa][ \t]*a[ \t]*15"), kind=NUMBER, scope=_PRODUCT),
)


# =============================================================================
# Invoice (shared finalization)
# =============================================================================

def _transport_from_lines(values: Dict[str, Any]) -> Dict[str, Any]:
    """Fill transport details from the line items and the client block."""
    transport = values.setdefault("transport_details", {})
    lines = values.get("lines") or []
    if lines:
        plausible = get_settings().plausible_quantity_min
        chosen = next((line for line in lines if line["quantity"] >= plausible), lines[0])
        if not transport.get("product_type"):
            transport["product_type"] = chosen["description"]
        if not transport.get("quantity"):
            transport["quantity"] = chosen["quantity"]
        if not transport.get("unit_price"):
            transport["unit_price"] = chosen["unit_value"]
        if not transport.get("unit_of_measure"):
            transport["unit_of_measure"] = chosen["unit_of_measure"]
    if not transport.get("delivery_address"):
        transport["delivery_address"] = values.get("client", {}).get("address", "")

    amounts = values.setdefault("amounts", {})
    if not amounts.get("total"):
        amounts["total"] = amounts.get("net", Decimal("0")) + amounts.get("tax", Decimal("0"))
    return values


# =============================================================================
# Invoice from Text
# =============================================================================

_ISSUER_BLOCK = Section(r"Cedente\s*/\s*prestatore", r"Cessionario\s*/\s*committente")
_CLIENT_BLOCK = Section(
    r"Cessionario\s*/\s*committente",
    r"Tipologia documento|Numero documento|^\s*(?:Linea|Riga|Line)\s*(?:n\.?\s*)?\d",
)
_TAX_ID = _text_label(r"(?:Identificativo fiscale ai fini IVA|Partita IVA|P\.?[ \t]*IVA)")

_TEXT_LINE_MARKER = re.compile(r"^[ \t]*(?:Linea|Riga|Line)[ \t]*(?:n\.?[ \t]*)?\d+", re.IGNORECASE | re.MULTILINE)
_TEXT_LINES_END = re.compile(r"^[ \t]*(?:Totale imponibile|Riepiloghi|Dati riepilogo)", re.IGNORECASE | re.MULTILINE)


def text_line_blocks(text: str) -> List[str]:
    """Split the detail section into one block per "Linea N" marker."""
    starts = [m.start() for m in _TEXT_LINE_MARKER.finditer(text or "")]
    blocks = []
    for index, start in enumerate(starts):
        end = starts[index + 1] if index + 1 < len(starts) else len(text)
        block = text[start:end]
        tail = _TEXT_LINES_END.search(block)
        blocks.append(block[:tail.start()] if tail else block)
    return blocks


INVOICE_TEXT_LINE_RULES = (
    FieldRule("line_number", Label(r"^[ \t]*(?:Linea|Riga|Line)[ \t]*(?:n\.?[ \t]*)?(\d+)"), kind=FieldKind.INTEGER),
    FieldRule("product_code", _text_label(r"Codice articolo")),
    FieldRule("description", _text_label(r"Descrizione")),
    FieldRule("quantity", QuantityChain(), kind=NUMBER),
    FieldRule("unit_of_measure", FirstOf((
        Label(r"Unit[àa] di misura[ \t]*:?[ \t]*(\S+)"),
        Label(r"\d[ \t]*(LITRI|LT|KG)\b"),
    )), unit_label),
    FieldRule("unit_value", _number_label(r"Prezzo unitario"), kind=NUMBER),
    FieldRule("total_value", _number_label(r"(?:Prezzo totale|Importo)"), kind=NUMBER),
    FieldRule("vat_rate", _number_label(r"(?:Aliquota IVA|IVA %)"), kind=NUMBER),
    FieldRule("extra_data", _text_label(r"(?:Altri dati|Riferimento testo)")),
)

INVOICE_TEXT_RULES = (
    FieldRule("invoice_number", _text_label(r"Numero documento"), first_line),
    FieldRule("date", _date_label(r"Data documento"), kind=DATE),
    FieldRule("issuer.name", _NAME, scope=_ISSUER_BLOCK),
    FieldRule("issuer.tax_id", _TAX_ID, scope=_ISSUER_BLOCK),
    FieldRule("issuer.address", _ADDRESS, scope=_ISSUER_BLOCK),
    FieldRule("client.name", _NAME, scope=_CLIENT_BLOCK),
    FieldRule("client.tax_id", _TAX_ID, scope=_CLIENT_BLOCK),
    FieldRule("client.address", _ADDRESS, scope=_CLIENT_BLOCK),
    FieldRule("amounts.net", _number_label(r"Totale imponibile"), kind=NUMBER),
    FieldRule("amounts.tax", _number_label(r"Totale imposta"), kind=NUMBER),
    FieldRule("amounts.total", _number_label(r"Totale documento"), kind=NUMBER),
    FieldRule("transport_details.reference_number", FirstOf((
        DAS_NUMBER,
        Label(r"\bDDT\b[ \t]*(?:n[.°]?|nr\.?|numero)?[ \t]*:?[ \t]*([A-Z0-9/-]+)"),
    ))),
    FieldRule("transport_details.delivery_address", _text_label(r"(?:Luogo di consegna|Destinazione)")),
    FieldRule("description", _text_label(r"Causale")),
    FieldRule("payment_terms", _text_label(r"Modalit[àa] (?:di )?pagamento")),
    FieldRule("due_date", _date_label(r"(?:Data )?scadenza"), kind=DATE),
)


# =============================================================================
# Invoice from XML (FatturaPA)
# =============================================================================

_GENERAL = XmlElement("DatiGeneraliDocumento")
_ISSUER_XML = XmlElement("CedentePrestatore")
_CLIENT_XML = XmlElement("CessionarioCommittente")
_PAYMENT = XmlElement("DatiPagamento")

_XML_NAME = FirstOf((XmlTag("Denominazione"), XmlJoin(("Nome", "Cognome"))))
_XML_TAX_ID = FirstOf((XmlJoin(("IdPaese", "IdCodice"), separator=""), XmlTag("CodiceFiscale")))
_XML_ADDRESS = XmlJoin(("Indirizzo", "NumeroCivico", "CAP", "Comune", "Provincia"))

# <TipoDato>DAS</TipoDato><RiferimentoTesto>25IT...</RiferimentoTesto>
_XML_DAS = Label(
    r"<(?:[\w.-]+:)?TipoDato>\s*(?:e-?)?DAS\s*</(?:[\w.-]+:)?TipoDato>\s*"
    r"<(?:[\w.-]+:)?RiferimentoTesto>\s*([^<\s]+)\s*<"
)


def xml_line_blocks(xml: str) -> List[str]:
    return xml_elements(xml, "DettaglioLinee")


INVOICE_XML_LINE_RULES = (
    FieldRule("line_number", XmlTag("NumeroLinea"), kind=FieldKind.INTEGER),
    FieldRule("product_code", XmlTag("CodiceValore")),
    FieldRule("description", XmlTag("Descrizione")),
    FieldRule("quantity", XmlTag("Quantita"), kind=PLAIN),
    FieldRule("unit_of_measure", XmlTag("UnitaMisura"), unit_label),
    FieldRule("unit_value", XmlTag("PrezzoUnitario"), kind=PLAIN),
    FieldRule("total_value", XmlTag("PrezzoTotale"), kind=PLAIN),
    FieldRule("vat_rate", XmlTag("AliquotaIVA"), kind=PLAIN),
    FieldRule("extra_data", XmlAll("RiferimentoTesto", separator="; ")),
)

INVOICE_XML_RULES = (
    FieldRule("invoice_number", XmlTag("Numero"), scope=_GENERAL),
    FieldRule("date", XmlTag("Data"), kind=DATE, scope=_GENERAL),
    FieldRule("issuer.name", _XML_NAME, scope=_ISSUER_XML),
    FieldRule("issuer.tax_id", _XML_TAX_ID, scope=_ISSUER_XML),
    FieldRule("issuer.address", _XML_ADDRESS, scope=(_ISSUER_XML, XmlElement("Sede"))),
    FieldRule("client.name", _XML_NAME, scope=_CLIENT_XML),
    FieldRule("client.tax_id", _XML_TAX_ID, scope=_CLIENT_XML),
    FieldRule("client.address", _XML_ADDRESS, scope=(_CLIENT_XML, XmlElement("Sede"))),
    FieldRule("amounts.net", XmlSum("ImponibileImporto"), kind=PLAIN),
    FieldRule("amounts.tax", XmlSum("Imposta"), kind=PLAIN),
    FieldRule("amounts.total", XmlTag("ImportoTotaleDocumento"), kind=PLAIN, scope=_GENERAL),
    FieldRule("transport_details.reference_number", FirstOf((_XML_DAS, XmlTag("NumeroDDT")))),
    FieldRule("description", XmlAll("Causale"), scope=_GENERAL),
    FieldRule("payment_terms", XmlTag("ModalitaPagamento"), scope=_PAYMENT),
    FieldRule("due_date", XmlTag("DataScadenzaPagamento"), kind=DATE, scope=_PAYMENT),
)


# =============================================================================
# Registry
# =============================================================================

SCHEMAS: Dict[SchemaName, DocumentSchema] = {
    SchemaName.BATCH_HEADER: DocumentSchema(
        name=SchemaName.BATCH_HEADER,
        rules=BATCH_HEADER_RULES,
        model=BatchHeader,
    ),
    SchemaName.ORDER_LINE: DocumentSchema(
        name=SchemaName.ORDER_LINE,
        rules=ORDER_LINE_RULES,
        model=OrderRecord,
        mandatory=("order_number", "product"),
    ),
    SchemaName.LOADING_NOTE: DocumentSchema(
        name=SchemaName.LOADING_NOTE,
        rules=LOADING_NOTE_RULES,
        model=LoadingNoteRecord,
        finalize=_finalize_loading_note,
    ),
    SchemaName.FISCAL_MANIFEST: DocumentSchema(
        name=SchemaName.FISCAL_MANIFEST,
        rules=FISCAL_MANIFEST_RULES,
        model=FiscalManifestRecord,
    ),
    SchemaName.INVOICE_TEXT_LINE: DocumentSchema(
        name=SchemaName.INVOICE_TEXT_LINE,
        rules=INVOICE_TEXT_LINE_RULES,
        model=InvoiceLine,
    ),
    SchemaName.INVOICE_XML_LINE: DocumentSchema(
        name=SchemaName.INVOICE_XML_LINE,
        rules=INVOICE_XML_LINE_RULES,
        model=InvoiceLine,
    ),
    SchemaName.INVOICE_TEXT: DocumentSchema(
        name=SchemaName.INVOICE_TEXT,
        rules=INVOICE_TEXT_RULES,
        model=InvoiceRecord,
        mandatory=("invoice_number", "date"),
        finalize=_transport_from_lines,
        lines=LineItems(SchemaName.INVOICE_TEXT_LINE, text_line_blocks),
    ),
    SchemaName.INVOICE_XML: DocumentSchema(
        name=SchemaName.INVOICE_XML,
        rules=INVOICE_XML_RULES,
        model=InvoiceRecord,
        mandatory=("invoice_number", "date"),
        finalize=_transport_from_lines,
        lines=LineItems(SchemaName.INVOICE_XML_LINE, xml_line_blocks),
    ),
}


def get_schema(name: SchemaName) -> DocumentSchema:
    return SCHEMAS[SchemaName(name)]
