"""Core canonical data models - records produced by the extractor.

These models are the typed, immutable output of one extraction call. They
are also what the structured-extraction collaborator's JSON is validated
into, which is why every model accepts camelCase keys ("dasNumber") as well
as the snake_case field names.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated

from core.normalize import normalize_date, parse_number, parse_plain_number


# =============================================================================
# Value Parsers (handle the formats that reach the record boundary)
# =============================================================================

def _parse_quantity(value):
    """Non-negative Decimal from Decimal, number or Italian/plain text."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, (Decimal, int, float)):
        return parse_plain_number(value)
    return parse_number(value)


def _parse_text(value):
    """Strings are trimmed; None becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _parse_date_text(value):
    """Any supported date format -> ISO date text ("" when unknown)."""
    if isinstance(value, str) and value.strip() == "":
        return ""
    return normalize_date(value)


def _parse_datetime_text(value):
    """Like _parse_date_text but keeps the time of day when present."""
    if isinstance(value, str) and value.strip() == "":
        return ""
    return normalize_date(value, keep_time=True)


# Annotated types for automatic parsing
Quantity = Annotated[Decimal, BeforeValidator(_parse_quantity), Field(ge=0)]
Text = Annotated[str, BeforeValidator(_parse_text)]
IsoDate = Annotated[str, BeforeValidator(_parse_date_text)]
IsoDateTime = Annotated[str, BeforeValidator(_parse_datetime_text)]


# =============================================================================
# Base Model
# =============================================================================

class CanonicalBase(BaseModel):
    """Base model for all canonical records: immutable, camelCase-tolerant."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class TradeDirection(str, Enum):
    """Which side of a trade an invoice records."""
    PURCHASE = "purchase"  # passive invoice, we buy
    SALE = "sale"          # active invoice, we sell

    @property
    def opposite(self) -> "TradeDirection":
        return TradeDirection.SALE if self is TradeDirection.PURCHASE else TradeDirection.PURCHASE


# =============================================================================
# Batch Manifest Models
# =============================================================================

class OrderRecord(CanonicalBase):
    """One order line item of a batch manifest."""
    order_number: Text = ""
    product: Text = ""
    customer_name: Text = ""
    customer_code: Text = ""
    delivery_address: Text = ""
    destination_code: Text = ""
    quantity: Quantity = Decimal("0")
    quantity_unit: Text = "L"
    identifier: Text = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.order_number and self.product)


class BatchHeader(CanonicalBase):
    """Carrier, loading and driver details printed once per batch manifest."""
    carrier_name: Text = ""
    carrier_vat_id: Text = ""
    carrier_address: Text = ""
    loading_date: IsoDate = ""
    loading_location: Text = ""
    loading_status: Text = ""
    driver_name: Text = ""
    driver_code: Text = ""
    tractor_plate: Text = ""
    trailer_plate: Text = ""
    tank_container: Text = ""
    batch_reference: Text = ""


class BatchManifestRecord(CanonicalBase):
    """Complete batch manifest: header plus its orders in source order."""
    header: BatchHeader = Field(default_factory=BatchHeader)
    orders: Tuple[OrderRecord, ...] = ()


# =============================================================================
# Loading Note Models
# =============================================================================

class LoadingNoteRecord(CanonicalBase):
    """Carrier-issued record of what was physically loaded at the depot."""
    document_number: Text = ""
    loading_date: IsoDate = ""
    carrier_name: Text = ""
    shipper_name: Text = ""
    consignee_name: Text = ""
    product_description: Text = ""
    gross_weight_kg: Quantity = Decimal("0")
    net_weight_kg: Quantity = Decimal("0")
    volume_liters: Quantity = Decimal("0")
    notes: Text = ""

    density_at_15c: Quantity = Decimal("0")
    density_at_ambient: Quantity = Decimal("0")
    principal_name: Text = ""
    company_name: Text = ""
    depot_location: Text = ""
    supplier_location: Text = ""
    driver_name: Text = ""
    destination_name: Text = ""


# =============================================================================
# Fiscal Manifest (e-DAS) Models
# =============================================================================

class ManifestDocumentInfo(CanonicalBase):
    das_number: Text = ""
    version: Text = "1"
    local_reference_number: Text = ""
    invoice_number: Text = ""
    invoice_date: IsoDate = ""
    registration_datetime: IsoDateTime = ""
    shipping_datetime: IsoDateTime = ""
    validity_expiration_datetime: IsoDateTime = ""


class ManifestSenderInfo(CanonicalBase):
    depot_code: Text = Field(default="", alias="depositoMittenteCode")
    name: Text = ""
    address: Text = ""
    organization_name: Text = ""


class ManifestDepositorInfo(CanonicalBase):
    name: Text = ""
    id: Text = ""
    location: Text = ""


class ManifestRecipientInfo(CanonicalBase):
    name: Text = ""
    address: Text = ""
    tax_code: Text = ""
    facility_code: Text = ""


class ManifestTransportInfo(CanonicalBase):
    transport_manager: Text = ""
    transport_mode: Text = ""
    vehicle_type: Text = ""
    vehicle_id: Text = ""
    estimated_duration: Text = ""
    first_carrier_name: Text = ""
    first_carrier_id: Text = ""
    driver_name: Text = ""


class ManifestProductInfo(CanonicalBase):
    product_code: Text = ""
    description: Text = ""
    un_code: Text = ""
    net_weight_kg: Quantity = Decimal("0")
    volume_at_ambient_l: Quantity = Field(default=Decimal("0"), alias="volumeAtAmbientTempL")
    volume_at_15c_l: Quantity = Field(default=Decimal("0"), alias="volumeAt15CL")
    density_at_ambient: Quantity = Field(default=Decimal("0"), alias="densityAtAmbientTemp")
    density_at_15c: Quantity = Field(default=Decimal("0"), alias="densityAt15C")


class FiscalManifestRecord(CanonicalBase):
    """Electronic excise accompanying document (e-DAS)."""
    document_info: ManifestDocumentInfo = Field(default_factory=ManifestDocumentInfo)
    sender_info: ManifestSenderInfo = Field(default_factory=ManifestSenderInfo)
    depositor_info: ManifestDepositorInfo = Field(default_factory=ManifestDepositorInfo)
    recipient_info: ManifestRecipientInfo = Field(default_factory=ManifestRecipientInfo)
    transport_info: ManifestTransportInfo = Field(default_factory=ManifestTransportInfo)
    product_info: ManifestProductInfo = Field(default_factory=ManifestProductInfo)


# =============================================================================
# Invoice Models
# =============================================================================

class Party(CanonicalBase):
    """Issuer (cedente/prestatore) or client (cessionario/committente)."""
    name: Text = ""
    tax_id: Text = Field(default="", alias="taxCode")
    address: Text = ""


class InvoiceAmounts(CanonicalBase):
    net: Quantity = Field(default=Decimal("0"), alias="netAmount")
    tax: Quantity = Field(default=Decimal("0"), alias="taxAmount")
    total: Quantity = Field(default=Decimal("0"), alias="totalAmount")


class TransportDetails(CanonicalBase):
    """Fuel-specific summary of what the invoice bills for."""
    product_type: Text = ""
    quantity: Quantity = Decimal("0")
    unit_price: Quantity = Decimal("0")
    reference_number: Text = Field(default="", alias="dasNumber")
    delivery_address: Text = ""
    unit_of_measure: Text = ""


class InvoiceLine(CanonicalBase):
    """One detail line (DettaglioLinee)."""
    line_number: int = Field(default=0, ge=0)
    product_code: Text = ""
    description: Text = ""
    quantity: Quantity = Decimal("0")
    unit_of_measure: Text = ""
    unit_value: Quantity = Decimal("0")
    total_value: Quantity = Decimal("0")
    vat_rate: Quantity = Decimal("0")
    extra_data: Text = Field(default="", alias="additionalData")

    @property
    def is_valid(self) -> bool:
        return self.line_number > 0 and bool(self.description) and self.quantity > 0


class InvoiceRecord(CanonicalBase):
    """Commercial invoice, from FatturaPA XML or its rendered text."""
    invoice_number: Text = ""
    date: IsoDate = ""
    issuer: Party = Field(default_factory=Party, alias="issuerInfo")
    client: Party = Field(default_factory=Party, alias="clientInfo")
    amounts: InvoiceAmounts = Field(default_factory=InvoiceAmounts)
    transport_details: TransportDetails = Field(default_factory=TransportDetails)
    lines: Tuple[InvoiceLine, ...] = Field(default=(), alias="invoiceLines")
    description: Text = ""
    payment_terms: Text = ""
    due_date: IsoDate = ""
    direction: TradeDirection = TradeDirection.PURCHASE

    @property
    def is_valid(self) -> bool:
        return bool(self.invoice_number and self.date)
