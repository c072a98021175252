"""Trading margin calculation.

Exposes high-level functions:
- calculate_margin(purchase_price, sale_price, quantity_liters, benchmark_price) -> MarginFigures
- find_counterpart_invoice(invoice, candidates) -> Optional[InvoiceRecord]
- build_margin_rows(invoice, resolver, counterparts) -> List[MarginRow]
- assess_price_variance(invoice_price, reference_price) -> Optional[PriceVariance]

All arithmetic is done on Decimals at full precision; rounding happens only
in MarginFigures.display().
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models import InvoiceLine, InvoiceRecord
from core.normalize import ZERO, parse_number
from core.observability import get_logger, with_correlation
from price_resolver import PriceResolver, ResolvedPrice, normalize_depot, normalize_product


logger = get_logger(__name__)


# =============================================================================
# Configuration & Data Structures
# =============================================================================

UNIT_PRICE_PLACES = Decimal("0.00001")
TOTAL_PLACES = Decimal("0.01")

SIGNIFICANT_VARIANCE_ABS = Decimal("0.01")    # EUR per litre
SIGNIFICANT_VARIANCE_PCT = Decimal("2")       # percent


def _decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return parse_number(value)


def _round(value: Decimal, places: Decimal) -> str:
    return str(value.quantize(places, rounding=ROUND_HALF_UP))


class MarginFigures(BaseModel):
    """
    Margin of one delivery.

    Attributes:
        purchase_price: Purchase price per litre
        sale_price: Sale price per litre
        quantity_liters: Delivered quantity
        benchmark_price: Benchmark (Platts) price per litre, 0 when unknown
        per_unit_margin: sale - purchase
        total_margin: per_unit_margin x quantity
        taxable_sale_base: quantity x sale - benchmark
        taxable_purchase_base: quantity x purchase
        markup: purchase - benchmark
    """
    model_config = ConfigDict(frozen=True)

    purchase_price: Decimal
    sale_price: Decimal
    quantity_liters: Decimal
    benchmark_price: Decimal = ZERO

    per_unit_margin: Decimal
    total_margin: Decimal
    taxable_sale_base: Decimal
    taxable_purchase_base: Decimal
    markup: Decimal

    def display(self) -> Dict[str, str]:
        """Rounded for presentation: unit prices to 5 places, totals to 2."""
        return {
            "purchase_price": _round(self.purchase_price, UNIT_PRICE_PLACES),
            "sale_price": _round(self.sale_price, UNIT_PRICE_PLACES),
            "benchmark_price": _round(self.benchmark_price, UNIT_PRICE_PLACES),
            "per_unit_margin": _round(self.per_unit_margin, UNIT_PRICE_PLACES),
            "markup": _round(self.markup, UNIT_PRICE_PLACES),
            "quantity_liters": _round(self.quantity_liters, TOTAL_PLACES),
            "total_margin": _round(self.total_margin, TOTAL_PLACES),
            "taxable_sale_base": _round(self.taxable_sale_base, TOTAL_PLACES),
            "taxable_purchase_base": _round(self.taxable_purchase_base, TOTAL_PLACES),
        }


def calculate_margin(
    purchase_price: Any,
    sale_price: Any,
    quantity_liters: Any,
    benchmark_price: Any = ZERO,
) -> MarginFigures:
    """Compute the margin figures of one delivery at full precision."""
    purchase = _decimal(purchase_price)
    sale = _decimal(sale_price)
    quantity = _decimal(quantity_liters)
    benchmark = _decimal(benchmark_price)

    per_unit = sale - purchase
    return MarginFigures(
        purchase_price=purchase,
        sale_price=sale,
        quantity_liters=quantity,
        benchmark_price=benchmark,
        per_unit_margin=per_unit,
        total_margin=per_unit * quantity,
        taxable_sale_base=quantity * sale - benchmark,
        taxable_purchase_base=quantity * purchase,
        markup=purchase - benchmark,
    )


# =============================================================================
# Price Variance
# =============================================================================

class VarianceStatus(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUAL = "equal"


class PriceVariance(BaseModel):
    """Invoice price against a reference price."""
    model_config = ConfigDict(frozen=True)

    invoice_price: Decimal
    reference_price: Decimal
    difference: Decimal = Field(description="invoice - reference")
    percentage: Decimal = Field(description="|difference| / reference x 100")
    status: VarianceStatus
    is_significant: bool


def assess_price_variance(invoice_price: Any, reference_price: Any) -> Optional[PriceVariance]:
    """
    Compare an invoice price with a reference price.

    Significant when the absolute difference is at least 0.01 EUR/L or at
    least 2 % of the reference. Returns None when either price is missing.
    """
    invoice = _decimal(invoice_price)
    reference = _decimal(reference_price)
    if invoice <= 0 or reference <= 0:
        return None

    difference = invoice - reference
    percentage = abs(difference) / reference * 100
    if difference > 0:
        status = VarianceStatus.ABOVE
    elif difference < 0:
        status = VarianceStatus.BELOW
    else:
        status = VarianceStatus.EQUAL

    return PriceVariance(
        invoice_price=invoice,
        reference_price=reference,
        difference=difference,
        percentage=percentage,
        status=status,
        is_significant=abs(difference) >= SIGNIFICANT_VARIANCE_ABS or percentage >= SIGNIFICANT_VARIANCE_PCT,
    )


# =============================================================================
# Margin Rows
# =============================================================================

class MarginRow(BaseModel):
    """One reporting row: an invoice line with its prices and margin."""
    model_config = ConfigDict(frozen=True)

    invoice_number: str
    date: str
    line_number: int = 0
    description: str = ""
    product_type: Optional[str] = None
    loading_base: Optional[str] = None

    purchase_price_source: str = Field(description="price_table or invoice")
    sale_price_source: str = Field(description="counterpart or invoice")
    counterpart_invoice_number: Optional[str] = None

    resolution: ResolvedPrice
    figures: MarginFigures
    variance: Optional[PriceVariance] = None


def find_counterpart_invoice(
    invoice: InvoiceRecord,
    candidates: Iterable[InvoiceRecord],
) -> Optional[InvoiceRecord]:
    """
    Find the invoice on the other side of the same shipment.

    A counterpart has the opposite direction, the same date and the same
    shipment reference number (DAS). Returns None without a reference.
    """
    reference = invoice.transport_details.reference_number.strip().upper()
    if not reference:
        return None
    for candidate in candidates:
        if candidate.direction != invoice.direction.opposite:
            continue
        if candidate.date != invoice.date:
            continue
        if candidate.transport_details.reference_number.strip().upper() == reference:
            return candidate
    return None


def _invoice_lines(invoice: InvoiceRecord) -> List[InvoiceLine]:
    """Invoice lines, or one line built from the transport details."""
    if invoice.lines:
        return list(invoice.lines)
    transport = invoice.transport_details
    if transport.quantity <= 0:
        return []
    return [
        InvoiceLine(
            line_number=1,
            description=transport.product_type,
            quantity=transport.quantity,
            unit_of_measure=transport.unit_of_measure,
            unit_value=transport.unit_price,
        )
    ]


def _counterpart_price(line: InvoiceLine, counterpart: Optional[InvoiceRecord]) -> Optional[Decimal]:
    if counterpart is None:
        return None
    lines = _invoice_lines(counterpart)
    product_type = normalize_product(line.description)
    for other in lines:
        if other.unit_value > 0 and product_type and normalize_product(other.description) == product_type:
            return other.unit_value
    for other in lines:
        if other.unit_value > 0 and other.line_number == line.line_number:
            return other.unit_value
    return None


def _loading_base(invoice: InvoiceRecord, line: InvoiceLine) -> str:
    """Text most likely to name the loading depot."""
    for text in (line.extra_data, line.description, invoice.description):
        if text and normalize_depot(text):
            return text
    return ""


def build_margin_rows(
    invoice: InvoiceRecord,
    resolver: PriceResolver,
    counterparts: Iterable[InvoiceRecord] = (),
    loading_base: Optional[str] = None,
) -> List[MarginRow]:
    """
    Build one margin row per invoice line of a purchase invoice.

    Args:
        invoice: Purchase-side invoice
        resolver: Price resolver over the loaded price table
        counterparts: Sale-side invoices to search for the same shipment
        loading_base: Depot text; looked up in the line and invoice text
            when not given

    Returns:
        Margin rows in line order
    """
    rows: List[MarginRow] = []
    counterpart = find_counterpart_invoice(invoice, counterparts)

    with with_correlation(invoice_number=invoice.invoice_number, stage="margin"):
        for line in _invoice_lines(invoice):
            base_text = loading_base if loading_base is not None else _loading_base(invoice, line)
            resolution = resolver.resolve(invoice.issuer.name, line.description, base_text, invoice.date)

            if resolution.is_known:
                purchase_price, purchase_source = resolution.price, "price_table"
            else:
                purchase_price, purchase_source = line.unit_value, "invoice"

            counterpart_price = _counterpart_price(line, counterpart)
            if counterpart_price is not None:
                sale_price, sale_source = counterpart_price, "counterpart"
            else:
                sale_price, sale_source = line.unit_value, "invoice"

            benchmark = resolver.benchmark_price(invoice.date, resolution.product_type)
            figures = calculate_margin(purchase_price, sale_price, line.quantity, benchmark.price)

            rows.append(
                MarginRow(
                    invoice_number=invoice.invoice_number,
                    date=invoice.date,
                    line_number=line.line_number,
                    description=line.description,
                    product_type=resolution.product_type,
                    loading_base=resolution.base,
                    purchase_price_source=purchase_source,
                    sale_price_source=sale_source,
                    counterpart_invoice_number=counterpart.invoice_number if counterpart else None,
                    resolution=resolution,
                    figures=figures,
                    variance=assess_price_variance(line.unit_value, resolution.price),
                )
            )

        logger.info(
            "Built margin rows",
            extra_fields={
                "rows": len(rows),
                "priced": sum(1 for r in rows if r.purchase_price_source == "price_table"),
                "counterpart": counterpart.invoice_number if counterpart else None,
            },
        )
    return rows
