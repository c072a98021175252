"""Price Resolver Algorithm.

This module resolves the reference price of one delivery:
1. Normalizes supplier, product and loading base to the fixed vocabulary
2. Finds the price row for the date (exact, else nearest within the window)
3. Builds candidate column labels from the column templates
4. Takes the first candidate with a positive price in that row

Resolution never raises. Every failed step returns ResolvedPrice.unknown()
with the status of the step and the reasons collected so far.
"""

from typing import Any, List, Optional

from core.config import get_settings
from core.normalize import to_date
from core.observability import get_logger
from price_resolver.models import ColumnTemplates, ResolutionStatus, ResolvedPrice
from price_resolver.normalize import normalize_depot, normalize_product, normalize_supplier
from price_resolver.table import PriceTable


logger = get_logger(__name__)


def _expand(template: str, supplier: str, products: List[str], bases: List[str]) -> List[str]:
    """All labels a template yields for the given label variants."""
    labels = []
    for product in (products if "{product}" in template else [""]):
        for base in (bases if "{base}" in template else [""]):
            label = template.format(supplier=supplier, product=product, base=base)
            labels.append(" ".join(label.split()))
    return labels


class PriceResolver:
    """Reference price lookup over one price table.

    Algorithm:
    1. Supplier → canonical (UNKNOWN_SUPPLIER when not recognized)
    2. Product → canonical type (UNKNOWN_PRODUCT)
    3. Base → canonical depot (UNKNOWN_BASE)
    4. Date → table row (INVALID_DATE, NO_PRICE_DATE)
    5. Candidate columns → first positive price (NO_MATCHING_COLUMN)
    """

    def __init__(
        self,
        table: PriceTable,
        templates: Optional[ColumnTemplates] = None,
        date_window_days: Optional[int] = None,
    ):
        """Initialize the resolver.

        Args:
            table: Price table to read from
            templates: Column templates (defaults to the configured file)
            date_window_days: Max day distance for a nearest-date row
                (defaults to the configured window, 7 days)
        """
        settings = get_settings()
        self.table = table
        self.templates = templates or ColumnTemplates.load(settings.price_column_templates)
        self.date_window_days = (
            settings.price_date_window_days if date_window_days is None else date_window_days
        )

    def candidate_columns(self, supplier: str, product_type: str, base: Optional[str]) -> List[str]:
        """Candidate column labels in template order, de-duplicated."""
        products = self.templates.product_labels.get(product_type) or [product_type.upper()]
        bases = (self.templates.base_labels.get(base) or [base]) if base else []

        candidates: List[str] = []
        for template in self.templates.templates_for(supplier):
            if "{base}" in template and not bases:
                continue
            candidates.extend(_expand(template, supplier, products, bases))
        return list(dict.fromkeys(candidates))

    def resolve(
        self,
        supplier_name: str,
        product_description: str,
        loading_base: str,
        on_date: Any,
    ) -> ResolvedPrice:
        """Resolve the reference price of a delivery.

        Args:
            supplier_name: Supplier as written on the invoice
            product_description: Product description from the invoice line
            loading_base: Depot/loading base text (may be empty)
            on_date: Delivery or invoice date (ISO text, date, ...)

        Returns:
            ResolvedPrice, RESOLVED or an explicit unknown
        """
        reasons: List[str] = []

        # Step 1: Supplier
        supplier = normalize_supplier(supplier_name)
        if not supplier:
            reasons.append(f"Supplier not recognized: '{supplier_name}'")
            logger.info("Price unknown: supplier", extra_fields={"supplier": supplier_name})
            return ResolvedPrice.unknown(ResolutionStatus.UNKNOWN_SUPPLIER, reasons)
        reasons.append(f"Supplier '{supplier_name}' -> {supplier}")

        # Step 2: Product type
        product_type = normalize_product(product_description)
        if not product_type:
            reasons.append(f"Product not recognized: '{product_description}'")
            logger.info("Price unknown: product", extra_fields={"product": product_description})
            return ResolvedPrice.unknown(ResolutionStatus.UNKNOWN_PRODUCT, reasons, supplier=supplier)
        reasons.append(f"Product '{product_description}' -> {product_type}")

        # Step 3: Loading base
        base = normalize_depot(loading_base)
        if not base:
            reasons.append(f"Base not recognized: '{loading_base or ''}'")
            logger.info("Price unknown: base", extra_fields={"base": loading_base})
            return ResolvedPrice.unknown(
                ResolutionStatus.UNKNOWN_BASE, reasons, supplier=supplier, product_type=product_type,
            )
        reasons.append(f"Base '{loading_base}' -> {base}")

        context = {"supplier": supplier, "product_type": product_type, "base": base}
        candidates = self.candidate_columns(supplier, product_type, base)
        if not candidates:
            reasons.append(f"No column templates for {supplier}")
            return ResolvedPrice.unknown(ResolutionStatus.NO_MATCHING_COLUMN, reasons, **context)

        # Step 4: Date row
        target = to_date(on_date)
        if target is None:
            reasons.append(f"Invalid date: '{on_date}'")
            return ResolvedPrice.unknown(ResolutionStatus.INVALID_DATE, reasons, candidates=tuple(candidates), **context)

        row = self.table.find_row(target, self.date_window_days)
        if row is None:
            reasons.append(f"No price row within {self.date_window_days} days of {target.isoformat()}")
            logger.info(
                "Price unknown: no price date",
                extra_fields={"date": target.isoformat(), "window_days": self.date_window_days},
            )
            return ResolvedPrice.unknown(ResolutionStatus.NO_PRICE_DATE, reasons, candidates=tuple(candidates), **context)

        if row.price_date == target:
            reasons.append(f"Exact price date {row.price_date.isoformat()}")
        else:
            reasons.append(
                f"Nearest price date {row.price_date.isoformat()} "
                f"({abs((row.price_date - target).days)} days from {target.isoformat()})"
            )

        # Step 5: First candidate column with a price
        for column in candidates:
            price = row.price(column)
            if price is not None and price > 0:
                reasons.append(f"Column '{column}' = {price}")
                return ResolvedPrice(
                    status=ResolutionStatus.RESOLVED,
                    price=price,
                    price_date=row.price_date,
                    column=column,
                    candidates=tuple(candidates),
                    reasons=tuple(reasons),
                    **context,
                )

        reasons.append(f"No candidate column has a price: {', '.join(candidates)}")
        logger.warning(
            "No matching price column",
            extra_fields={
                "supplier": supplier,
                "product_type": product_type,
                "base": base,
                "date": row.price_date.isoformat(),
                "candidates": candidates,
            },
        )
        return ResolvedPrice.unknown(
            ResolutionStatus.NO_MATCHING_COLUMN, reasons, candidates=tuple(candidates), **context
        )

    def benchmark_price(self, on_date: Any, product_type: Optional[str] = None) -> ResolvedPrice:
        """Price of the benchmark column (PLATTS AUTO unless configured) for a date."""
        column = self.templates.benchmark_column(product_type)
        reasons = [f"Benchmark column '{column}'"]

        target = to_date(on_date)
        if target is None:
            reasons.append(f"Invalid date: '{on_date}'")
            return ResolvedPrice.unknown(ResolutionStatus.INVALID_DATE, reasons, product_type=product_type)

        row = self.table.find_row(target, self.date_window_days)
        if row is None:
            reasons.append(f"No price row within {self.date_window_days} days of {target.isoformat()}")
            return ResolvedPrice.unknown(ResolutionStatus.NO_PRICE_DATE, reasons, product_type=product_type)

        price = row.price(column)
        if price is None:
            reasons.append(f"No benchmark price on {row.price_date.isoformat()}")
            return ResolvedPrice.unknown(
                ResolutionStatus.NO_MATCHING_COLUMN, reasons, candidates=(column,), product_type=product_type
            )

        return ResolvedPrice(
            status=ResolutionStatus.RESOLVED,
            price=price,
            price_date=row.price_date,
            column=column,
            product_type=product_type,
            candidates=(column,),
            reasons=tuple(reasons),
        )


def explain_resolution(resolution: ResolvedPrice) -> str:
    """Generate a human-readable explanation of a resolution.

    Args:
        resolution: The resolution to explain

    Returns:
        Formatted explanation string
    """
    lines = ["=" * 60, "Price Resolution Explanation", "=" * 60]

    lines.append(f"Supplier: {resolution.supplier or '-'}")
    lines.append(f"Product: {resolution.product_type or '-'}")
    lines.append(f"Base: {resolution.base or '-'}")
    lines.append("")

    if resolution.is_known:
        lines.append(f"✓ RESOLVED: {resolution.price} ({resolution.column})")
        lines.append(f"  Price date: {resolution.price_date.isoformat()}")
    else:
        lines.append(f"⚠ UNKNOWN ({resolution.status.value})")

    lines.append("")
    lines.append("Reasons:")
    for reason in resolution.reasons:
        lines.append(f"  • {reason}")

    if resolution.candidates:
        lines.append("")
        lines.append("Candidate columns:")
        for i, column in enumerate(resolution.candidates):
            lines.append(f"  {i+1}. {column}")

    lines.append("=" * 60)
    return "\n".join(lines)
