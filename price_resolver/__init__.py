"""Reference price resolution from the daily price spreadsheet."""

from price_resolver.models import ColumnTemplateError, ColumnTemplates, ResolutionStatus, ResolvedPrice
from price_resolver.normalize import normalize_depot, normalize_product, normalize_supplier
from price_resolver.resolver import PriceResolver, explain_resolution
from price_resolver.table import PriceTable, PriceTableError, PriceTableRow, load_price_table

__all__ = [
    "ColumnTemplateError",
    "ColumnTemplates",
    "ResolutionStatus",
    "ResolvedPrice",
    "normalize_depot",
    "normalize_product",
    "normalize_supplier",
    "PriceResolver",
    "explain_resolution",
    "PriceTable",
    "PriceTableError",
    "PriceTableRow",
    "load_price_table",
]
