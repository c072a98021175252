"""Trading margin calculation over resolved reference prices."""

from margin.calculator import (
    MarginFigures,
    MarginRow,
    PriceVariance,
    VarianceStatus,
    assess_price_variance,
    build_margin_rows,
    calculate_margin,
    find_counterpart_invoice,
)

__all__ = [
    "MarginFigures",
    "MarginRow",
    "PriceVariance",
    "VarianceStatus",
    "assess_price_variance",
    "build_margin_rows",
    "calculate_margin",
    "find_counterpart_invoice",
]
