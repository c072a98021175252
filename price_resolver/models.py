"""Price Resolver Data Models.

This module defines the Pydantic models for price resolution:
- ResolutionStatus: Outcome of one resolution attempt
- ResolvedPrice: A price, or the explicit "unknown" sentinel
- ColumnTemplates: The editable column naming rules (column_templates.json)
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from string import Formatter
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


TEMPLATES_PATH = Path(__file__).with_name("column_templates.json")


class ColumnTemplateError(Exception):
    """The column template file is missing or malformed."""
    pass


class ResolutionStatus(str, Enum):
    """How a price resolution ended."""
    RESOLVED = "resolved"                      # Price found
    UNKNOWN_SUPPLIER = "unknown_supplier"      # Supplier not in the vocabulary
    UNKNOWN_PRODUCT = "unknown_product"        # Product type not recognized
    UNKNOWN_BASE = "unknown_base"              # Loading base not recognized
    NO_PRICE_DATE = "no_price_date"            # No table row within the window
    NO_MATCHING_COLUMN = "no_matching_column"  # Row found, no candidate column priced
    INVALID_DATE = "invalid_date"              # Requested date unreadable


class ResolvedPrice(BaseModel):
    """Result of a price resolution.

    Never raised as an error: when no price can be found the price is 0,
    price_date is None and status tells which step failed.

    Attributes:
        status: Resolution outcome
        price: Price per unit (0 when unknown)
        price_date: Date of the table row used
        column: Column label the price was read from
        supplier: Canonical supplier
        product_type: Canonical product type
        base: Canonical loading base
        candidates: Column labels tried, in order
        reasons: Explanation of the resolution
    """
    model_config = ConfigDict(frozen=True)

    status: ResolutionStatus = Field(default=ResolutionStatus.RESOLVED)
    price: Decimal = Field(default=Decimal("0"), ge=0, description="Price per unit")
    price_date: Optional[date] = Field(default=None, description="Date of the price row used")
    column: Optional[str] = Field(default=None, description="Matched column label")

    supplier: Optional[str] = None
    product_type: Optional[str] = None
    base: Optional[str] = None

    candidates: Tuple[str, ...] = ()
    reasons: Tuple[str, ...] = ()

    @classmethod
    def unknown(cls, status: ResolutionStatus, reasons: List[str], **context) -> "ResolvedPrice":
        """The explicit unknown sentinel: price 0, no date."""
        return cls(status=status, price=Decimal("0"), price_date=None, reasons=tuple(reasons), **context)

    @property
    def is_known(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED and self.price > 0


# =============================================================================
# Column Templates
# =============================================================================

PLACEHOLDERS = frozenset({"supplier", "product", "base"})


def _check_placeholders(template: str) -> None:
    """Reject templates with unknown or malformed {placeholders}."""
    try:
        names = {name for _, name, _, _ in Formatter().parse(template) if name is not None}
    except ValueError as e:
        raise ValueError(f"Malformed template '{template}': {e}") from e
    unknown = names - PLACEHOLDERS
    if unknown:
        raise ValueError(f"Unknown placeholder(s) {sorted(unknown)} in template '{template}'")


class ColumnTemplates(BaseModel):
    """Column naming rules of the price spreadsheet.

    Templates use {supplier}, {product} and {base} placeholders; each
    placeholder expands over the label variants of the canonical value.

    Attributes:
        product_labels: Label variants per canonical product type
        base_labels: Label variants per canonical loading base
        supplier_templates: Ordered templates per canonical supplier
        default_templates: Templates for suppliers without their own
        benchmark_columns: Benchmark column per product type ("default" key
            for the rest)
    """
    model_config = ConfigDict(frozen=True)

    product_labels: Dict[str, List[str]] = Field(default_factory=dict)
    base_labels: Dict[str, List[str]] = Field(default_factory=dict)
    supplier_templates: Dict[str, List[str]] = Field(default_factory=dict)
    default_templates: List[str] = Field(default_factory=lambda: ["{supplier} {product} {base}", "{supplier} {product}"])
    benchmark_columns: Dict[str, str] = Field(default_factory=lambda: {"default": "PLATTS AUTO"})

    @field_validator("supplier_templates")
    @classmethod
    def _check_supplier_placeholders(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        for templates in value.values():
            for template in templates:
                _check_placeholders(template)
        return value

    @field_validator("default_templates")
    @classmethod
    def _check_default_placeholders(cls, value: List[str]) -> List[str]:
        for template in value:
            _check_placeholders(template)
        return value

    @field_validator("benchmark_columns")
    @classmethod
    def _require_default_benchmark(cls, value: Dict[str, str]) -> Dict[str, str]:
        if "default" not in value:
            value = {**value, "default": "PLATTS AUTO"}
        return value

    def templates_for(self, supplier: str) -> List[str]:
        return self.supplier_templates.get(supplier) or self.default_templates

    def benchmark_column(self, product_type: Optional[str]) -> str:
        return self.benchmark_columns.get(product_type or "", self.benchmark_columns["default"])

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "ColumnTemplates":
        """
        Load templates from a JSON file.

        Args:
            path: Template file (defaults to the packaged column_templates.json)

        Raises:
            ColumnTemplateError: When the file is missing or not valid
        """
        path = Path(path) if path else TEMPLATES_PATH
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ColumnTemplateError(f"Cannot read column templates {path}: {e}") from e
        except ValidationError as e:
            raise ColumnTemplateError(f"Invalid column templates {path}: {e}") from e
