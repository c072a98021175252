"""Reconciliation engine for fiscal manifest vs loading note validation.

Exposes high-level functions:
- reconcile_documents(manifest, loading_note) -> List[ValidationResult]
- build_report(results) -> ReconciliationReport

Both documents describe the same physical load. Net weight, volume and
product description are compared; a field missing on either side is skipped.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from core.config import get_settings
from core.models import (
    FiscalManifestRecord,
    LoadingNoteRecord,
    ReconciliationReport,
    ReportStatus,
    Severity,
    ValidationResult,
)
from core.observability import get_logger


logger = get_logger(__name__)


# =============================================================================
# Configuration & Data Structures
# =============================================================================

WEIGHT_TOLERANCE_KG = Decimal("50")
WEIGHT_ERROR_BAND_KG = Decimal("100")
VOLUME_TOLERANCE_L = Decimal("100")
VOLUME_ERROR_BAND_L = Decimal("200")


@dataclass(frozen=True)
class Band:
    """Absolute tolerance band for one numeric field.

    A difference up to `tolerance` is a match, up to `error_band` a warning,
    anything larger an error.
    """
    tolerance: Decimal
    error_band: Decimal

    def __post_init__(self):
        if self.tolerance < 0 or self.error_band < self.tolerance:
            raise ValueError("Band requires 0 <= tolerance <= error_band")


@dataclass(frozen=True)
class ToleranceConfig:
    weight: Band = Band(WEIGHT_TOLERANCE_KG, WEIGHT_ERROR_BAND_KG)
    volume: Band = Band(VOLUME_TOLERANCE_L, VOLUME_ERROR_BAND_L)

    @classmethod
    def from_settings(cls) -> "ToleranceConfig":
        settings = get_settings()
        return cls(
            weight=Band(settings.weight_tolerance_kg, settings.weight_error_band_kg),
            volume=Band(settings.volume_tolerance_l, settings.volume_error_band_l),
        )


# =============================================================================
# Comparators
# =============================================================================

def _format(value: Decimal) -> str:
    return format(value.normalize(), "f") if value == value.to_integral() else str(value)


def compare_numeric(
    field: str,
    value_a: Decimal,
    value_b: Decimal,
    band: Band,
    unit: str,
) -> ValidationResult:
    """Classify the absolute difference of two quantities against a band."""
    diff = abs(value_a - value_b)

    if diff <= band.tolerance:
        is_match, severity = True, Severity.INFO
        message = f"{field} matches within {_format(band.tolerance)} {unit} (difference {_format(diff)} {unit})"
    elif diff <= band.error_band:
        is_match, severity = False, Severity.WARNING
        message = f"{field} differs by {_format(diff)} {unit} (tolerance {_format(band.tolerance)} {unit})"
    else:
        is_match, severity = False, Severity.ERROR
        message = f"{field} differs by {_format(diff)} {unit} (over {_format(band.error_band)} {unit})"

    return ValidationResult(
        field=field,
        value_a=_format(value_a),
        value_b=_format(value_b),
        is_match=is_match,
        severity=severity,
        message=message,
    )


def compare_text(field: str, value_a: str, value_b: str) -> ValidationResult:
    """Case-insensitive containment in either direction; never an error."""
    a, b = value_a.strip().upper(), value_b.strip().upper()
    is_match = a in b or b in a
    return ValidationResult(
        field=field,
        value_a=value_a,
        value_b=value_b,
        is_match=is_match,
        severity=Severity.INFO if is_match else Severity.WARNING,
        message=f"{field} {'matches' if is_match else 'differs'}",
    )


# =============================================================================
# Field Comparisons
# =============================================================================

@dataclass(frozen=True)
class FieldComparison:
    """One comparable field: how to read it from each side and compare it."""
    field: str
    read_a: Callable[[FiscalManifestRecord], object]
    read_b: Callable[[LoadingNoteRecord], object]
    band: Optional[Callable[[ToleranceConfig], Band]] = None
    unit: str = ""


COMPARISONS = (
    FieldComparison(
        "net_weight_kg",
        lambda m: m.product_info.net_weight_kg,
        lambda n: n.net_weight_kg,
        band=lambda t: t.weight,
        unit="kg",
    ),
    FieldComparison(
        "volume_liters",
        lambda m: m.product_info.volume_at_15c_l,
        lambda n: n.volume_liters,
        band=lambda t: t.volume,
        unit="L",
    ),
    FieldComparison(
        "product_description",
        lambda m: m.product_info.description,
        lambda n: n.product_description,
    ),
)


def _is_present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return value != 0


def reconcile_documents(
    manifest: FiscalManifestRecord,
    loading_note: LoadingNoteRecord,
    tolerances: Optional[ToleranceConfig] = None,
) -> List[ValidationResult]:
    """
    Compare a fiscal manifest with the loading note of the same load.

    Args:
        manifest: e-DAS record
        loading_note: Loading note record
        tolerances: Numeric bands (defaults to the configured ones)

    Returns:
        One ValidationResult per field present on both sides, in a fixed
        order: net weight, volume, product description
    """
    tolerances = tolerances or ToleranceConfig.from_settings()
    results: List[ValidationResult] = []

    for comparison in COMPARISONS:
        value_a = comparison.read_a(manifest)
        value_b = comparison.read_b(loading_note)
        if not (_is_present(value_a) and _is_present(value_b)):
            logger.debug("Skipped comparison: value missing", extra_fields={"field": comparison.field})
            continue

        if comparison.band is not None:
            result = compare_numeric(
                comparison.field, value_a, value_b, comparison.band(tolerances), comparison.unit,
            )
        else:
            result = compare_text(comparison.field, value_a, value_b)
        results.append(result)

    return results


# =============================================================================
# Report
# =============================================================================

def build_report(results: Sequence[ValidationResult]) -> ReconciliationReport:
    """Aggregate results: FAIL on any error, WARN on any warning, else PASS."""
    errors = sum(1 for r in results if r.severity is Severity.ERROR)
    warnings = sum(1 for r in results if r.severity is Severity.WARNING)

    if errors:
        status = ReportStatus.FAIL
    elif warnings:
        status = ReportStatus.WARN
    else:
        status = ReportStatus.PASS

    summary = {
        "checked": len(results),
        "matched": sum(1 for r in results if r.is_match),
        "warnings": warnings,
        "errors": errors,
    }

    logger.info("Reconciliation complete", extra_fields={"status": status.value, **summary})
    return ReconciliationReport(status=status, results=tuple(results), summary=summary)
