"""Validation result and reconciliation report models."""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, Field, ConfigDict


class Severity(str, Enum):
    """Severity of a single field comparison."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ReportStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class ValidationResult(BaseModel):
    """Outcome of comparing one field across two documents.

    Attributes:
        field: Name of the compared field (e.g. "net_weight_kg")
        value_a: Value read from the first document (fiscal manifest)
        value_b: Value read from the second document (loading note)
        is_match: Whether the values agree within tolerance
        severity: info for a match, warning or error for a mismatch
        message: Human-readable description of the outcome
    """
    model_config = ConfigDict(frozen=True)

    field: str
    value_a: str
    value_b: str
    is_match: bool
    severity: Severity
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "value_a": self.value_a,
            "value_b": self.value_b,
            "is_match": self.is_match,
            "severity": self.severity.value,
            "message": self.message,
        }


class ReconciliationReport(BaseModel):
    """Aggregated reconciliation results for one shipment.

    Attributes:
        status: Overall status ("PASS", "WARN", "FAIL")
        results: Individual field comparisons, in comparison order
        summary: Counts of matches and of each severity
    """
    model_config = ConfigDict(frozen=True)

    status: ReportStatus = Field(..., description="Overall status: PASS, WARN, or FAIL")
    results: Tuple[ValidationResult, ...] = Field(default=(), description="Field comparison results")
    summary: dict = Field(default_factory=dict, description="Summary counts")

    @property
    def errors(self) -> Tuple[ValidationResult, ...]:
        return tuple(r for r in self.results if r.severity is Severity.ERROR)

    @property
    def warnings(self) -> Tuple[ValidationResult, ...]:
        return tuple(r for r in self.results if r.severity is Severity.WARNING)
