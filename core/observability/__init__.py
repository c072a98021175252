"""
Observability Module for the Fuel Document Engine

Provides:
- Structured logging with correlation IDs (document, batch, order, invoice)
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
