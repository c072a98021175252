"""Core module - shared records, normalization, configuration and logging.

This module contains the canonical data models, the number/date
normalization used at every record boundary, engine settings, and the
structured logging helpers. It has no dependency on the extraction,
reconciliation, pricing or margin packages.
"""

__version__ = "1.0.0"
