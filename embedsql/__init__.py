"""
Embedded SQL Scanner

Static analysis that finds SQL command text in source code, validates it
against a SQL grammar, and reports invalid SQL where it was written.
"""

__version__ = "1.0.0"
__author__ = "embedsql contributors"

from embedsql.core.engine import ScanEngine
from embedsql.core.findings import Finding, Severity, Confidence
from embedsql.config import ScanConfig

__all__ = [
    "ScanEngine",
    "Finding",
    "Severity",
    "Confidence",
    "ScanConfig",
]
