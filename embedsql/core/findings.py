"""
Finding data structures for the embedded SQL scanner.

A Finding is the diagnostic handed to the reporting layer: an identifier,
a message, a severity and the source location it is anchored at.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any
import json


class Severity(Enum):
    """Severity levels for findings."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __lt__(self, other):
        order = [Severity.INFO, Severity.WARNING, Severity.ERROR]
        return order.index(self) < order.index(other)

    def __le__(self, other):
        return self == other or self < other


class Confidence(Enum):
    """Confidence levels for findings."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FindingCategory(Enum):
    """Categories of findings."""
    SQL_SYNTAX = "sql_syntax"


@dataclass(frozen=True)
class CodeLocation:
    """
    A span in source code.

    Lines are 1-based, columns are 0-based character offsets.
    """
    file_path: str
    start_line: int
    end_line: int
    start_column: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        return f"{self.file_path}:{self.start_line}:{self.start_column + 1}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "start_column": self.start_column,
            "end_column": self.end_column,
        }


@dataclass
class CodeSnippet:
    """A snippet of code with context."""
    code: str
    highlighted_line: int
    context_before: List[str] = field(default_factory=list)
    context_after: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "highlighted_line": self.highlighted_line,
            "context_before": self.context_before,
            "context_after": self.context_after,
        }


@dataclass
class Finding:
    """
    A diagnostic reported against one source location.

    ``description`` carries the message; for SQL syntax findings it is the
    grammar errors joined one per line.
    """
    rule_id: str
    title: str
    description: str
    severity: Severity
    confidence: Confidence
    category: FindingCategory
    location: CodeLocation
    snippet: Optional[CodeSnippet] = None
    language: str = "unknown"
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    suppressed: bool = False
    suppression_reason: Optional[str] = None

    def __post_init__(self):
        """Validate and normalize the finding."""
        if isinstance(self.severity, str):
            self.severity = Severity(self.severity)
        if isinstance(self.confidence, str):
            self.confidence = Confidence(self.confidence)
        if isinstance(self.category, str):
            self.category = FindingCategory(self.category)

    @property
    def message(self) -> str:
        return self.description

    def sort_key(self):
        loc = self.location
        return (loc.file_path, loc.start_line, loc.start_column, self.rule_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to a dictionary."""
        result = {
            "rule_id": self.rule_id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "confidence": self.confidence.value,
            "category": self.category.value,
            "location": self.location.to_dict(),
            "language": self.language,
            "tags": self.tags,
            "metadata": self.metadata,
            "suppressed": self.suppressed,
        }

        if self.snippet:
            result["snippet"] = self.snippet.to_dict()
        if self.suppression_reason:
            result["suppression_reason"] = self.suppression_reason

        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert finding to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        """Create a Finding from a dictionary."""
        data = dict(data)
        location = CodeLocation(**data.pop("location"))

        snippet = None
        if data.get("snippet"):
            snippet = CodeSnippet(**data.pop("snippet"))
        else:
            data.pop("snippet", None)

        return cls(location=location, snippet=snippet, **data)


@dataclass
class ScanResult:
    """Results from a complete scan."""
    findings: List[Finding]
    files_scanned: int
    scan_time_seconds: float
    languages_detected: List[str]
    rules_applied: List[str]
    errors: List[str] = field(default_factory=list)

    def _count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity and not f.suppressed)

    @property
    def error_count(self) -> int:
        return self._count(Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(Severity.INFO)

    @property
    def total_findings(self) -> int:
        return sum(1 for f in self.findings if not f.suppressed)

    @property
    def suppressed_count(self) -> int:
        return sum(1 for f in self.findings if f.suppressed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "files_scanned": self.files_scanned,
                "scan_time_seconds": self.scan_time_seconds,
                "languages_detected": self.languages_detected,
                "rules_applied": self.rules_applied,
                "total_findings": self.total_findings,
                "suppressed_findings": self.suppressed_count,
                "by_severity": {
                    "error": self.error_count,
                    "warning": self.warning_count,
                    "info": self.info_count,
                },
            },
            "findings": [f.to_dict() for f in self.findings],
            "errors": self.errors,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
