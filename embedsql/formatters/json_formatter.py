"""
JSON output formatter for machine-readable results.
"""

import json
from typing import List

from embedsql.core.findings import Finding, ScanResult


class JSONFormatter:
    """
    Formats scan results as JSON for machine consumption.
    """

    def __init__(self, indent: int = 2, include_suppressed: bool = False):
        self.indent = indent
        self.include_suppressed = include_suppressed

    def _visible(self, findings: List[Finding]) -> List[Finding]:
        return [f for f in findings if self.include_suppressed or not f.suppressed]

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result as JSON."""
        data = result.to_dict()
        data["findings"] = [f.to_dict() for f in self._visible(result.findings)]
        return json.dumps(data, indent=self.indent, default=str)

    def format_finding(self, finding: Finding) -> str:
        return json.dumps(finding.to_dict(), indent=self.indent, default=str)

    def format_findings(self, findings: List[Finding]) -> str:
        """Format a bare list of findings, e.g. from ScanEngine.scan_content."""
        data = [f.to_dict() for f in self._visible(findings)]
        return json.dumps(data, indent=self.indent, default=str)
