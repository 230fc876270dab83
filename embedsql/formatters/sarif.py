"""
SARIF output formatter for IDE integration.

SARIF (Static Analysis Results Interchange Format) is a standard
format for static analysis tool output, supported by many IDEs
and code review tools.
"""

import json
from datetime import datetime, timezone
from typing import Dict, Any, List

from embedsql import __version__
from embedsql.core.findings import Finding, ScanResult, Severity


SARIF_LEVEL = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "note",
}


class SARIFFormatter:
    """
    Formats scan results in SARIF format.

    SARIF is supported by:
    - GitHub Code Scanning
    - VS Code SARIF Viewer
    - Azure DevOps
    """

    SARIF_VERSION = "2.1.0"
    SCHEMA_URI = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"

    def __init__(self, include_suppressed: bool = False):
        self.include_suppressed = include_suppressed

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result in SARIF format."""
        sarif = {
            "$schema": self.SCHEMA_URI,
            "version": self.SARIF_VERSION,
            "runs": [self._create_run(result)],
        }

        return json.dumps(sarif, indent=2)

    def _create_run(self, result: ScanResult) -> Dict[str, Any]:
        findings = [f for f in result.findings if self.include_suppressed or not f.suppressed]
        return {
            "tool": self._create_tool(self._collect_rules(findings)),
            "results": [self._create_result(finding) for finding in findings],
            "invocations": [self._create_invocation(result)],
        }

    def _create_tool(self, rules: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "driver": {
                "name": "embedsql",
                "version": __version__,
                "rules": rules,
            }
        }

    def _collect_rules(self, findings: List[Finding]) -> List[Dict[str, Any]]:
        """Collect unique rules from findings."""
        rules_seen = set()
        rules = []

        for finding in findings:
            if finding.rule_id not in rules_seen:
                rules_seen.add(finding.rule_id)
                rules.append(self._create_rule(finding))

        return rules

    def _create_rule(self, finding: Finding) -> Dict[str, Any]:
        return {
            "id": finding.rule_id,
            "name": finding.title,
            "shortDescription": {
                "text": finding.title,
            },
            "defaultConfiguration": {
                "level": SARIF_LEVEL.get(finding.severity, "warning"),
            },
            "properties": {
                "tags": finding.tags,
                "category": finding.category.value,
            },
        }

    def _create_result(self, finding: Finding) -> Dict[str, Any]:
        """Create a SARIF result object from a finding."""
        region = {
            "startLine": finding.location.start_line,
            "endLine": finding.location.end_line,
            "startColumn": finding.location.start_column + 1,  # SARIF is 1-indexed
            "endColumn": finding.location.end_column + 1,
        }
        if finding.snippet:
            region["snippet"] = {"text": finding.snippet.code}

        result = {
            "ruleId": finding.rule_id,
            "level": SARIF_LEVEL.get(finding.severity, "warning"),
            "message": {
                "text": finding.message,
            },
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {
                            "uri": finding.location.file_path,
                        },
                        "region": region,
                    },
                }
            ],
            "properties": {
                "confidence": finding.confidence.value,
                "language": finding.language,
            },
        }

        if "sql" in finding.metadata:
            result["properties"]["sql"] = finding.metadata["sql"]

        if finding.suppressed:
            result["suppressions"] = [
                {
                    "kind": "inSource",
                    "justification": finding.suppression_reason or "Suppressed by inline comment",
                }
            ]

        return result

    def _create_invocation(self, result: ScanResult) -> Dict[str, Any]:
        return {
            "executionSuccessful": len(result.errors) == 0,
            "endTimeUtc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "toolExecutionNotifications": [
                {
                    "message": {
                        "text": error,
                    },
                    "level": "error",
                }
                for error in result.errors
            ],
        }
