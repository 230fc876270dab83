"""
Terminal output formatter for human-readable results.
"""

from typing import Dict, List
import sys

from embedsql.core.findings import Finding, ScanResult, Severity


# ANSI color codes
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"


SEVERITY_COLORS = {
    Severity.ERROR: Colors.RED,
    Severity.WARNING: Colors.YELLOW,
    Severity.INFO: Colors.BLUE,
}


def supports_color() -> bool:
    """Check if the terminal supports color output."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class CLIFormatter:
    """
    Formats scan results for the terminal.

    Each finding is printed compiler-style as ``path:line:col: severity
    [RULE] title`` followed by its message, one grammar error per line,
    and the offending source line.
    """

    def __init__(self, use_color: bool = True, verbose: bool = False, include_suppressed: bool = False):
        self.use_color = use_color and supports_color()
        self.verbose = verbose
        self.include_suppressed = include_suppressed

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _severity_label(self, severity: Severity) -> str:
        return self._color(severity.value, SEVERITY_COLORS.get(severity, ""))

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result."""
        lines: List[str] = []

        by_file: Dict[str, List[Finding]] = {}
        for finding in result.findings:
            if finding.suppressed and not self.include_suppressed:
                continue
            by_file.setdefault(finding.location.file_path, []).append(finding)

        for file_path, findings in by_file.items():
            lines.append(self._color(file_path, Colors.CYAN + Colors.BOLD))
            for finding in findings:
                lines.extend(self._format_finding(finding))
            lines.append("")

        if result.errors:
            lines.append(self._color("Errors:", Colors.RED + Colors.BOLD))
            for error in result.errors:
                lines.append(f"  - {error}")
            lines.append("")

        lines.extend(self._format_summary(result))
        return "\n".join(lines)

    def _format_summary(self, result: ScanResult) -> List[str]:
        lines = []
        if result.total_findings == 0:
            lines.append(self._color("No invalid SQL found.", Colors.GREEN))
        else:
            counts = [
                f"{result.error_count} {self._severity_label(Severity.ERROR)}",
                f"{result.warning_count} {self._severity_label(Severity.WARNING)}",
                f"{result.info_count} {self._severity_label(Severity.INFO)}",
            ]
            lines.append(f"Found {result.total_findings} issue(s): " + ", ".join(counts))

        if result.suppressed_count:
            lines.append(f"Suppressed: {result.suppressed_count}")

        files = f"Scanned {result.files_scanned} file(s) in {result.scan_time_seconds:.2f}s"
        lines.append(self._color(files, Colors.DIM))
        if self.verbose:
            lines.append(self._color(f"Rules: {', '.join(result.rules_applied)}", Colors.DIM))
        return lines

    def _format_finding(self, finding: Finding) -> List[str]:
        """Format a single finding."""
        title = finding.title
        if finding.suppressed:
            title = f"{title} (suppressed)"

        lines = [
            f"  {finding.location}: {self._severity_label(finding.severity)} "
            f"{self._color('[' + finding.rule_id + ']', Colors.DIM)} {self._color(title, Colors.BOLD)}"
        ]

        for message_line in finding.message.splitlines():
            lines.append(f"    {message_line}")

        if finding.snippet:
            snippet = finding.snippet
            if self.verbose:
                first = snippet.highlighted_line - len(snippet.context_before)
                for offset, ctx_line in enumerate(snippet.context_before):
                    lines.append(self._color(f"    {first + offset:5} | {ctx_line}", Colors.DIM))

            lines.append(f"    {snippet.highlighted_line:5} | {snippet.code}")
            marker = self._marker(finding)
            if marker:
                lines.append(f"          | {self._color(marker, SEVERITY_COLORS.get(finding.severity, ''))}")

            if self.verbose:
                for offset, ctx_line in enumerate(snippet.context_after, start=1):
                    lines.append(self._color(f"    {snippet.highlighted_line + offset:5} | {ctx_line}", Colors.DIM))

        if self.verbose and finding.metadata.get("identifier"):
            lines.append(self._color(f"    traced from '{finding.metadata['identifier']}'", Colors.DIM))

        return lines

    @staticmethod
    def _marker(finding: Finding) -> str:
        """Caret underline for the anchored span on its first line."""
        loc = finding.location
        if loc.end_line == loc.start_line:
            width = max(1, loc.end_column - loc.start_column)
        else:
            width = max(1, len(finding.snippet.code) - loc.start_column)
        return " " * loc.start_column + "^" * width

    def format_finding(self, finding: Finding) -> str:
        """Format a single finding."""
        return "\n".join(self._format_finding(finding))
