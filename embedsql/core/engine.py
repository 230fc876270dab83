"""
Main scanning engine.

This module orchestrates the scanning process: file discovery, parsing,
running rules over every file, and collecting findings.
"""

import fnmatch
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Dict, Any, Optional, Generator, Tuple

from embedsql.core.findings import Finding, ScanResult, Severity
from embedsql.core.rules import AnalysisContext, Rule, registry
from embedsql.grammar.validator import GrammarValidator
from embedsql.parsers import get_parser
from embedsql.parsers.base import ParsedSource

# Import rules to register them with the registry
import embedsql.rules  # noqa: F401

logger = logging.getLogger(__name__)


# Language detection by file extension
LANGUAGE_EXTENSIONS: Dict[str, List[str]] = {
    "python": [".py", ".pyw"],
}

# Reverse mapping for quick lookup
EXTENSION_TO_LANGUAGE: Dict[str, str] = {}
for lang, exts in LANGUAGE_EXTENSIONS.items():
    for ext in exts:
        EXTENSION_TO_LANGUAGE[ext] = lang


# Default ignore patterns
DEFAULT_IGNORE_PATTERNS = [
    ".git",
    ".git/**",
    ".hg/**",
    "__pycache__",
    "__pycache__/**",
    ".tox/**",
    ".nox/**",
    "venv/**",
    ".venv/**",
    "env/**",
    "build/**",
    "dist/**",
    "*.egg-info/**",
    ".mypy_cache/**",
    ".pytest_cache/**",
]


class ScanEngine:
    """
    Main scanning engine.

    The engine:
    1. Discovers files in the target path
    2. Detects languages based on file extensions
    3. Parses files using the appropriate parser
    4. Runs the active rules on each file
    5. Collects and returns findings

    Args:
        config: Engine configuration (see ScanConfig.to_engine_config).
        validator: Grammar validator to use instead of the configured
            sqlglot dialect.

    Raises:
        ValueError: If the configured dialect or severity is unknown.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, validator: Optional[GrammarValidator] = None):
        self.config = dict(config or {})
        if validator is not None:
            self.config["validator"] = validator

        self.max_file_size = self.config.get("max_file_size", 10 * 1024 * 1024)  # 10MB
        self.max_workers = self.config.get("max_workers", 4)
        self.ignore_patterns = self.config.get("ignore_patterns") or DEFAULT_IGNORE_PATTERNS
        self.include_patterns = self.config.get("include_patterns")
        self.severity_threshold = Severity(self.config.get("severity_threshold", "info"))

        rule_config = self.config.get("rules") or {}
        self.rules: List[Rule] = registry.create_rules(
            self.config,
            enabled=rule_config.get("enabled", []),
            disabled=rule_config.get("disabled", []),
        )
        logger.debug("Active rules: %s", ", ".join(r.metadata.rule_id for r in self.rules))

    def detect_language(self, file_path: str) -> Optional[str]:
        """Detect the programming language of a file."""
        ext = os.path.splitext(file_path)[1].lower()
        return EXTENSION_TO_LANGUAGE.get(ext)

    def should_ignore(self, file_path: str, base_path: str) -> bool:
        """Check if a file should be ignored based on patterns."""
        rel_path = os.path.relpath(file_path, base_path).replace(os.sep, "/")
        name = os.path.basename(file_path)

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern):
                return True

        return False

    def is_included(self, file_path: str, base_path: str) -> bool:
        if not self.include_patterns:
            return True
        rel_path = os.path.relpath(file_path, base_path).replace(os.sep, "/")
        name = os.path.basename(file_path)
        return any(
            fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern)
            for pattern in self.include_patterns
        )

    def discover_files(self, target_path: str) -> Generator[str, None, None]:
        """Discover all files to scan in the target path."""
        target = Path(target_path)

        if target.is_file():
            yield str(target)
            return

        for root, dirs, files in os.walk(target):
            dirs[:] = sorted(d for d in dirs if not self.should_ignore(os.path.join(root, d), target_path))

            for file in sorted(files):
                file_path = os.path.join(root, file)

                if self.should_ignore(file_path, target_path) or not self.is_included(file_path, target_path):
                    continue

                try:
                    if os.path.getsize(file_path) > self.max_file_size:
                        logger.info("Skipping %s: larger than %d bytes", file_path, self.max_file_size)
                        continue
                except OSError:
                    continue

                if self.detect_language(file_path):
                    yield file_path

    def read_file(self, file_path: str) -> str:
        """Read a file's contents."""
        with open(file_path, "r", encoding="utf-8-sig", errors="replace") as f:
            return f.read()

    def parse(self, file_path: str, content: str, language: str) -> Optional[ParsedSource]:
        """Parse content; None if no parser exists or the content does not parse."""
        parser = get_parser(language)
        if parser is None:
            return None
        return parser.parse(content, file_path)

    def run_rules(self, context: AnalysisContext) -> Tuple[List[Finding], List[str]]:
        """Run every applicable rule over one file."""
        findings: List[Finding] = []
        errors: List[str] = []

        for rule in self.rules:
            if not rule.supports_language(context.language):
                continue
            try:
                for finding in rule.analyze(context):
                    finding.language = context.language

                    if context.is_line_suppressed(finding.location.start_line):
                        finding.suppressed = True
                        finding.suppression_reason = "Inline suppression comment"

                    if finding.severity >= self.severity_threshold:
                        findings.append(finding)

            except Exception as e:
                logger.exception("Rule %s failed on %s", rule.metadata.rule_id, context.file_path)
                errors.append(f"Error running rule {rule.metadata.rule_id} on {context.file_path}: {e}")

        findings.sort(key=Finding.sort_key)
        return findings, errors

    def scan_content(self, content: str, language: str = "python", file_path: str = "<stdin>") -> List[Finding]:
        """
        Scan code content directly without reading from a file.

        Useful for editor integrations and testing.
        """
        findings, _ = self._scan_content(content, language, file_path)
        return findings

    def _scan_content(self, content: str, language: str, file_path: str) -> Tuple[List[Finding], List[str]]:
        parsed = self.parse(file_path, content, language)
        if parsed is None:
            return [], [f"Could not parse {file_path}"]

        context = AnalysisContext(
            file_path=file_path,
            content=parsed.source,
            language=language,
            parsed=parsed,
            config=self.config,
        )
        return self.run_rules(context)

    def scan_file(self, file_path: str) -> Tuple[List[Finding], List[str]]:
        """Scan a single file; returns its findings and any errors."""
        language = self.detect_language(file_path)
        if not language:
            return [], []

        try:
            content = self.read_file(file_path)
        except OSError as e:
            logger.warning("Cannot read %s: %s", file_path, e)
            return [], [f"Error reading {file_path}: {e}"]

        logger.debug("Scanning %s", file_path)
        return self._scan_content(content, language, file_path)

    def scan(self, target_path: str) -> ScanResult:
        """
        Scan a target path and return results.

        Args:
            target_path: Path to a file or directory to scan.

        Returns:
            ScanResult containing all findings and metadata.
        """
        if not os.path.exists(target_path):
            raise FileNotFoundError(f"Scan target not found: {target_path}")

        start_time = time.time()
        files = list(self.discover_files(target_path))
        logger.info("Scanning %d file(s) under %s", len(files), target_path)

        if len(files) > 1 and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.scan_file, files))
        else:
            outcomes = [self.scan_file(f) for f in files]

        all_findings: List[Finding] = []
        errors: List[str] = []
        languages_detected = set()
        for file_path, (findings, file_errors) in zip(files, outcomes):
            all_findings.extend(findings)
            errors.extend(file_errors)
            lang = self.detect_language(file_path)
            if lang:
                languages_detected.add(lang)

        all_findings.sort(key=Finding.sort_key)
        elapsed_time = time.time() - start_time

        return ScanResult(
            findings=all_findings,
            files_scanned=len(files),
            scan_time_seconds=round(elapsed_time, 3),
            languages_detected=sorted(languages_detected),
            rules_applied=sorted(r.metadata.rule_id for r in self.rules),
            errors=errors,
        )


def create_engine(config_path: Optional[str] = None, **kwargs) -> ScanEngine:
    """
    Create a scan engine with configuration.

    Args:
        config_path: Optional path to a configuration file.
        **kwargs: Additional engine configuration options.

    Returns:
        Configured ScanEngine instance.
    """
    from embedsql.config import load_scan_config

    config = {}
    if config_path:
        config = load_scan_config(config_path).to_engine_config()

    config.update(kwargs)

    return ScanEngine(config)
