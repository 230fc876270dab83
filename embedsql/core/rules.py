"""
Rule engine for the embedded SQL scanner.

This module provides the base classes for defining rules, the registry
for managing and discovering them, and the per-file analysis context
handed to rules.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Type, Set, Generator, Iterable
import re

from embedsql.core.findings import (
    Finding, Severity, Confidence, FindingCategory, CodeLocation, CodeSnippet
)
from embedsql.parsers.base import ASTNode, NodeKind, ParsedSource, Span, TokenStream


@dataclass(frozen=True)
class RuleMetadata:
    """
    Immutable descriptor of a rule and the findings it reports.

    ``message_format`` is applied to the rule-specific message text.
    """
    rule_id: str
    name: str
    description: str
    severity: Severity
    confidence: Confidence
    category: FindingCategory
    languages: List[str]
    message_format: str = "{0}"
    tags: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    enabled_by_default: bool = True


class Rule(ABC):
    """
    Base class for all rules.

    Each rule detects one kind of issue. Rules hold configuration only;
    analysis state lives in the AnalysisContext of the file being scanned.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

    @property
    @abstractmethod
    def metadata(self) -> RuleMetadata:
        """Return rule metadata."""
        pass

    @abstractmethod
    def analyze(self, context: "AnalysisContext") -> Generator[Finding, None, None]:
        """
        Analyze the code and yield findings.

        Args:
            context: The analysis context containing parsed code and utilities.

        Yields:
            Finding objects for each detected issue.
        """
        pass

    def supports_language(self, language: str) -> bool:
        """Check if this rule supports a given language."""
        languages = self.metadata.languages
        return "*" in languages or language.lower() in [l.lower() for l in languages]

    def create_finding(
        self,
        location: CodeLocation,
        message: str,
        snippet: Optional[CodeSnippet] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Finding:
        """Create a finding using the rule's metadata."""
        return create_finding(self.metadata, location, message, snippet, metadata)


def create_finding(
    descriptor: RuleMetadata,
    location: CodeLocation,
    message: str,
    snippet: Optional[CodeSnippet] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Finding:
    """Build a finding from a descriptor."""
    return Finding(
        rule_id=descriptor.rule_id,
        title=descriptor.name,
        description=descriptor.message_format.format(message),
        severity=descriptor.severity,
        confidence=descriptor.confidence,
        category=descriptor.category,
        location=location,
        snippet=snippet,
        tags=list(descriptor.tags),
        metadata=metadata or {},
    )


class ASTRule(Rule):
    """
    A rule that visits syntax tree nodes of selected kinds.

    The context calls ``visit_node`` once per matching node, independently
    for every node.
    """

    @property
    def node_kinds(self) -> Iterable[NodeKind]:
        """Return the node kinds this rule subscribes to."""
        return ()

    def visit_node(self, node: ASTNode, context: "AnalysisContext") -> Generator[Finding, None, None]:
        """
        Visit a node and yield findings.

        Override this method to implement tree-based detection.
        """
        yield from []

    def analyze(self, context: "AnalysisContext") -> Generator[Finding, None, None]:
        """Analyze using tree traversal."""
        if not context.parsed:
            return

        for node in context.traverse(self.node_kinds):
            yield from self.visit_node(node, context)


class RuleRegistry:
    """
    Registry of rule classes.

    Rules register themselves on import; engines instantiate them with
    their own configuration.
    """

    _instance: Optional["RuleRegistry"] = None

    def __init__(self):
        self._rules: Dict[str, Type[Rule]] = {}
        self._defaults: Set[str] = set()

    @classmethod
    def get_instance(cls) -> "RuleRegistry":
        """Get the singleton registry instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, rule_class: Type[Rule]) -> Type[Rule]:
        """
        Register a rule class.

        Can be used as a decorator:

        @registry.register
        class MyRule(Rule):
            ...
        """
        meta = rule_class(None).metadata
        self._rules[meta.rule_id] = rule_class

        if meta.enabled_by_default:
            self._defaults.add(meta.rule_id)

        return rule_class

    def rule_ids(self) -> List[str]:
        return sorted(self._rules)

    def is_enabled_by_default(self, rule_id: str) -> bool:
        return rule_id in self._defaults

    def create_rule(self, rule_id: str, config: Optional[Dict[str, Any]] = None) -> Optional[Rule]:
        """Instantiate a rule by ID."""
        rule_class = self._rules.get(rule_id)
        if rule_class is None:
            return None
        return rule_class(config)

    def create_rules(
        self,
        config: Optional[Dict[str, Any]] = None,
        enabled: Iterable[str] = (),
        disabled: Iterable[str] = (),
    ) -> List[Rule]:
        """
        Instantiate the active rules.

        A rule is active when it is enabled by default or listed in
        ``enabled``, and not listed in ``disabled``.
        """
        active = (self._defaults | set(enabled)) - set(disabled)
        return [
            self._rules[rule_id](config)
            for rule_id in sorted(active)
            if rule_id in self._rules
        ]

    @property
    def rule_count(self) -> int:
        """Return the number of registered rules."""
        return len(self._rules)


SUPPRESSION_PATTERN = re.compile(
    r"#\s*noqa\b|#\s*embedsql:\s*ignore\b",
    re.IGNORECASE,
)


class AnalysisContext:
    """
    Context provided to rules during analysis of one file.

    Contains the parsed code, traversal helpers and snippet helpers.
    """

    def __init__(
        self,
        file_path: str,
        content: str,
        language: str,
        parsed: Optional[ParsedSource] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.file_path = file_path
        self.content = content
        self.language = language
        self.parsed = parsed
        self.config = config or {}
        self._lines: Optional[List[str]] = None
        self._suppressed_lines: Optional[Set[int]] = None

    @property
    def lines(self) -> List[str]:
        """Get the source code lines."""
        if self._lines is None:
            self._lines = self.content.splitlines()
        return self._lines

    @property
    def suppressed_lines(self) -> Set[int]:
        """Line numbers covered by a suppression comment (that line and the next)."""
        if self._suppressed_lines is None:
            suppressed = set()
            for i, line in enumerate(self.lines, start=1):
                if SUPPRESSION_PATTERN.search(line):
                    suppressed.add(i)
                    suppressed.add(i + 1)
            self._suppressed_lines = suppressed
        return self._suppressed_lines

    def is_line_suppressed(self, line_number: int) -> bool:
        """Check if a line has a suppression comment."""
        return line_number in self.suppressed_lines

    def get_snippet(self, line_number: int, context_lines: int = 3) -> CodeSnippet:
        """Get a code snippet around a line number."""
        lines = self.lines
        start = max(0, line_number - context_lines - 1)
        end = min(len(lines), line_number + context_lines)

        context_before = lines[start:line_number - 1]
        code = lines[line_number - 1] if 0 < line_number <= len(lines) else ""
        context_after = lines[line_number:end]

        return CodeSnippet(
            code=code,
            highlighted_line=line_number,
            context_before=context_before,
            context_after=context_after,
        )

    def location_of(self, span: Span) -> CodeLocation:
        """Turn a span into a reportable location in this file."""
        return CodeLocation(
            file_path=self.file_path,
            start_line=span.start_line,
            end_line=span.end_line,
            start_column=span.start_column,
            end_column=span.end_column,
        )

    def tokens_in(self, block: Optional[ASTNode]) -> Optional[TokenStream]:
        """Token stream of a block, or None when there is nothing to scan."""
        if self.parsed is None or block is None:
            return None
        return self.parsed.tokens_in(block)

    def traverse(self, node_kinds: Optional[Iterable[NodeKind]] = None) -> Generator[ASTNode, None, None]:
        """
        Traverse the tree and yield nodes of the given kinds.

        If node_kinds is None, yields all nodes.
        """
        if not self.parsed:
            return

        wanted = None if node_kinds is None else set(node_kinds)
        for node in self.parsed.root.walk():
            if wanted is None or node.kind in wanted:
                yield node


# Global registry instance
registry = RuleRegistry.get_instance()


def rule(cls: Type[Rule]) -> Type[Rule]:
    """
    Decorator to register a rule with the global registry.

    Usage:
        @rule
        class MyRule(Rule):
            ...
    """
    return registry.register(cls)
