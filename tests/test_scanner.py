"""
Tests for the embedded SQL scanner.
"""

import json

import pytest

from embedsql.core.engine import ScanEngine
from embedsql.core.findings import (
    Finding, Severity, Confidence, FindingCategory, CodeLocation, ScanResult
)
from embedsql.core.rules import RuleRegistry, AnalysisContext, registry
from embedsql.formatters import CLIFormatter, JSONFormatter, SARIFFormatter, get_formatter


class TestScanEngine:
    """Tests for the main scan engine."""

    def test_engine_creation(self, fake_validator):
        """Test that engine can be created with both rules active."""
        engine = ScanEngine(validator=fake_validator)
        assert [r.metadata.rule_id for r in engine.rules] == ["SQL-SYNTAX-001", "SQL-SYNTAX-002"]

    def test_engine_with_config(self, fake_validator):
        """Test engine creation with configuration."""
        config = {
            "severity_threshold": "warning",
            "max_workers": 2,
        }
        engine = ScanEngine(config, validator=fake_validator)
        assert engine.severity_threshold == Severity.WARNING
        assert engine.max_workers == 2

    def test_unknown_severity_rejected(self, fake_validator):
        with pytest.raises(ValueError):
            ScanEngine({"severity_threshold": "critical"}, validator=fake_validator)

    def test_unknown_dialect_rejected(self):
        """Bad dialects fail before anything is scanned."""
        with pytest.raises(ValueError):
            ScanEngine({"dialect": "not-a-dialect"})

    def test_language_detection(self, engine):
        """Test language detection from file extensions."""
        assert engine.detect_language("app.py") == "python"
        assert engine.detect_language("gui.pyw") == "python"
        assert engine.detect_language("Program.cs") is None
        assert engine.detect_language("README.md") is None

    def test_disabled_rule(self, fake_validator):
        """Disabling the traced rule leaves only inline literal findings."""
        engine = ScanEngine({"rules": {"disabled": ["SQL-SYNTAX-002"]}}, validator=fake_validator)
        code = '''
q = "SELEKT 1"
a = SqlCommand(q)
b = SqlCommand("SELEKT 2")
'''
        findings = engine.scan_content(code)
        assert [f.rule_id for f in findings] == ["SQL-SYNTAX-001"]

    def test_custom_markers(self, fake_validator):
        """Detection markers come from configuration."""
        engine = ScanEngine(
            {"markers": {"constructors": ["DbCommand"], "properties": ["Sql"]}},
            validator=fake_validator,
        )
        code = '''
a = DbCommand("SELEKT 1")
b = SqlCommand("SELEKT 2")
c.Sql = "SELEKT 3"
'''
        findings = engine.scan_content(code)
        assert [f.location.start_line for f in findings] == [2, 4]

    def test_severity_threshold_filters(self, fake_validator):
        engine = ScanEngine({"severity_threshold": "error"}, validator=fake_validator)
        assert len(engine.scan_content('SqlCommand("SELEKT 1")')) == 1

    def test_scan_content_unparseable(self, engine):
        """Content that does not parse yields no findings."""
        assert engine.scan_content('SqlCommand("SELEKT 1"') == []

    def test_scan_directory(self, engine, tmp_path):
        """Findings from several files come back in path/line order."""
        (tmp_path / "b.py").write_text('x = SqlCommand("SELEKT 1")\n')
        (tmp_path / "a.py").write_text('\n\ncmd.CommandText = "SELEKT 2"\ny = SqlCommand("SELEKT 3")\n')
        (tmp_path / "notes.txt").write_text('SqlCommand("SELEKT 4")\n')
        venv = tmp_path / ".venv"
        venv.mkdir()
        (venv / "lib.py").write_text('SqlCommand("SELEKT 5")\n')

        result = engine.scan(str(tmp_path))

        assert result.files_scanned == 2
        assert result.languages_detected == ["python"]
        assert [(f.location.file_path.rsplit("/", 1)[-1], f.location.start_line) for f in result.findings] == [
            ("a.py", 3), ("a.py", 4), ("b.py", 1),
        ]
        assert result.error_count == 3
        assert result.errors == []

    def test_scan_parallel_matches_sequential(self, fake_validator, tmp_path):
        for i in range(6):
            (tmp_path / f"m{i}.py").write_text(f'SqlCommand("SELEKT {i}")\nSqlCommand("SELECT {i}")\n')

        sequential = ScanEngine({"max_workers": 1}, validator=fake_validator).scan(str(tmp_path))
        parallel = ScanEngine({"max_workers": 4}, validator=fake_validator).scan(str(tmp_path))

        assert [f.to_dict() for f in parallel.findings] == [f.to_dict() for f in sequential.findings]
        assert len(parallel.findings) == 6

    def test_scan_records_parse_errors(self, engine, tmp_path):
        """A file that does not parse is reported, not raised."""
        (tmp_path / "broken.py").write_text("def broken(:\n")
        (tmp_path / "ok.py").write_text('SqlCommand("SELEKT 1")\n')

        result = engine.scan(str(tmp_path))

        assert len(result.findings) == 1
        assert len(result.errors) == 1
        assert "Could not parse" in result.errors[0]

    def test_scan_missing_target(self, engine):
        with pytest.raises(FileNotFoundError):
            engine.scan("/nonexistent/path/for/embedsql")

    def test_scan_file_with_byte_order_mark(self, engine, tmp_path):
        """A UTF-8 BOM neither hides the file nor shifts its columns."""
        path = tmp_path / "bom.py"
        path.write_bytes(b'\xef\xbb\xbfSqlCommand("SELEKT 1")\n')

        result = engine.scan(str(path))

        assert result.errors == []
        assert [(f.location.start_line, f.location.start_column) for f in result.findings] == [(1, 11)]
        assert result.findings[0].snippet.code == 'SqlCommand("SELEKT 1")'

    def test_include_patterns(self, fake_validator, tmp_path):
        (tmp_path / "repo_queries.py").write_text('SqlCommand("SELEKT 1")\n')
        (tmp_path / "other.py").write_text('SqlCommand("SELEKT 2")\n')

        engine = ScanEngine({"include_patterns": ["*_queries.py"]}, validator=fake_validator)
        result = engine.scan(str(tmp_path))

        assert result.files_scanned == 1
        assert result.findings[0].location.file_path.endswith("repo_queries.py")


class TestSqlSyntaxRules:
    """End-to-end behavior of the embedded SQL rules."""

    def test_inline_literal_construction(self, engine):
        """Invalid inline SQL is reported at the literal."""
        findings = engine.scan_content('cmd = SqlCommand("SELEKT * FROM t")\n', file_path="app.py")

        assert len(findings) == 1
        finding = findings[0]
        assert finding.rule_id == "SQL-SYNTAX-001"
        assert finding.title == "Illegal SQL"
        assert finding.severity == Severity.ERROR
        assert finding.message == "Incorrect syntax near 'SELEKT'."
        assert finding.location == CodeLocation("app.py", 1, 1, 17, 34)
        assert finding.metadata["sql"] == "SELEKT * FROM t"
        assert finding.metadata["origin"] == "literal"

    def test_command_text_assignment(self, engine):
        findings = engine.scan_content('cmd.CommandText = "SELEKT 1"\n')

        assert len(findings) == 1
        assert findings[0].rule_id == "SQL-SYNTAX-001"
        assert (findings[0].location.start_column, findings[0].location.end_column) == (18, 28)

    def test_traced_identifier(self, engine):
        """SQL held in a local is reported where the literal was assigned."""
        code = '''
def load(conn):
    query = "SELEKT * FROM users"
    cmd = SqlCommand(query, conn)
    return cmd
'''
        findings = engine.scan_content(code)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.rule_id == "SQL-SYNTAX-002"
        assert finding.confidence == Confidence.MEDIUM
        assert finding.location.start_line == 3
        assert finding.location.start_column == 12
        assert finding.metadata["identifier"] == "query"
        assert finding.snippet.code == '    query = "SELEKT * FROM users"'

    def test_traced_module_constant(self, engine):
        code = '''
QUERY = "SELEKT 1"
cmd = SqlCommand(QUERY)
'''
        findings = engine.scan_content(code)
        assert [(f.rule_id, f.location.start_line) for f in findings] == [("SQL-SYNTAX-002", 2)]

    def test_valid_sql_produces_nothing(self, engine, fake_validator):
        code = '''
cmd = SqlCommand("SELECT * FROM t")
cmd.CommandText = "SELECT 1"
'''
        assert engine.scan_content(code) == []
        assert fake_validator.calls == ["SELECT * FROM t", "SELECT 1"]

    def test_method_call_argument_is_not_validated(self, engine, fake_validator):
        """Call results are never resolved."""
        code = '''
def build_query():
    return "SELEKT 1"

cmd = SqlCommand(build_query())
'''
        assert engine.scan_content(code) == []
        assert fake_validator.calls == []

    @pytest.mark.parametrize("literal", ['""', '"   "', '"\\n\\t"'])
    def test_blank_sql_is_not_validated(self, engine, fake_validator, literal):
        assert engine.scan_content(f"SqlCommand({literal})\n") == []
        assert fake_validator.calls == []

    def test_multiple_errors_joined(self, engine):
        """All grammar errors for one string become one finding."""
        findings = engine.scan_content('SqlCommand("SELEKT a FROMM t WHER 1")\n')

        assert len(findings) == 1
        assert findings[0].message.split("\n") == [
            "Incorrect syntax near 'SELEKT'.",
            "Incorrect syntax near 'FROMM'.",
            "Incorrect syntax near 'WHER'.",
        ]
        assert len(findings[0].metadata["errors"]) == 3

    def test_both_shapes_in_one_file(self, engine):
        code = '''
def run(conn):
    cmd = SqlCommand("SELEKT 1", conn)
    cmd.CommandText = "SELEKT 2"
'''
        findings = engine.scan_content(code)
        assert [f.location.start_line for f in findings] == [3, 4]

    def test_first_occurrence_wins_on_reassignment(self, engine):
        """Tracing reads the first assignment in the block, not the reaching one."""
        code = '''
def run():
    sql = "SELEKT 1"
    sql = "SELECT 1"
    return SqlCommand(sql)
'''
        findings = engine.scan_content(code)
        assert [(f.rule_id, f.location.start_line) for f in findings] == [("SQL-SYNTAX-002", 3)]

    def test_parameter_shadows_assignment(self, engine, fake_validator):
        """The first occurrence is the parameter, so nothing resolves."""
        code = '''
def run(sql):
    sql = "SELEKT 1"
    return SqlCommand(sql)
'''
        assert engine.scan_content(code) == []
        assert fake_validator.calls == []

    def test_non_string_value_declines(self, engine):
        code = '''
n = 5
SqlCommand(n)
'''
        assert engine.scan_content(code) == []

    def test_repeated_scans_are_identical(self, engine):
        code = '''
q = "SELEKT 1"
SqlCommand(q)
SqlCommand("FROMM")
'''
        first = [f.to_dict() for f in engine.scan_content(code)]
        second = [f.to_dict() for f in engine.scan_content(code)]
        assert first == second
        assert len(first) == 2

    def test_inline_suppression(self, engine):
        code = '''
SqlCommand("SELEKT 1")  # embedsql: ignore
SqlCommand("SELEKT 2")
'''
        findings = engine.scan_content(code)

        assert [f.suppressed for f in findings] == [True, True]

    def test_suppressed_findings_not_counted(self, engine, tmp_path):
        path = tmp_path / "q.py"
        path.write_text('SqlCommand("SELEKT 1")  # noqa\n')

        result = engine.scan(str(path))

        assert result.suppressed_count == 1
        assert result.error_count == 0

    def test_validator_failure_is_contained(self):
        """A crashing validator drops the node instead of failing the file."""
        class ExplodingValidator:
            def validate(self, sql):
                raise RuntimeError("boom")

        engine = ScanEngine(validator=ExplodingValidator())
        findings, errors = engine._scan_content('SqlCommand("SELEKT 1")\n', "python", "x.py")

        assert findings == []
        assert errors == []

    def test_real_grammar(self):
        """The default validator is sqlglot."""
        engine = ScanEngine()
        code = '''
ok = SqlCommand("SELECT * FROM MyTable;")
bad = SqlCommand("SELECT (1")
'''
        findings = engine.scan_content(code)

        assert len(findings) == 1
        assert findings[0].location.start_line == 3
        assert findings[0].message

    def test_real_grammar_misspelled_keyword(self):
        findings = ScanEngine().scan_content('cmd = SqlCommand("SEL * FROM MyTable;")\n')

        assert len(findings) == 1
        assert findings[0].rule_id == "SQL-SYNTAX-001"
        location = findings[0].location
        assert (location.start_line, location.start_column, location.end_column) == (1, 17, 38)


class TestFindings:
    """Tests for finding data structures."""

    def make_finding(self, **overrides):
        data = dict(
            rule_id="SQL-SYNTAX-001",
            title="Illegal SQL",
            description="Incorrect syntax near 'SELEKT'.",
            severity=Severity.ERROR,
            confidence=Confidence.HIGH,
            category=FindingCategory.SQL_SYNTAX,
            location=CodeLocation("app.py", 3, 3, 4, 14),
        )
        data.update(overrides)
        return Finding(**data)

    def test_finding_creation(self):
        finding = self.make_finding(severity="error", confidence="high", category="sql_syntax")

        assert finding.severity == Severity.ERROR
        assert finding.confidence == Confidence.HIGH
        assert finding.category == FindingCategory.SQL_SYNTAX
        assert finding.message == finding.description
        assert str(finding.location) == "app.py:3:5"

    def test_finding_round_trip(self):
        finding = self.make_finding(metadata={"sql": "SELEKT"})
        restored = Finding.from_dict(json.loads(finding.to_json()))

        assert restored.to_dict() == finding.to_dict()

    def test_severity_comparison(self):
        assert Severity.ERROR > Severity.WARNING
        assert Severity.WARNING > Severity.INFO
        assert Severity.INFO <= Severity.INFO

    def test_scan_result_counts(self):
        result = ScanResult(
            findings=[
                self.make_finding(),
                self.make_finding(severity=Severity.WARNING),
                self.make_finding(suppressed=True),
            ],
            files_scanned=1,
            scan_time_seconds=0.1,
            languages_detected=["python"],
            rules_applied=["SQL-SYNTAX-001"],
        )

        assert result.error_count == 1
        assert result.warning_count == 1
        assert result.total_findings == 2
        assert result.suppressed_count == 1
        assert result.to_dict()["summary"]["by_severity"] == {"error": 1, "warning": 1, "info": 0}


class TestRules:
    """Tests for the rule registry and analysis context."""

    def test_rule_registry(self):
        reg = RuleRegistry.get_instance()

        assert reg is registry
        assert {"SQL-SYNTAX-001", "SQL-SYNTAX-002"} <= set(reg.rule_ids())
        assert reg.is_enabled_by_default("SQL-SYNTAX-001")

    def test_create_rules_returns_fresh_instances(self, fake_validator):
        config = {"validator": fake_validator}
        first = registry.create_rules(config)
        second = registry.create_rules(config)

        assert [r.metadata.rule_id for r in first] == [r.metadata.rule_id for r in second]
        assert all(a is not b for a, b in zip(first, second))

    def test_create_rules_enable_disable(self, fake_validator):
        rules = registry.create_rules({"validator": fake_validator}, disabled=["SQL-SYNTAX-001"])
        assert [r.metadata.rule_id for r in rules] == ["SQL-SYNTAX-002"]

    def test_unknown_rule(self):
        assert registry.create_rule("NOPE-001") is None

    def test_analysis_context(self):
        context = AnalysisContext(
            file_path="test.py",
            content="a = 1  # noqa\nb = 2\nc = 3\n",
            language="python",
        )

        assert len(context.lines) == 3
        assert context.is_line_suppressed(1)
        assert context.is_line_suppressed(2)
        assert not context.is_line_suppressed(3)

    def test_context_snippet(self):
        content = "\n".join(f"line {i}" for i in range(1, 11))
        context = AnalysisContext(file_path="test.py", content=content, language="python")

        snippet = context.get_snippet(5, context_lines=2)

        assert snippet.code == "line 5"
        assert snippet.highlighted_line == 5
        assert snippet.context_before == ["line 3", "line 4"]
        assert snippet.context_after == ["line 6", "line 7"]


class TestFormatters:
    """Tests for output formatters."""

    @pytest.fixture
    def result(self, engine):
        code = '''
q = "SELEKT 1"
SqlCommand(q)
SqlCommand("SELEKT a FROMM t")
SqlCommand("SELEKT 3")  # noqa
'''
        findings = engine.scan_content(code, file_path="app.py")
        return ScanResult(
            findings=findings,
            files_scanned=1,
            scan_time_seconds=0.01,
            languages_detected=["python"],
            rules_applied=["SQL-SYNTAX-001", "SQL-SYNTAX-002"],
        )

    def test_get_formatter(self):
        assert isinstance(get_formatter("text"), CLIFormatter)
        assert isinstance(get_formatter("JSON"), JSONFormatter)
        assert isinstance(get_formatter("sarif"), SARIFFormatter)
        with pytest.raises(ValueError):
            get_formatter("xml")

    def test_cli_formatter(self, result):
        formatter = CLIFormatter(use_color=False)
        output = formatter.format_result(result)

        assert "app.py:2:5: error [SQL-SYNTAX-002] Illegal SQL (traced)" in output
        assert "app.py:4:12: error [SQL-SYNTAX-001] Illegal SQL" in output
        assert "    Incorrect syntax near 'FROMM'." in output
        assert "SELEKT 3" not in output
        assert "Found 2 issue(s)" in output
        assert "Suppressed: 1" in output

    def test_cli_formatter_shows_suppressed(self, result):
        output = CLIFormatter(use_color=False, include_suppressed=True).format_result(result)
        assert "(suppressed)" in output

    def test_cli_formatter_clean(self):
        result = ScanResult([], 3, 0.0, ["python"], [])
        output = CLIFormatter(use_color=False).format_result(result)
        assert "No invalid SQL found." in output

    def test_json_formatter(self, result):
        data = json.loads(JSONFormatter().format_result(result))

        assert data["summary"]["by_severity"]["error"] == 2
        assert data["summary"]["suppressed_findings"] == 1
        assert len(data["findings"]) == 2
        assert data["findings"][0]["rule_id"] == "SQL-SYNTAX-002"

    def test_json_formatter_include_suppressed(self, result):
        data = json.loads(JSONFormatter(include_suppressed=True).format_result(result))
        assert len(data["findings"]) == 3

    def test_sarif_formatter(self, result):
        sarif = json.loads(SARIFFormatter().format_result(result))

        assert sarif["version"] == "2.1.0"
        run = sarif["runs"][0]
        assert run["tool"]["driver"]["name"] == "embedsql"
        assert {r["id"] for r in run["tool"]["driver"]["rules"]} == {"SQL-SYNTAX-001", "SQL-SYNTAX-002"}

        first = run["results"][0]
        assert first["level"] == "error"
        region = first["locations"][0]["physicalLocation"]["region"]
        assert (region["startLine"], region["startColumn"]) == (2, 5)
        assert run["invocations"][0]["executionSuccessful"] is True
