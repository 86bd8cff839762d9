# tests/test_reporting.py
"""
Tests for the output renderers and the S-expression dump.
"""

import io
import json

import pytest
import sexpdata
from sexpdata import Symbol

from polyglint.analyzer import AnalysisReport, SourceUnit, analyze_units
from polyglint.parser import parse, parse_expression
from polyglint.polyglot import collect_uses
from polyglint.reporting import (
    TextRenderer,
    dump_sexp,
    expr_to_sexp,
    render_gcc,
    render_json_lines,
    render_summary,
    render_uses,
    uses_to_json,
    write_report,
)
from tests.conftest import JAVA_TEST, JAVA_TEST_1, JAVA_TEST_2, analyze


@pytest.fixture
def report():
    return analyze_units([
        SourceUnit("JavaTest1.java", JAVA_TEST_1),
        SourceUnit("JavaTest2.java", JAVA_TEST_2),
    ])


def _write(report, fmt, color=False):
    stream = io.StringIO()
    write_report(report, fmt, stream, color=color)
    return stream.getvalue()


class TestJson:

    def test_one_object_per_line(self, report):
        lines = render_json_lines(report.diagnostics).splitlines()
        assert len(lines) == 7
        first = json.loads(lines[0])
        assert first == {
            "severity": "information",
            "message": "field 'cx0' of type Context is declared but never constructed or used",
            "file": "JavaTest1.java",
            "line": 10,
            "column": 13,
            "errorId": "UnusedHandle",
            "handles": ["cx0"],
        }

    def test_empty_report_writes_nothing(self):
        assert _write(AnalysisReport(), "json") == ""


class TestGcc:

    def test_format(self, report):
        lines = render_gcc(report.diagnostics).splitlines()
        assert lines[0] == ("JavaTest1.java:10:13: information: field 'cx0' of type Context "
                            "is declared but never constructed or used [UnusedHandle]")
        assert lines[-1].startswith("JavaTest2.java:36:19: information: field 'src1'")

    def test_write_report(self, report):
        assert _write(report, "gcc").count("\n") == 7


class TestSummary:

    def test_counts(self, report):
        text = render_summary(report)
        lines = text.splitlines()
        assert lines[0] == "2 unit(s) analysed, 0 skipped: 7 diagnostic(s) (7 information)"
        assert lines[1].split() == ["UnusedHandle", "6"]
        assert lines[2].split() == ["RedundantResource", "1"]

    def test_skipped_units_are_counted(self):
        report = analyze_units([SourceUnit("Gone.java", load_error="denied")])
        assert render_summary(report).startswith(
            "1 unit(s) analysed, 1 skipped: 1 diagnostic(s) (1 error)")


class TestText:

    def test_plain_rendering(self, report):
        text = _write(report, "text")
        assert "information[UnusedHandle]: field 'cx0' of type Context" in text
        assert "  --> JavaTest1.java:10:13" in text
        assert "  = note: related location JavaTest2.java:33:19" in text
        assert "\x1b[" not in text
        assert text.rstrip().splitlines()[-1].split() == ["RedundantResource", "1"]

    def test_colored_rendering(self):
        report = analyze_units([SourceUnit("JavaTest1.java", JAVA_TEST_1)])
        stream = io.StringIO()
        TextRenderer(stream, color=True).render_all(report.diagnostics)
        assert "\x1b[" in stream.getvalue()

    def test_unknown_format(self, report):
        with pytest.raises(ValueError):
            _write(report, "xml")


class TestUses:

    def test_table(self):
        uses = collect_uses(analyze(JAVA_TEST_1))
        lines = render_uses("JavaTest.java", uses).splitlines()
        assert lines[0].split("\t") == ["JavaTest.java:18:21", "eval-code", "python", "print('hello')"]
        assert lines[1].split("\t")[1:] == ["eval-source", "python", "TestSamples/pyprint.py"]
        assert lines[3].split("\t")[1:] == ["import", "-", "null"]

    def test_json(self):
        uses = collect_uses(analyze(JAVA_TEST))
        (line,) = uses_to_json("JavaTest.java", uses).splitlines()
        data = json.loads(line)
        assert data["file"] == "JavaTest.java"
        assert data["kind"] == "eval-code"
        assert data["language"] == "python"


class TestSexp:

    def test_expression(self):
        expr = parse_expression('cx.eval("js", s)')
        assert expr_to_sexp(expr) == [
            Symbol("call"), [Symbol("name"), "cx"], "eval",
            [Symbol("lit"), Symbol("string"), '"js"'], [Symbol("name"), "s"],
        ]

    def test_dump_is_readable(self):
        parsed = sexpdata.loads(dump_sexp(parse(JAVA_TEST, "JavaTest.java")))
        assert parsed[0] == Symbol("unit")
        assert parsed[1] == "JavaTest.java"
        imports = [p for p in parsed if isinstance(p, list) and p[0] == Symbol("import")]
        assert [i[1] for i in imports][-1] == "org.graalvm.polyglot"
        classes = [p for p in parsed if isinstance(p, list) and p[0] == Symbol("class")]
        assert classes[0][1] == "JavaTest"

    def test_acquisition_block(self):
        text = dump_sexp(parse(JAVA_TEST, "JavaTest.java"))
        assert "(block acquisition" in text
        assert "(resources (declare" in text
