# tests/conftest.py
"""
Shared fixtures for the polyglint test-suite: sample Java units and small
helpers that run the pipeline over source text.
"""

from typing import List

import pytest

from polyglint.checkers import CheckerRunner, Diagnostic
from polyglint.config import AnalyzerConfig
from polyglint.errors import ErrorKind
from polyglint.lifecycle import LifecycleAnalysis, analyze_lifecycle
from polyglint.parser import parse


# ═══════════════════════════════════════════════════════════════════════════
#  SAMPLE UNITS
# ═══════════════════════════════════════════════════════════════════════════

JAVA_TEST = """\
import java.io.File;

import javax.naming.Context;
import javax.xml.transform.Source;

import org.graalvm.polyglot.*;


public class JavaTest {
    public static void main(String[] args) {
        try (Context context = Context.create()) {
            context.eval("python", "print('hello')");
        }
    }
}"""

JAVA_TEST_1 = """\
import java.io.File;

import javax.naming.Context;
import javax.xml.transform.Source;

import org.graalvm.polyglot.*;


public class JavaTest {
    Context cx0;

    public static void main(String[] args) {
        Context cx1;
        Context cx2 = Context.create();
        File f = new File("TestSamples/pyprint.py");
        Source sourcep = Source.newBuilder("python", f).build();
        try (Context context = Context.create()) {
            context.eval("python", "print('hello')");
            context.eval(sourcep);
            Value bindings = context.getPolyglotBindings();
            bindings.getMember("test");
        }
        cx2.getPolyglotBindings().getMember("null");
    }
}"""

JAVA_TEST_2 = """\
import java.io.File;

import javax.naming.Context;
import javax.xml.transform.Source;

import org.graalvm.polyglot.Context;
import org.graalvm.polyglot.Value;

public class JavaTest2 {
    public static void main(String[] args) {

        Context cx = Context.create();

        File file0 = new File("TestSamples/pyprint.py");
        File file1 = file0;
        File file2 = new File("TestSamples/export_x.py");
        File file3 = new File("TestSamples/JavaTest.java");

        Source source1 = Source.newBuilder("python", file1).build();
        Source source2 = Source.newBuilder("python", file2).build();
        Source source3 = Source.newBuilder("java", file3).build();

        try (Context context = Context.create()) {
            context.eval("python", "print('hello')");
            context.eval(source1);
            context.eval(source2);
            context.eval(source3);

            Value bindings = context.getPolyglotBindings();
            bindings.getMember("test");
        }
    }
    static Source source0 = Source.newBuilder("python", new File("TestSamples/pyprint.py")).build();
    static Source source1 = Source.newBuilder("python", new File("TestSamples/pyprint.py")).build();
    static Source src = source1;
    static Source src1 = source0.build();

}
"""

JAVA_TEST_3 = """\
import java.io.File;

import javax.naming.Context;
import javax.xml.transform.Source;

import org.graalvm.polyglot.Context;
import org.graalvm.polyglot.Value;

public class JavaTest3 {
    public static void main(String[] args) {

        Context cx = Context.create();

        File file1 = new File("TestSamples/import_x.py");
        File file2 = new File("TestSamples/test_pyprint_file.js");

        Source source1 = Source.newBuilder("python", file1).build();
        Source source2 = Source.newBuilder("js", file2).build();

        try (Context context = Context.create()) {
            context.eval(source1);
            context.eval(source2);

            Value bindings = context.getPolyglotBindings();
            bindings.getMember("test");
        }
        cx.getPolyglotBindings().getMember("null");
    }
}
"""

# Acquire by reference, then call through an alias after the block closed.
USE_AFTER_RELEASE_JAVA = """\
class Main {
    void run() {
        Context cx = Context.create();
        Context alias = cx;
        try (cx) {
            cx.eval("js", "1");
        }
        alias.eval("js", "2");
    }
}
"""

REDUNDANT_JAVA = """\
class Main {
    void run() {
        Source a = Source.create("js", "1 + 1");
        Source b = Source.create("js", "1 + 1");
        try (Context cx = Context.create()) {
            cx.eval(a);
            cx.eval(b);
        }
    }
}
"""

UNUSED_FIELD_JAVA = """\
class Main {
    Context shared;
    void run() {
        try (Context cx = Context.create()) {
            cx.eval("python", "1");
        }
    }
}
"""


# ═══════════════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def wrap_method(body: str, fields: str = "") -> str:
    """Place *body* inside ``void run() { ... }`` of a class ``Main``."""
    return f"class Main {{\n{fields}    void run() {{\n{body}\n    }}\n}}\n"


def analyze(text: str, config: AnalyzerConfig = None, path: str = "Main.java") -> LifecycleAnalysis:
    config = config or AnalyzerConfig()
    return analyze_lifecycle(parse(text, path), config.tracked_types)


def diagnose(text: str, config: AnalyzerConfig = None, path: str = "Main.java") -> List[Diagnostic]:
    return CheckerRunner(config).run(parse(text, path), text).diagnostics


def of_kind(diagnostics: List[Diagnostic], kind: ErrorKind) -> List[Diagnostic]:
    return [d for d in diagnostics if d.kind is kind]


def handle_named(analysis: LifecycleAnalysis, name: str):
    matches = analysis.table.handles_named(name)
    assert len(matches) == 1, f"expected one handle named {name!r}, got {matches}"
    return matches[0]


@pytest.fixture
def shadowing_config() -> AnalyzerConfig:
    return AnalyzerConfig(check_import_shadowing=True)


@pytest.fixture
def java_files(tmp_path):
    """The sample units written to disk, keyed by class name."""
    paths = {}
    for name, text in (("JavaTest", JAVA_TEST), ("JavaTest1", JAVA_TEST_1),
                       ("JavaTest2", JAVA_TEST_2), ("JavaTest3", JAVA_TEST_3)):
        path = tmp_path / f"{name}.java"
        path.write_text(text, encoding="utf-8")
        paths[name] = path
    return paths
