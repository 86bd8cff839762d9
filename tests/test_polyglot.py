# tests/test_polyglot.py
"""
Tests for the polyglot use inventory (eval / getMember / putMember).
"""

import pytest

from polyglint.errors import InvalidLanguageError
from polyglint.polyglot import (
    Language, PolyglotUseKind, collect_uses, language_from_extension, language_from_string,
)
from tests.conftest import JAVA_TEST, JAVA_TEST_1, JAVA_TEST_2, JAVA_TEST_3, analyze, wrap_method


def _uses(text):
    return collect_uses(analyze(text))


class TestLanguages:

    @pytest.mark.parametrize("text,language", [
        ("python", Language.PYTHON),
        ("js", Language.JAVASCRIPT),
        ("javascript", Language.JAVASCRIPT),
        ("java", Language.JAVA),
    ])
    def test_known_ids(self, text, language):
        assert language_from_string(text) is language

    def test_unknown_id(self):
        with pytest.raises(InvalidLanguageError) as info:
            language_from_string("ruby")
        assert info.value.language == "ruby"

    def test_ids_are_case_sensitive(self):
        with pytest.raises(InvalidLanguageError):
            language_from_string("Python")

    @pytest.mark.parametrize("path,language", [
        ("TestSamples/pyprint.py", Language.PYTHON),
        ("lib/app.JS", Language.JAVASCRIPT),
        ("Main.java", Language.JAVA),
        ("script.rb", None),
        ("README", None),
    ])
    def test_from_extension(self, path, language):
        assert language_from_extension(path) is language


class TestSampleUses:

    def test_java_test(self):
        (use,) = _uses(JAVA_TEST)
        assert use.kind is PolyglotUseKind.EVAL_CODE
        assert use.language is Language.PYTHON
        assert use.code == "print('hello')"
        assert use.handle == "context"
        assert use.loc.line == 12

    def test_java_test_1(self):
        uses = _uses(JAVA_TEST_1)
        assert [(u.kind, u.loc.line) for u in uses] == [
            (PolyglotUseKind.EVAL_CODE, 18),
            (PolyglotUseKind.EVAL_SOURCE, 19),
            (PolyglotUseKind.IMPORT, 21),
            (PolyglotUseKind.IMPORT, 23),
        ]
        source = uses[1]
        assert source.name == "sourcep"
        assert source.raw_language == "python"
        assert source.path == "TestSamples/pyprint.py"
        assert source.code is None
        assert [u.name for u in uses[2:]] == ["test", "null"]
        assert uses[3].handle == "cx2"
        assert uses[2].handle is None

    def test_java_test_2_follows_file_copies(self):
        sources = [u for u in _uses(JAVA_TEST_2) if u.kind is PolyglotUseKind.EVAL_SOURCE]
        assert [(u.name, u.language, u.path) for u in sources] == [
            ("source1", Language.PYTHON, "TestSamples/pyprint.py"),
            ("source2", Language.PYTHON, "TestSamples/export_x.py"),
            ("source3", Language.JAVA, "TestSamples/JavaTest.java"),
        ]

    def test_java_test_3(self):
        uses = _uses(JAVA_TEST_3)
        assert [u.kind for u in uses] == [
            PolyglotUseKind.EVAL_SOURCE, PolyglotUseKind.EVAL_SOURCE,
            PolyglotUseKind.IMPORT, PolyglotUseKind.IMPORT,
        ]
        assert uses[1].language is Language.JAVASCRIPT
        assert uses[1].path == "TestSamples/test_pyprint_file.js"


class TestUseKinds:

    def test_inline_source_code(self):
        uses = _uses(wrap_method(
            'Source s = Source.create("js", "1 + 1");\n'
            "try (Context cx = Context.create()) { cx.eval(s); }"))
        (use,) = uses
        assert use.kind is PolyglotUseKind.EVAL_SOURCE
        assert use.code == "1 + 1"
        assert use.path is None
        assert use.language is Language.JAVASCRIPT

    def test_language_from_file_extension(self):
        (use,) = _uses(wrap_method(
            'Source s = Source.newBuilder(lang, new File("task.py")).build();\n'
            "Context cx = Context.create();\n"
            "cx.eval(s);"))
        assert use.raw_language is None
        assert use.language is Language.PYTHON

    def test_unknown_language_is_kept_raw(self):
        (use,) = _uses(wrap_method('Context cx = Context.create();\ncx.eval("ruby", "puts 1");'))
        assert use.raw_language == "ruby"
        assert use.language is None

    def test_export(self):
        (use,) = _uses(wrap_method(
            "Context cx = Context.create();\n"
            'cx.getBindings("js").putMember("answer", 42);'))
        assert use.kind is PolyglotUseKind.EXPORT
        assert use.name == "answer"
        assert use.handle == "cx"

    def test_untracked_eval_argument_is_ignored(self):
        uses = _uses(wrap_method("Context cx = Context.create();\ncx.eval(script);"))
        assert uses == []

    def test_to_dict(self):
        (use,) = _uses(JAVA_TEST)
        assert use.to_dict() == {
            "kind": "eval-code",
            "line": 12,
            "column": use.loc.column,
            "language": "python",
            "code": "print('hello')",
            "path": None,
            "name": None,
            "handle": "context",
        }
