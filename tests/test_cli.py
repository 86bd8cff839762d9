# tests/test_cli.py
"""
Tests for the polyglint command-line interface.
"""

import io
import json
import logging

import pytest

from polyglint import __version__
from polyglint import cli
from polyglint.cli import EXIT_ERROR, EXIT_INFRA, EXIT_OK, load_unit, load_units, main
from tests.conftest import JAVA_TEST


def _json_lines(text):
    return [json.loads(line) for line in text.splitlines() if line.strip()]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("polyglint")
    logger.handlers[:] = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class TestLoading:

    def test_utf8_bom_is_stripped(self, tmp_path):
        path = tmp_path / "Bom.java"
        path.write_bytes(b"\xef\xbb\xbfclass A {}\n")
        unit = load_unit(str(path))
        assert unit.text == "class A {}\n"
        assert unit.load_error is None

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "Bad.java"
        path.write_bytes(b"class A { \xff\xfe }")
        unit = load_unit(str(path))
        assert unit.text is None
        assert "decode" in unit.load_error

    def test_missing_file(self, tmp_path):
        unit = load_unit(str(tmp_path / "Gone.java"))
        assert unit.load_error is not None

    def test_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(JAVA_TEST))
        unit = load_unit("-")
        assert unit.path == "<stdin>"
        assert unit.text == JAVA_TEST

    def test_directory_expands_to_java_files(self, java_files, tmp_path):
        (tmp_path / "notes.txt").write_text("not java")
        units = load_units([str(tmp_path)])
        assert [u.path for u in units] == sorted(str(p) for p in java_files.values())


class TestCheck:

    def test_clean_unit(self, java_files, capsys):
        assert main(["check", str(java_files["JavaTest"]), "--format", "json"]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_json_output(self, java_files, capsys):
        status = main(["check", str(java_files["JavaTest2"]), "--format", "json"])
        assert status == EXIT_OK
        records = _json_lines(capsys.readouterr().out)
        assert [(r["line"], r["errorId"]) for r in records] == [
            (12, "UnusedHandle"),
            (34, "UnusedHandle"),
            (34, "RedundantResource"),
            (35, "UnusedHandle"),
            (36, "UnusedHandle"),
        ]

    def test_fail_on_unused(self, java_files, capsys):
        status = main(["check", str(java_files["JavaTest1"]), "--format", "gcc", "--fail-on-unused"])
        assert status == EXIT_ERROR
        out = capsys.readouterr().out
        assert ":10:13: error: field 'cx0'" in out

    def test_import_shadowing(self, java_files, capsys):
        status = main(["check", str(java_files["JavaTest"]), "--format", "gcc", "--import-shadowing"])
        assert status == EXIT_OK
        (line,) = capsys.readouterr().out.splitlines()
        assert line.endswith("style: import of javax.naming.Context shadows the polyglot type "
                             "'Context' [ImportShadowing]")

    def test_suppress_and_disable(self, java_files, capsys):
        path = str(java_files["JavaTest2"])
        main(["check", path, "--format", "json", "--suppress", "UnusedHandle"])
        assert [r["errorId"] for r in _json_lines(capsys.readouterr().out)] == ["RedundantResource"]
        main(["check", path, "--format", "json", "--disable", "redundant-resource"])
        assert {r["errorId"] for r in _json_lines(capsys.readouterr().out)} == {"UnusedHandle"}

    def test_custom_tracked_types(self, java_files, capsys):
        assert main(["check", str(java_files["JavaTest1"]), "--format", "json", "--track", "Engine"]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_directory_summary(self, java_files, tmp_path, capsys):
        status = main(["check", str(tmp_path), "--format", "summary", "-j", "2"])
        assert status == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("4 unit(s) analysed, 0 skipped: 7 diagnostic(s)")

    def test_text_output_without_tty_is_plain(self, java_files, capsys):
        main(["check", str(java_files["JavaTest1"])])
        out = capsys.readouterr().out
        assert "\x1b[" not in out
        assert "information[UnusedHandle]" in out

    def test_unreadable_unit(self, tmp_path, capsys):
        status = main(["check", str(tmp_path / "Gone.java"), "--format", "json"])
        assert status == EXIT_INFRA
        (record,) = _json_lines(capsys.readouterr().out)
        assert record["errorId"] == "UnreadableUnit"
        assert record["severity"] == "error"

    def test_unsupported_unit_does_not_stop_others(self, java_files, tmp_path, capsys):
        broken = tmp_path / "Broken.java"
        broken.write_text("this is not java {{{")
        status = main(["check", str(broken), str(java_files["JavaTest2"]), "--format", "json"])
        assert status == EXIT_INFRA
        records = _json_lines(capsys.readouterr().out)
        assert records[0]["errorId"] == "UnsupportedUnit"
        assert len(records) == 6

    def test_config_file(self, java_files, tmp_path, capsys):
        config = tmp_path / "polyglint.json"
        config.write_text(json.dumps({"failOnUnused": True, "disabledCheckers": ["redundant-resource"]}))
        status = main(["check", str(java_files["JavaTest2"]), "--format", "json", "--config", str(config)])
        assert status == EXIT_ERROR
        records = _json_lines(capsys.readouterr().out)
        assert {r["severity"] for r in records} == {"error"}
        assert len(records) == 4

    @pytest.mark.parametrize("content", ["{broken", '{"workers": 0}', None])
    def test_bad_config(self, java_files, tmp_path, capsys, content):
        config = tmp_path / "bad.json"
        if content is not None:
            config.write_text(content)
        status = main(["check", str(java_files["JavaTest"]), "--config", str(config)])
        assert status == EXIT_INFRA
        assert capsys.readouterr().err.startswith("polyglint: ")

    def test_internal_error(self, java_files, monkeypatch, capsys):
        def boom(*args, **kwargs):
            raise RuntimeError("engine exploded")

        monkeypatch.setattr(cli, "load_units", boom)
        assert main(["check", str(java_files["JavaTest"])]) == EXIT_INFRA
        assert "polyglint: internal error: engine exploded" in capsys.readouterr().err


class TestUses:

    def test_table(self, java_files, capsys):
        assert main(["uses", str(java_files["JavaTest1"])]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 4
        assert lines[1].split("\t")[1] == "eval-source"

    def test_json(self, java_files, capsys):
        assert main(["uses", str(java_files["JavaTest3"]), "--json"]) == EXIT_OK
        records = _json_lines(capsys.readouterr().out)
        assert [r["kind"] for r in records] == ["eval-source", "eval-source", "import", "import"]
        assert records[1]["language"] == "js"

    def test_skipped_unit(self, tmp_path, capsys):
        status = main(["uses", str(tmp_path / "Gone.java")])
        assert status == EXIT_INFRA
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "skipped: cannot read unit" in captured.err


class TestDumpSexp:

    def test_dump(self, java_files, capsys):
        assert main(["dump-sexp", str(java_files["JavaTest"])]) == EXIT_OK
        assert capsys.readouterr().out.startswith("(unit ")

    def test_unsupported(self, tmp_path, capsys):
        broken = tmp_path / "Broken.java"
        broken.write_text("this is not java {{{")
        assert main(["dump-sexp", str(broken)]) == EXIT_INFRA

    def test_unreadable(self, tmp_path, capsys):
        assert main(["dump-sexp", str(tmp_path / "Gone.java")]) == EXIT_INFRA
        assert "cannot read unit" in capsys.readouterr().err


class TestMisc:

    def test_checkers(self, capsys):
        assert main(["checkers"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "use-after-release" in out
        assert "ID: UseAfterRelease, severity: error" in out
        assert "(opt-in)" in out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_OK
        assert "usage: polyglint" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_missing_files_is_usage_error(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["check"])
        assert info.value.code == 2
