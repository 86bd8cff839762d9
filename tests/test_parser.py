# tests/test_parser.py
"""
Tests for the Java front-end: source text → lowered AST with program points.
"""

import pytest
from parsimonious.exceptions import ParseError

from polyglint.ast_nodes import (
    Assign, Block, BlockKind, Call, ClassDecl, CompilationUnit, Declare,
    FieldAccess, Literal, MethodCall, Name, New, Operation, This, Unknown,
    iter_statements, render, receiver_root,
)
from polyglint.errors import ErrorKind, UnitParseError
from polyglint.grammar import JAVA_GRAMMAR
from polyglint.parser import parse, parse_expression
from tests.conftest import JAVA_TEST, JAVA_TEST_1, JAVA_TEST_2, wrap_method


def _body(text: str):
    unit = parse(text)
    return unit.classes[0].methods[0].body.statements


class TestGrammarWellFormed:

    def test_key_rules_exist(self):
        for rule in ("compilation_unit", "type_decl", "method_decl", "statement",
                     "try_stmt", "expr", "postfix_expr", "literal"):
            assert rule in JAVA_GRAMMAR, f"Rule {rule!r} missing"

    def test_identifier_rejects_keywords(self):
        JAVA_GRAMMAR["identifier"].parse("returnValue")
        with pytest.raises(ParseError):
            JAVA_GRAMMAR["identifier"].parse("return")


class TestParseUnit:

    def test_empty_unit(self):
        unit = parse("")
        assert isinstance(unit, CompilationUnit)
        assert unit.classes == []
        assert unit.point_count == 0

    def test_comment_only(self):
        unit = parse("// nothing\n/* here */\n")
        assert unit.classes == []

    def test_package_and_imports(self):
        unit = parse(JAVA_TEST)
        assert unit.package is None
        names = [i.name for i in unit.imports]
        assert names == ["java.io.File", "javax.naming.Context",
                         "javax.xml.transform.Source", "org.graalvm.polyglot"]
        wildcard = unit.imports[-1]
        assert wildcard.is_wildcard
        assert wildcard.simple_name == "*"
        assert unit.imports[1].simple_name == "Context"
        assert unit.imports[1].package == "javax.naming"
        assert unit.imports[1].loc.line == 3

    def test_package_declaration(self):
        unit = parse("package com.example.app;\nclass A {}\n")
        assert unit.package == "com.example.app"

    def test_static_import(self):
        unit = parse("import static java.lang.Math.max;\nclass A {}\n")
        assert unit.imports[0].is_static

    def test_path_is_kept(self):
        assert parse(JAVA_TEST, "JavaTest.java").path == "JavaTest.java"

    def test_unrecognisable_text_raises(self):
        with pytest.raises(UnitParseError) as info:
            parse("this is not java {{{", "Broken.java")
        assert info.value.kind is ErrorKind.UNSUPPORTED_UNIT
        assert info.value.path == "Broken.java"
        assert info.value.line >= 1


class TestParseMembers:

    def test_class_with_method(self):
        unit = parse(JAVA_TEST)
        cls = unit.classes[0]
        assert isinstance(cls, ClassDecl)
        assert cls.name == "JavaTest"
        assert [m.name for m in cls.methods] == ["main"]
        main = cls.methods[0]
        assert main.modifiers == ("public", "static")
        assert main.body.kind is BlockKind.METHOD

    def test_parameters_have_unknown_initializer(self):
        main = parse(JAVA_TEST).classes[0].methods[0]
        param = main.params[0]
        assert param.is_param
        assert param.name == "args"
        assert param.type_name == "String[]"
        assert isinstance(param.init, Unknown)

    def test_fields(self):
        cls = parse(JAVA_TEST_2).classes[0]
        names = [f.name for f in cls.fields]
        assert names == ["source0", "source1", "src", "src1"]
        assert all(f.is_field for f in cls.fields)
        assert cls.fields[0].modifiers == ("static",)
        assert cls.fields[2].init.name == "source1"

    def test_field_without_initializer(self):
        cls = parse(JAVA_TEST_1).classes[0]
        assert cls.fields[0].name == "cx0"
        assert cls.fields[0].init is None
        assert cls.fields[0].name_loc.line == 10

    def test_multiple_declarators(self):
        cls = parse("class A { Context a, b = Context.create(); }").classes[0]
        assert [f.name for f in cls.fields] == ["a", "b"]
        assert cls.fields[0].init is None
        assert isinstance(cls.fields[1].init, MethodCall)

    def test_constructor_and_nested_class(self):
        text = """
            class Outer {
                Outer(Context cx) { this.cx = cx; }
                static class Inner { Source s; }
            }
        """
        cls = parse(text).classes[0]
        assert cls.methods[0].is_constructor
        assert cls.classes[0].name == "Inner"
        assign = cls.methods[0].body.statements[0]
        assert isinstance(assign, Assign)
        assert assign.via_this
        assert assign.target == "cx"

    def test_annotations_and_generics(self):
        text = """
            @SuppressWarnings("unused")
            public final class A<T> extends B implements C {
                @Override
                public <R> List<R> map(List<T> items) { return null; }
            }
        """
        cls = parse(text).classes[0]
        assert cls.name == "A"
        assert cls.methods[0].name == "map"
        assert not cls.methods[0].is_constructor
        assert cls.methods[0].params[0].type_name == "List<T>"

    def test_abstract_method_has_no_body(self):
        cls = parse("abstract class A { abstract void run(); }").classes[0]
        assert cls.methods[0].body is None

    def test_initializer_block(self):
        cls = parse("class A { static { Context c = Context.create(); } }").classes[0]
        assert len(cls.initializers) == 1
        assert cls.initializers[0].label == "static"


class TestParseStatements:

    def test_try_with_resources_is_acquisition(self):
        stmts = parse(JAVA_TEST).classes[0].methods[0].body.statements
        assert len(stmts) == 1
        block = stmts[0]
        assert isinstance(block, Block)
        assert block.kind is BlockKind.ACQUISITION
        resource = block.resources[0]
        assert isinstance(resource, Declare)
        assert resource.is_resource
        assert resource.name == "context"
        assert render(resource.init) == "Context.create()"
        assert isinstance(block.statements[0], Call)
        assert block.end_loc.line == 13

    def test_try_with_referenced_resource(self):
        stmts = _body(wrap_method("try (cx) { cx.close(); }"))
        block = stmts[0]
        assert block.kind is BlockKind.ACQUISITION
        resource = block.resources[0]
        assert isinstance(resource, Call)
        assert resource.label == "resource"
        assert isinstance(resource.expr, Name)

    def test_try_catch_finally_are_plain_blocks_after(self):
        stmts = _body(wrap_method(
            "try (Context c = Context.create()) { c.eval(s); }"
            " catch (IOException | RuntimeException e) { log(e); }"
            " finally { done(); }"))
        assert [type(s) for s in stmts] == [Block, Block, Block]
        assert stmts[0].kind is BlockKind.ACQUISITION
        assert stmts[1].label == "catch"
        assert isinstance(stmts[1].statements[0], Declare)
        assert stmts[1].statements[0].type_name == "IOException|RuntimeException"
        assert stmts[2].label == "finally"

    def test_plain_try_is_not_acquisition(self):
        stmts = _body(wrap_method("try { run(); } finally { stop(); }"))
        assert stmts[0].kind is BlockKind.PLAIN
        assert stmts[0].label == "try"

    def test_if_else_lowering(self):
        stmts = _body(wrap_method("if (ready) { go(); } else stop();"))
        assert isinstance(stmts[0], Call)
        assert stmts[0].label == "if"
        assert stmts[1].label == "if"
        assert stmts[2].label == "else"

    def test_foreach_declares_loop_variable(self):
        stmts = _body(wrap_method("for (Source s : sources) { cx.eval(s); }"))
        assert stmts[0].label == "for"
        loop = stmts[1]
        assert isinstance(loop.statements[0], Declare)
        assert isinstance(loop.statements[0].init, Unknown)

    def test_classic_for(self):
        stmts = _body(wrap_method("for (int i = 0; i < n; i++) { work(i); }"))
        loop = stmts[0]
        assert isinstance(loop, Block)
        assert isinstance(loop.statements[0], Declare)
        assert loop.statements[1].label == "for"

    def test_return_and_throw(self):
        stmts = _body(wrap_method("if (x) return cx; throw new IllegalStateException();"))
        labels = [s.label for s in iter_statements(stmts) if isinstance(s, Call)]
        assert labels == ["if", "return", "throw"]

    def test_compound_assignment_is_call(self):
        stmts = _body(wrap_method("count += 1;"))
        assert isinstance(stmts[0], Call)
        assert isinstance(stmts[0].expr, Operation)
        assert stmts[0].expr.operator == "+="

    def test_null_assignment(self):
        stmts = _body(wrap_method("cx = null;"))
        assert isinstance(stmts[0], Assign)
        assert isinstance(stmts[0].value, Literal)
        assert stmts[0].value.kind == "null"

    def test_lambda_keeps_captured_names(self):
        stmts = _body(wrap_method("run(() -> { cx.eval(\"js\", \"1\"); });"))
        call = stmts[0].expr
        lam = call.args[0]
        assert isinstance(lam, Operation)
        assert lam.operator == "->"
        assert [n.name for n in lam.operands] == ["cx"]

    def test_var_declaration(self):
        stmts = _body(wrap_method("var cx = Context.create();"))
        assert stmts[0].type_name == "var"

    def test_malformed_statement_is_skipped(self):
        unit = parse(wrap_method("Context a = Context.create();\n    @@@ garbage ;\n    a.close();"))
        body = unit.classes[0].methods[0].body.statements
        assert len(body) == 2
        assert len(unit.skipped) == 1
        assert "garbage" in unit.skipped[0].text


class TestProgramPoints:

    def test_fields_numbered_before_methods(self):
        unit = parse(JAVA_TEST_2)
        cls = unit.classes[0]
        assert [f.point for f in cls.fields] == [0, 1, 2, 3]
        assert cls.methods[0].params[0].point == 4
        assert cls.methods[0].body.point == 5

    def test_points_are_consecutive(self):
        unit = parse(JAVA_TEST_1)
        main = unit.classes[0].methods[0]
        points = [s.point for s in iter_statements([main.body])]
        assert points == list(range(points[0], points[0] + len(points)))
        assert unit.point_count == points[-1] + 1

    def test_block_end_point(self):
        unit = parse(JAVA_TEST)
        body = unit.classes[0].methods[0].body
        block = body.statements[0]
        assert block.end_point == block.statements[-1].point
        assert body.end_point == block.end_point


class TestParseExpression:

    def test_static_creation_chain(self):
        expr = parse_expression('Source.newBuilder("python", f).build()')
        assert isinstance(expr, MethodCall)
        assert expr.name == "build"
        assert render(expr) == 'Source.newBuilder("python",f).build()'
        root = receiver_root(expr)
        assert isinstance(root, Name) and root.name == "Source"

    def test_new_expression(self):
        expr = parse_expression('new File("a.py")')
        assert isinstance(expr, New)
        assert expr.type_name == "File"
        assert expr.args[0].value == "a.py"

    def test_this_field_access(self):
        expr = parse_expression("this.cx.eval(code)")
        assert isinstance(expr.target, FieldAccess)
        assert isinstance(expr.target.target, This)
        assert isinstance(receiver_root(expr), FieldAccess)

    def test_ternary_and_binary(self):
        expr = parse_expression("a == null ? b : c + 1")
        assert isinstance(expr, Operation)
        assert expr.operator == "?:"
        assert expr.operands[0].operator == "=="

    def test_reference_cast_keeps_operand(self):
        expr = parse_expression("(Context) obj")
        assert isinstance(expr, Name) and expr.name == "obj"

    def test_parenthesised_name_before_sign_is_arithmetic(self):
        expr = parse_expression('(cx) + "x"')
        assert isinstance(expr, Operation)
        assert expr.operator == "+"
        assert expr.operands[0].name == "cx"

    def test_primitive_cast_of_negated_value(self):
        expr = parse_expression("(int) -x")
        assert isinstance(expr, Operation)
        assert expr.operator == "-"
        assert expr.operands[0].name == "x"

    def test_switch_expression_keeps_names(self):
        expr = parse_expression("switch (k) { case 1 -> cx; default -> null; }")
        assert isinstance(expr, Operation)
        assert expr.operator == "switch"
        assert [n.name for n in expr.operands] == ["k", "cx"]

    def test_instanceof_pattern(self):
        expr = parse_expression("o instanceof Context c && c.isOpen()")
        assert expr.operator == "&&"
        check = expr.operands[0]
        assert check.operator == "instanceof"
        assert [n.name for n in check.operands] == ["o"]

    def test_text_block_literal(self):
        expr = parse_expression('"""\nprint(1)\n"""')
        assert isinstance(expr, Literal)
        assert expr.kind == "text"
        assert expr.value == "\nprint(1)\n"

    def test_member_location(self):
        expr = parse_expression("cx.eval(s)")
        assert expr.loc.column == 4
