# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from unlet.parser import ParseError, ast, parse_source


def _slice(source: str, node: ast.Node) -> str:
	start, end = node.range
	return source[start:end]


def test_parse_for_of_with_block_scoped_left() -> None:
	source = "for (const x of xs) { f(x); }"
	prog = parse_source(source)

	assert len(prog.body) == 1
	loop = prog.body[0]
	assert isinstance(loop, ast.ForOfStatement)
	assert isinstance(loop.left, ast.VariableDeclaration)
	assert loop.left.kind == "const"
	assert loop.left.declarations[0].id.name == "x"
	assert isinstance(loop.right, ast.Identifier)
	assert isinstance(loop.body, ast.BlockStatement)
	assert loop.rewritten is False


def test_parse_three_clause_for_keeps_header_parts() -> None:
	prog = parse_source("for (let i = 0; i < 3; i++) g(i);")
	loop = prog.body[0]
	assert isinstance(loop, ast.ForStatement)
	assert isinstance(loop.init, ast.VariableDeclaration)
	assert loop.init.kind == "let"
	assert isinstance(loop.test, ast.BinaryExpression)
	assert loop.test.operator == "<"
	assert isinstance(loop.update, ast.UpdateExpression)
	assert loop.update.prefix is False
	assert isinstance(loop.body, ast.ExpressionStatement)


def test_parse_empty_for_header() -> None:
	loop = parse_source("for (;;) { break; }").body[0]
	assert isinstance(loop, ast.ForStatement)
	assert loop.init is None and loop.test is None and loop.update is None


def test_ranges_cover_source_text() -> None:
	source = "while (ok) {\n\tlet y = 1;\n\tuse(y);\n}\n"
	prog = parse_source(source)
	loop = prog.body[0]
	assert isinstance(loop, ast.WhileStatement)
	assert _slice(source, loop.body) == "{\n\tlet y = 1;\n\tuse(y);\n}"
	decl = loop.body.body[0]
	assert _slice(source, decl) == "let y = 1;"
	assert _slice(source, decl.declarations[0].id) == "y"
	assert decl.line == 2
	call_stmt = loop.body.body[1]
	assert _slice(source, call_stmt) == "use(y);"


def test_parenthesized_expression_keeps_inner_range() -> None:
	source = "x = (a + b);"
	stmt = parse_source(source).body[0]
	assign = stmt.expression
	assert isinstance(assign, ast.AssignmentExpression)
	assert _slice(source, assign.right) == "a + b"


def test_parent_links_point_upwards() -> None:
	prog = parse_source("function f(a) { return a; }")
	fn = prog.body[0]
	assert isinstance(fn, ast.FunctionDeclaration)
	ret = fn.body.body[0]
	assert isinstance(ret, ast.ReturnStatement)
	assert ret.parent is fn.body
	assert fn.body.parent is fn
	assert fn.parent is prog
	assert ret.argument.parent is ret


def test_arrow_functions() -> None:
	prog = parse_source("f(() => 1); g(x => x + 1); h((a, b) => { return a; });")
	arrows = [stmt.expression.arguments[0] for stmt in prog.body]
	assert all(isinstance(a, ast.ArrowFunctionExpression) for a in arrows)
	assert [len(a.params) for a in arrows] == [0, 1, 2]
	assert [p.name for p in arrows[2].params] == ["a", "b"]
	assert arrows[0].expression is True
	assert arrows[2].expression is False


def test_member_call_and_index() -> None:
	prog = parse_source("(function () { return this; }).call(this, xs[0]);")
	call = prog.body[0].expression
	assert isinstance(call, ast.CallExpression)
	assert isinstance(call.callee, ast.MemberExpression)
	assert call.callee.computed is False
	assert call.callee.property.name == "call"
	assert isinstance(call.callee.object, ast.FunctionExpression)
	assert isinstance(call.arguments[0], ast.ThisExpression)
	index = call.arguments[1]
	assert isinstance(index, ast.MemberExpression) and index.computed is True


def test_literals() -> None:
	prog = parse_source("f(1, 2.5, 'a', \"b\", true, false, null, [1, 2]);")
	args = prog.body[0].expression.arguments
	assert [a.value for a in args[:7]] == [1, 2.5, "a", "b", True, False, None]
	assert isinstance(args[7], ast.ArrayExpression)
	assert len(args[7].elements) == 2


def test_statements_try_switch_labels() -> None:
	source = """
outer: for (let i = 0; i < 2; i++) {
	switch (i) {
		case 0: continue outer;
		default: break;
	}
	try { throw i; } catch (e) { g(e); } finally { h(); }
	do { i++; } while (i < 1);
}
"""
	prog = parse_source(source)
	labeled = prog.body[0]
	assert isinstance(labeled, ast.LabeledStatement)
	assert labeled.label.name == "outer"
	body = labeled.body.body.body
	switch, try_stmt, do_while = body
	assert isinstance(switch, ast.SwitchStatement)
	assert switch.cases[1].test is None
	cont = switch.cases[0].consequent[0]
	assert isinstance(cont, ast.ContinueStatement)
	assert cont.label.name == "outer"
	assert isinstance(try_stmt, ast.TryStatement)
	assert try_stmt.handler.param.name == "e"
	assert try_stmt.finalizer is not None
	assert isinstance(do_while, ast.DoWhileStatement)


def test_comments_are_ignored() -> None:
	prog = parse_source("// leading\nlet a = 1; /* inline */ let b = a;\n")
	assert [d.declarations[0].id.name for d in prog.body] == ["a", "b"]


def test_is_reference_excludes_declaration_sites() -> None:
	prog = parse_source("function f(p) { let v = p; o.prop = v; L: for (;;) { break L; } }")
	names = []
	stack: list[ast.Node] = [prog]
	while stack:
		node = stack.pop()
		if ast.is_reference(node):
			names.append(node.name)
		stack.extend(ast.iter_children(node))
	assert sorted(names) == ["o", "p", "v"]


def test_missing_semicolon_reports_location() -> None:
	with pytest.raises(ParseError) as excinfo:
		parse_source("let a = 1;\nlet b = 2\nlet c = 3;")
	assert excinfo.value.loc is not None
	assert excinfo.value.loc.line == 3


def test_unexpected_end_of_input() -> None:
	with pytest.raises(ParseError) as excinfo:
		parse_source("while (x) {")
	assert "end of input" in str(excinfo.value)
	assert excinfo.value.loc.line == 1


def test_const_requires_initializer() -> None:
	with pytest.raises(ParseError, match="missing initializer"):
		parse_source("const k;")


def test_invalid_assignment_target() -> None:
	with pytest.raises(ParseError, match="invalid assignment target"):
		parse_source("f() = 1;")


def test_duplicate_parameters_rejected() -> None:
	with pytest.raises(ParseError, match="duplicate parameter"):
		parse_source("function f(a, a) {}")
