# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from unlet.analysis import ScopeKind, build_scopes
from unlet.analysis.resolve import RedeclarationError
from unlet.core.diagnostics import E_REDECLARE, DiagnosticSink
from unlet.parser import ast, parse_source


def _identifiers(root: ast.Node, name: str) -> list[ast.Identifier]:
	found = []
	stack: list[ast.Node] = [root]
	while stack:
		node = stack.pop()
		if isinstance(node, ast.Identifier) and node.name == name:
			found.append(node)
		stack.extend(ast.iter_children(node))
	return sorted(found, key=lambda n: n.loc.start)


def test_program_and_function_scopes_hoist() -> None:
	prog = parse_source("var a = 1; function f(p) { var b = p; }")
	tree = build_scopes(prog)

	root = tree.root
	assert root.kind is ScopeKind.HOIST
	assert root.node is prog
	assert root.parent is None
	assert set(root.decls) == {"a", "f"}
	assert tree.get_kind(root.id, "f") == "fun"

	fn = prog.body[1]
	fn_scope = tree[fn.scope]
	assert fn_scope.kind is ScopeKind.HOIST
	assert fn_scope.node is fn
	assert fn_scope.parent == root.id
	assert tree.get_kind(fn_scope.id, "p") == "param"
	assert tree.get_kind(fn_scope.id, "b") == "var"
	# The body block shares the function's scope.
	assert fn.body.scope == fn.scope


def test_block_scoped_declarations_stay_in_block() -> None:
	prog = parse_source("{ let x = 1; var y = 2; const z = 3; }")
	tree = build_scopes(prog)
	block = prog.body[0]
	block_scope = tree[block.scope]
	assert block_scope.kind is ScopeKind.BLOCK
	assert set(block_scope.decls) == {"x", "z"}
	assert tree.get_kind(tree.root.id, "y") == "var"
	assert tree.get_kind(block_scope.id, "z") == "const"


def test_loop_with_let_header_owns_scope() -> None:
	prog = parse_source("for (let i = 0; i < 3; i++) { let j = i; }")
	tree = build_scopes(prog)
	loop = prog.body[0]
	loop_scope = tree[loop.scope]
	assert loop_scope.node is loop
	assert loop_scope.kind is ScopeKind.BLOCK
	assert tree.get_kind(loop_scope.id, "i") == "let"
	body_scope = tree[loop.body.scope]
	assert body_scope.parent == loop_scope.id
	assert tree.get_kind(body_scope.id, "j") == "let"


def test_loop_with_var_header_has_no_scope() -> None:
	prog = parse_source("for (var i = 0; i < 3; i++) {}")
	tree = build_scopes(prog)
	loop = prog.body[0]
	assert loop.scope == tree.root.id
	assert tree.get_kind(tree.root.id, "i") == "var"


def test_enumerating_loop_header_binding() -> None:
	prog = parse_source("for (const x of xs) { use(x); }")
	tree = build_scopes(prog)
	loop = prog.body[0]
	assert tree[loop.scope].node is loop
	assert tree.get_node(loop.scope, "x") is loop.left.declarations[0].id


def test_catch_clause_scope() -> None:
	prog = parse_source("try { f(); } catch (err) { g(err); }")
	tree = build_scopes(prog)
	handler = prog.body[0].handler
	catch_scope = tree[handler.scope]
	assert catch_scope.kind is ScopeKind.CATCH
	assert tree.get_kind(catch_scope.id, "err") == "caught"


def test_references_resolve_to_declaring_scope() -> None:
	source = """
let outer = 1;
function f() {
	let inner = outer;
	return () => inner + missing;
}
"""
	prog = parse_source(source)
	tree = build_scopes(prog)
	fn = prog.body[1]

	outer_ref = _identifiers(prog, "outer")[1]
	assert outer_ref.ref_scope == tree.root.id

	inner_ref = _identifiers(prog, "inner")[1]
	assert inner_ref.ref_scope == fn.scope
	arrow_scope = tree[inner_ref.scope]
	assert isinstance(arrow_scope.node, ast.ArrowFunctionExpression)
	assert arrow_scope.parent == fn.scope

	(missing,) = _identifiers(prog, "missing")
	assert missing.ref_scope is None


def test_shadowing_resolves_innermost() -> None:
	prog = parse_source("let v = 1; { let v = 2; use(v); }")
	tree = build_scopes(prog)
	block = prog.body[1]
	use_ref = _identifiers(prog, "v")[-1]
	assert use_ref.ref_scope == block.scope
	assert use_ref.ref_scope != tree.root.id


def test_function_declaration_is_visible_before_its_position() -> None:
	prog = parse_source("g(); function g() {}")
	build_scopes(prog)
	call_ref = _identifiers(prog, "g")[0]
	assert call_ref.ref_scope == 0


def test_let_redeclaration_is_reported() -> None:
	prog = parse_source("let a = 1;\nlet a = 2;")
	sink = DiagnosticSink()
	build_scopes(prog, sink)
	diags = list(sink)
	assert len(diags) == 1
	assert diags[0].code == E_REDECLARE
	assert diags[0].phase == "scope"
	assert diags[0].line == 2
	assert "'a' has already been declared" in diags[0].message


def test_var_conflicting_with_let_in_enclosing_block() -> None:
	prog = parse_source("{ let a = 1; { var a = 2; } }")
	sink = DiagnosticSink()
	build_scopes(prog, sink)
	assert [d.code for d in sink] == [E_REDECLARE]


def test_var_redeclaration_is_allowed() -> None:
	prog = parse_source("var a = 1; var a = 2; function h() {} function h() {}")
	sink = DiagnosticSink()
	build_scopes(prog, sink)
	assert len(sink) == 0


def test_redeclaration_raises_without_sink() -> None:
	prog = parse_source("const c = 1; let c = 2;")
	with pytest.raises(RedeclarationError):
		build_scopes(prog)


def test_reparent_and_mutate() -> None:
	prog = parse_source("{ { let a = 1; } }")
	tree = build_scopes(prog)
	outer = prog.body[0]
	inner = outer.body[0]
	tree.reparent(inner.scope, tree.root.id)
	assert tree[inner.scope].parent == tree.root.id
	assert inner.scope in tree.root.children
	assert inner.scope not in tree[outer.scope].children
	tree.mutate(outer.scope, ScopeKind.HOIST)
	assert tree.closest_hoist_scope(outer.scope) == outer.scope
