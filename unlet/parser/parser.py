# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import ast
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from .ast import (
	ArrayExpression,
	ArrowFunctionExpression,
	AssignmentExpression,
	BinaryExpression,
	BlockStatement,
	BreakStatement,
	CallExpression,
	CatchClause,
	ConditionalExpression,
	ContinueStatement,
	DoWhileStatement,
	EmptyStatement,
	Expr,
	ExpressionStatement,
	ForInStatement,
	ForOfStatement,
	ForStatement,
	FunctionDeclaration,
	FunctionExpression,
	Identifier,
	IfStatement,
	LabeledStatement,
	Literal,
	Located,
	LogicalExpression,
	MemberExpression,
	Node,
	Program,
	ReturnStatement,
	SequenceExpression,
	Stmt,
	SwitchCase,
	SwitchStatement,
	ThisExpression,
	ThrowStatement,
	TryStatement,
	UnaryExpression,
	UpdateExpression,
	VariableDeclaration,
	VariableDeclarator,
	WhileStatement,
	iter_children,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class ParseError(ValueError):
	"""
	User-facing parse error with a best-effort location.

	Raised both for grammar failures (converted from lark exceptions) and for
	shapes the grammar accepts but the subset does not (e.g. `f() = 1`), so the
	driver can report a pinned parser diagnostic instead of crashing.
	"""

	def __init__(self, message: str, *, loc: Optional[Located]) -> None:
		super().__init__(message)
		self.loc = loc


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)


def parse_source(source: str) -> Program:
	"""
	Parse `source` into a Program with parent links set on every node.

	Raises ParseError on invalid input.
	"""
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as exc:
		raise _convert_lark_error(exc, source) from exc
	program = _build_program(tree, source)
	_link_parents(program)
	return program


def _convert_lark_error(exc: UnexpectedInput, source: str) -> ParseError:
	line = getattr(exc, "line", None)
	column = getattr(exc, "column", None)
	pos = getattr(exc, "pos_in_stream", None)
	if pos is None or pos < 0:
		pos = len(source)
	if line is None or line < 1:
		# lark reports end-of-input without a position; point at the last line.
		line = source.count("\n", 0, pos) + 1
		column = pos - (source.rfind("\n", 0, pos) + 1) + 1
	if isinstance(exc, UnexpectedToken):
		tok = exc.token
		if tok.type == "$END":
			message = "unexpected end of input"
		else:
			message = f"unexpected token {tok.value!r}"
	elif isinstance(exc, UnexpectedCharacters):
		message = f"unexpected character {source[pos]!r}" if pos < len(source) else "unexpected character"
	elif isinstance(exc, UnexpectedEOF):
		message = "unexpected end of input"
	else:
		message = str(exc).splitlines()[0]
	return ParseError(message, loc=Located(line=line, column=column, start=pos, end=pos))


def _link_parents(root: Node) -> None:
	stack: List[Node] = [root]
	while stack:
		node = stack.pop()
		for child in iter_children(node):
			child.parent = node
			stack.append(child)


def _build_program(tree: Tree, source: str) -> Program:
	body = [_build_stmt(child) for child in tree.children if isinstance(child, Tree)]
	return Program(loc=Located(line=1, column=1, start=0, end=len(source)), body=body, source=source)


def _build_stmt(tree: Tree) -> Stmt:
	kind = _name(tree)
	loc = _loc(tree)
	if kind == "var_stmt":
		return _build_var_decl(tree.children[0], loc=loc)
	if kind == "function_decl":
		children = list(tree.children)
		name_tok = children[0]
		params = _build_params(children[1]) if len(children) == 3 else []
		return FunctionDeclaration(
			loc=loc,
			id=_identifier(name_tok),
			params=params,
			body=_build_block(children[-1]),
		)
	if kind == "block":
		return _build_block(tree)
	if kind == "if_stmt":
		test, consequent, *rest = tree.children
		return IfStatement(
			loc=loc,
			test=_build_expr(test),
			consequent=_build_stmt(consequent),
			alternate=_build_stmt(rest[0]) if rest else None,
		)
	if kind == "for_stmt":
		return _build_for_stmt(tree)
	if kind in ("for_in_stmt", "for_of_stmt"):
		left_node, right_node, body_node = tree.children
		cls = ForInStatement if kind == "for_in_stmt" else ForOfStatement
		return cls(
			loc=loc,
			left=_build_for_left(left_node),
			right=_build_expr(right_node),
			body=_build_stmt(body_node),
		)
	if kind == "while_stmt":
		test, body = tree.children
		return WhileStatement(loc=loc, test=_build_expr(test), body=_build_stmt(body))
	if kind == "do_while_stmt":
		body, test = tree.children
		return DoWhileStatement(loc=loc, body=_build_stmt(body), test=_build_expr(test))
	if kind == "return_stmt":
		value = tree.children[0] if tree.children else None
		return ReturnStatement(loc=loc, argument=_build_expr(value) if value is not None else None)
	if kind in ("break_stmt", "continue_stmt"):
		label = _identifier(tree.children[0]) if tree.children else None
		cls = BreakStatement if kind == "break_stmt" else ContinueStatement
		return cls(loc=loc, label=label)
	if kind == "throw_stmt":
		return ThrowStatement(loc=loc, argument=_build_expr(tree.children[0]))
	if kind == "try_stmt":
		return _build_try_stmt(tree)
	if kind == "switch_stmt":
		discriminant, *cases = tree.children
		return SwitchStatement(
			loc=loc,
			discriminant=_build_expr(discriminant),
			cases=[_build_switch_case(case) for case in cases],
		)
	if kind == "labeled_stmt":
		label_tok, body = tree.children
		return LabeledStatement(loc=loc, label=_identifier(label_tok), body=_build_stmt(body))
	if kind == "expr_stmt":
		return ExpressionStatement(loc=loc, expression=_build_expr(tree.children[0]))
	if kind == "empty_stmt":
		return EmptyStatement(loc=loc)
	raise ParseError(f"unsupported statement '{kind}'", loc=loc)


def _build_block(tree: Tree) -> BlockStatement:
	body = [_build_stmt(child) for child in tree.children if isinstance(child, Tree)]
	return BlockStatement(loc=_loc(tree), body=body)


def _build_params(tree: Tree) -> List[Identifier]:
	params: List[Identifier] = []
	seen: set[str] = set()
	for tok in tree.children:
		if not isinstance(tok, Token):
			continue
		if tok.value in seen:
			raise ParseError(f"duplicate parameter name '{tok.value}'", loc=_loc_from_token(tok))
		seen.add(tok.value)
		params.append(_identifier(tok))
	return params


def _build_var_decl(tree: Tree, *, loc: Located) -> VariableDeclaration:
	kind_node, *declarators = tree.children
	kind = _keyword(kind_node)
	decls: List[VariableDeclarator] = []
	for decl in declarators:
		name_tok, *init = decl.children
		decls.append(
			VariableDeclarator(
				loc=_loc(decl),
				id=_identifier(name_tok),
				init=_build_expr(init[0]) if init else None,
			)
		)
		if kind == "const" and not init:
			raise ParseError(f"missing initializer in const declaration of '{name_tok.value}'", loc=_loc(decl))
	return VariableDeclaration(loc=loc, kind=kind, declarations=decls)


def _build_for_stmt(tree: Tree) -> ForStatement:
	init: Optional[VariableDeclaration | Expr] = None
	test: Optional[Expr] = None
	update: Optional[Expr] = None
	body: Optional[Stmt] = None
	for child in tree.children:
		kind = _name(child)
		if kind == "for_init":
			inner = child.children[0]
			if isinstance(inner, Tree) and _name(inner) == "var_decl":
				init = _build_var_decl(inner, loc=_loc(inner))
			else:
				init = _build_expr(inner)
		elif kind == "for_test":
			test = _build_expr(child.children[0])
		elif kind == "for_update":
			update = _build_expr(child.children[0])
		else:
			body = _build_stmt(child)
	if body is None:
		raise ParseError("for statement missing body", loc=_loc(tree))
	return ForStatement(loc=_loc(tree), init=init, test=test, update=update, body=body)


def _build_for_left(tree: Tree) -> VariableDeclaration | Identifier:
	children = list(tree.children)
	if len(children) == 1:
		return _identifier(children[0])
	kind_node, name_tok = children
	ident = _identifier(name_tok)
	declarator = VariableDeclarator(loc=ident.loc, id=ident, init=None)
	return VariableDeclaration(loc=_loc(tree), kind=_keyword(kind_node), declarations=[declarator])


def _build_try_stmt(tree: Tree) -> TryStatement:
	block, *clauses = tree.children
	handler: Optional[CatchClause] = None
	finalizer: Optional[BlockStatement] = None
	for clause in clauses:
		if _name(clause) == "catch_clause":
			param_tok, body = clause.children
			handler = CatchClause(loc=_loc(clause), param=_identifier(param_tok), body=_build_block(body))
		else:
			finalizer = _build_block(clause.children[0])
	return TryStatement(loc=_loc(tree), block=_build_block(block), handler=handler, finalizer=finalizer)


def _build_switch_case(tree: Tree) -> SwitchCase:
	children = list(tree.children)
	if _name(tree) == "default_case":
		return SwitchCase(loc=_loc(tree), test=None, consequent=[_build_stmt(c) for c in children])
	test, *body = children
	return SwitchCase(loc=_loc(tree), test=_build_expr(test), consequent=[_build_stmt(c) for c in body])


def _build_expr(tree: Tree | Token) -> Expr:
	if isinstance(tree, Token):
		if tree.type == "NAME":
			return _identifier(tree)
		raise ParseError(f"unexpected token {tree.value!r}", loc=_loc_from_token(tree))
	kind = _name(tree)
	loc = _loc(tree)
	children = list(tree.children)
	if kind == "identifier":
		return _identifier(children[0], loc=loc)
	if kind == "number":
		raw = children[0].value
		value: object = float(raw) if "." in raw else int(raw)
		return Literal(loc=loc, value=value, raw=raw)
	if kind == "string":
		raw = children[0].value
		return Literal(loc=loc, value=ast.literal_eval(raw), raw=raw)
	if kind in ("true", "false"):
		return Literal(loc=loc, value=kind == "true", raw=kind)
	if kind == "null":
		return Literal(loc=loc, value=None, raw="null")
	if kind == "this":
		return ThisExpression(loc=loc)
	if kind == "array":
		elements = [_build_expr(c) for c in children[0].children] if children else []
		return ArrayExpression(loc=loc, elements=elements)
	if kind == "function_expr":
		params = _build_params(children[0]) if len(children) == 2 else []
		return FunctionExpression(loc=loc, params=params, body=_build_block(children[-1]))
	if kind == "arrow_function":
		return _build_arrow(tree)
	if kind == "sequence":
		left, right = children
		exprs: List[Expr] = []
		first = _build_expr(left)
		if isinstance(first, SequenceExpression) and _name(left) == "sequence":
			exprs.extend(first.expressions)
		else:
			exprs.append(first)
		exprs.append(_build_expr(right))
		return SequenceExpression(loc=loc, expressions=exprs)
	if kind == "assign":
		target_node, op_node, value_node = children
		target = _build_expr(target_node)
		_check_assign_target(target)
		return AssignmentExpression(loc=loc, left=target, operator=_keyword(op_node), right=_build_expr(value_node))
	if kind == "ternary":
		test, consequent, alternate = children
		return ConditionalExpression(
			loc=loc,
			test=_build_expr(test),
			consequent=_build_expr(consequent),
			alternate=_build_expr(alternate),
		)
	if kind in ("logical", "binary"):
		left, op_node, right = children
		cls = LogicalExpression if kind == "logical" else BinaryExpression
		return cls(loc=loc, left=_build_expr(left), operator=_keyword(op_node), right=_build_expr(right))
	if kind == "unary_expr":
		op_node, arg = children
		return UnaryExpression(loc=loc, operator=_keyword(op_node), argument=_build_expr(arg))
	if kind == "prefix_update":
		op_node, arg = children
		target = _build_expr(arg)
		_check_assign_target(target)
		return UpdateExpression(loc=loc, operator=_keyword(op_node), argument=target, prefix=True)
	if kind == "postfix_update":
		arg, op_node = children
		target = _build_expr(arg)
		_check_assign_target(target)
		return UpdateExpression(loc=loc, operator=_keyword(op_node), argument=target, prefix=False)
	if kind == "call":
		callee, *rest = children
		args = [_build_expr(c) for c in rest[0].children] if rest else []
		return CallExpression(loc=loc, callee=_build_expr(callee), arguments=args)
	if kind == "member":
		obj, name_tok = children
		return MemberExpression(loc=loc, object=_build_expr(obj), property=_identifier(name_tok), computed=False)
	if kind == "index":
		obj, prop = children
		return MemberExpression(loc=loc, object=_build_expr(obj), property=_build_expr(prop), computed=True)
	raise ParseError(f"unsupported expression '{kind}'", loc=loc)


def _build_arrow(tree: Tree) -> ArrowFunctionExpression:
	children = list(tree.children)
	body_node = children[-1]
	params: List[Identifier] = []
	if len(children) == 2:
		head = children[0]
		if isinstance(head, Token):
			params = [_identifier(head)]
		else:
			params = _arrow_params(_build_expr(head))
	seen: set[str] = set()
	for p in params:
		if p.name in seen:
			raise ParseError(f"duplicate parameter name '{p.name}'", loc=p.loc)
		seen.add(p.name)
	if isinstance(body_node, Tree) and _name(body_node) == "block":
		body: BlockStatement | Expr = _build_block(body_node)
	else:
		body = _build_expr(body_node)
	return ArrowFunctionExpression(loc=_loc(tree), params=params, body=body)


def _arrow_params(expr: Expr) -> List[Identifier]:
	items = expr.expressions if isinstance(expr, SequenceExpression) else [expr]
	for item in items:
		if not isinstance(item, Identifier):
			raise ParseError("arrow function parameters must be plain identifiers", loc=item.loc)
	return list(items)  # type: ignore[arg-type]


def _check_assign_target(target: Expr) -> None:
	if not isinstance(target, (Identifier, MemberExpression)):
		raise ParseError("invalid assignment target", loc=target.loc)


def _identifier(tok: Token, loc: Optional[Located] = None) -> Identifier:
	if not isinstance(tok, Token) or tok.type != "NAME":
		raise ParseError(f"expected identifier, got {tok!r}", loc=loc)
	return Identifier(loc=loc or _loc_from_token(tok), name=tok.value)


def _keyword(tree: Tree) -> str:
	tok = next(c for c in tree.children if isinstance(c, Token))
	return tok.value


def _loc(tree: Tree) -> Located:
	meta = tree.meta
	if getattr(meta, "empty", True):
		return Located(line=1, column=1, start=0, end=0)
	return Located(line=meta.line, column=meta.column, start=meta.start_pos, end=meta.end_pos)


def _loc_from_token(token: Token) -> Located:
	return Located(line=token.line, column=token.column, start=token.start_pos, end=token.end_pos)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)
