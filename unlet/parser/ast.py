# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Syntax tree for the JavaScript subset accepted by the parser.

Node classes follow ESTree naming so `node.type` reads like the usual tag
(`"ForOfStatement"`, `"Identifier"`, ...). Children are dataclass fields in
source order. Every node also carries two annotations that are not dataclass
fields: `parent` (set by the parser) and `scope` (set by the scope builder).
Identifiers additionally carry `ref_scope`, the declaring scope of a resolved
reference; it is a non-init field so it stays out of the constructor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterator, List, Optional, Union


@dataclass(frozen=True)
class Located:
	line: int
	column: int
	start: int
	end: int


class Node:
	loc: Located
	parent: Optional["Node"] = None
	scope: Optional[int] = None

	@property
	def type(self) -> str:
		return type(self).__name__

	@property
	def range(self) -> tuple[int, int]:
		return (self.loc.start, self.loc.end)

	@property
	def line(self) -> int:
		return self.loc.line


class Stmt(Node):
	pass


class Expr(Node):
	pass


@dataclass(eq=False)
class Identifier(Expr):
	loc: Located
	name: str

	ref_scope: Optional[int] = field(default=None, init=False, repr=False)


@dataclass(eq=False)
class Literal(Expr):
	loc: Located
	value: object
	raw: str


@dataclass(eq=False)
class ThisExpression(Expr):
	loc: Located


@dataclass(eq=False)
class ArrayExpression(Expr):
	loc: Located
	elements: List[Expr]


@dataclass(eq=False)
class FunctionExpression(Expr):
	loc: Located
	params: List[Identifier]
	body: "BlockStatement"


@dataclass(eq=False)
class ArrowFunctionExpression(Expr):
	loc: Located
	params: List[Identifier]
	body: Union["BlockStatement", Expr]

	@property
	def expression(self) -> bool:
		return not isinstance(self.body, BlockStatement)


@dataclass(eq=False)
class CallExpression(Expr):
	loc: Located
	callee: Expr
	arguments: List[Expr]


@dataclass(eq=False)
class MemberExpression(Expr):
	loc: Located
	object: Expr
	property: Expr
	computed: bool = False


@dataclass(eq=False)
class AssignmentExpression(Expr):
	loc: Located
	left: Expr
	operator: str
	right: Expr


@dataclass(eq=False)
class BinaryExpression(Expr):
	loc: Located
	left: Expr
	operator: str
	right: Expr


@dataclass(eq=False)
class LogicalExpression(Expr):
	loc: Located
	left: Expr
	operator: str
	right: Expr


@dataclass(eq=False)
class UnaryExpression(Expr):
	loc: Located
	operator: str
	argument: Expr


@dataclass(eq=False)
class UpdateExpression(Expr):
	loc: Located
	operator: str
	argument: Expr
	prefix: bool


@dataclass(eq=False)
class ConditionalExpression(Expr):
	loc: Located
	test: Expr
	consequent: Expr
	alternate: Expr


@dataclass(eq=False)
class SequenceExpression(Expr):
	loc: Located
	expressions: List[Expr]


@dataclass(eq=False)
class VariableDeclarator(Node):
	loc: Located
	id: Identifier
	init: Optional[Expr] = None


@dataclass(eq=False)
class VariableDeclaration(Stmt):
	loc: Located
	kind: str
	declarations: List[VariableDeclarator]


@dataclass(eq=False)
class FunctionDeclaration(Stmt):
	loc: Located
	id: Identifier
	params: List[Identifier]
	body: "BlockStatement"


@dataclass(eq=False)
class BlockStatement(Stmt):
	loc: Located
	body: List[Stmt]


@dataclass(eq=False)
class ExpressionStatement(Stmt):
	loc: Located
	expression: Expr


@dataclass(eq=False)
class EmptyStatement(Stmt):
	loc: Located


@dataclass(eq=False)
class IfStatement(Stmt):
	loc: Located
	test: Expr
	consequent: Stmt
	alternate: Optional[Stmt] = None


@dataclass(eq=False)
class ForStatement(Stmt):
	loc: Located
	init: Optional[Union[VariableDeclaration, Expr]]
	test: Optional[Expr]
	update: Optional[Expr]
	body: Stmt
	rewritten: bool = False


@dataclass(eq=False)
class ForInStatement(Stmt):
	loc: Located
	left: Union[VariableDeclaration, Identifier]
	right: Expr
	body: Stmt
	rewritten: bool = False


@dataclass(eq=False)
class ForOfStatement(Stmt):
	loc: Located
	left: Union[VariableDeclaration, Identifier]
	right: Expr
	body: Stmt
	rewritten: bool = False


@dataclass(eq=False)
class WhileStatement(Stmt):
	loc: Located
	test: Expr
	body: Stmt
	rewritten: bool = False


@dataclass(eq=False)
class DoWhileStatement(Stmt):
	loc: Located
	body: Stmt
	test: Expr
	rewritten: bool = False


@dataclass(eq=False)
class ReturnStatement(Stmt):
	loc: Located
	argument: Optional[Expr] = None


@dataclass(eq=False)
class BreakStatement(Stmt):
	loc: Located
	label: Optional[Identifier] = None


@dataclass(eq=False)
class ContinueStatement(Stmt):
	loc: Located
	label: Optional[Identifier] = None


@dataclass(eq=False)
class ThrowStatement(Stmt):
	loc: Located
	argument: Expr


@dataclass(eq=False)
class CatchClause(Node):
	loc: Located
	param: Identifier
	body: BlockStatement


@dataclass(eq=False)
class TryStatement(Stmt):
	loc: Located
	block: BlockStatement
	handler: Optional[CatchClause] = None
	finalizer: Optional[BlockStatement] = None


@dataclass(eq=False)
class SwitchCase(Node):
	loc: Located
	test: Optional[Expr]
	consequent: List[Stmt] = field(default_factory=list)


@dataclass(eq=False)
class SwitchStatement(Stmt):
	loc: Located
	discriminant: Expr
	cases: List[SwitchCase]


@dataclass(eq=False)
class LabeledStatement(Stmt):
	loc: Located
	label: Identifier
	body: Stmt


@dataclass(eq=False)
class Program(Node):
	loc: Located
	body: List[Stmt]
	source: str = field(default="", repr=False)


Function = (FunctionDeclaration, FunctionExpression, ArrowFunctionExpression)
Loop = (ForStatement, ForInStatement, ForOfStatement, WhileStatement, DoWhileStatement)
EnumeratingLoop = (ForInStatement, ForOfStatement)
LoopStatement = Union[ForStatement, ForInStatement, ForOfStatement, WhileStatement, DoWhileStatement]


def is_function(node: Node | None) -> bool:
	return isinstance(node, Function)


def is_loop(node: Node | None) -> bool:
	return isinstance(node, Loop)


def iter_children(node: Node) -> Iterator[Node]:
	"""Yield the direct child nodes of `node` in source order."""
	for f in fields(node):  # type: ignore[arg-type]
		val = getattr(node, f.name)
		if isinstance(val, Node):
			yield val
		elif isinstance(val, list):
			for item in val:
				if isinstance(item, Node):
					yield item


def is_reference(node: Node) -> bool:
	"""
	True when `node` is an identifier used as a variable (read or write).

	Excludes declaration-site identifiers: declarator ids, non-computed member
	properties, labels, catch parameters, function names and parameters.
	"""
	if not isinstance(node, Identifier):
		return False
	parent = node.parent
	if isinstance(parent, VariableDeclarator) and parent.id is node:
		return False
	if isinstance(parent, MemberExpression) and not parent.computed and parent.property is node:
		return False
	if isinstance(parent, (LabeledStatement, BreakStatement, ContinueStatement)) and parent.label is node:
		return False
	if isinstance(parent, CatchClause) and parent.param is node:
		return False
	if isinstance(parent, FunctionDeclaration) and parent.id is node:
		return False
	if is_function(parent) and any(p is node for p in parent.params):  # type: ignore[union-attr]
		return False
	return True


__all__ = [
	"ArrayExpression",
	"ArrowFunctionExpression",
	"AssignmentExpression",
	"BinaryExpression",
	"BlockStatement",
	"BreakStatement",
	"CallExpression",
	"CatchClause",
	"ConditionalExpression",
	"ContinueStatement",
	"DoWhileStatement",
	"EmptyStatement",
	"EnumeratingLoop",
	"Expr",
	"ExpressionStatement",
	"ForInStatement",
	"ForOfStatement",
	"ForStatement",
	"Function",
	"FunctionDeclaration",
	"FunctionExpression",
	"Identifier",
	"IfStatement",
	"LabeledStatement",
	"Literal",
	"Located",
	"LogicalExpression",
	"Loop",
	"MemberExpression",
	"Node",
	"Program",
	"ReturnStatement",
	"SequenceExpression",
	"Stmt",
	"SwitchCase",
	"SwitchStatement",
	"ThisExpression",
	"ThrowStatement",
	"TryStatement",
	"UnaryExpression",
	"UpdateExpression",
	"VariableDeclaration",
	"VariableDeclarator",
	"WhileStatement",
	"is_function",
	"is_loop",
	"is_reference",
	"iter_children",
]
