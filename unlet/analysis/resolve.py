# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope builder and reference resolver.

Two passes over the tree:

1. Create scopes and record declarations. Every node gets `node.scope`, the id
   of the innermost scope it lexically sits in. Programs and functions own
   HOIST scopes; blocks (other than function bodies), switch statements and
   loops whose header declares `let`/`const` own BLOCK scopes; catch clauses
   own a CATCH scope holding the caught parameter. `var` declarations hoist
   to the closest HOIST scope; everything else is declared where it appears.
2. Resolve references: each identifier that is a variable use gets
   `ref_scope`, the id of its declaring scope, or None for undeclared globals.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from unlet.core.diagnostics import E_REDECLARE, DiagnosticSink
from unlet.core.span import Span
from unlet.parser import ast as A
from unlet.analysis.scope import (
	BLOCK_SCOPED_KINDS,
	CAUGHT,
	FUN,
	PARAM,
	VAR,
	ScopeId,
	ScopeKind,
	ScopeTree,
)


class RedeclarationError(ValueError):
	"""Raised for redeclarations when no diagnostic sink was supplied."""

	def __init__(self, message: str, *, loc: A.Located) -> None:
		super().__init__(message)
		self.loc = loc


def build_scopes(program: A.Program, sink: Optional[DiagnosticSink] = None) -> ScopeTree:
	"""Build the scope arena for `program` and annotate scopes and references."""
	builder = _ScopeBuilder(sink)
	builder.collect(program)
	resolve_references(program, builder.tree)
	return builder.tree


def resolve_references(root: A.Node, tree: ScopeTree) -> None:
	stack: List[A.Node] = [root]
	while stack:
		node = stack.pop()
		if isinstance(node, A.Identifier) and A.is_reference(node) and node.scope is not None:
			node.ref_scope = tree.lookup(node.scope, node.name)
		stack.extend(A.iter_children(node))


def _is_function_body(node: A.Node) -> bool:
	parent = node.parent
	return A.is_function(parent) and getattr(parent, "body", None) is node


def _header_declares_block_binding(node: A.Node) -> bool:
	if isinstance(node, A.ForStatement):
		head = node.init
	elif isinstance(node, A.EnumeratingLoop):
		head = node.left
	else:
		return False
	return isinstance(head, A.VariableDeclaration) and head.kind in BLOCK_SCOPED_KINDS


class _ScopeBuilder:
	def __init__(self, sink: Optional[DiagnosticSink]) -> None:
		self.tree = ScopeTree()
		self.sink = sink

	def collect(self, program: A.Program) -> None:
		stack: List[Tuple[A.Node, Optional[ScopeId]]] = [(program, None)]
		while stack:
			node, outer = stack.pop()
			sid = self._enter(node, outer)
			node.scope = sid
			children = list(A.iter_children(node))
			children.reverse()
			for child in children:
				if isinstance(node, A.FunctionDeclaration) and child is node.id:
					# The function's own name lives in the enclosing scope.
					stack.append((child, outer))
				else:
					stack.append((child, sid))

	def _enter(self, node: A.Node, outer: Optional[ScopeId]) -> ScopeId:
		tree = self.tree
		if isinstance(node, A.Program):
			return tree.new_scope(ScopeKind.HOIST, node, None)
		assert outer is not None
		if A.is_function(node):
			if isinstance(node, A.FunctionDeclaration):
				self._declare(outer, node.id.name, FUN, node.id)
			sid = tree.new_scope(ScopeKind.HOIST, node, outer)
			for param in node.params:  # type: ignore[attr-defined]
				self._declare(sid, param.name, PARAM, param)
			return sid
		if isinstance(node, A.BlockStatement):
			if _is_function_body(node):
				return outer
			return tree.new_scope(ScopeKind.BLOCK, node, outer)
		if A.is_loop(node):
			if _header_declares_block_binding(node):
				return tree.new_scope(ScopeKind.BLOCK, node, outer)
			return outer
		if isinstance(node, A.CatchClause):
			sid = tree.new_scope(ScopeKind.CATCH, node, outer)
			self._declare(sid, node.param.name, CAUGHT, node.param)
			return sid
		if isinstance(node, A.SwitchStatement):
			return tree.new_scope(ScopeKind.BLOCK, node, outer)
		if isinstance(node, A.VariableDeclaration):
			for decl in node.declarations:
				self._declare(outer, decl.id.name, node.kind, decl.id)
		return outer

	def _declare(self, sid: ScopeId, name: str, kind: str, ident: A.Identifier) -> None:
		tree = self.tree
		if kind == VAR:
			target = tree.closest_hoist_scope(sid)
			for scope in tree.ancestors(sid):
				existing = scope.decls.get(name)
				if existing is not None and existing.kind in BLOCK_SCOPED_KINDS:
					self._redeclared(name, ident)
					return
				if scope.id == target:
					break
			if name not in tree[target].decls:
				tree.declare(target, name, VAR, ident)
			return
		existing = tree[sid].decls.get(name)
		if existing is not None:
			if kind == FUN and existing.kind in (FUN, VAR, PARAM):
				tree.declare(sid, name, FUN, ident)
				return
			self._redeclared(name, ident)
			return
		tree.declare(sid, name, kind, ident)

	def _redeclared(self, name: str, ident: A.Identifier) -> None:
		message = f"'{name}' has already been declared"
		if self.sink is None:
			raise RedeclarationError(message, loc=ident.loc)
		self.sink.error(
			ident.line,
			message,
			code=E_REDECLARE,
			phase="scope",
			span=Span.from_loc(ident.loc),
		)


__all__ = ["RedeclarationError", "build_scopes", "resolve_references"]
