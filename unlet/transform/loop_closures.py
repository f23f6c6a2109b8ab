# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Loop-closure pass.

Once bindings are function-scoped, a closure created inside a loop that
captures a `let`/`const` declared in that loop sees one shared binding
instead of a fresh one per iteration. The forbidden shape is

	<loop> <non-function>* <let/const declaration> ... <function> ... <reference>

i.e. the declaring scope is reached from the declaration without crossing a
function before hitting a loop, and the reference sits behind a function
boundary relative to the declaring scope.

When the loop body is safe to wrap, the pass rewrites

	for (...) { BODY }

into

	for (...) {(function(){ BODY }).call(this);}

threading the iteration variable through a parameter for `for-in`/`for-of`
loops that declare it. Everything else is reported through the diagnostic
sink; the pass itself never aborts the run.
"""

from __future__ import annotations

from typing import List, Optional, Union

from unlet.analysis.scope import BLOCK_SCOPED_KINDS, PARAM, ScopeId, ScopeKind, ScopeTree
from unlet.analysis.traverse import VisitSignal, traverse
from unlet.config import TranspileOptions
from unlet.core.diagnostics import (
	E_LOOP_CLOSURE,
	E_UNSAFE_TRANSFORM,
	E_UNSUPPORTED_SYNTAX,
	DiagnosticSink,
)
from unlet.core.span import Span
from unlet.parser import ast as A
from unlet.transform.alter import TextAlter

PHASE = "transform"


class LoopClosures:
	"""
	Pre-order visitor implementing capture detection, the body safety check
	and the loop rewrite. Bind it to a run with `configure`, then call `run`
	or hand `visit` to `traverse`.
	"""

	def __init__(self) -> None:
		self.alter: Optional[TextAlter] = None
		self.scopes: Optional[ScopeTree] = None
		self.options = TranspileOptions()
		self.sink: Optional[DiagnosticSink] = None
		self.rewritten_loops: List[A.Node] = []

	def reset(self) -> None:
		self.alter = None
		self.scopes = None
		self.options = TranspileOptions()
		self.sink = None
		self.rewritten_loops = []

	def configure(
		self,
		alter: TextAlter,
		scopes: ScopeTree,
		options: Optional[TranspileOptions] = None,
		sink: Optional[DiagnosticSink] = None,
	) -> None:
		self.alter = alter
		self.scopes = scopes
		self.options = options or TranspileOptions()
		self.sink = sink if sink is not None else DiagnosticSink()

	def run(self, program: A.Program) -> None:
		traverse(program, self.visit)

	def visit(self, node: A.Node) -> Optional[VisitSignal]:
		if self.scopes is None or self.alter is None:
			raise RuntimeError("LoopClosures.visit called before configure()")
		if not isinstance(node, A.Identifier) or not A.is_reference(node):
			return None
		ref = node
		def_scope = ref.ref_scope
		if def_scope is None or def_scope == ref.scope:
			return None
		if self.scopes.get_kind(def_scope, ref.name) not in BLOCK_SCOPED_KINDS:
			return None

		loop = self._enclosing_loop(self.scopes[def_scope].node)
		if loop is None or loop.rewritten:
			return None
		if not self._crosses_function(ref.scope, def_scope):
			return None

		decl = self.scopes.get_node(def_scope, ref.name)
		assert decl is not None
		if not self.options.generate_iife:
			self._error(
				ref,
				E_LOOP_CLOSURE,
				f"can't transform closure: {ref.name} is defined outside closure, inside loop",
			)
			return None
		if isinstance(loop, A.ForStatement) and self.scopes[def_scope].node is loop:
			self._error(
				decl,
				E_UNSUPPORTED_SYNTAX,
				f"{ref.name} is declared in for-loop header and then captured in loop closure",
			)
			return None
		reason = find_body_blocker(loop.body, ref.name)
		if reason is not None:
			self._error(ref, E_UNSAFE_TRANSFORM, reason)
			return None
		self.transform_loop(loop, ref, decl)
		return None

	def _enclosing_loop(self, start: A.Node) -> Optional[A.LoopStatement]:
		"""First loop above the declaring scope, unless a function comes first."""
		node: Optional[A.Node] = start
		while node is not None:
			if A.is_function(node):
				return None
			if isinstance(node, A.Loop):
				return node
			node = node.parent
		return None

	def _crosses_function(self, sid: Optional[ScopeId], def_scope: ScopeId) -> bool:
		assert self.scopes is not None
		for scope in self.scopes.ancestors(sid):
			if scope.id == def_scope:
				return False
			if A.is_function(scope.node):
				return True
		return False

	def transform_loop(self, loop: A.LoopStatement, ref: A.Identifier, decl: A.Identifier) -> ScopeId:
		"""Wrap the body of `loop` in a per-iteration function; return the wrapper scope."""
		assert self.alter is not None and self.scopes is not None
		if loop.rewritten:
			raise RuntimeError(f"{loop.type} at line {loop.line} rewritten twice")
		body = loop.body
		assert body.scope is not None
		body_scope: Optional[ScopeId] = None
		if isinstance(body, A.BlockStatement):
			head_at, foot_at = body.loc.start + 1, body.loc.end - 1
			if self.scopes[body.scope].node is body:
				body_scope = body.scope
		else:
			head_at, foot_at = body.loc.start, body.loc.end

		param = _iteration_variable(loop)
		if param is not None and body_scope is not None and param.name in self.scopes[body_scope].decls:
			# A body declaration shadows the header binding.
			param = None
		head = "(function(" + (param.name if param is not None else "") + "){"
		arg = self.alter.get(param.loc.start, param.loc.end) if param is not None else None
		foot = "}).call(this" + (", " + arg if arg is not None else "") + ");"

		self.alter.insert(head_at, head, apply_changes=True, extend=True)
		# At a shared offset an inner loop's foot closes before the outer one's.
		self.alter.insert(foot_at, foot, apply_changes=True, extend=True, priority=-_loop_depth(loop))
		loop.rewritten = True
		self.rewritten_loops.append(loop)

		if body_scope is not None:
			wrapper = body_scope
			self.scopes.mutate(wrapper, ScopeKind.HOIST)
		else:
			wrapper = self._wrap_scope(body)
		if param is not None and param.name not in self.scopes[wrapper].decls:
			self.scopes.declare(wrapper, param.name, PARAM, param)
		ref.ref_scope = wrapper
		return wrapper

	def _wrap_scope(self, body: A.Stmt) -> ScopeId:
		"""New hoist scope for an unbraced body, adopting the scopes inside it."""
		assert self.scopes is not None
		prior = body.scope
		assert prior is not None
		if self.scopes[prior].node is body:
			prior = self.scopes[prior].parent
			assert prior is not None
		sid = self.scopes.new_scope(ScopeKind.HOIST, body, prior)
		start, end = body.loc.start, body.loc.end
		for child in list(self.scopes[prior].children):
			node = self.scopes[child].node
			if child != sid and start <= node.loc.start and node.loc.end <= end:
				self.scopes.reparent(child, sid)

		def rescope(node: A.Node) -> None:
			if node.scope == prior:
				node.scope = sid

		traverse(body, rescope)
		return sid

	def _error(self, node: A.Node, code: str, message: str) -> None:
		assert self.sink is not None
		self.sink.error(node.line, message, code=code, phase=PHASE, span=Span.from_loc(node.loc))


def _iteration_variable(loop: A.Node) -> Optional[A.Identifier]:
	"""Declared per-iteration variable of a for-in/for-of loop."""
	if not isinstance(loop, A.EnumeratingLoop):
		return None
	left = loop.left
	if isinstance(left, A.VariableDeclaration) and left.kind in BLOCK_SCOPED_KINDS:
		return left.declarations[0].id
	return None


def _loop_depth(node: A.Node) -> int:
	depth = 0
	parent = node.parent
	while parent is not None:
		if A.is_loop(parent):
			depth += 1
		parent = parent.parent
	return depth


def find_body_blocker(body: A.Node, name: str) -> Optional[str]:
	"""
	Reason why `body` can't be moved into a function, or None when it can.

	Nested functions are not searched except arrow functions, which share the
	enclosing `arguments`. The first blocker found in source order wins.
	"""
	found: List[str] = []

	def blocked(what: str, node: A.Node) -> VisitSignal:
		found.append(
			f"can't transform loop closure due to use of {what} at line {node.line}. "
			f"{name} is defined outside closure, inside loop"
		)
		return VisitSignal.ABORT

	def visit(node: A.Node) -> Optional[VisitSignal]:
		if isinstance(node, A.ArrowFunctionExpression):
			use = _find_arguments(node)
			if use is not None:
				return blocked("arguments", use)
			return VisitSignal.SKIP
		if A.is_function(node):
			return VisitSignal.SKIP
		if isinstance(node, A.BreakStatement) and _escapes(node, body):
			return blocked("break", node)
		if isinstance(node, A.ContinueStatement) and _escapes(node, body):
			return blocked("continue", node)
		if isinstance(node, A.ReturnStatement):
			return blocked("return", node)
		if _is_arguments(node):
			return blocked("arguments", node)
		if isinstance(node, A.VariableDeclaration) and node.kind == "var":
			return blocked("var", node)
		return None

	traverse(body, visit)
	return found[0] if found else None


def _is_arguments(node: A.Node) -> bool:
	return isinstance(node, A.Identifier) and node.name == "arguments" and A.is_reference(node)


def _find_arguments(arrow: A.ArrowFunctionExpression) -> Optional[A.Node]:
	found: List[A.Node] = []

	def visit(node: A.Node) -> Optional[VisitSignal]:
		if A.is_function(node) and not isinstance(node, A.ArrowFunctionExpression):
			return VisitSignal.SKIP
		if _is_arguments(node):
			found.append(node)
			return VisitSignal.ABORT
		return None

	traverse(arrow, visit)
	return found[0] if found else None


def _escapes(jump: Union[A.BreakStatement, A.ContinueStatement], body: A.Node) -> bool:
	"""True when a break/continue leaves `body` (targets the loop or beyond)."""
	label = jump.label.name if jump.label is not None else None
	node: Optional[A.Node] = jump
	while node is not None and node is not body:
		node = node.parent
		if node is None:
			break
		if label is not None:
			if isinstance(node, A.LabeledStatement) and node.label.name == label:
				return False
		elif A.is_loop(node):
			return False
		elif isinstance(node, A.SwitchStatement) and isinstance(jump, A.BreakStatement):
			return False
	return True


__all__ = ["LoopClosures", "find_body_blocker"]
