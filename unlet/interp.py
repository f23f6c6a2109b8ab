# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Reference interpreter for the JavaScript subset.

Two binding models are supported:

- function-scoped (default): every `var`/`let`/`const` is hoisted to the
  enclosing function and shared by all iterations of a loop. This is how the
  output of the transpiler behaves.
- block scoping (`block_scoping=True`): `let`/`const` live in their block and
  loops with a `let` header get a fresh binding per iteration, as ES6 does.

Comparing the console output of both runs (input under block scoping, output
function-scoped) is how loop-closure rewrites are checked end to end. Timers
scheduled with `setTimeout` run after the main program, ordered by delay and
then by scheduling order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from unlet.analysis.traverse import VisitSignal, traverse
from unlet.parser import ast as A
from unlet.parser import parse_source
from unlet.runtime import (
	BUILTINS,
	UNDEFINED,
	BuiltinFunction,
	ConsoleOut,
	JSThrow,
	RuntimeContext,
	is_number,
	loose_equals,
	strict_equals,
	to_display,
	to_number,
	truthy,
	type_of,
)

Labels = Tuple[str, ...]


class ReturnSignal(Exception):
	def __init__(self, value: object) -> None:
		self.value = value


class BreakSignal(Exception):
	def __init__(self, label: Optional[str]) -> None:
		self.label = label


class ContinueSignal(Exception):
	def __init__(self, label: Optional[str]) -> None:
		self.label = label


class Environment:
	def __init__(self, parent: Environment | None = None, *, function_scope: bool = False) -> None:
		self.parent = parent
		self.function_scope = function_scope
		self.values: Dict[str, object] = {}

	def define(self, name: str, value: object) -> None:
		self.values[name] = value

	def find(self, name: str) -> Environment | None:
		env: Environment | None = self
		while env is not None:
			if name in env.values:
				return env
			env = env.parent
		return None

	def set(self, name: str, value: object) -> None:
		env = self.find(name)
		if env is None:
			raise JSThrow(f"ReferenceError: {name} is not defined")
		env.values[name] = value

	def get(self, name: str) -> object:
		env = self.find(name)
		if env is None:
			raise JSThrow(f"ReferenceError: {name} is not defined")
		return env.values[name]

	def function_env(self) -> Environment:
		env = self
		while not env.function_scope and env.parent is not None:
			env = env.parent
		return env

	def copy(self) -> Environment:
		"""Sibling environment with the same bindings (per-iteration loop scope)."""
		clone = Environment(self.parent, function_scope=self.function_scope)
		clone.values = dict(self.values)
		return clone


@dataclass(eq=False)
class JSFunction:
	node: A.Node
	closure: Environment
	interpreter: "Interpreter"

	@property
	def is_arrow(self) -> bool:
		return isinstance(self.node, A.ArrowFunctionExpression)

	def call(self, this: object, args: Sequence[object]) -> object:
		node = self.node
		env = Environment(self.closure, function_scope=True)
		if not self.is_arrow:
			env.define("this", this)
			env.define("arguments", list(args))
		for index, param in enumerate(node.params):  # type: ignore[attr-defined]
			env.define(param.name, args[index] if index < len(args) else UNDEFINED)
		body = node.body  # type: ignore[attr-defined]
		interp = self.interpreter
		if not isinstance(body, A.BlockStatement):
			return interp._eval_expr(body, env)
		try:
			interp._execute_body(body.body, env)
		except ReturnSignal as signal:
			return signal.value
		return UNDEFINED


class Interpreter:
	def __init__(self, program: A.Program, *, block_scoping: bool = False, stdout: TextIO | None = None) -> None:
		self.program = program
		self.block_scoping = block_scoping
		self.runtime_ctx = RuntimeContext(stdout)
		self.global_env = Environment(function_scope=True)
		self._register_builtins()
		self._install_console()

	def _register_builtins(self) -> None:
		for name, builtin in BUILTINS.items():
			self.global_env.define(name, builtin)
		self.global_env.define("undefined", UNDEFINED)
		self.global_env.define("NaN", math.nan)
		self.global_env.define("Infinity", math.inf)
		self.global_env.define("this", UNDEFINED)

	def _install_console(self) -> None:
		console = ConsoleOut(self.runtime_ctx)
		self.global_env.define("console", console)
		self.console_out = console

	@property
	def lines(self) -> List[str]:
		return self.runtime_ctx.lines

	def run(self) -> List[str]:
		self._execute_body(self.program.body, self.global_env)
		while True:
			timer = self.runtime_ctx.next_timer()
			if timer is None:
				break
			self._invoke(timer.callback, UNDEFINED, timer.args)
		return self.lines

	def call(self, name: str, *args: object) -> object:
		func = self.global_env.get(name)
		return self._invoke(func, UNDEFINED, list(args))

	# Declarations

	def _execute_body(self, statements: List[A.Stmt], env: Environment) -> None:
		"""Run a function or program body: hoist, then execute."""
		self._hoist(statements, env)
		self._execute_block(statements, env)

	def _hoist(self, statements: List[A.Stmt], env: Environment) -> None:
		names: List[str] = []

		def collect(node: A.Node) -> Optional[VisitSignal]:
			if A.is_function(node):
				return VisitSignal.SKIP
			if isinstance(node, A.VariableDeclaration) and (node.kind == "var" or not self.block_scoping):
				names.extend(d.id.name for d in node.declarations)
			return None

		for stmt in statements:
			traverse(stmt, collect)
		for name in names:
			if name not in env.values:
				env.define(name, UNDEFINED)

	def _declare_functions(self, statements: List[A.Stmt], env: Environment) -> None:
		for stmt in statements:
			if isinstance(stmt, A.FunctionDeclaration):
				env.define(stmt.id.name, JSFunction(stmt, env, self))

	def _declare(self, decl: A.VariableDeclaration, env: Environment) -> None:
		block_scoped = self.block_scoping and decl.kind != "var"
		for declarator in decl.declarations:
			name = declarator.id.name
			if declarator.init is not None:
				value = self._eval_expr(declarator.init, env)
			elif block_scoped:
				value = UNDEFINED
			else:
				continue
			if block_scoped:
				env.define(name, value)
			else:
				env.set(name, value)

	def _block_env(self, env: Environment) -> Environment:
		return Environment(env) if self.block_scoping else env

	# Statements

	def _execute_block(self, statements: List[A.Stmt], env: Environment) -> None:
		self._declare_functions(statements, env)
		for stmt in statements:
			self._exec_stmt(stmt, env)

	def _exec_stmt(self, stmt: A.Stmt, env: Environment, labels: Labels = ()) -> None:
		if isinstance(stmt, A.ExpressionStatement):
			self._eval_expr(stmt.expression, env)
			return
		if isinstance(stmt, A.VariableDeclaration):
			self._declare(stmt, env)
			return
		if isinstance(stmt, (A.FunctionDeclaration, A.EmptyStatement)):
			return
		if isinstance(stmt, A.BlockStatement):
			self._execute_block(stmt.body, self._block_env(env))
			return
		if isinstance(stmt, A.IfStatement):
			if truthy(self._eval_expr(stmt.test, env)):
				self._exec_stmt(stmt.consequent, env)
			elif stmt.alternate is not None:
				self._exec_stmt(stmt.alternate, env)
			return
		if isinstance(stmt, A.ReturnStatement):
			value = self._eval_expr(stmt.argument, env) if stmt.argument is not None else UNDEFINED
			raise ReturnSignal(value)
		if isinstance(stmt, A.BreakStatement):
			raise BreakSignal(stmt.label.name if stmt.label is not None else None)
		if isinstance(stmt, A.ContinueStatement):
			raise ContinueSignal(stmt.label.name if stmt.label is not None else None)
		if isinstance(stmt, A.ThrowStatement):
			raise JSThrow(self._eval_expr(stmt.argument, env))
		if isinstance(stmt, A.ForStatement):
			self._exec_for(stmt, env, labels)
			return
		if isinstance(stmt, A.EnumeratingLoop):
			self._exec_for_each(stmt, env, labels)
			return
		if isinstance(stmt, A.WhileStatement):
			while truthy(self._eval_expr(stmt.test, env)):
				if not self._run_body(stmt.body, env, labels):
					break
			return
		if isinstance(stmt, A.DoWhileStatement):
			while True:
				if not self._run_body(stmt.body, env, labels):
					break
				if not truthy(self._eval_expr(stmt.test, env)):
					break
			return
		if isinstance(stmt, A.LabeledStatement):
			inner = labels + (stmt.label.name,)
			try:
				self._exec_stmt(stmt.body, env, inner if A.is_loop(stmt.body) or isinstance(stmt.body, A.LabeledStatement) else ())
			except BreakSignal as signal:
				if signal.label != stmt.label.name:
					raise
			return
		if isinstance(stmt, A.TryStatement):
			self._exec_try(stmt, env)
			return
		if isinstance(stmt, A.SwitchStatement):
			self._exec_switch(stmt, env)
			return
		raise RuntimeError(f"Unsupported statement {stmt.type}")

	def _run_body(self, body: A.Stmt, env: Environment, labels: Labels) -> bool:
		"""Run one iteration; False when the loop must stop."""
		try:
			self._exec_stmt(body, env)
		except BreakSignal as signal:
			if signal.label is None or signal.label in labels:
				return False
			raise
		except ContinueSignal as signal:
			if signal.label is None or signal.label in labels:
				return True
			raise
		return True

	def _exec_for(self, stmt: A.ForStatement, env: Environment, labels: Labels) -> None:
		init = stmt.init
		per_iteration = (
			self.block_scoping
			and isinstance(init, A.VariableDeclaration)
			and init.kind != "var"
		)
		loop_env = Environment(env) if per_iteration else env
		if isinstance(init, A.VariableDeclaration):
			self._declare(init, loop_env)
		elif init is not None:
			self._eval_expr(init, loop_env)
		if per_iteration:
			loop_env = loop_env.copy()
		while stmt.test is None or truthy(self._eval_expr(stmt.test, loop_env)):
			if not self._run_body(stmt.body, loop_env, labels):
				break
			if per_iteration:
				loop_env = loop_env.copy()
			if stmt.update is not None:
				self._eval_expr(stmt.update, loop_env)

	def _exec_for_each(self, stmt: A.ForInStatement | A.ForOfStatement, env: Environment, labels: Labels) -> None:
		subject = self._eval_expr(stmt.right, env)
		left = stmt.left
		if isinstance(left, A.VariableDeclaration):
			name = left.declarations[0].id.name
			fresh = self.block_scoping and left.kind != "var"
		else:
			name = left.name
			fresh = False
		for value in self._iterate(subject, keys=isinstance(stmt, A.ForInStatement)):
			if fresh:
				iter_env = Environment(env)
				iter_env.define(name, value)
			else:
				iter_env = env
				iter_env.set(name, value)
			if not self._run_body(stmt.body, iter_env, labels):
				break

	def _iterate(self, subject: object, *, keys: bool):
		if isinstance(subject, (list, str)):
			index = 0
			while index < len(subject):
				yield str(index) if keys else subject[index]
				index += 1
			return
		if keys and (subject is None or subject is UNDEFINED):
			return
		raise JSThrow(f"TypeError: {to_display(subject)} is not iterable")

	def _exec_try(self, stmt: A.TryStatement, env: Environment) -> None:
		try:
			try:
				self._exec_stmt(stmt.block, env)
			except JSThrow as exc:
				if stmt.handler is None:
					raise
				catch_env = Environment(env)
				catch_env.define(stmt.handler.param.name, exc.value)
				self._exec_stmt(stmt.handler.body, catch_env)
		finally:
			if stmt.finalizer is not None:
				self._exec_stmt(stmt.finalizer, env)

	def _exec_switch(self, stmt: A.SwitchStatement, env: Environment) -> None:
		value = self._eval_expr(stmt.discriminant, env)
		case_env = self._block_env(env)
		for case in stmt.cases:
			self._declare_functions(case.consequent, case_env)
		start = None
		for index, case in enumerate(stmt.cases):
			if case.test is not None and strict_equals(value, self._eval_expr(case.test, case_env)):
				start = index
				break
		if start is None:
			start = next((i for i, case in enumerate(stmt.cases) if case.test is None), None)
		if start is None:
			return
		try:
			for case in stmt.cases[start:]:
				for inner in case.consequent:
					self._exec_stmt(inner, case_env)
		except BreakSignal as signal:
			if signal.label is not None:
				raise

	# Expressions

	def _eval_expr(self, expr: A.Expr, env: Environment) -> object:
		if isinstance(expr, A.Literal):
			return expr.value
		if isinstance(expr, A.Identifier):
			return env.get(expr.name)
		if isinstance(expr, A.ThisExpression):
			return env.get("this")
		if isinstance(expr, A.ArrayExpression):
			return [self._eval_expr(elem, env) for elem in expr.elements]
		if isinstance(expr, (A.FunctionExpression, A.ArrowFunctionExpression)):
			return JSFunction(expr, env, self)
		if isinstance(expr, A.CallExpression):
			return self._eval_call(expr, env)
		if isinstance(expr, A.MemberExpression):
			base = self._eval_expr(expr.object, env)
			return self._get_member(base, self._property_key(expr, env))
		if isinstance(expr, A.AssignmentExpression):
			return self._eval_assign(expr, env)
		if isinstance(expr, A.UpdateExpression):
			old = to_number(self._eval_expr(expr.argument, env))
			new = old + 1 if expr.operator == "++" else old - 1
			self._assign(expr.argument, new, env)
			return new if expr.prefix else old
		if isinstance(expr, A.LogicalExpression):
			left = self._eval_expr(expr.left, env)
			if expr.operator == "&&":
				return self._eval_expr(expr.right, env) if truthy(left) else left
			return left if truthy(left) else self._eval_expr(expr.right, env)
		if isinstance(expr, A.BinaryExpression):
			left = self._eval_expr(expr.left, env)
			right = self._eval_expr(expr.right, env)
			return _binary(expr.operator, left, right)
		if isinstance(expr, A.UnaryExpression):
			return self._eval_unary(expr, env)
		if isinstance(expr, A.ConditionalExpression):
			if truthy(self._eval_expr(expr.test, env)):
				return self._eval_expr(expr.consequent, env)
			return self._eval_expr(expr.alternate, env)
		if isinstance(expr, A.SequenceExpression):
			result: object = UNDEFINED
			for item in expr.expressions:
				result = self._eval_expr(item, env)
			return result
		raise RuntimeError(f"Unsupported expression {expr.type}")

	def _eval_unary(self, expr: A.UnaryExpression, env: Environment) -> object:
		op = expr.operator
		if op == "typeof":
			arg = expr.argument
			if isinstance(arg, A.Identifier) and env.find(arg.name) is None:
				return "undefined"
			return type_of(self._eval_expr(arg, env))
		value = self._eval_expr(expr.argument, env)
		if op == "!":
			return not truthy(value)
		if op == "-":
			return -to_number(value)
		if op == "+":
			return to_number(value)
		raise RuntimeError(f"Unknown unary operator {op}")

	def _eval_call(self, expr: A.CallExpression, env: Environment) -> object:
		callee = expr.callee
		this: object = UNDEFINED
		if isinstance(callee, A.MemberExpression):
			this = self._eval_expr(callee.object, env)
			func = self._get_member(this, self._property_key(callee, env))
		else:
			func = self._eval_expr(callee, env)
		args = [self._eval_expr(arg, env) for arg in expr.arguments]
		return self._invoke(func, this, args)

	def _eval_assign(self, expr: A.AssignmentExpression, env: Environment) -> object:
		if expr.operator == "=":
			value = self._eval_expr(expr.right, env)
		else:
			current = self._eval_expr(expr.left, env)
			value = _binary(expr.operator[:-1], current, self._eval_expr(expr.right, env))
		self._assign(expr.left, value, env)
		return value

	def _assign(self, target: A.Expr, value: object, env: Environment) -> None:
		if isinstance(target, A.Identifier):
			env.set(target.name, value)
			return
		if isinstance(target, A.MemberExpression):
			base = self._eval_expr(target.object, env)
			key = self._property_key(target, env)
			if isinstance(base, list):
				index = _array_index(key)
				if index is not None:
					while len(base) <= index:
						base.append(UNDEFINED)
					base[index] = value
					return
				if key == "length":
					del base[int(to_number(value)):]
					return
			raise JSThrow(f"TypeError: cannot set property '{to_display(key)}' of {to_display(base)}")
		raise RuntimeError("Unsupported assignment target")

	def _property_key(self, expr: A.MemberExpression, env: Environment) -> object:
		if expr.computed:
			return self._eval_expr(expr.property, env)
		return expr.property.name  # type: ignore[attr-defined]

	def _get_member(self, base: object, key: object) -> object:
		if base is None or base is UNDEFINED:
			raise JSThrow(f"TypeError: Cannot read properties of {to_display(base)} (reading '{to_display(key)}')")
		if isinstance(base, (list, str)):
			index = _array_index(key)
			if index is not None:
				return base[index] if index < len(base) else UNDEFINED
			if key == "length":
				return len(base)
			if isinstance(base, list):
				return self._array_method(base, to_display(key))
			return UNDEFINED
		if isinstance(base, ConsoleOut):
			return base.get_attr(to_display(key))
		if isinstance(base, (JSFunction, BuiltinFunction)):
			return self._function_method(base, to_display(key))
		return UNDEFINED

	def _function_method(self, func: object, name: str) -> object:
		if name == "call":
			return BuiltinFunction(
				"call",
				lambda ctx, this, args: self._invoke(func, args[0] if args else UNDEFINED, list(args[1:])),
			)
		if name == "apply":
			return BuiltinFunction(
				"apply",
				lambda ctx, this, args: self._invoke(
					func,
					args[0] if args else UNDEFINED,
					list(args[1]) if len(args) > 1 and isinstance(args[1], list) else [],
				),
			)
		return UNDEFINED

	def _array_method(self, array: list, name: str) -> object:
		def push(ctx, this, args):
			array.extend(args)
			return len(array)

		def pop(ctx, this, args):
			return array.pop() if array else UNDEFINED

		def for_each(ctx, this, args):
			for index, item in enumerate(list(array)):
				self._invoke(args[0], UNDEFINED, [item, index, array])
			return UNDEFINED

		def map_(ctx, this, args):
			return [self._invoke(args[0], UNDEFINED, [item, index, array]) for index, item in enumerate(list(array))]

		def filter_(ctx, this, args):
			return [
				item for index, item in enumerate(list(array))
				if truthy(self._invoke(args[0], UNDEFINED, [item, index, array]))
			]

		def join(ctx, this, args):
			sep = to_display(args[0]) if args and args[0] is not UNDEFINED else ","
			return sep.join("" if v is None or v is UNDEFINED else to_display(v) for v in array)

		def index_of(ctx, this, args):
			target = args[0] if args else UNDEFINED
			return next((i for i, v in enumerate(array) if strict_equals(v, target)), -1)

		methods = {
			"push": push,
			"pop": pop,
			"forEach": for_each,
			"map": map_,
			"filter": filter_,
			"join": join,
			"indexOf": index_of,
		}
		impl = methods.get(name)
		if impl is None:
			return UNDEFINED
		return BuiltinFunction(name, impl)

	def _invoke(self, func: object, this: object, args: Sequence[object]) -> object:
		if isinstance(func, BuiltinFunction):
			return func.call(self.runtime_ctx, this, args)
		if isinstance(func, JSFunction):
			return func.call(this, args)
		raise JSThrow(f"TypeError: {to_display(func)} is not a function")


def _array_index(key: object) -> Optional[int]:
	if is_number(key) and float(key).is_integer() and key >= 0:  # type: ignore[arg-type]
		return int(key)  # type: ignore[arg-type]
	if isinstance(key, str) and key.isdigit():
		return int(key)
	return None


def _binary(op: str, left: object, right: object) -> object:
	if op == "+":
		if isinstance(left, (str, list)) or isinstance(right, (str, list)):
			return to_display(left) + to_display(right)
		return to_number(left) + to_number(right)
	if op == "===":
		return strict_equals(left, right)
	if op == "!==":
		return not strict_equals(left, right)
	if op == "==":
		return loose_equals(left, right)
	if op == "!=":
		return not loose_equals(left, right)
	if op in ("<", "<=", ">", ">="):
		if isinstance(left, str) and isinstance(right, str):
			a, b = left, right
		else:
			a, b = to_number(left), to_number(right)  # type: ignore[assignment]
			if math.isnan(a) or math.isnan(b):  # type: ignore[arg-type]
				return False
		if op == "<":
			return a < b
		if op == "<=":
			return a <= b
		if op == ">":
			return a > b
		return a >= b
	a, b = to_number(left), to_number(right)
	if op == "-":
		return a - b
	if op == "*":
		return a * b
	if op == "/":
		if b == 0:
			if a == 0 or math.isnan(a):
				return math.nan
			return math.inf if a > 0 else -math.inf
		result = a / b
		return int(result) if result.is_integer() else result
	if op == "%":
		if b == 0 or math.isnan(a) or math.isnan(b):
			return math.nan
		return math.fmod(a, b) if isinstance(a, float) or isinstance(b, float) else int(math.fmod(a, b))
	raise RuntimeError(f"Unsupported operator {op}")


def run_program(program: A.Program, *, block_scoping: bool = False, stdout: TextIO | None = None) -> Interpreter:
	interp = Interpreter(program, block_scoping=block_scoping, stdout=stdout)
	interp.run()
	return interp


def run_source(source: str, *, block_scoping: bool = False, stdout: TextIO | None = None) -> List[str]:
	"""Parse and run `source`; return the lines printed with console.log."""
	return run_program(parse_source(source), block_scoping=block_scoping, stdout=stdout).lines


__all__ = ["Environment", "Interpreter", "JSFunction", "run_program", "run_source"]
