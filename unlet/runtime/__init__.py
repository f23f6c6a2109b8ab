# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Runtime support for the reference interpreter: JS value helpers, the console
object and host builtins such as `setTimeout`.

Values map onto Python as: numbers -> int/float, strings -> str, booleans ->
bool, null -> None, undefined -> UNDEFINED, arrays -> list. Functions are
interpreter objects implementing `call(this, args)`.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence, TextIO


class _Undefined:
	_instance: "_Undefined | None" = None

	def __new__(cls) -> "_Undefined":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "undefined"

	def __bool__(self) -> bool:
		return False


UNDEFINED = _Undefined()


class JSThrow(Exception):
	"""A value thrown by the running program and not caught."""

	def __init__(self, value: object) -> None:
		super().__init__(to_display(value))
		self.value = value


BuiltinImpl = Callable[["RuntimeContext", object, Sequence[object]], object]


@dataclass
class BuiltinFunction:
	name: str
	impl: BuiltinImpl

	def call(self, ctx: "RuntimeContext", this: object, args: Sequence[object]) -> object:
		return self.impl(ctx, this, args)


@dataclass(order=True)
class _Timer:
	due: float
	seq: int
	callback: Any = field(compare=False)
	args: List[object] = field(compare=False, default_factory=list)


class RuntimeContext:
	"""Host state shared by builtins: console sink and pending timers."""

	def __init__(self, stdout: TextIO | None = None) -> None:
		self.stdout = stdout
		self.lines: List[str] = []
		self._timers: List[_Timer] = []
		self._timer_seq = 0
		self.now = 0.0

	def log(self, text: str) -> None:
		self.lines.append(text)
		if self.stdout is not None:
			self.stdout.write(text + "\n")
			self.stdout.flush()

	def schedule(self, callback: object, delay: float, args: Sequence[object]) -> int:
		self._timer_seq += 1
		heapq.heappush(self._timers, _Timer(self.now + max(delay, 0), self._timer_seq, callback, list(args)))
		return self._timer_seq

	def next_timer(self) -> _Timer | None:
		if not self._timers:
			return None
		timer = heapq.heappop(self._timers)
		self.now = max(self.now, timer.due)
		return timer


class ConsoleOut:
	def __init__(self, runtime_ctx: RuntimeContext) -> None:
		self.runtime_ctx = runtime_ctx
		self._members: Dict[str, BuiltinFunction] = {
			"log": BuiltinFunction("console.log", _console_log),
		}

	def get_attr(self, name: str) -> object:
		if name not in self._members:
			return UNDEFINED
		return self._members[name]


def _console_log(ctx: RuntimeContext, this: object, args: Sequence[object]) -> object:
	ctx.log(" ".join(to_display(arg) for arg in args))
	return UNDEFINED


def _set_timeout(ctx: RuntimeContext, this: object, args: Sequence[object]) -> object:
	if not args:
		raise JSThrow("TypeError: setTimeout requires a callback")
	delay = to_number(args[1]) if len(args) > 1 else 0
	if math.isnan(delay):
		delay = 0
	return ctx.schedule(args[0], delay, args[2:])


def _string(ctx: RuntimeContext, this: object, args: Sequence[object]) -> object:
	return to_display(args[0]) if args else ""


BUILTINS: Mapping[str, BuiltinFunction] = {
	"setTimeout": BuiltinFunction("setTimeout", _set_timeout),
	"String": BuiltinFunction("String", _string),
}


def is_number(value: object) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: object) -> float:
	if isinstance(value, bool):
		return 1 if value else 0
	if is_number(value):
		return value  # type: ignore[return-value]
	if value is None:
		return 0
	if isinstance(value, str):
		text = value.strip()
		if not text:
			return 0
		try:
			number = float(text)
		except ValueError:
			return math.nan
		return int(number) if number.is_integer() else number
	return math.nan


def truthy(value: object) -> bool:
	if value is None or value is UNDEFINED:
		return False
	if isinstance(value, bool):
		return value
	if is_number(value):
		return value != 0 and not math.isnan(value)  # type: ignore[arg-type]
	if isinstance(value, str):
		return value != ""
	return True


def to_display(value: object) -> str:
	"""String conversion as `String(value)` would do it."""
	if value is UNDEFINED:
		return "undefined"
	if value is None:
		return "null"
	if isinstance(value, bool):
		return "true" if value else "false"
	if isinstance(value, float):
		if math.isnan(value):
			return "NaN"
		if math.isinf(value):
			return "Infinity" if value > 0 else "-Infinity"
		if value.is_integer():
			return str(int(value))
		return repr(value)
	if isinstance(value, int):
		return str(value)
	if isinstance(value, str):
		return value
	if isinstance(value, list):
		return ",".join("" if v is None or v is UNDEFINED else to_display(v) for v in value)
	if isinstance(value, BuiltinFunction):
		return f"function {value.name}() {{ [native code] }}"
	return "function () { [code] }"


def type_of(value: object) -> str:
	if value is UNDEFINED:
		return "undefined"
	if isinstance(value, bool):
		return "boolean"
	if is_number(value):
		return "number"
	if isinstance(value, str):
		return "string"
	if value is None or isinstance(value, (list, ConsoleOut)):
		return "object"
	return "function"


def strict_equals(left: object, right: object) -> bool:
	if is_number(left) and is_number(right):
		return left == right
	if type(left) is not type(right):
		return False
	if isinstance(left, (str, bool)):
		return left == right
	return left is right


def loose_equals(left: object, right: object) -> bool:
	if (left is None or left is UNDEFINED) and (right is None or right is UNDEFINED):
		return True
	if left is None or left is UNDEFINED or right is None or right is UNDEFINED:
		return False
	if type_of(left) == type_of(right):
		return strict_equals(left, right)
	if isinstance(left, (str, bool, int, float)) and isinstance(right, (str, bool, int, float)):
		return to_number(left) == to_number(right)
	return False


__all__ = [
	"BUILTINS",
	"BuiltinFunction",
	"ConsoleOut",
	"JSThrow",
	"RuntimeContext",
	"UNDEFINED",
	"is_number",
	"loose_equals",
	"strict_equals",
	"to_display",
	"to_number",
	"truthy",
	"type_of",
]
