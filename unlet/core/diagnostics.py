# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for the parser, scope builder and transform passes.

Passes never decide whether compilation halts: they append diagnostics to a
sink and keep going. The driver inspects the collected diagnostics afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from .span import Span

# Diagnostic codes reported by this compiler.
E_PARSE = "E-PARSE"
E_REDECLARE = "E-REDECLARE"
E_UNSUPPORTED_SYNTAX = "E-UNSUPPORTED-SYNTAX"
E_UNSAFE_TRANSFORM = "E-UNSAFE-TRANSFORM"
E_LOOP_CLOSURE = "E-LOOP-CLOSURE"


@dataclass
class Diagnostic:
	"""Represents a compiler diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	# Phase label (parser, scope, transform) so JSON output and test
	# expectations can tell diagnostics from different stages apart.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Source location (Span() denotes unknown).
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	@property
	def line(self) -> Optional[int]:
		return self.span.line

	def render(self) -> str:
		"""Human-readable `file:line:column: severity: message` form."""
		file = self.span.file or "<input>"
		line = self.span.line if self.span.line is not None else "?"
		column = self.span.column if self.span.column is not None else "?"
		text = f"{file}:{line}:{column}: {self.severity}: {self.message}"
		for note in self.notes:
			text += f"\n  note: {note}"
		return text

	def to_json(self) -> dict:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
		}


class DiagnosticSink:
	"""
	Collects diagnostics in report order.

	`error(line, message)` is the entry point used by passes that only know the
	source line of the offending construct; `add` takes a prebuilt Diagnostic.
	"""

	def __init__(self, file: Optional[str] = None) -> None:
		self.file = file
		self.diagnostics: list[Diagnostic] = []

	def add(self, diag: Diagnostic) -> Diagnostic:
		if diag.span.file is None and self.file is not None:
			diag.span = diag.span.with_file(self.file)
		self.diagnostics.append(diag)
		return diag

	def error(
		self,
		line: Optional[int],
		message: str,
		*,
		code: str | None = None,
		phase: str | None = None,
		span: Span | None = None,
		notes: list[str] | None = None,
	) -> Diagnostic:
		if span is None:
			span = Span(line=line)
		return self.add(
			Diagnostic(
				message=message,
				code=code,
				phase=phase,
				severity="error",
				span=span,
				notes=list(notes or []),
			)
		)

	def has_errors(self) -> bool:
		return any(d.severity == "error" for d in self.diagnostics)

	def __iter__(self) -> Iterator[Diagnostic]:
		return iter(self.diagnostics)

	def __len__(self) -> int:
		return len(self.diagnostics)


__all__ = [
	"Diagnostic",
	"DiagnosticSink",
	"E_LOOP_CLOSURE",
	"E_PARSE",
	"E_REDECLARE",
	"E_UNSAFE_TRANSFORM",
	"E_UNSUPPORTED_SYNTAX",
]
