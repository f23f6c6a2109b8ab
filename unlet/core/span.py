# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lightweight source span representation used by diagnostics.

A Span carries best-effort file/line/column info plus the character offsets
of the range when the front-end knows them. Span() denotes an unknown location.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column plus offsets)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	start: Optional[int] = None
	end: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a parser location object.

		Accepts our own `Located`, lark tokens/meta (which expose `line`,
		`column`, `start_pos`, `end_pos`) or an existing Span.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			return loc
		return cls(
			file=file,
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			start=getattr(loc, "start", getattr(loc, "start_pos", None)),
			end=getattr(loc, "end", getattr(loc, "end_pos", None)),
		)

	def with_file(self, file: Optional[str]) -> "Span":
		return Span(file=file, line=self.line, column=self.column, start=self.start, end=self.end)


__all__ = ["Span"]
