# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Offset-addressed text insertions against an immutable source buffer.

All offsets refer to the original source, so ranges computed by the parser
stay valid no matter how many insertions were requested. The final text is
produced in one pass by sorting insertions by (offset, priority, request
order); insertions at the same point with equal priority therefore apply in
the order they were requested.

Insertions are either pending or committed. `get()` only sees committed ones,
which lets a pass read back the current text of a range while batching its
own edits. `render()` applies everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass
class Insertion:
	offset: int
	text: str
	priority: int
	seq: int
	committed: bool = False


class TextAlter:
	def __init__(self, source: str) -> None:
		self.source = source
		self._edits: List[Insertion] = []
		self._seq = 0

	@property
	def edits(self) -> List[Insertion]:
		return sorted(self._edits, key=_edit_key)

	def insert(
		self,
		offset: int,
		text: str,
		*,
		apply_changes: bool = False,
		extend: bool = False,
		priority: int = 0,
	) -> None:
		"""
		Request `text` to be inserted at `offset`.

		apply_changes: commit this (and every pending) insertion immediately.
		extend: append to the latest insertion already requested at the same
		  offset and priority instead of adding a separate one.
		priority: lower values go first among insertions at the same offset.
		"""
		if not 0 <= offset <= len(self.source):
			raise ValueError(f"insertion offset {offset} outside source of length {len(self.source)}")
		target = self._extend_target(offset, priority, apply_changes) if extend else None
		if target is not None:
			target.text += text
		else:
			self._edits.append(Insertion(offset=offset, text=text, priority=priority, seq=self._seq))
			self._seq += 1
		if apply_changes:
			self.commit()

	def _extend_target(self, offset: int, priority: int, apply_changes: bool) -> Insertion | None:
		for edit in reversed(self._edits):
			if edit.offset == offset and edit.priority == priority:
				# Merging into a committed edit would commit this text too.
				if edit.committed and not apply_changes:
					return None
				return edit
		return None

	def commit(self) -> None:
		for edit in self._edits:
			edit.committed = True

	def get(self, start: int, end: int) -> str:
		"""Current text of the original range [start, end) with committed insertions inside it."""
		if not 0 <= start <= end <= len(self.source):
			raise ValueError(f"invalid range [{start}, {end})")
		inner = [e for e in self._edits if e.committed and start < e.offset < end]
		return _splice(self.source, start, end, inner)

	def render(self) -> str:
		return _splice(self.source, 0, len(self.source), self._edits)


def _edit_key(edit: Insertion) -> tuple[int, int, int]:
	return (edit.offset, edit.priority, edit.seq)


def _splice(source: str, start: int, end: int, edits: List[Insertion]) -> str:
	out: List[str] = []
	pos = start
	for edit in sorted(edits, key=_edit_key):
		out.append(source[pos:edit.offset])
		out.append(edit.text)
		pos = edit.offset
	out.append(source[pos:end])
	return "".join(out)


__all__ = ["Insertion", "TextAlter"]
