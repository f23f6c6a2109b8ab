# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Pre-order tree traversal driven by an explicit worklist.

The visitor returns a VisitSignal per node: CONTINUE descends into the
children, SKIP leaves the subtree unvisited, ABORT stops the whole walk.
Returning None is the same as CONTINUE.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Callable, List, Optional

from unlet.parser.ast import Node, iter_children


class VisitSignal(Enum):
	CONTINUE = auto()
	SKIP = auto()
	ABORT = auto()


Visitor = Callable[[Node], Optional[VisitSignal]]


def traverse(root: Node, pre: Visitor) -> bool:
	"""Visit `root` and its descendants in pre-order; False if aborted."""
	stack: List[Node] = [root]
	while stack:
		node = stack.pop()
		signal = pre(node)
		if signal is VisitSignal.ABORT:
			return False
		if signal is VisitSignal.SKIP:
			continue
		children = list(iter_children(node))
		children.reverse()
		stack.extend(children)
	return True


__all__ = ["VisitSignal", "Visitor", "traverse"]
