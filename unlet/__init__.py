# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
unlet: downgrade block-scoped loop captures for a function-scoped target.

Stages:
  parser:    JavaScript subset -> annotated tree (lark, LALR)
  analysis:  scope arena, reference resolution, pre-order traversal
  transform: loop-closure rewrite + text insertions
  runtime:   reference interpreter used to execute transformed programs
"""

__all__ = ["analysis", "core", "parser", "runtime", "transform"]
