# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Static analysis over the parsed tree: scope arena, reference resolution and the
pre-order traversal driver used by transform passes.
"""

from .resolve import build_scopes
from .scope import ScopeKind, ScopeTree
from .traverse import VisitSignal, traverse

__all__ = ["ScopeKind", "ScopeTree", "VisitSignal", "build_scopes", "traverse"]
