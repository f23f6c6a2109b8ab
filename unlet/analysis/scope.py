# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope arena.

Scopes are records in a flat list addressed by stable integer ids; parent and
children links are ids, so reparenting a subtree is a couple of list edits and
no scope ever owns another. Nodes refer to scopes by id as well (`node.scope`,
`identifier.ref_scope`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from unlet.parser.ast import Identifier, Node

ScopeId = int

# Declaration kinds.
VAR = "var"
LET = "let"
CONST = "const"
FUN = "fun"
PARAM = "param"
CAUGHT = "caught"

BLOCK_SCOPED_KINDS = frozenset({LET, CONST})


class ScopeKind(Enum):
	"""What kind of region a scope covers."""

	HOIST = "hoist"  # function body or program: var-declarations land here
	BLOCK = "block"
	CATCH = "catch"


@dataclass
class Declaration:
	kind: str
	node: Identifier


@dataclass
class Scope:
	id: ScopeId
	kind: ScopeKind
	node: Node
	parent: Optional[ScopeId]
	children: List[ScopeId] = field(default_factory=list)
	decls: Dict[str, Declaration] = field(default_factory=dict)

	def __repr__(self) -> str:
		return f"Scope(id={self.id}, kind={self.kind.value}, node={self.node.type}, parent={self.parent}, names={sorted(self.decls)})"


class ScopeTree:
	"""Arena of Scope records; id 0 is the root once `new_scope` was called."""

	def __init__(self) -> None:
		self.scopes: List[Scope] = []

	def __getitem__(self, sid: ScopeId) -> Scope:
		return self.scopes[sid]

	def __len__(self) -> int:
		return len(self.scopes)

	def __iter__(self) -> Iterator[Scope]:
		return iter(self.scopes)

	@property
	def root(self) -> Scope:
		return self.scopes[0]

	def new_scope(self, kind: ScopeKind, node: Node, parent: Optional[ScopeId]) -> ScopeId:
		sid = len(self.scopes)
		self.scopes.append(Scope(id=sid, kind=kind, node=node, parent=parent))
		if parent is not None:
			self.scopes[parent].children.append(sid)
		return sid

	def declare(self, sid: ScopeId, name: str, kind: str, node: Identifier) -> None:
		self.scopes[sid].decls[name] = Declaration(kind=kind, node=node)

	def get_kind(self, sid: ScopeId, name: str) -> Optional[str]:
		decl = self.scopes[sid].decls.get(name)
		return decl.kind if decl is not None else None

	def get_node(self, sid: ScopeId, name: str) -> Optional[Identifier]:
		decl = self.scopes[sid].decls.get(name)
		return decl.node if decl is not None else None

	def lookup(self, sid: Optional[ScopeId], name: str) -> Optional[ScopeId]:
		"""Id of the nearest scope (from `sid` upward) declaring `name`."""
		while sid is not None:
			scope = self.scopes[sid]
			if name in scope.decls:
				return sid
			sid = scope.parent
		return None

	def closest_hoist_scope(self, sid: ScopeId) -> ScopeId:
		scope = self.scopes[sid]
		while scope.kind is not ScopeKind.HOIST:
			if scope.parent is None:
				break
			scope = self.scopes[scope.parent]
		return scope.id

	def ancestors(self, sid: Optional[ScopeId]) -> Iterator[Scope]:
		"""Yield `sid` and its ancestors, innermost first."""
		while sid is not None:
			scope = self.scopes[sid]
			yield scope
			sid = scope.parent

	def mutate(self, sid: ScopeId, kind: ScopeKind) -> None:
		self.scopes[sid].kind = kind

	def reparent(self, sid: ScopeId, new_parent: ScopeId) -> None:
		scope = self.scopes[sid]
		if scope.parent is not None:
			self.scopes[scope.parent].children.remove(sid)
		scope.parent = new_parent
		self.scopes[new_parent].children.append(sid)


__all__ = [
	"BLOCK_SCOPED_KINDS",
	"CAUGHT",
	"CONST",
	"Declaration",
	"FUN",
	"LET",
	"PARAM",
	"Scope",
	"ScopeId",
	"ScopeKind",
	"ScopeTree",
	"VAR",
]
