# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parser for the JavaScript subset handled by unlet.

`parse_source` returns an `ast.Program` whose nodes carry parent links and
character-offset ranges; `ParseError` is raised for invalid input.
"""

from __future__ import annotations

from . import ast
from .parser import ParseError, parse_source

__all__ = ["ParseError", "ast", "parse_source"]
