# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
unletc: compile block-scoped loop closures down to function-scoped code.

Pipeline: parse -> build scopes -> loop-closure pass -> render insertions.
Any error diagnostic suppresses the output text and makes the exit code 1.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from unlet.analysis.resolve import build_scopes
from unlet.analysis.scope import ScopeTree
from unlet.config import LOOP_CLOSURE_MODES, ConfigError, TranspileOptions, load_options
from unlet.core.diagnostics import E_PARSE, Diagnostic, DiagnosticSink
from unlet.core.span import Span
from unlet.interp import run_source
from unlet.parser import ParseError, ast, parse_source
from unlet.runtime import JSThrow
from unlet.transform.alter import TextAlter
from unlet.transform.loop_closures import LoopClosures


@dataclass
class TranspileResult:
	output: Optional[str]
	diagnostics: List[Diagnostic] = field(default_factory=list)
	program: Optional[ast.Program] = None
	scopes: Optional[ScopeTree] = None
	rewritten: List[ast.Node] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not any(d.severity == "error" for d in self.diagnostics)

	@property
	def exit_code(self) -> int:
		return 0 if self.ok else 1


def transpile_source(
	source: str,
	*,
	options: TranspileOptions | None = None,
	filename: str | None = None,
) -> TranspileResult:
	"""Run the full pipeline over `source`; never raises for bad input."""
	options = options or TranspileOptions()
	sink = DiagnosticSink(filename)
	try:
		program = parse_source(source)
	except ParseError as err:
		sink.error(
			err.loc.line if err.loc is not None else None,
			str(err),
			code=E_PARSE,
			phase="parser",
			span=Span.from_loc(err.loc),
		)
		return TranspileResult(output=None, diagnostics=sink.diagnostics)

	scopes = build_scopes(program, sink)
	result = TranspileResult(output=None, diagnostics=sink.diagnostics, program=program, scopes=scopes)
	if sink.has_errors():
		return result

	alter = TextAlter(source)
	loop_closures = LoopClosures()
	loop_closures.reset()
	loop_closures.configure(alter, scopes, options, sink)
	loop_closures.run(program)
	result.rewritten = list(loop_closures.rewritten_loops)
	if not sink.has_errors():
		result.output = alter.render()
	return result


def _emit_error(args: argparse.Namespace, source_path: Path, phase: str, msg: str) -> int:
	if args.json:
		print(
			json.dumps(
				{
					"exit_code": 1,
					"diagnostics": [
						{
							"phase": phase,
							"code": None,
							"message": msg,
							"severity": "error",
							"file": str(source_path),
							"line": None,
							"column": None,
						}
					],
				}
			)
		)
	else:
		print(f"{source_path}:?:?: error: {msg}", file=sys.stderr)
	return 1


def main(argv: list[str] | None = None) -> int:
	"""
	CLI entry point.

	Writes the transformed source to -o (or stdout). With --run the output is
	executed with function-scoped bindings and its console lines are printed
	instead. With --json, prints structured diagnostics and an exit_code;
	otherwise diagnostics go to stderr as `file:line:column: severity: message`.
	"""
	parser = argparse.ArgumentParser(description="unletc: rewrite loop closures over block-scoped bindings")
	parser.add_argument("source", type=Path, help="JavaScript source file")
	parser.add_argument("-o", "--output", type=Path, help="Write the transformed source to this path")
	parser.add_argument(
		"--json",
		action="store_true",
		help="Emit diagnostics as JSON (phase/code/message/severity/file/line/column)",
	)
	parser.add_argument("--config", type=Path, help="JSON options file (e.g. {\"loopClosures\": \"error\"})")
	parser.add_argument(
		"--loop-closures",
		choices=LOOP_CLOSURE_MODES,
		help="iife: wrap loop bodies in per-iteration functions (default); error: report captures instead",
	)
	parser.add_argument(
		"--run",
		action="store_true",
		help="Execute the transformed program with function-scoped bindings and print its console output",
	)
	args = parser.parse_args(argv)

	source_path: Path = args.source
	try:
		options = load_options(args.config) if args.config else TranspileOptions()
		options = options.updated(loop_closures=args.loop_closures)
	except ConfigError as err:
		return _emit_error(args, args.config or source_path, "config", str(err))
	try:
		source = source_path.read_text(encoding="utf-8")
	except OSError as err:
		return _emit_error(args, source_path, "io", f"cannot read source: {err.strerror or err}")
	except UnicodeDecodeError as err:
		return _emit_error(args, source_path, "io", f"source is not valid UTF-8: {err.reason} at byte {err.start}")

	result = transpile_source(source, options=options, filename=str(source_path))
	if not result.ok:
		if args.json:
			payload = {
				"exit_code": 1,
				"diagnostics": [d.to_json() for d in result.diagnostics],
			}
			print(json.dumps(payload))
		else:
			for d in result.diagnostics:
				print(d.render(), file=sys.stderr)
		return 1

	assert result.output is not None
	lines: Optional[List[str]] = None
	if args.output is not None:
		args.output.write_text(result.output)
	if args.run:
		try:
			lines = run_source(result.output)
		except JSThrow as err:
			return _emit_error(args, source_path, "runtime", f"uncaught exception: {err}")
		if not args.json:
			for line in lines:
				print(line)
	elif args.output is None and not args.json:
		sys.stdout.write(result.output)

	if args.json:
		payload = {"exit_code": 0, "diagnostics": [d.to_json() for d in result.diagnostics]}
		if lines is not None:
			payload["console"] = lines
		elif args.output is None:
			payload["output"] = result.output
		print(json.dumps(payload))
	return 0


if __name__ == "__main__":
	sys.exit(main())
