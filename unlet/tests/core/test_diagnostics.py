# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from unlet.core.diagnostics import E_UNSAFE_TRANSFORM, Diagnostic, DiagnosticSink
from unlet.core.span import Span
from unlet.parser.ast import Located


def test_sink_collects_in_report_order_and_fills_file() -> None:
	sink = DiagnosticSink(file="a.js")
	sink.error(3, "first", code=E_UNSAFE_TRANSFORM, phase="transform")
	sink.error(1, "second")
	assert [d.message for d in sink] == ["first", "second"]
	assert [d.line for d in sink] == [3, 1]
	assert all(d.span.file == "a.js" for d in sink)
	assert sink.has_errors()


def test_render_and_json() -> None:
	diag = Diagnostic(
		message="bad loop",
		code=E_UNSAFE_TRANSFORM,
		phase="transform",
		span=Span(file="x.js", line=4, column=2),
		notes=["see body"],
	)
	assert diag.render() == "x.js:4:2: error: bad loop\n  note: see body"
	assert diag.to_json() == {
		"phase": "transform",
		"code": E_UNSAFE_TRANSFORM,
		"message": "bad loop",
		"severity": "error",
		"file": "x.js",
		"line": 4,
		"column": 2,
	}


def test_unknown_location_renders_placeholders() -> None:
	assert Diagnostic(message="m").render() == "<input>:?:?: error: m"


def test_span_from_located() -> None:
	span = Span.from_loc(Located(line=2, column=5, start=10, end=12), file="f.js")
	assert (span.file, span.line, span.column, span.start, span.end) == ("f.js", 2, 5, 10, 12)
	assert Span.from_loc(None) == Span()
