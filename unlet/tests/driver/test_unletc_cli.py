# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
import runpy
import sys
from pathlib import Path

import pytest

from unlet.unletc import main as unletc_main
from unlet.unletc import transpile_source

LOOP_SOURCE = "for (const n of [1, 2]) {\n\tsetTimeout(() => console.log(n));\n}\n"


def _write_file(path: Path, content: str) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(content)
	return path


def _run_unletc_json(argv: list[str], capsys: pytest.CaptureFixture[str]) -> tuple[int, dict]:
	rc = unletc_main(argv + ["--json"])
	out = capsys.readouterr().out
	payload = json.loads(out) if out.strip() else {}
	return rc, payload


def test_transformed_source_goes_to_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	rc = unletc_main([str(src)])
	captured = capsys.readouterr()
	assert rc == 0
	assert captured.out == (
		"for (const n of [1, 2]) {(function(n){\n\tsetTimeout(() => console.log(n));\n}).call(this, n);}\n"
	)
	assert captured.err == ""


def test_output_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	out_path = tmp_path / "out" / "loop.js"
	out_path.parent.mkdir()
	rc = unletc_main([str(src), "-o", str(out_path)])
	assert rc == 0
	assert capsys.readouterr().out == ""
	assert "}).call(this, n);}" in out_path.read_text()


def test_run_prints_console_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	rc = unletc_main([str(src), "--run"])
	assert rc == 0
	assert capsys.readouterr().out.splitlines() == ["1", "2"]


def test_json_success_payload(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	rc, payload = _run_unletc_json([str(src)], capsys)
	assert rc == 0
	assert payload["exit_code"] == 0
	assert payload["diagnostics"] == []
	assert "(function(n){" in payload["output"]

	rc, payload = _run_unletc_json([str(src), "--run"], capsys)
	assert rc == 0
	assert payload["console"] == ["1", "2"]


def test_unsafe_loop_reports_diagnostic(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	source = "while (true) {\n\tlet v = 1;\n\tfns.push(() => v);\n\tbreak;\n}\n"
	src = _write_file(tmp_path / "unsafe.js", source)
	rc, payload = _run_unletc_json([str(src)], capsys)
	assert rc == 1
	assert payload["exit_code"] == 1
	(diag,) = payload["diagnostics"]
	assert diag["phase"] == "transform"
	assert diag["code"] == "E-UNSAFE-TRANSFORM"
	assert diag["file"] == str(src)
	assert diag["line"] == 3
	assert "break at line 4" in diag["message"]
	assert "output" not in payload


def test_human_diagnostics_go_to_stderr(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "broken.js", "let a = ;\n")
	rc = unletc_main([str(src)])
	captured = capsys.readouterr()
	assert rc == 1
	assert captured.out == ""
	assert captured.err.startswith(f"{src}:1:9: error: unexpected token ';'")


def test_loop_closures_flag_overrides_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	config = _write_file(tmp_path / "unlet.json", '{"loopClosures": "error"}')

	rc, payload = _run_unletc_json([str(src), "--config", str(config)], capsys)
	assert rc == 1
	assert [d["code"] for d in payload["diagnostics"]] == ["E-LOOP-CLOSURE"]

	rc, payload = _run_unletc_json([str(src), "--config", str(config), "--loop-closures", "iife"], capsys)
	assert rc == 0


def test_bad_config_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	config = _write_file(tmp_path / "unlet.json", '{"mode": "fast"}')
	rc, payload = _run_unletc_json([str(src), "--config", str(config)], capsys)
	assert rc == 1
	(diag,) = payload["diagnostics"]
	assert diag["phase"] == "config"
	assert "unknown config key 'mode'" in diag["message"]


def test_missing_source_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	rc = unletc_main([str(tmp_path / "nope.js")])
	assert rc == 1
	assert "cannot read source" in capsys.readouterr().err


def test_non_utf8_source_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = tmp_path / "latin1.js"
	src.write_bytes(b"let x = '\xff';\n")

	rc = unletc_main([str(src)])
	assert rc == 1
	assert "source is not valid UTF-8" in capsys.readouterr().err

	rc, payload = _run_unletc_json([str(src)], capsys)
	assert rc == 1
	(diag,) = payload["diagnostics"]
	assert diag["phase"] == "io"
	assert diag["file"] == str(src)
	assert "at byte 9" in diag["message"]


def test_runtime_exception_during_run(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "throw.js", 'throw "nope";\n')
	rc = unletc_main([str(src), "--run"])
	assert rc == 1
	assert "uncaught exception: nope" in capsys.readouterr().err


def test_redeclaration_suppresses_transform() -> None:
	result = transpile_source("let a = 1;\nlet a = 2;\nfor (const x of xs) { f(() => x); }\n", filename="r.js")
	assert result.exit_code == 1
	assert result.output is None
	assert [d.code for d in result.diagnostics] == ["E-REDECLARE"]
	assert result.diagnostics[0].span.file == "r.js"
	assert result.rewritten == []


def test_module_entrypoint_runs_main(
	tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
	src = _write_file(tmp_path / "loop.js", LOOP_SOURCE)
	monkeypatch.setattr(sys, "argv", ["unlet", str(src), "--run"])
	with pytest.raises(SystemExit) as excinfo:
		runpy.run_module("unlet", run_name="__main__")
	assert excinfo.value.code == 0
	assert capsys.readouterr().out.splitlines() == ["1", "2"]
