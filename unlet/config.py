# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Transpiler options.

Options come from defaults, an optional JSON config file and CLI flags, in
that order of precedence (later wins). The JSON file uses camelCase keys as
the CLI's config format; snake_case is accepted too.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

# Rewrite loop bodies into per-iteration wrapper functions.
LOOP_CLOSURES_IIFE = "iife"
# Report captured loop bindings as errors instead of rewriting.
LOOP_CLOSURES_ERROR = "error"

LOOP_CLOSURE_MODES = (LOOP_CLOSURES_IIFE, LOOP_CLOSURES_ERROR)

_KEYS = {
	"loopClosures": "loop_closures",
	"loop_closures": "loop_closures",
}


class ConfigError(ValueError):
	pass


@dataclass(frozen=True)
class TranspileOptions:
	loop_closures: str = LOOP_CLOSURES_IIFE

	def __post_init__(self) -> None:
		if self.loop_closures not in LOOP_CLOSURE_MODES:
			raise ConfigError(
				f"invalid loopClosures mode '{self.loop_closures}' (expected one of {', '.join(LOOP_CLOSURE_MODES)})"
			)

	@property
	def generate_iife(self) -> bool:
		return self.loop_closures == LOOP_CLOSURES_IIFE

	def updated(self, **overrides: Any) -> "TranspileOptions":
		"""Copy with the non-None overrides applied."""
		return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def options_from_mapping(data: Mapping[str, Any], *, base: TranspileOptions | None = None) -> TranspileOptions:
	if not isinstance(data, Mapping):
		raise ConfigError("config must be a JSON object")
	values: dict[str, Any] = {}
	for key, value in data.items():
		field_name = _KEYS.get(key)
		if field_name is None:
			raise ConfigError(f"unknown config key '{key}'")
		values[field_name] = value
	return (base or TranspileOptions()).updated(**values)


def load_options(path: Path, *, base: TranspileOptions | None = None) -> TranspileOptions:
	try:
		data = json.loads(path.read_text())
	except OSError as err:
		raise ConfigError(f"cannot read config '{path}': {err.strerror or err}") from err
	except json.JSONDecodeError as err:
		raise ConfigError(f"invalid JSON in config '{path}': {err.msg} (line {err.lineno})") from err
	return options_from_mapping(data, base=base)


__all__ = [
	"ConfigError",
	"LOOP_CLOSURES_ERROR",
	"LOOP_CLOSURES_IIFE",
	"LOOP_CLOSURE_MODES",
	"TranspileOptions",
	"load_options",
	"options_from_mapping",
]
