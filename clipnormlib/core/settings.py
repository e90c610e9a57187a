#!/usr/bin/env python3

"""
Run settings: defaults, optional yaml overrides and validation.
"""

# Standard Library
import copy
import dataclasses
import os

# PIP3 modules
import yaml

#============================================

CONFIG_HEADER_KEY = "clipnorm"
CONFIG_HEADER_VALUE = 1
DEFAULT_CONFIG_NAME = "clipnorm.config.yaml"

#============================================

@dataclasses.dataclass(frozen=True)
class Settings:
	min_duration: float = 5.0
	max_segment: float = 10.0
	reference_fps: float = 59.94
	reference_fps_fraction: str = "60000/1001"
	fps_tolerance: float = 0.1
	width: int = 1920
	height: int = 1080
	font_size: int = 56
	font_color: str = "white"
	border_color: str = "black"
	border_width: int = 3
	margin_ratio: float = 0.05
	font_candidates: tuple = ()
	shakiness: int = 5
	accuracy: int = 15
	smoothing: int = 10
	codec: str = "libx264"
	preset: str = "medium"
	crf: int = 20
	group_size: int = 3
	export_prefix: str = "compilation"
	stderr_tail_lines: int = 8

#============================================

def default_config() -> dict:
	"""
	Build the default config dictionary.

	Returns:
		dict: Default config.
	"""
	return {
		CONFIG_HEADER_KEY: CONFIG_HEADER_VALUE,
		"settings": {
			"policy": {
				"min_duration": 5.0,
				"max_segment": 10.0,
				"fps_tolerance": 0.1,
			},
			"canvas": {
				"width": 1920,
				"height": 1080,
			},
			"caption": {
				"font_size": 56,
				"font_color": "white",
				"border_color": "black",
				"border_width": 3,
				"margin_ratio": 0.05,
				"font_candidates": [],
			},
			"stabilize": {
				"shakiness": 5,
				"accuracy": 15,
				"smoothing": 10,
			},
			"encode": {
				"codec": "libx264",
				"preset": "medium",
				"crf": 20,
			},
			"export": {
				"group_size": 3,
				"prefix": "compilation",
			},
			"report": {
				"stderr_tail_lines": 8,
			},
		},
	}

#============================================

def write_config_file(config_path: str, config: dict) -> None:
	with open(config_path, "w", encoding="utf-8") as handle:
		handle.write(yaml.safe_dump(config, sort_keys=False))
	return

#============================================

def load_config(config_path: str) -> dict:
	"""
	Load a yaml config file and check its header.

	Args:
		config_path: Config file path.

	Returns:
		dict: Parsed config mapping.
	"""
	with open(config_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle)
	if not isinstance(data, dict):
		raise RuntimeError("config file must be a mapping")
	if data.get(CONFIG_HEADER_KEY) != CONFIG_HEADER_VALUE:
		raise RuntimeError(f"config file must set {CONFIG_HEADER_KEY}: {CONFIG_HEADER_VALUE}")
	return data

#============================================

def coerce_float(value, config_path: str, key_path: str) -> float:
	if isinstance(value, bool):
		raise RuntimeError(f"config {config_path}: {key_path} must be a number")
	if isinstance(value, (int, float)):
		return float(value)
	if isinstance(value, str):
		try:
			return float(value.strip())
		except ValueError:
			pass
	raise RuntimeError(f"config {config_path}: {key_path} must be a number")

#============================================

def coerce_int(value, config_path: str, key_path: str) -> int:
	if isinstance(value, bool):
		raise RuntimeError(f"config {config_path}: {key_path} must be an integer")
	if isinstance(value, int):
		return value
	if isinstance(value, float) and value.is_integer():
		return int(value)
	if isinstance(value, str) and value.strip().lstrip("-").isdigit():
		return int(value.strip())
	raise RuntimeError(f"config {config_path}: {key_path} must be an integer")

#============================================

def coerce_str(value, config_path: str, key_path: str) -> str:
	if isinstance(value, str) and value.strip() != "":
		return value.strip()
	raise RuntimeError(f"config {config_path}: {key_path} must be a string")

#============================================

def _merge(base: dict, override: dict) -> dict:
	merged = copy.deepcopy(base)
	for key, value in override.items():
		if isinstance(value, dict) and isinstance(merged.get(key), dict):
			merged[key] = _merge(merged[key], value)
		else:
			merged[key] = value
	return merged

#============================================

def build_settings(config: dict | None = None, config_path: str = "<defaults>") -> Settings:
	"""
	Validate a config mapping and build the immutable settings value.

	Args:
		config: Parsed config mapping, or None for defaults.
		config_path: Path used in error messages.

	Returns:
		Settings: Validated settings.
	"""
	data = default_config()
	if config is not None:
		data = _merge(data, config)
	sections = data.get("settings")
	if not isinstance(sections, dict):
		raise RuntimeError(f"config {config_path}: settings must be a mapping")
	for name in ("policy", "canvas", "caption", "stabilize", "encode", "export", "report"):
		if not isinstance(sections.get(name), dict):
			raise RuntimeError(f"config {config_path}: settings.{name} must be a mapping")
	policy = sections["policy"]
	canvas = sections["canvas"]
	caption = sections["caption"]
	stabilize = sections["stabilize"]
	encode = sections["encode"]
	export = sections["export"]
	report = sections["report"]

	raw_candidates = caption.get("font_candidates") or []
	if not isinstance(raw_candidates, list):
		raise RuntimeError(f"config {config_path}: settings.caption.font_candidates must be a list")
	font_candidates = tuple(
		os.path.expanduser(coerce_str(item, config_path, "settings.caption.font_candidates"))
		for item in raw_candidates
	)

	settings = Settings(
		min_duration=coerce_float(policy.get("min_duration"), config_path, "settings.policy.min_duration"),
		max_segment=coerce_float(policy.get("max_segment"), config_path, "settings.policy.max_segment"),
		fps_tolerance=coerce_float(policy.get("fps_tolerance"), config_path, "settings.policy.fps_tolerance"),
		width=coerce_int(canvas.get("width"), config_path, "settings.canvas.width"),
		height=coerce_int(canvas.get("height"), config_path, "settings.canvas.height"),
		font_size=coerce_int(caption.get("font_size"), config_path, "settings.caption.font_size"),
		font_color=coerce_str(caption.get("font_color"), config_path, "settings.caption.font_color"),
		border_color=coerce_str(caption.get("border_color"), config_path, "settings.caption.border_color"),
		border_width=coerce_int(caption.get("border_width"), config_path, "settings.caption.border_width"),
		margin_ratio=coerce_float(caption.get("margin_ratio"), config_path, "settings.caption.margin_ratio"),
		font_candidates=font_candidates,
		shakiness=coerce_int(stabilize.get("shakiness"), config_path, "settings.stabilize.shakiness"),
		accuracy=coerce_int(stabilize.get("accuracy"), config_path, "settings.stabilize.accuracy"),
		smoothing=coerce_int(stabilize.get("smoothing"), config_path, "settings.stabilize.smoothing"),
		codec=coerce_str(encode.get("codec"), config_path, "settings.encode.codec"),
		preset=coerce_str(encode.get("preset"), config_path, "settings.encode.preset"),
		crf=coerce_int(encode.get("crf"), config_path, "settings.encode.crf"),
		group_size=coerce_int(export.get("group_size"), config_path, "settings.export.group_size"),
		export_prefix=coerce_str(export.get("prefix"), config_path, "settings.export.prefix"),
		stderr_tail_lines=coerce_int(report.get("stderr_tail_lines"), config_path, "settings.report.stderr_tail_lines"),
	)
	validate_settings(settings)
	return settings

#============================================

def validate_settings(settings: Settings) -> None:
	if settings.min_duration < 0:
		raise RuntimeError("min_duration must be >= 0")
	if settings.max_segment <= 0:
		raise RuntimeError("max_segment must be > 0")
	if settings.fps_tolerance < 0:
		raise RuntimeError("fps_tolerance must be >= 0")
	if settings.width <= 0 or settings.height <= 0:
		raise RuntimeError("canvas width and height must be positive")
	if settings.width % 2 != 0 or settings.height % 2 != 0:
		raise RuntimeError("canvas width and height must be even")
	if settings.font_size <= 0:
		raise RuntimeError("font_size must be positive")
	if settings.border_width < 0:
		raise RuntimeError("border_width must be >= 0")
	if settings.margin_ratio < 0 or settings.margin_ratio >= 0.5:
		raise RuntimeError("margin_ratio must be >= 0 and < 0.5")
	if settings.shakiness < 1 or settings.shakiness > 10:
		raise RuntimeError("shakiness must be 1..10")
	if settings.accuracy < 1 or settings.accuracy > 15:
		raise RuntimeError("accuracy must be 1..15")
	if settings.accuracy < settings.shakiness:
		raise RuntimeError("accuracy must be >= shakiness")
	if settings.smoothing < 0:
		raise RuntimeError("smoothing must be >= 0")
	if settings.crf < 0 or settings.crf > 51:
		raise RuntimeError("crf must be 0..51")
	if settings.group_size < 1:
		raise RuntimeError("group_size must be >= 1")
	if settings.stderr_tail_lines < 0:
		raise RuntimeError("stderr_tail_lines must be >= 0")
	return

#============================================

def load_settings(config_path: str | None) -> Settings:
	if config_path is None:
		return build_settings(None)
	if not os.path.isfile(config_path):
		raise RuntimeError(f"config file not found: {config_path}")
	return build_settings(load_config(config_path), config_path)
