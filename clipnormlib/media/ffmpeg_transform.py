#!/usr/bin/env python3

"""
Per-clip ffmpeg pipeline: trim, optional vid.stab two-pass stabilization,
canvas normalization, frame-rate normalization and a burned-in caption.

Every output shares the same resolution, frame rate and codec settings, so
the exports can be joined later with a stream copy.
"""

# Standard Library
import os
import uuid

# local repo modules
from clipnormlib.core import fonts
from clipnormlib.core import utils
from clipnormlib.core.records import ClipRecord, TransformOutcome, TrimWindow
from clipnormlib.core.settings import Settings

#============================================

def compute_trim_window(duration_seconds: float, max_segment: float = 10.0) -> TrimWindow:
	"""
	Center a max_segment window inside longer clips; keep shorter clips whole.

	Args:
		duration_seconds: Clip duration.
		max_segment: Longest output length in seconds.

	Returns:
		TrimWindow: Start offset and output length.
	"""
	if duration_seconds > max_segment:
		start = (duration_seconds - max_segment) / 2.0
		return TrimWindow(start_offset_seconds=start, output_length_seconds=max_segment)
	return TrimWindow(start_offset_seconds=0.0, output_length_seconds=duration_seconds)

#============================================

def has_vidstab_filters() -> bool:
	"""
	Check that ffmpeg exposes vidstabdetect and vidstabtransform.
	"""
	try:
		proc = utils.run_process(["ffmpeg", "-hide_banner", "-filters"])
	except (RuntimeError, OSError):
		return False
	text = proc.stdout
	return "vidstabdetect" in text and "vidstabtransform" in text

#============================================

def trim_args(window: TrimWindow) -> list:
	return [
		"-ss", f"{window.start_offset_seconds:.3f}",
		"-t", f"{window.output_length_seconds:.3f}",
	]

#============================================

def detect_filter(trf_path: str, settings: Settings) -> str:
	return (
		"vidstabdetect="
		f"shakiness={settings.shakiness}:"
		f"accuracy={settings.accuracy}:"
		f"result={utils.escape_filter_value(trf_path)}"
	)

#============================================

def stabilize_filter(trf_path: str, settings: Settings) -> str:
	return (
		"vidstabtransform="
		f"input={utils.escape_filter_value(trf_path)}:"
		f"smoothing={settings.smoothing}:"
		"optzoom=1:"
		"crop=black"
	)

#============================================

def canvas_filters(settings: Settings) -> list:
	width = settings.width
	height = settings.height
	return [
		f"scale={width}:{height}:force_original_aspect_ratio=decrease:force_divisible_by=2",
		f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color=black",
		"setsar=1",
	]

#============================================

def fps_filter(settings: Settings) -> str:
	return f"fps={settings.reference_fps_fraction}"

#============================================

def caption_filter(caption_text: str, font_file: str, font_size: int,
	settings: Settings) -> str:
	"""
	Build the drawtext filter for the bottom-right caption.

	Args:
		caption_text: Raw caption text.
		font_file: Font file path.
		font_size: Font size in pixels.
		settings: Run settings.

	Returns:
		str: drawtext filter text.
	"""
	margin = settings.margin_ratio
	return (
		"drawtext="
		f"fontfile={utils.escape_filter_value(font_file)}:"
		f"text={utils.escape_drawtext_text(caption_text)}:"
		"expansion=none:"
		f"fontsize={int(font_size)}:"
		f"fontcolor={settings.font_color}:"
		f"borderw={int(settings.border_width)}:"
		f"bordercolor={settings.border_color}:"
		f"x=w-tw-w*{margin}:"
		f"y=h-th-h*{margin}"
	)

#============================================

def build_detect_command(input_file: str, trf_path: str, window: TrimWindow,
	settings: Settings) -> list:
	cmd = ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error"]
	cmd += trim_args(window)
	cmd += ["-i", input_file]
	cmd += ["-an", "-sn"]
	cmd += ["-vf", detect_filter(trf_path, settings)]
	cmd += ["-f", "null", "-"]
	return cmd

#============================================

def build_render_command(input_file: str, output_file: str, window: TrimWindow,
	caption_text: str, font_file: str, font_size: int, settings: Settings,
	trf_path: str = None) -> list:
	"""
	Build the encode command; with trf_path the stabilize transform runs first.
	"""
	filters = []
	if trf_path is not None:
		filters.append(stabilize_filter(trf_path, settings))
	filters += canvas_filters(settings)
	filters.append(fps_filter(settings))
	filters.append(caption_filter(caption_text, font_file, font_size, settings))
	cmd = ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error"]
	cmd += trim_args(window)
	cmd += ["-i", input_file]
	cmd += ["-map", "0:v:0", "-an", "-sn", "-dn"]
	cmd += ["-map_metadata", "-1", "-map_chapters", "-1"]
	cmd += ["-vf", ",".join(filters)]
	cmd += ["-r", settings.reference_fps_fraction]
	cmd += ["-c:v", settings.codec, "-preset", settings.preset,
		"-crf", str(settings.crf), "-pix_fmt", "yuv420p"]
	cmd += ["-movflags", "+faststart"]
	cmd.append(output_file)
	return cmd

#============================================

def _remove_quietly(filepath: str) -> None:
	if filepath and os.path.exists(filepath):
		try:
			os.remove(filepath)
		except OSError:
			pass

#============================================

class ClipTransformer():
	def __init__(self, settings: Settings, temp_dir: str, font_file: str):
		self.settings = settings
		self.temp_dir = temp_dir
		self.font_file = font_file

	#============================
	def _make_temp_path(self, suffix: str, index: int = None) -> str:
		tag = uuid.uuid4().hex
		if index is not None:
			tag = f"{index:03d}-{tag}"
		return os.path.join(self.temp_dir, f"{tag}{suffix}")

	#============================
	def caption_font_size(self, caption_text: str) -> int:
		usable = self.settings.width * (1.0 - 2.0 * self.settings.margin_ratio)
		return fonts.fit_font_size(self.font_file, self.settings.font_size,
			caption_text, int(usable))

	#============================
	def _run(self, cmd: list) -> None:
		utils.run_process(cmd, tail_lines=self.settings.stderr_tail_lines)

	#============================
	def _render_stabilized(self, input_file: str, output_file: str,
		window: TrimWindow, caption_text: str, font_size: int) -> None:
		trf_path = self._make_temp_path(".trf")
		try:
			self._run(build_detect_command(input_file, trf_path, window, self.settings))
			if not os.path.isfile(trf_path):
				raise RuntimeError("vidstabdetect did not produce a transforms file")
			self._run(build_render_command(input_file, output_file, window,
				caption_text, self.font_file, font_size, self.settings, trf_path=trf_path))
		finally:
			_remove_quietly(trf_path)

	#============================
	def _render_direct(self, input_file: str, output_file: str,
		window: TrimWindow, caption_text: str, font_size: int) -> None:
		self._run(build_render_command(input_file, output_file, window,
			caption_text, self.font_file, font_size, self.settings))

	#============================
	def transform(self, record: ClipRecord, window: TrimWindow, caption_text: str,
		skip_stabilization: bool, index: int = None) -> TransformOutcome:
		"""
		Render one clip into a temp artifact.

		Failures never raise: the outcome carries the reason and the stderr
		tail, and any partial output is removed.

		Args:
			record: Clip to render.
			window: Trim window for the clip.
			caption_text: Caption to burn in.
			skip_stabilization: Skip both vid.stab passes when True.
			index: Position used to prefix the artifact name.

		Returns:
			TransformOutcome: Output path on success, reason on failure.
		"""
		output_file = self._make_temp_path(".mp4", index)
		try:
			font_size = self.caption_font_size(caption_text)
			if skip_stabilization:
				self._render_direct(record.path, output_file, window, caption_text, font_size)
			else:
				self._render_stabilized(record.path, output_file, window, caption_text, font_size)
			if not os.path.isfile(output_file):
				raise RuntimeError("ffmpeg did not produce an output file")
		except utils.CommandError as exc:
			_remove_quietly(output_file)
			return TransformOutcome(record=record, reason=str(exc), details=tuple(exc.tail))
		except Exception as exc:
			_remove_quietly(output_file)
			return TransformOutcome(record=record, reason=f"{type(exc).__name__}: {exc}")
		return TransformOutcome(record=record, output_path=output_file)
