#!/usr/bin/env python3

"""
ffprobe queries for clip duration and frame rate.

Each query is independent and never raises: a failed query returns the
UNREADABLE sentinel for its field.
"""

# Standard Library
import os

# local repo modules
from clipnormlib.core import utils
from clipnormlib.core.records import ProbeResult, UNREADABLE

#============================================

def _query_stream_value(input_file: str, entry: str) -> str:
	cmd = [
		"ffprobe", "-v", "error",
		"-select_streams", "v:0",
		"-show_entries", f"stream={entry}",
		"-of", "default=nw=1:nk=1",
		input_file,
	]
	proc = utils.run_process(cmd)
	lines = [line.strip() for line in proc.stdout.splitlines() if line.strip() != ""]
	if len(lines) == 0:
		return ""
	return lines[0]

#============================================

def probe_duration(input_file: str) -> float:
	"""
	Probe media duration in seconds.

	Args:
		input_file: Media file path.

	Returns:
		float: Duration in seconds, or UNREADABLE.
	"""
	cmd = [
		"ffprobe", "-v", "error",
		"-show_entries", "format=duration",
		"-of", "default=nw=1:nk=1",
		input_file,
	]
	try:
		proc = utils.run_process(cmd)
		seconds = float(proc.stdout.strip())
	except (RuntimeError, ValueError, OSError):
		return UNREADABLE
	if seconds <= 0:
		return UNREADABLE
	return seconds

#============================================

def probe_frame_rate(input_file: str) -> float:
	"""
	Probe the first video stream frame rate, rounded to 2 decimals.

	Args:
		input_file: Media file path.

	Returns:
		float: Frames per second, or UNREADABLE.
	"""
	try:
		fps_value = _query_stream_value(input_file, "r_frame_rate")
		if fps_value in ("", "0/0"):
			fps_value = _query_stream_value(input_file, "avg_frame_rate")
		if fps_value in ("", "0/0"):
			return UNREADABLE
		fps = utils.fps_fraction_to_float(fps_value)
	except (RuntimeError, ValueError, OSError):
		return UNREADABLE
	if fps <= 0:
		return UNREADABLE
	return round(fps, 2)

#============================================

def probe(input_file: str) -> ProbeResult:
	if not os.path.isfile(input_file):
		return ProbeResult()
	return ProbeResult(
		duration_seconds=probe_duration(input_file),
		frame_rate=probe_frame_rate(input_file),
	)
