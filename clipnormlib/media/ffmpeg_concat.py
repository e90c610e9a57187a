#!/usr/bin/env python3

"""
Export grouping and lossless concatenation with the ffmpeg concat demuxer.
"""

# Standard Library
import os
import uuid

# local repo modules
from clipnormlib.core import utils
from clipnormlib.core.records import ExportGroup

#============================================

def group_artifacts(artifacts: list, group_size: int = 3) -> list:
	"""
	Split artifacts into consecutive groups of at most group_size.

	Order is preserved and groups are never rebalanced, so only the last
	group can be short.

	Args:
		artifacts: Artifact paths in processing order.
		group_size: Maximum clips per export.

	Returns:
		list: ExportGroup list with 1-based indexes.
	"""
	if group_size < 1:
		raise ValueError("group_size must be >= 1")
	groups = []
	for start in range(0, len(artifacts), group_size):
		chunk = tuple(artifacts[start:start + group_size])
		groups.append(ExportGroup(index=len(groups) + 1, artifacts=chunk))
	return groups

#============================================

def export_filename(prefix: str, index: int, total: int) -> str:
	width = max(2, len(str(total)))
	return f"{prefix}_{index:0{width}d}.mp4"

#============================================

def manifest_line(path: str) -> str:
	escaped = os.path.abspath(path).replace("'", "'\\''")
	return f"file '{escaped}'"

#============================================

def write_manifest(manifest_path: str, artifacts: tuple) -> None:
	lines = [manifest_line(path) for path in artifacts]
	with open(manifest_path, "w", encoding="utf-8") as handle:
		handle.write("\n".join(lines) + "\n")
	return

#============================================

def build_concat_command(manifest_path: str, output_file: str) -> list:
	cmd = ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error"]
	cmd += ["-f", "concat", "-safe", "0", "-i", manifest_path]
	cmd += ["-c", "copy", "-movflags", "+faststart"]
	cmd.append(output_file)
	return cmd

#============================================

def concat_group(group: ExportGroup, output_file: str, manifest_dir: str,
	tail_lines: int = 8) -> str:
	"""
	Join one export group into output_file with a stream copy.

	The manifest file is removed whether or not ffmpeg succeeds. A partial
	output file is removed on failure.

	Args:
		group: Export group to join.
		output_file: Export file path.
		manifest_dir: Directory for the temporary manifest.
		tail_lines: Stderr lines kept on failure.

	Returns:
		str: output_file.
	"""
	if len(group.artifacts) == 0:
		raise RuntimeError("export group is empty")
	manifest_path = os.path.join(manifest_dir,
		f"concat-{group.index:03d}-{uuid.uuid4().hex}.txt")
	try:
		write_manifest(manifest_path, group.artifacts)
		utils.run_process(build_concat_command(manifest_path, output_file),
			tail_lines=tail_lines)
		if not os.path.isfile(output_file):
			raise RuntimeError("concat did not produce an output file")
	except Exception:
		if os.path.exists(output_file):
			os.remove(output_file)
		raise
	finally:
		if os.path.exists(manifest_path):
			os.remove(manifest_path)
	return output_file
