#!/usr/bin/env python3

# Standard Library
import shlex
import shutil
import subprocess
import time

#============================================

VERBOSE = False

#============================================

class CommandError(RuntimeError):
	"""
	Raised when an external command exits non-zero.
	"""
	def __init__(self, cmd: list, returncode: int, stderr_text: str,
		tail_lines: int = 8):
		self.cmd = list(cmd)
		self.returncode = returncode
		self.stderr_text = stderr_text or ""
		self.tail = tail_text(self.stderr_text, tail_lines)
		tool = cmd[0] if len(cmd) > 0 else "command"
		super().__init__(f"{tool} failed (rc={returncode})")

#============================================

class EnvironmentMissingError(RuntimeError):
	"""
	Raised when a required tool or resource is not available.
	"""
	pass

#============================================

def set_verbose(value: bool) -> None:
	global VERBOSE
	VERBOSE = bool(value)

#============================================

def run_process(cmd: list, tail_lines: int = 8) -> subprocess.CompletedProcess:
	"""
	Run a command as an argument list and capture its output.

	Args:
		cmd: Command list to execute.
		tail_lines: Number of stderr lines kept on failure.

	Returns:
		subprocess.CompletedProcess: Completed process.
	"""
	if VERBOSE:
		showcmd = shlex.join([str(part) for part in cmd])
		print(f"CMD: '{showcmd}'")
	proc = subprocess.run([str(part) for part in cmd], capture_output=True,
		text=True)
	if proc.returncode != 0:
		raise CommandError(cmd, proc.returncode, proc.stderr, tail_lines)
	return proc

#============================================

def tail_text(text: str, count: int) -> list:
	lines = [line.rstrip() for line in str(text).splitlines() if line.strip() != ""]
	if count <= 0:
		return []
	return lines[-count:]

#============================================

def check_dependency(cmd_name: str) -> None:
	"""
	Ensure a required external command exists.

	Args:
		cmd_name: Command to locate.
	"""
	if shutil.which(cmd_name) is None:
		raise EnvironmentMissingError(f"missing dependency: {cmd_name}")
	return

#============================================

def make_timestamp() -> str:
	return time.strftime("%Y%m%d-%H%M%S")

#============================================

def fps_fraction_to_float(value: str) -> float:
	"""
	Convert an ffprobe frame-rate fraction string to float.

	Args:
		value: Fraction string like "30000/1001" or "30/1".

	Returns:
		float: FPS value.
	"""
	text = str(value).strip()
	if "/" in text:
		num_text, den_text = text.split("/", 1)
		num = float(num_text)
		den = float(den_text)
		if den == 0:
			raise RuntimeError("invalid fps denominator")
		return num / den
	return float(text)

#============================================

def escape_filter_option(value: str) -> str:
	"""
	Escape a value for the option level of an ffmpeg filter argument.

	Escape table: backslash, single quote, colon.
	"""
	text = str(value)
	text = text.replace("\\", "\\\\")
	text = text.replace("'", "\\'")
	text = text.replace(":", "\\:")
	return text

#============================================

def escape_filtergraph(value: str) -> str:
	"""
	Escape a filter argument for the filtergraph level.

	Escape table: backslash, single quote, brackets, comma, semicolon.
	"""
	text = str(value)
	text = text.replace("\\", "\\\\")
	text = text.replace("'", "\\'")
	text = text.replace("[", "\\[")
	text = text.replace("]", "\\]")
	text = text.replace(",", "\\,")
	text = text.replace(";", "\\;")
	return text

#============================================

def escape_filter_value(value: str) -> str:
	"""
	Escape a value (path or text) placed unquoted inside a -vf filter chain.

	ffmpeg unescapes the filtergraph level first and the option level second,
	so the option escape is applied first.

	Args:
		value: Raw value.

	Returns:
		str: Escaped value.
	"""
	return escape_filtergraph(escape_filter_option(value))

#============================================

def escape_drawtext_text(text: str) -> str:
	"""
	Escape caption text for drawtext.

	drawtext is given expansion=none, so '%' needs no escaping and only the
	backslash, colon and quote table of escape_filter_option applies on top
	of the filtergraph level.
	"""
	return escape_filter_value(text)
