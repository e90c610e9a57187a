#!/usr/bin/env python3

"""
Console status and the run-scoped failure log.
"""

# Standard Library
import os
import time

# PIP3 modules
from rich.console import Console
from rich.table import Table
from rich.text import Text

# local repo modules
from clipnormlib.core import records

#============================================

NORD_COLORS = {
	'foreground': "#D8DEE9",
	'dim': "#4C566A",
	'header': "#88C0D0",
	'ok': "#A3BE8C",
	'warn': "#EBCB8B",
	'numbers': "#B48EAD",
	'paths': "#A3BE8C",
	'error': "#BF616A",
}

#============================================

class RunReporter():
	def __init__(self, log_path: str, console: Console = None):
		self.log_path = log_path
		self.console = console if console is not None else Console(highlight=False)
		self.failures = []
		self.warnings = []
		self.abort_reason = None
		self.failed_clips = 0
		self.failed_groups = 0

	#============================
	def _write_log(self, message: str, details: list = None) -> str:
		timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
		lines = [f"[{timestamp}] {message}"]
		for detail in details or []:
			lines.append(f"    {detail}")
		log_dir = os.path.dirname(self.log_path)
		if log_dir and not os.path.isdir(log_dir):
			os.makedirs(log_dir)
		with open(self.log_path, "a", encoding="utf-8") as handle:
			handle.write("\n".join(lines) + "\n")
		return timestamp

	#============================
	def step(self, message: str) -> None:
		self.console.print(Text(message, style=f"bold {NORD_COLORS['header']}"))

	#============================
	def info(self, message: str) -> None:
		self.console.print(Text(message, style=NORD_COLORS['foreground']))

	#============================
	def success(self, message: str) -> None:
		self.console.print(Text(f"ok: {message}", style=NORD_COLORS['ok']))

	#============================
	def warning(self, message: str) -> None:
		self._write_log(f"warning: {message}")
		self.warnings.append(message)
		self.console.print(Text(f"warning: {message}", style=NORD_COLORS['warn']))

	#============================
	def failure(self, message: str, details: list = None, kind: str = None) -> None:
		"""
		Record a non-fatal failure in the log file and on the console.

		Args:
			message: One line description.
			details: Extra lines, typically the stderr tail of a command.
			kind: 'clip' or 'group' to count toward the summary.
		"""
		timestamp = self._write_log(message, details)
		self.failures.append((timestamp, message))
		if kind == 'clip':
			self.failed_clips += 1
		elif kind == 'group':
			self.failed_groups += 1
		self.console.print(Text(f"error: {message}", style=f"bold {NORD_COLORS['error']}"))
		for detail in details or []:
			self.console.print(Text(f"  {detail}", style=NORD_COLORS['dim']))

	#============================
	def abort(self, reason: str) -> None:
		self.abort_reason = reason
		self._write_log(f"abort: {reason}")
		self.console.print(Text(f"abort: {reason}", style=f"bold {NORD_COLORS['error']}"))

	#============================
	def terminal_status(self, exports: list) -> str:
		if self.abort_reason is not None:
			return records.STATUS_ABORTED
		if len(exports) == 0:
			return records.STATUS_FAILED
		if len(self.failures) > 0:
			return records.STATUS_DEGRADED
		return records.STATUS_COMPLETE

	#============================
	def finish(self, exports: list, deleted: list = (), excluded: list = (),
		processed: int = 0) -> records.RunResult:
		return records.RunResult(
			status=self.terminal_status(exports),
			exports=tuple(exports),
			failures=tuple(self.failures),
			abort_reason=self.abort_reason,
			deleted=tuple(deleted),
			excluded=tuple(excluded),
			processed=processed,
			failed_clips=self.failed_clips,
			failed_groups=self.failed_groups,
		)

	#============================
	def print_summary(self, result: records.RunResult) -> None:
		table = Table(title="clipnorm summary", show_header=False,
			title_style=f"bold {NORD_COLORS['header']}")
		table.add_column("field", style=NORD_COLORS['dim'])
		table.add_column("value", style=NORD_COLORS['numbers'])
		table.add_row("status", result.status)
		if result.abort_reason is not None:
			table.add_row("reason", result.abort_reason)
		table.add_row("deleted (too short)", str(len(result.deleted)))
		table.add_row("excluded", str(len(result.excluded)))
		table.add_row("clips processed", str(result.processed))
		table.add_row("clips failed", str(result.failed_clips))
		table.add_row("exports failed", str(result.failed_groups))
		table.add_row("exports written", str(len(result.exports)))
		for export_file in result.exports:
			table.add_row("", Text(export_file, style=NORD_COLORS['paths']))
		if os.path.isfile(self.log_path):
			table.add_row("log", Text(self.log_path, style=NORD_COLORS['paths']))
		self.console.print(table)
