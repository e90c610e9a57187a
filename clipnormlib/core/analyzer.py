#!/usr/bin/env python3

"""
Duration and frame-rate policy for probed clips.
"""

# Standard Library
from decimal import Decimal
from typing import Callable

# PIP3 modules
from rich.console import Console
from rich.prompt import Confirm
from rich.text import Text

# local repo modules
from clipnormlib.core.records import ClassificationResult, ClipRecord
from clipnormlib.core.reporter import NORD_COLORS
from clipnormlib.core.settings import Settings

#============================================

def accept_all(flagged: list) -> bool:
	return True

#============================================

def decline_all(flagged: list) -> bool:
	return False

#============================================

def prompt_frame_rate_decision(flagged: list, console: Console = None,
	warn: Callable[[str], None] = None) -> bool:
	"""
	Ask once whether all non-standard frame rate clips should be converted.

	End of input on stdin counts as a decline.

	Args:
		flagged: Flagged ClipRecord list.
		console: Console used for the list and the question.
		warn: Called with a message when stdin has no answer.

	Returns:
		bool: True to convert and include the flagged clips.
	"""
	if console is None:
		console = Console(highlight=False)
	console.print(Text(f"{len(flagged)} clip(s) are not 59.94 fps:",
		style=f"bold {NORD_COLORS['warn']}"))
	for record in flagged:
		line = Text(f"  {record.display_name}: ", style=NORD_COLORS['foreground'])
		line.append(f"{record.frame_rate:.2f} fps", style=NORD_COLORS['numbers'])
		console.print(line)
	try:
		return Confirm.ask("Convert them to 59.94 fps and include them?",
			default=False, console=console)
	except EOFError:
		message = f"no answer on stdin; excluding {len(flagged)} non-standard frame rate clip(s)"
		if warn is not None:
			warn(message)
		else:
			console.print(Text(f"warning: {message}", style=NORD_COLORS['warn']))
		return False

#============================================

def is_short(record: ClipRecord, settings: Settings) -> bool:
	return record.duration_seconds < settings.min_duration

#============================================

def is_non_standard_rate(record: ClipRecord, settings: Settings) -> bool:
	if not record.frame_rate_known:
		return False
	diff = abs(Decimal(str(record.frame_rate)) - Decimal(str(settings.reference_fps)))
	return diff > Decimal(str(settings.fps_tolerance))

#============================================

class ClipAnalyzer():
	def __init__(self, settings: Settings,
		decide: Callable[[list], bool] = prompt_frame_rate_decision):
		self.settings = settings
		self.decide = decide

	#============================
	def classify(self, clip_records: list) -> ClassificationResult:
		"""
		Partition clips into delete, process and excluded sets.

		Clips shorter than min_duration are always deleted. Clips whose frame
		rate is off the reference are flagged, and a single decision for all
		of them moves them into the process set or the excluded set.

		Args:
			clip_records: Probed ClipRecord list in inventory order.

		Returns:
			ClassificationResult: The resolved partition.
		"""
		to_delete = []
		standard = []
		flagged = []
		for record in clip_records:
			if is_short(record, self.settings):
				to_delete.append(record)
			elif is_non_standard_rate(record, self.settings):
				flagged.append(record)
			else:
				standard.append(record)
		accepted = None
		excluded = []
		to_process = list(standard)
		if len(flagged) > 0:
			accepted = bool(self.decide(list(flagged)))
			if accepted:
				to_process = [
					record for record in clip_records
					if record in standard or record in flagged
				]
			else:
				excluded = list(flagged)
		return ClassificationResult(
			to_delete=tuple(to_delete),
			non_standard_frame_rate=tuple(flagged),
			to_process=tuple(to_process),
			excluded=tuple(excluded),
			frame_rate_accepted=accepted,
		)
