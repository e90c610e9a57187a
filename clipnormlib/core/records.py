#!/usr/bin/env python3

"""
Immutable records passed between the pipeline stages.
"""

# Standard Library
import dataclasses

#============================================

UNREADABLE = -1.0

STATUS_COMPLETE = "complete"
STATUS_DEGRADED = "degraded"
STATUS_FAILED = "failed"
STATUS_ABORTED = "aborted"
STATUS_PLANNED = "planned"

#============================================

@dataclasses.dataclass(frozen=True)
class ProbeResult:
	duration_seconds: float = UNREADABLE
	frame_rate: float = UNREADABLE

	@property
	def duration_known(self) -> bool:
		return self.duration_seconds != UNREADABLE

	@property
	def frame_rate_known(self) -> bool:
		return self.frame_rate != UNREADABLE

#============================================

@dataclasses.dataclass(frozen=True)
class FilenameInfo:
	caption_text: str
	skip_stabilization: bool

#============================================

@dataclasses.dataclass(frozen=True)
class ClipRecord:
	"""
	One inventoried input file after probing and filename classification.
	"""
	path: str
	display_name: str
	duration_seconds: float
	frame_rate: float
	caption_text: str
	skip_stabilization: bool

	@property
	def frame_rate_known(self) -> bool:
		return self.frame_rate != UNREADABLE

#============================================

@dataclasses.dataclass(frozen=True)
class ClassificationResult:
	"""
	Partition of the valid clips.

	to_delete, excluded and to_process are disjoint and together hold every
	classified record. non_standard_frame_rate is the flagged set before the
	frame-rate decision was applied.
	"""
	to_delete: tuple = ()
	non_standard_frame_rate: tuple = ()
	to_process: tuple = ()
	excluded: tuple = ()
	frame_rate_accepted: bool | None = None

#============================================

@dataclasses.dataclass(frozen=True)
class TrimWindow:
	start_offset_seconds: float
	output_length_seconds: float

#============================================

@dataclasses.dataclass(frozen=True)
class TransformOutcome:
	record: ClipRecord
	output_path: str | None = None
	reason: str | None = None
	details: tuple = ()

	@property
	def ok(self) -> bool:
		return self.output_path is not None

#============================================

@dataclasses.dataclass(frozen=True)
class ExportGroup:
	index: int
	artifacts: tuple

#============================================

@dataclasses.dataclass(frozen=True)
class RunResult:
	status: str
	exports: tuple = ()
	failures: tuple = ()
	abort_reason: str | None = None
	deleted: tuple = ()
	excluded: tuple = ()
	processed: int = 0
	failed_clips: int = 0
	failed_groups: int = 0
