#!/usr/bin/env python3

"""
Run orchestration: inventory, probe, classify, delete, transform, export.
"""

# Standard Library
import dataclasses
import functools
import os
import shutil
import tempfile

# PIP3 modules
import yaml

# local repo modules
from clipnormlib.core import analyzer
from clipnormlib.core import fonts
from clipnormlib.core import naming
from clipnormlib.core import utils
from clipnormlib.core.context import RunContext
from clipnormlib.core.records import ClipRecord, RunResult, STATUS_PLANNED
from clipnormlib.core.reporter import RunReporter
from clipnormlib.media import ffmpeg_concat
from clipnormlib.media import ffmpeg_transform
from clipnormlib.media import ffprobe

#============================================

INPUT_SUFFIXES = (".mp4",)
REQUIRED_TOOLS = ("ffmpeg", "ffprobe")

#============================================

def list_input_files(target_dir: str) -> list:
	"""
	List input clips in a directory, sorted by name, non-recursive.
	"""
	found = []
	for name in sorted(os.listdir(target_dir)):
		filepath = os.path.join(target_dir, name)
		if not os.path.isfile(filepath):
			continue
		if os.path.splitext(name)[1].lower() not in INPUT_SUFFIXES:
			continue
		found.append(filepath)
	return found

#============================================

def build_clip_record(filepath: str, probe_result) -> ClipRecord:
	info = naming.classify_filename(filepath)
	return ClipRecord(
		path=filepath,
		display_name=os.path.basename(filepath),
		duration_seconds=probe_result.duration_seconds,
		frame_rate=probe_result.frame_rate,
		caption_text=info.caption_text,
		skip_stabilization=info.skip_stabilization,
	)

#============================================

def choose_decision_source(context: RunContext, reporter: RunReporter):
	if context.auto_accept:
		return analyzer.accept_all
	if context.auto_decline:
		return analyzer.decline_all
	return functools.partial(analyzer.prompt_frame_rate_decision,
		console=reporter.console, warn=reporter.warning)

#============================================

class ClipBatchRun():
	def __init__(self, context: RunContext, reporter: RunReporter = None,
		decide=None, probe_func=None):
		self.context = context
		self.settings = context.settings
		self.reporter = reporter if reporter is not None else RunReporter(context.log_path)
		self.decide = decide if decide is not None else choose_decision_source(context,
			self.reporter)
		self.probe_func = probe_func if probe_func is not None else ffprobe.probe
		self.temp_dir = None

	#============================
	def run(self) -> RunResult:
		"""
		Execute the whole run and return its terminal result.

		Only a missing tool or font, an empty input directory, or an empty
		process set end the run early; every other failure is logged and the
		run moves on.
		"""
		reporter = self.reporter
		try:
			self.check_environment()
		except utils.EnvironmentMissingError as exc:
			reporter.abort(str(exc))
			return reporter.finish([])

		input_files = list_input_files(self.context.target_dir)
		if len(input_files) == 0:
			reporter.abort(f"no .mp4 files found in {self.context.target_dir}")
			return reporter.finish([])

		reporter.step(f"Probing {len(input_files)} clip(s)")
		clip_records = self.probe_inventory(input_files)

		reporter.step("Classifying clips")
		classifier = analyzer.ClipAnalyzer(self.settings, self.decide)
		classification = classifier.classify(clip_records)
		self.report_classification(classification)

		if self.context.dry_run:
			self.print_plan(classification)
			result = reporter.finish([], excluded=classification.excluded)
			return dataclasses.replace(result, status=STATUS_PLANNED)

		deleted = self.delete_short_clips(classification.to_delete)

		if len(classification.to_process) == 0:
			reporter.abort("no clips left to process after classification")
			return reporter.finish([], deleted=deleted, excluded=classification.excluded)

		try:
			font_file = fonts.resolve_font(self.settings.font_candidates)
		except utils.EnvironmentMissingError as exc:
			reporter.abort(str(exc))
			return reporter.finish([], deleted=deleted, excluded=classification.excluded)
		reporter.info(f"caption font: {font_file}")

		self.temp_dir = tempfile.mkdtemp(prefix=f".clipnorm-tmp-{self.context.timestamp}-",
			dir=self.context.target_dir)
		try:
			artifacts = self.transform_clips(classification.to_process, font_file)
			exports = self.export_groups(artifacts)
		finally:
			self.cleanup_temp()
		result = reporter.finish(exports, deleted=deleted,
			excluded=classification.excluded, processed=len(artifacts))
		return result

	#============================
	def check_environment(self) -> None:
		for tool in REQUIRED_TOOLS:
			try:
				utils.check_dependency(tool)
			except utils.EnvironmentMissingError as exc:
				raise utils.EnvironmentMissingError(
					f"{exc}; install ffmpeg (which provides ffprobe) and make sure it is on PATH"
				) from exc
		if not os.path.isdir(self.context.target_dir):
			raise utils.EnvironmentMissingError(
				f"target directory not found: {self.context.target_dir}")
		if not ffmpeg_transform.has_vidstab_filters():
			self.reporter.warning("ffmpeg has no vid.stab filters; stabilized clips will fail")
		return

	#============================
	def probe_inventory(self, input_files: list) -> list:
		clip_records = []
		for filepath in input_files:
			name = os.path.basename(filepath)
			probe_result = self.probe_func(filepath)
			if not probe_result.duration_known:
				self.reporter.failure(f"{name}: could not read duration, skipping")
				continue
			if not probe_result.frame_rate_known:
				self.reporter.failure(f"{name}: could not read frame rate, skipping")
				continue
			clip_records.append(build_clip_record(filepath, probe_result))
		return clip_records

	#============================
	def report_classification(self, classification) -> None:
		reporter = self.reporter
		for record in classification.to_delete:
			reporter.info(f"  too short ({record.duration_seconds:.2f}s): {record.display_name}")
		if classification.frame_rate_accepted is True:
			reporter.info(f"  converting {len(classification.non_standard_frame_rate)} "
				"non-standard frame rate clip(s) to 59.94 fps")
		for record in classification.excluded:
			reporter.info(f"  excluded ({record.frame_rate:.2f} fps): {record.display_name}")
		reporter.info(f"  {len(classification.to_process)} clip(s) to process")

	#============================
	def print_plan(self, classification) -> None:
		plan = {
			'delete': [record.display_name for record in classification.to_delete],
			'exclude': [record.display_name for record in classification.excluded],
			'process': [],
		}
		for record in classification.to_process:
			window = ffmpeg_transform.compute_trim_window(record.duration_seconds,
				self.settings.max_segment)
			plan['process'].append({
				'file': record.display_name,
				'caption': record.caption_text,
				'stabilize': not record.skip_stabilization,
				'start': round(window.start_offset_seconds, 3),
				'length': round(window.output_length_seconds, 3),
			})
		print(yaml.safe_dump(plan, sort_keys=False))

	#============================
	def delete_short_clips(self, to_delete: tuple) -> list:
		deleted = []
		for record in to_delete:
			try:
				os.remove(record.path)
			except OSError as exc:
				self.reporter.failure(f"{record.display_name}: could not delete: {exc}")
				continue
			deleted.append(record.path)
		if len(deleted) > 0:
			self.reporter.info(f"deleted {len(deleted)} short clip(s)")
		return deleted

	#============================
	def transform_clips(self, to_process: tuple, font_file: str) -> list:
		transformer = ffmpeg_transform.ClipTransformer(self.settings, self.temp_dir, font_file)
		artifacts = []
		total = len(to_process)
		for index, record in enumerate(to_process, start=1):
			window = ffmpeg_transform.compute_trim_window(record.duration_seconds,
				self.settings.max_segment)
			mode = "caption only" if record.skip_stabilization else "stabilize + caption"
			self.reporter.step(f"[{index}/{total}] {record.display_name} ({mode})")
			outcome = transformer.transform(record, window, record.caption_text,
				record.skip_stabilization, index=index)
			if not outcome.ok:
				self.reporter.failure(f"{record.display_name}: {outcome.reason}",
					list(outcome.details), kind='clip')
				continue
			self.reporter.success(record.display_name)
			artifacts.append(outcome.output_path)
		return artifacts

	#============================
	def export_groups(self, artifacts: list) -> list:
		groups = ffmpeg_concat.group_artifacts(artifacts, self.settings.group_size)
		if len(groups) == 0:
			return []
		os.makedirs(self.context.export_dir, exist_ok=True)
		exports = []
		for group in groups:
			name = ffmpeg_concat.export_filename(self.settings.export_prefix,
				group.index, len(groups))
			output_file = os.path.join(self.context.export_dir, name)
			self.reporter.step(f"Export {group.index}/{len(groups)}: {name} "
				f"({len(group.artifacts)} clip(s))")
			try:
				ffmpeg_concat.concat_group(group, output_file, self.temp_dir,
					tail_lines=self.settings.stderr_tail_lines)
			except utils.CommandError as exc:
				self.reporter.failure(f"{name}: {exc}", list(exc.tail), kind='group')
				continue
			except (RuntimeError, OSError) as exc:
				self.reporter.failure(f"{name}: {exc}", kind='group')
				continue
			self.reporter.success(name)
			exports.append(output_file)
		if len(exports) == 0 and len(os.listdir(self.context.export_dir)) == 0:
			os.rmdir(self.context.export_dir)
		return exports

	#============================
	def cleanup_temp(self) -> None:
		if self.temp_dir is None:
			return
		if self.context.keep_temp:
			self.reporter.info(f"kept temp files: {self.temp_dir}")
			return
		try:
			shutil.rmtree(self.temp_dir)
		except OSError as exc:
			self.reporter.failure(f"could not remove temp dir {self.temp_dir}: {exc}")
		self.temp_dir = None
