#!/usr/bin/env python3

"""
Pipeline tests with ffmpeg replaced by a fake that writes the expected files.
"""

# Standard Library
import io
import os
import subprocess
import sys

# PIP3 modules
import pytest
from rich.console import Console

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from clipnormlib.core import fonts
from clipnormlib.core import records
from clipnormlib.core import utils
from clipnormlib.core.context import make_run_context
from clipnormlib.core.pipeline import ClipBatchRun, list_input_files
from clipnormlib.core.records import ProbeResult
from clipnormlib.core.reporter import RunReporter
from clipnormlib.core.settings import Settings

#============================================

class _FakeFfmpeg:
	"""
	Stand-in for utils.run_process covering detect, render and concat calls.
	"""
	def __init__(self, fail_inputs: tuple = (), fail_exports: tuple = ()):
		self.fail_inputs = fail_inputs
		self.fail_exports = fail_exports
		self.rendered = {}
		self.manifests = {}

	def __call__(self, cmd: list, tail_lines: int = 8) -> subprocess.CompletedProcess:
		if "-filters" in cmd:
			return subprocess.CompletedProcess(cmd, 0,
				stdout="vidstabdetect vidstabtransform", stderr="")
		input_file = cmd[cmd.index("-i") + 1]
		if "concat" in cmd:
			output_file = cmd[-1]
			with open(input_file, "r") as handle:
				lines = handle.read().splitlines()
			self.manifests[os.path.basename(output_file)] = [
				self.rendered[line[len("file '"):-1]] for line in lines
			]
			if os.path.basename(output_file) in self.fail_exports:
				raise utils.CommandError(cmd, 1, "Invalid argument", tail_lines)
			with open(output_file, "wb") as handle:
				handle.write(b"joined")
			return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
		if os.path.basename(input_file) in self.fail_inputs:
			raise utils.CommandError(cmd, 1, "moov atom not found", tail_lines)
		vf = cmd[cmd.index("-vf") + 1]
		if vf.startswith("vidstabdetect="):
			with open(vf.split("result=", 1)[1], "w") as handle:
				handle.write("VID.STAB 1\n")
		else:
			with open(cmd[-1], "wb") as handle:
				handle.write(b"clip")
			self.rendered[cmd[-1]] = os.path.basename(input_file)
		return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

#============================================

def _make_clips(target_dir, names: list) -> None:
	for name in names:
		(target_dir / name).write_bytes(b"")

#============================================

def _prober(table: dict):
	def _probe(filepath: str) -> ProbeResult:
		duration, fps = table[os.path.basename(filepath)]
		return ProbeResult(duration_seconds=duration, frame_rate=fps)
	return _probe

#============================================

@pytest.fixture
def fake_env(monkeypatch):
	monkeypatch.setattr(utils, "check_dependency", lambda name: None)
	monkeypatch.setattr(fonts, "resolve_font", lambda extra=(): "/fonts/Sans.ttf")
	monkeypatch.setattr(fonts, "fit_font_size", lambda font_file, size, text, width: size)
	fake = _FakeFfmpeg()
	monkeypatch.setattr(utils, "run_process", fake)
	return fake

#============================================

def _run(target_dir, table: dict, decide=None, auto_accept: bool = True,
	dry_run: bool = False):
	context = make_run_context(str(target_dir), Settings(), auto_accept=auto_accept,
		dry_run=dry_run, timestamp="20260101-120000")
	reporter = RunReporter(context.log_path, console=Console(file=io.StringIO()))
	batch = ClipBatchRun(context, reporter=reporter, decide=decide,
		probe_func=_prober(table))
	return batch.run(), context

#============================================

def test_full_run_groups_in_order(tmp_path, fake_env) -> None:
	names = ["A_1.mp4", "B_1NoStable.mp4", "C (2).mp4", "D_1.mp4", "E_1.mp4"]
	_make_clips(tmp_path, names)
	table = {name: (12.0, 59.94) for name in names}
	result, context = _run(tmp_path, table)
	assert result.status == records.STATUS_COMPLETE
	assert [os.path.basename(path) for path in result.exports] == [
		"compilation_01.mp4", "compilation_02.mp4",
	]
	assert fake_env.manifests == {
		"compilation_01.mp4": ["A_1.mp4", "B_1NoStable.mp4", "C (2).mp4"],
		"compilation_02.mp4": ["D_1.mp4", "E_1.mp4"],
	}
	assert result.processed == 5
	leftovers = [name for name in os.listdir(tmp_path) if name.startswith(".clipnorm-tmp")]
	assert leftovers == []
	assert sorted(os.listdir(context.export_dir)) == ["compilation_01.mp4", "compilation_02.mp4"]
	assert not os.path.exists(context.log_path)

#============================================

def test_failed_clip_is_left_out(tmp_path, fake_env) -> None:
	names = ["A_1.mp4", "B_1.mp4", "C_1.mp4", "D_1.mp4"]
	_make_clips(tmp_path, names)
	fake_env.fail_inputs = ("B_1.mp4",)
	table = {name: (8.0, 59.94) for name in names}
	result, context = _run(tmp_path, table)
	assert result.status == records.STATUS_DEGRADED
	assert result.failed_clips == 1
	assert fake_env.manifests == {"compilation_01.mp4": ["A_1.mp4", "C_1.mp4", "D_1.mp4"]}
	with open(context.log_path, "r", encoding="utf-8") as handle:
		log_text = handle.read()
	assert "B_1.mp4: ffmpeg failed (rc=1)" in log_text
	assert "moov atom not found" in log_text

#============================================

def test_failed_group_does_not_stop_others(tmp_path, fake_env) -> None:
	names = [f"Clip-{i}_1.mp4" for i in range(1, 8)]
	_make_clips(tmp_path, names)
	fake_env.fail_exports = ("compilation_02.mp4",)
	table = {name: (9.0, 59.94) for name in names}
	result, context = _run(tmp_path, table)
	assert result.status == records.STATUS_DEGRADED
	assert result.failed_groups == 1
	assert [os.path.basename(path) for path in result.exports] == [
		"compilation_01.mp4", "compilation_03.mp4",
	]
	assert sorted(os.listdir(context.export_dir)) == ["compilation_01.mp4", "compilation_03.mp4"]

#============================================

def test_short_clips_deleted_and_declined_clips_kept(tmp_path, fake_env) -> None:
	names = ["Short_1.mp4", "Slow_1.mp4", "Good_1.mp4"]
	_make_clips(tmp_path, names)
	table = {
		"Short_1.mp4": (3.0, 59.94),
		"Slow_1.mp4": (8.0, 29.97),
		"Good_1.mp4": (8.0, 59.94),
	}
	result, context = _run(tmp_path, table, decide=lambda flagged: False,
		auto_accept=False)
	assert result.status == records.STATUS_COMPLETE
	assert not os.path.exists(tmp_path / "Short_1.mp4")
	assert os.path.exists(tmp_path / "Slow_1.mp4")
	assert [record.display_name for record in result.excluded] == ["Slow_1.mp4"]
	assert fake_env.manifests == {"compilation_01.mp4": ["Good_1.mp4"]}

#============================================

def test_no_input_files_aborts(tmp_path, fake_env) -> None:
	(tmp_path / "notes.txt").write_text("not a clip")
	result, context = _run(tmp_path, {})
	assert result.status == records.STATUS_ABORTED
	assert "no .mp4 files" in result.abort_reason
	assert not os.path.exists(context.export_dir)

#============================================

def test_nothing_to_process_aborts(tmp_path, fake_env) -> None:
	names = ["Tiny_1.mp4", "Slow_1.mp4"]
	_make_clips(tmp_path, names)
	table = {"Tiny_1.mp4": (1.0, 59.94), "Slow_1.mp4": (8.0, 25.0)}
	result, context = _run(tmp_path, table, decide=lambda flagged: False,
		auto_accept=False)
	assert result.status == records.STATUS_ABORTED
	assert "no clips left" in result.abort_reason
	assert not os.path.exists(tmp_path / "Tiny_1.mp4")
	assert not os.path.exists(context.export_dir)

#============================================

def test_unreadable_clip_is_skipped(tmp_path, fake_env) -> None:
	names = ["Broken_1.mp4", "Good_1.mp4"]
	_make_clips(tmp_path, names)
	table = {"Broken_1.mp4": (-1.0, -1.0), "Good_1.mp4": (6.0, 59.94)}
	result, context = _run(tmp_path, table)
	assert result.status == records.STATUS_DEGRADED
	assert fake_env.manifests == {"compilation_01.mp4": ["Good_1.mp4"]}
	assert os.path.exists(tmp_path / "Broken_1.mp4")

#============================================

def test_missing_tool_aborts(tmp_path, monkeypatch) -> None:
	def _missing(name: str) -> None:
		raise utils.EnvironmentMissingError(f"missing dependency: {name}")
	monkeypatch.setattr(utils, "check_dependency", _missing)
	_make_clips(tmp_path, ["A_1.mp4"])
	result, context = _run(tmp_path, {"A_1.mp4": (8.0, 59.94)})
	assert result.status == records.STATUS_ABORTED
	assert "install ffmpeg" in result.abort_reason

#============================================

def test_missing_font_aborts(tmp_path, fake_env, monkeypatch) -> None:
	def _no_font(extra=()) -> str:
		raise utils.EnvironmentMissingError("no caption font found")
	monkeypatch.setattr(fonts, "resolve_font", _no_font)
	_make_clips(tmp_path, ["A_1.mp4"])
	result, context = _run(tmp_path, {"A_1.mp4": (8.0, 59.94)})
	assert result.status == records.STATUS_ABORTED
	assert result.abort_reason == "no caption font found"

#============================================

def test_dry_run_changes_nothing(tmp_path, fake_env, capsys) -> None:
	names = ["Short_1.mp4", "Good_1.mp4"]
	_make_clips(tmp_path, names)
	table = {"Short_1.mp4": (2.0, 59.94), "Good_1.mp4": (14.0, 59.94)}
	result, context = _run(tmp_path, table, dry_run=True)
	assert result.status == records.STATUS_PLANNED
	assert os.path.exists(tmp_path / "Short_1.mp4")
	assert not os.path.exists(context.export_dir)
	output = capsys.readouterr().out
	assert "caption: Good" in output
	assert "start: 2.0" in output

#============================================

def test_list_input_files_filters_and_sorts(tmp_path) -> None:
	_make_clips(tmp_path, ["b.MP4", "a.mp4", "c.mov", "d.txt"])
	(tmp_path / "sub.mp4").mkdir()
	found = [os.path.basename(path) for path in list_input_files(str(tmp_path))]
	assert found == ["a.mp4", "b.MP4"]

#============================================

def test_unreadable_frame_rate_is_skipped(tmp_path, fake_env) -> None:
	names = ["Blur_1.mp4", "Good_1.mp4"]
	_make_clips(tmp_path, names)
	table = {"Blur_1.mp4": (8.0, -1.0), "Good_1.mp4": (8.0, 59.94)}
	result, context = _run(tmp_path, table)
	assert result.status == records.STATUS_DEGRADED
	assert result.processed == 1
	assert fake_env.manifests == {"compilation_01.mp4": ["Good_1.mp4"]}
	assert os.path.exists(tmp_path / "Blur_1.mp4")
	with open(context.log_path, "r", encoding="utf-8") as handle:
		assert "Blur_1.mp4: could not read frame rate, skipping" in handle.read()

#============================================

def test_only_unreadable_frame_rate_aborts(tmp_path, fake_env) -> None:
	_make_clips(tmp_path, ["Blur_1.mp4"])
	result, context = _run(tmp_path, {"Blur_1.mp4": (8.0, -1.0)})
	assert result.status == records.STATUS_ABORTED
	assert result.processed == 0
	assert not os.path.exists(context.export_dir)

#============================================

def test_closed_stdin_declines_and_continues(tmp_path, fake_env, monkeypatch) -> None:
	monkeypatch.setattr(sys, "stdin", io.StringIO(""))
	names = ["Pan_1.mp4", "Good_1.mp4"]
	_make_clips(tmp_path, names)
	table = {"Pan_1.mp4": (8.0, 29.97), "Good_1.mp4": (8.0, 59.94)}
	result, context = _run(tmp_path, table, auto_accept=False)
	assert result.status == records.STATUS_COMPLETE
	assert [record.display_name for record in result.excluded] == ["Pan_1.mp4"]
	assert fake_env.manifests == {"compilation_01.mp4": ["Good_1.mp4"]}
	assert os.path.exists(tmp_path / "Pan_1.mp4")
	with open(context.log_path, "r", encoding="utf-8") as handle:
		assert "no answer on stdin" in handle.read()
