#!/usr/bin/env python3

# Standard Library
import dataclasses
import os

# local repo modules
from clipnormlib.core import utils
from clipnormlib.core.settings import Settings

#============================================

@dataclasses.dataclass(frozen=True)
class RunContext:
	"""
	Everything a run needs to know about its environment, fixed at start.
	"""
	target_dir: str
	timestamp: str
	export_dir: str
	log_path: str
	settings: Settings
	auto_accept: bool = False
	auto_decline: bool = False
	keep_temp: bool = False
	dry_run: bool = False

#============================================

def make_run_context(target_dir: str, settings: Settings, auto_accept: bool = False,
	auto_decline: bool = False, keep_temp: bool = False, dry_run: bool = False,
	timestamp: str = None) -> RunContext:
	if auto_accept and auto_decline:
		raise RuntimeError("use --yes or --no, not both")
	target_dir = os.path.abspath(target_dir)
	if timestamp is None:
		timestamp = utils.make_timestamp()
	return RunContext(
		target_dir=target_dir,
		timestamp=timestamp,
		export_dir=os.path.join(target_dir, f"exports-{timestamp}"),
		log_path=os.path.join(target_dir, f"clipnorm-{timestamp}.log"),
		settings=settings,
		auto_accept=auto_accept,
		auto_decline=auto_decline,
		keep_temp=keep_temp,
		dry_run=dry_run,
	)
