#!/usr/bin/env python3

# Standard Library
import argparse
import os
import sys

# local repo modules
from clipnormlib.core import records
from clipnormlib.core import settings as settings_module
from clipnormlib.core import utils
from clipnormlib.core.context import make_run_context
from clipnormlib.core.pipeline import ClipBatchRun

#============================================

EXIT_CODES = {
	records.STATUS_COMPLETE: 0,
	records.STATUS_PLANNED: 0,
	records.STATUS_DEGRADED: 2,
	records.STATUS_FAILED: 1,
	records.STATUS_ABORTED: 1,
}

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Normalize a folder of short clips into captioned 10 second "
		"segments and join them into compilation exports")
	parser.add_argument('directory', nargs='?', default='.',
		help='folder holding the .mp4 clips (default: current directory)')
	parser.add_argument('-y', '--yes', dest='auto_accept', action='store_true',
		help='convert non-59.94 fps clips without asking')
	parser.add_argument('-N', '--no', dest='auto_decline', action='store_true',
		help='skip non-59.94 fps clips without asking')
	parser.add_argument('-c', '--config', dest='config_file',
		help='yaml settings file')
	parser.add_argument('--write-default-config', dest='write_default_config',
		action='store_true', help='write the default settings yaml and exit')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='probe and classify only; print the plan without changing files')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp', action='store_true',
		help='keep temporary render files')
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='print every external command')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args(argv)
	return args

#============================================

def write_default_config(args) -> int:
	config_path = args.config_file
	if config_path is None:
		config_path = os.path.join(args.directory, settings_module.DEFAULT_CONFIG_NAME)
	if os.path.exists(config_path):
		raise RuntimeError(f"config already exists: {config_path}")
	settings_module.write_config_file(config_path, settings_module.default_config())
	print(f"Wrote default config: {config_path}")
	return 0

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_verbose(args.verbose)
	if args.write_default_config:
		return write_default_config(args)
	run_settings = settings_module.load_settings(args.config_file)
	context = make_run_context(args.directory, run_settings,
		auto_accept=args.auto_accept, auto_decline=args.auto_decline,
		keep_temp=args.keep_temp, dry_run=args.dry_run)
	batch = ClipBatchRun(context)
	result = batch.run()
	batch.reporter.print_summary(result)
	return EXIT_CODES.get(result.status, 1)


if __name__ == '__main__':
	sys.exit(main())
