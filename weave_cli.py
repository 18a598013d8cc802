#!/usr/bin/env python3

import argparse
import yaml
from weavelib.core import utils
from weavelib.core.project import WeaveProject

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Timeline to media composer")
	parser.add_argument('-y', '--yaml', dest='yamlfile', required=True,
		help='timeline yaml file describing the composition')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override the muxed output file from yaml')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='validate only, do not render')
	parser.add_argument('-c', '--cache-dir', dest='cache_dir',
		help='directory for engine scratch files')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep engine scratch files', action='store_true')
	parser.add_argument('-K', '--no-keep-temp', dest='keep_temp',
		help='remove engine scratch files', action='store_false')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the normalized covering and audio clips')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='suppress command echo and progress output')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args()
	return args

#============================================

def main():
	args = parse_args()
	utils.set_quiet_mode(args.quiet)
	project = WeaveProject(args.yamlfile, output_override=args.output_file,
		dry_run=args.dry_run, keep_temp=args.keep_temp, cache_dir=args.cache_dir)
	if args.dump_plan:
		project.validate()
		print(yaml.safe_dump(project.plan(), sort_keys=False))
		return
	project.run()


if __name__ == '__main__':
	main()
