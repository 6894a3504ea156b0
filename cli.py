# cli.py

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from dataclasses import replace

from config import SystemConfig
from core.exceptions import VideoDedupError
from core.pipeline import DuplicatePipeline, load_duplicates, save_duplicates
from core.video_processor import VideoProcessor
from components.duplicate_manager import DuplicateVideoManager
from security.input_validation import SecurityValidator
from utils.logging_config import setup_logging
from utils.report_generator import DuplicateReportGenerator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SKIPPED = 2

def _load_config(args) -> SystemConfig:
    """Load config.yaml and apply command line overrides"""
    config = SystemConfig.load(args.config)

    detection = config.duplicate_detection
    if getattr(args, 'hash_threshold', None) is not None:
        detection = replace(detection, hash_threshold=args.hash_threshold)
    if getattr(args, 'match_ratio', None) is not None:
        detection = replace(detection, match_ratio=args.match_ratio)
    if getattr(args, 'transitive', False):
        detection = replace(detection, transitive=True)

    overrides = {'duplicate_detection': detection}
    if getattr(args, 'max_concurrency', None) is not None:
        overrides['max_concurrency'] = args.max_concurrency
    if getattr(args, 'output', None):
        overrides['duplicates_file'] = args.output
    if getattr(args, 'method', None):
        overrides['keyframes'] = replace(config.keyframes, method=args.method)

    return replace(config, **overrides)

def _keyframes_dir(args, config: SystemConfig) -> str:
    """-k, then config.yaml, then <directory>/keyframes"""
    return (getattr(args, 'keyframes_dir', None) or config.keyframes_dir
            or str(Path(args.directory) / 'keyframes'))

def _duplicates_dir(args, config: SystemConfig):
    """-d, then config.yaml; None lets the manager use <directory>/duplicates"""
    return getattr(args, 'duplicates_dir', None) or config.duplicates_dir

def keyframes_command(args, config: SystemConfig) -> int:
    """Sample keyframes of every video in a directory"""
    if not SecurityValidator.validate_directory(args.directory):
        print(f"Error: cannot read directory {args.directory}")
        return EXIT_ERROR

    keyframes_dir = _keyframes_dir(args, config)
    print(f"Extracting keyframes from: {args.directory}")

    processor = VideoProcessor(config.keyframes)
    extracted, failures = processor.extract_keyframes_for_directory(
        args.directory, keyframes_dir
    )

    print(f"Extracted keyframes for {len(extracted)} videos into {keyframes_dir}")
    for failure in failures:
        print(f"  Failed: {failure}")

    return EXIT_SKIPPED if failures else EXIT_OK

def duplicate_command(args, config: SystemConfig) -> int:
    """Detect duplicate videos from their keyframes"""
    if not SecurityValidator.validate_directory(args.directory):
        print(f"Error: cannot read directory {args.directory}")
        return EXIT_ERROR
    if not SecurityValidator.validate_output_file(config.duplicates_file):
        print(f"Error: cannot write {config.duplicates_file}")
        return EXIT_ERROR

    print(f"Scanning for duplicates in: {args.directory}")

    pipeline = DuplicatePipeline(
        detection=config.duplicate_detection,
        max_concurrency=config.max_concurrency
    )
    result = pipeline.run(args.directory)
    save_duplicates(result.groups, config.duplicates_file)

    # Report results
    groups = {root: dups for root, dups in result.groups.items() if dups}
    print(f"\nFound {len(groups)} duplicate groups with "
          f"{result.duplicate_count} total duplicates")
    print(f"Results saved to: {config.duplicates_file}")

    if args.report:
        report_gen = DuplicateReportGenerator(args.directory)
        report_gen.generate_report(result.groups, args.report, result.skipped)
        print(f"Report saved to: {args.report}")
    else:
        for i, (rep, dups) in enumerate(groups.items(), 1):
            print(f"\nGroup {i}:")
            print(f"  Representative: {rep}")
            print(f"  Duplicates ({len(dups)}):")
            for dup in dups:
                print(f"    - {dup}")

    if result.skipped:
        print(f"\n{len(result.skipped)} videos were NOT checked for duplicates:")
        for skipped in result.skipped:
            print(f"  - {skipped.asset_id}: {skipped.reason}")
        return EXIT_SKIPPED

    return EXIT_OK

def move_command(args, config: SystemConfig) -> int:
    """Move duplicate videos listed in the duplicate map"""
    duplicates = load_duplicates(config.duplicates_file)
    manager = DuplicateVideoManager(args.directory, _duplicates_dir(args, config))

    results = manager.move_duplicates(duplicates, dry_run=args.dry_run)

    verb = "Would move" if args.dry_run else "Moved"
    print(f"{verb} {len(results['moved'])} duplicates to {manager.duplicates_dir}")
    if results['missing']:
        print(f"{len(results['missing'])} duplicates were not found:")
        for asset_id in results['missing']:
            print(f"  - {asset_id}")
        return EXIT_SKIPPED

    return EXIT_OK

def concat_command(args, config: SystemConfig) -> int:
    """Concatenate the videos left after moving duplicates"""
    manager = DuplicateVideoManager(args.directory, _duplicates_dir(args, config))
    output = manager.merge_remaining()
    print(f"Leftover videos concatenated into: {output}")
    return EXIT_OK

def run_command(args, config: SystemConfig) -> int:
    """Keyframes, duplicate detection, move and concat in one go"""
    args.keyframes_dir = _keyframes_dir(args, config)
    status = keyframes_command(args, config)
    if status == EXIT_ERROR:
        return status

    video_dir = args.directory
    args.directory = args.keyframes_dir
    args.report = None
    status = max(status, duplicate_command(args, config))
    args.directory = video_dir
    if status == EXIT_ERROR:
        return status

    args.dry_run = False
    status = max(status, move_command(args, config))
    concat_command(args, config)

    return status

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Video Deduplicator - find near-identical videos by keyframe fingerprints"
    )
    parser.add_argument('-c', '--config', default='config.yaml',
                        help='YAML configuration file')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Keyframe extraction command
    keyframes_parser = subparsers.add_parser('keyframes',
                                             help='Extract keyframes from videos')
    keyframes_parser.add_argument('directory', help='Directory containing videos')
    keyframes_parser.add_argument('-k', '--keyframes-dir',
                                  help='Output directory (default: keyframes_dir in config, else <directory>/keyframes)')
    keyframes_parser.add_argument('--method', choices=['iframe', 'uniform', 'scene'],
                                  help='Keyframe sampling method')
    keyframes_parser.set_defaults(func=keyframes_command)

    # Duplicate detection command
    duplicate_parser = subparsers.add_parser('duplicates',
                                            help='Detect duplicate videos from keyframes')
    duplicate_parser.add_argument('directory', help='Keyframes directory, one sub-directory per video')
    _add_detection_arguments(duplicate_parser)
    duplicate_parser.add_argument('-r', '--report', help='Output HTML report path')
    duplicate_parser.set_defaults(func=duplicate_command)

    # Move command
    move_parser = subparsers.add_parser('move', help='Move duplicate videos aside')
    move_parser.add_argument('directory', help='Directory containing videos')
    move_parser.add_argument('-o', '--output', help='Duplicate map JSON to read')
    move_parser.add_argument('-d', '--duplicates-dir',
                             help='Destination (default: duplicates_dir in config, else <directory>/duplicates)')
    move_parser.add_argument('-n', '--dry-run', action='store_true',
                             help='Report what would be moved')
    move_parser.set_defaults(func=move_command)

    # Concat command
    concat_parser = subparsers.add_parser('concat', help='Concatenate remaining videos')
    concat_parser.add_argument('directory', help='Directory containing videos')
    concat_parser.add_argument('-d', '--duplicates-dir',
                               help='Directory holding moved duplicates (default as for move)')
    concat_parser.set_defaults(func=concat_command)

    # Full run
    run_parser = subparsers.add_parser('run', help='Extract, detect, move and concatenate')
    run_parser.add_argument('directory', help='Directory containing videos')
    run_parser.add_argument('-k', '--keyframes-dir',
                            help='Keyframes directory (default: keyframes_dir in config, else <directory>/keyframes)')
    run_parser.add_argument('-d', '--duplicates-dir',
                            help='Destination (default: duplicates_dir in config, else <directory>/duplicates)')
    run_parser.add_argument('--method', choices=['iframe', 'uniform', 'scene'],
                            help='Keyframe sampling method')
    _add_detection_arguments(run_parser)
    run_parser.set_defaults(func=run_command)

    return parser

def _add_detection_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('-t', '--hash-threshold', type=int,
                        help='Max differing bits for two frames to match (default 5)')
    parser.add_argument('-m', '--match-ratio', type=float,
                        help='Fraction of matching frame pairs needed (default 0.5)')
    parser.add_argument('-j', '--max-concurrency', type=int,
                        help='Frames fingerprinted in parallel (default 100)')
    parser.add_argument('-o', '--output', help='Duplicate map JSON path')
    parser.add_argument('--transitive', action='store_true',
                        help='Merge chains of duplicates (A~B, B~C) into one group; '
                             'changes groupings compared to the default')

def main_cli(argv=None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}")
        return EXIT_ERROR

    setup_logging(config.log_level, config.log_dir)

    # Execute command
    try:
        return args.func(args, config)
    except (VideoDedupError, OSError, subprocess.CalledProcessError) as e:
        logger.exception("Command %s failed", args.command)
        print(f"Error: {e}")
        return EXIT_ERROR

if __name__ == "__main__":
    sys.exit(main_cli())
