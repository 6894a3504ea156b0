import sys
import argparse
import logging
import subprocess
from config import SystemConfig
from cli import run_command, EXIT_ERROR
from core.exceptions import VideoDedupError
from utils.logging_config import setup_logging

def main(config_path: str = "config.yaml") -> int:
    """Run the whole deduplication flow on the configured input directory"""
    # Load configuration
    config = SystemConfig.load(config_path)

    # Setup logging
    setup_logging(config.log_level, config.log_dir)
    logger = logging.getLogger(__name__)
    logger.info("Starting duplicate detection on %s", config.input_dir)

    args = argparse.Namespace(
        directory=config.input_dir,
        keyframes_dir=config.keyframes_dir,
        duplicates_dir=config.duplicates_dir,
        report=None,
        dry_run=False
    )

    try:
        status = run_command(args, config)
    except (VideoDedupError, OSError, subprocess.CalledProcessError) as e:
        logger.exception("Run failed: %s", e)
        return EXIT_ERROR

    logger.info("Finished with status %d", status)
    return status

if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
