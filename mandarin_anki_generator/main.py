"""
Main entry point for the Mandarin Anki Generator.

Reads Mandarin lines from a CSV file, enriches them and writes an Anki
package.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config, load_config
from .errors import FatalConfigurationError
from .models import RunResult
from .pipeline import RunController, run_file


CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[Path] = Config.DEFAULT_LOG_FILE):
    """
    Set up logging configuration.

    The console gets concise INFO messages (DEBUG with ``verbose``); the log
    file is appended to at DEBUG and records every request and response.
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    # Third-party clients are chatty at DEBUG
    for name in ('urllib3', 'httpx', 'httpcore', 'openai'):
        logging.getLogger(name).setLevel(logging.INFO)


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mandarin-anki-generator",
        description="Generate Anki flashcards with translations, readings and audio "
                    "from Mandarin sentences and words",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input format (one entry per line, no header):
  *學* 習, to study      sentence with a highlighted word and a translation
  平反                  single word; related words are generated

Examples:
  %(prog)s
  %(prog)s --input lines.csv --output deck.apkg --verbose
        """
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Config.DEFAULT_CONFIG_FILE,
        help="JSON configuration file (GENANKI_* environment variables override it)"
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=Config.DEFAULT_INPUT_FILE,
        help="CSV file of Mandarin text and optional English translation"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Config.DEFAULT_OUTPUT_FILE,
        help="Output path for the generated Anki package (overwritten)"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=Config.DEFAULT_LOG_FILE,
        help="Verbose log file, appended to on every run"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug output on the console"
    )
    return parser


def print_run_summary(result: RunResult) -> None:
    """Print per-line warnings and the final status."""
    warnings = [outcome for outcome in result.outcomes if not outcome.ok]
    if warnings:
        print("\n" + "=" * 50)
        print(f"WARNINGS ({len(warnings)} lines)")
        print("=" * 50)
        for outcome in warnings:
            print(f"  Line {outcome.line_number}: {outcome.text}")
            for issue in outcome.issues:
                print(f"    - {issue}")

    print("\n" + "=" * 50)
    print(f"Status: {result.status}")
    if result.package is not None:
        print(f"Notes: {len(result.package.notes)}  Audio clips: {len(result.package.media)}")
    if result.output_path:
        print(f"Package saved: {result.output_path}")
    print("=" * 50)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the generator; returns the process exit code."""
    args = create_argument_parser().parse_args(argv)

    setup_logging(args.verbose, args.log_file)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config)
    except FatalConfigurationError as e:
        error = e.processing_error
        logger.critical(f"[{error.error_code}] {error.message}: {error.details}")
        for action in error.suggested_actions:
            print(f"  Suggestion: {action}")
        return 1

    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output}")

    result = run_file(config, args.input, args.output, RunController(config))
    print_run_summary(result)

    if result.status.is_fatal:
        logger.error(f"Run failed: {result.status.reason}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
