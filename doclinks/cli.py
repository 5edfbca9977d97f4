"""Command-line interface for the documentation link checker."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import load_config
from .cli_output import print_broken_link, records_to_json
from .config import config_from_env
from .runner import check_files_async

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "doclinks"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="doclinks",
        description="Check links and in-page anchors of generated HTML documentation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Check every page of a generated doc tree
  doclinks $(find build/doc -name '*.html')

  # Accept the current broken links as the known baseline
  doclinks --write-known-errors build/doc/*.html

  # Use a different cache and ledger location
  doclinks --cache-file /tmp/links.cache --known-errors-file known.json docs/*.html
""",
    )

    parser.add_argument(
        "files",
        nargs="+",
        help="HTML file(s) to check",
    )
    parser.add_argument(
        "--write-known-errors",
        action="store_true",
        help="Add newly broken links to the known-errors file",
    )
    parser.add_argument(
        "--cache-file",
        type=str,
        default=None,
        help="Remote content cache file (default: $DOCLINKS_CACHE_FILE or .doclinks-cache)",
    )
    parser.add_argument(
        "--known-errors-file",
        type=str,
        default=None,
        help="Known-errors file (default: $DOCLINKS_KNOWN_ERRORS_FILE or "
             ".doclinks-known-errors.json)",
    )
    parser.add_argument(
        "--max-fetches",
        type=int,
        default=None,
        dest="max_concurrent_fetches",
        help="Maximum concurrent remote fetches (default: 5)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print newly broken links as a JSON array",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


async def _run_check_async(args: argparse.Namespace) -> int:
    """Main async entry point for a check run."""
    config = config_from_env(
        cache_file=args.cache_file,
        known_errors_file=args.known_errors_file,
        max_concurrent_fetches=args.max_concurrent_fetches,
        write_known_errors=args.write_known_errors,
    )

    logging.info("Checking links in %d files", len(args.files))
    result = await check_files_async(
        args.files,
        config=config,
        reporter=None if args.json_output else print_broken_link,
    )

    if args.json_output:
        print(records_to_json(result.reported))

    return 1 if result.failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the doclinks command."""
    args = _parse_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        return asyncio.run(_run_check_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
