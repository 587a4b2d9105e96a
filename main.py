"""
HW Tag Simulator — Entry Point
================================
Open a tag file and drive it from the console.

Usage:
  python main.py                              # Interactive console on tags.txt
  python main.py --file /tmp/gc.tags          # Another tag file
  python main.py --config config/hwsim.json   # Settings from JSON
  python main.py show                         # One-shot: dump all tags
  python main.py read TEST:TAG1 int           # One-shot: read a tag
"""

import argparse
import logging
import sys

from hwsim.config.settings import StoreSettings
from hwsim.core.errors import TagStoreError
from hwsim.core.tag_store import TagStore


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="File-backed hardware tag simulator console"
    )
    parser.add_argument(
        "--file",
        help="Tag file path (overrides the config file)"
    )
    parser.add_argument(
        "--config",
        help="Path to settings JSON file"
    )
    parser.add_argument(
        "--legacy-updates", action="store_true",
        help="Increment counts outside the file lock (historical behaviour)"
    )
    parser.add_argument(
        "--index", action="store_true",
        help="Keep an in-memory index of record offsets"
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--log-file",
        help="Log to file instead of stderr"
    )
    parser.add_argument(
        "command", nargs=argparse.REMAINDER,
        help="Run one console command and exit"
    )
    return parser.parse_args(argv)


def build_settings(args) -> StoreSettings:
    """Merge the config file (if any) with command-line overrides."""
    settings = StoreSettings.load(args.config) if args.config else StoreSettings()
    if args.file:
        settings.tag_file = args.file
    if args.legacy_updates:
        settings.atomic_updates = False
    if args.index:
        settings.index_offsets = True
    return settings


def main(argv=None):
    args = parse_args(argv)

    # Configure logging
    log_kwargs = {
        "level": getattr(logging, args.log_level),
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    }
    if args.log_file:
        log_kwargs["filename"] = args.log_file
    logging.basicConfig(**log_kwargs)

    settings = build_settings(args)

    try:
        store = TagStore.from_settings(settings)
    except TagStoreError as exc:
        print(f"Failed to open tag file {settings.tag_file}: {exc}")
        sys.exit(1)

    from console.cli import run_cli
    with store:
        run_cli(store, args.command)


if __name__ == "__main__":
    main()
