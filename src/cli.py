#!/usr/bin/env python3
"""
CLI for running the polling file watcher and inspecting snapshot files.

Usage:
    python -m src.cli watch --roots /path/to/folder1 /path/to/folder2
    python -m src.cli watch --roots ./docs --suffix md txt --snapshot ./data/docs.snapshot
    python -m src.cli inspect ./data/docs.snapshot --json
"""

import argparse
import json
import logging
import os
import signal
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from src.pollwatch import (
    ConfigurationError,
    FileSnapshotRepository,
    FileSystemWatcher,
    LoggingChangeListener,
    MatchingStrategy,
    WatcherConfig,
)
from src.pollwatch.codec import decode_state
from src.pollwatch.exceptions import RestoreError


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def build_config(args) -> WatcherConfig:
    """Build the watcher configuration from parsed arguments."""
    if args.suffix and args.regex:
        raise ConfigurationError("--suffix and --regex are mutually exclusive")
    if args.suffix:
        strategy, patterns = MatchingStrategy.SUFFIX, args.suffix
    elif args.regex:
        strategy, patterns = MatchingStrategy.REGEX, args.regex
    else:
        strategy, patterns = MatchingStrategy.ANY, []

    snapshot_path = Path(args.snapshot).resolve() if args.snapshot else None
    if snapshot_path is not None and args.create_snapshot:
        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        snapshot_path.touch(exist_ok=True)

    config = WatcherConfig(
        directories=args.roots,
        poll_interval_ms=args.poll_interval,
        quiet_period_ms=args.quiet_period,
        remaining_scans=args.scans,
        snapshot_enabled=snapshot_path is not None,
        strict=not args.no_strict,
        matching_strategy=strategy,
        matching_patterns=patterns,
    )
    if snapshot_path is not None:
        config.snapshot_path = snapshot_path
    return config


def cmd_watch(args):
    """Run the file watcher until interrupted or out of scans."""
    try:
        config = build_config(args)
        watcher = FileSystemWatcher(config)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    watcher.add_listener(LoggingChangeListener())
    shutdown = GracefulShutdown()

    with watcher:
        watcher.start()

        logger.info(f"Watcher running with {len(config.directories)} root(s)")
        for root in config.directories:
            logger.info(f"  - {root}")
        if config.snapshot_enabled:
            logger.info(f"Snapshot file: {config.snapshot_path}")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit and watcher.is_running:
            time.sleep(0.5)

    logger.info("Watcher stopped")


def cmd_inspect(args):
    """Print the contents of a snapshot file."""
    path = Path(args.path)
    if not path.is_file():
        logger.error(f"Snapshot file not found: {path}")
        sys.exit(1)

    try:
        state = decode_state(path.read_bytes())
    except RestoreError as e:
        logger.error(f"Cannot read snapshot file {path}: {e}")
        sys.exit(1)

    if args.json:
        output = {
            directory: {
                "captured_at": snapshot.captured_at,
                "files": [
                    {
                        "path": record.path,
                        "exists": record.exists,
                        "length": record.length,
                        "last_modified": record.last_modified,
                    }
                    for record in sorted(snapshot.files, key=lambda r: r.path)
                ],
            }
            for directory, snapshot in state.items()
        }
        print(json.dumps(output, indent=2))
        return

    for directory, snapshot in state.items():
        print(f"{snapshot} ({len(snapshot.files)} files)")
        for record in sorted(snapshot.files, key=lambda r: r.path):
            print(f"  {record.length:>12}  {record.last_modified}  {record.path}")


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Polling file watcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Watch directories for file changes")
    watch_parser.add_argument("--roots", nargs="+", required=True, help="Root directories to watch")
    watch_parser.add_argument("--poll-interval", type=int,
                              default=int(os.environ.get("POLLWATCH_POLL_INTERVAL_MS", 1000)),
                              help="Poll interval in ms (default: 1000)")
    watch_parser.add_argument("--quiet-period", type=int,
                              default=int(os.environ.get("POLLWATCH_QUIET_PERIOD_MS", 400)),
                              help="Quiet period in ms (default: 400)")
    watch_parser.add_argument("--scans", type=int, default=-1, help="Number of scans, -1 for forever (default: -1)")
    watch_parser.add_argument("--snapshot", default=os.environ.get("POLLWATCH_SNAPSHOT"),
                              help="Snapshot file for persisting state (or POLLWATCH_SNAPSHOT env)")
    watch_parser.add_argument("--create-snapshot", action="store_true",
                              help="Create the snapshot file if it does not exist")
    watch_parser.add_argument("--suffix", nargs="+", default=[], help="Only watch files with these suffixes")
    watch_parser.add_argument("--regex", nargs="+", default=[], help="Only watch file names matching these patterns")
    watch_parser.add_argument("--no-strict", action="store_true",
                              help="Allow symlinked roots and a missing snapshot file")
    watch_parser.set_defaults(func=cmd_watch)

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show the contents of a snapshot file")
    inspect_parser.add_argument("path", help="Snapshot file")
    inspect_parser.add_argument("--json", action="store_true", help="Output JSON")
    inspect_parser.set_defaults(func=cmd_inspect)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
