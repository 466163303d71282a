#!/usr/bin/env python3
"""
Polling file watcher demo.

This example demonstrates:
1. Watching two folders and printing change batches
2. Waiting for a slowly written file to settle before it is reported
3. Persisting state to a snapshot file, stopping, changing files while
   stopped, and picking those changes up after a restart

Usage:
    python examples/restart_demo.py
"""

import sys
import tempfile
import shutil
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.pollwatch import ChangeType, FileSystemWatcher, WatcherConfig


ICONS = {
    ChangeType.ADD: "➕",
    ChangeType.MODIFY: "📝",
    ChangeType.DELETE: "❌",
}


def print_batches(batches):
    """Listener printing every change of a cycle."""
    for batch in sorted(batches, key=lambda b: b.directory):
        print(f"[LISTENER] {batch.directory}")
        for change in sorted(batch, key=lambda c: c.path):
            print(f"           {ICONS[change.change_type]} {change.change_type.name}: {change.relative_name}")


def make_watcher(config: WatcherConfig) -> FileSystemWatcher:
    watcher = FileSystemWatcher(config)
    watcher.add_listener(print_batches)
    return watcher


def main():
    print("=" * 60)
    print("Polling File Watcher Demo")
    print("=" * 60)

    demo_dir = Path(tempfile.mkdtemp(prefix="pollwatch_demo_"))
    root1 = demo_dir / "watched_folder_1"
    root2 = demo_dir / "watched_folder_2"
    root1.mkdir()
    root2.mkdir()
    snapshot = demo_dir / "watcher.snapshot"
    snapshot.touch()

    print(f"\nDemo directory: {demo_dir}")
    print(f"Snapshot file: {snapshot}\n")

    config = WatcherConfig(
        directories=[root1, root2],
        poll_interval_ms=500,
        quiet_period_ms=200,
        snapshot_enabled=True,
        snapshot_path=snapshot,
    )

    try:
        # === Step 1: Live changes ===
        with make_watcher(config) as watcher:
            watcher.start()

            print("[DEMO] Creating files...")
            (root1 / "hello.txt").write_text("Hello, World!")
            (root2 / "document.md").write_text("# Document\n\nSome content here.")
            time.sleep(1.5)

            print("\n[DEMO] Writing a file slowly (one event expected once it settles)...")
            with open(root1 / "slow.log", "w") as f:
                for i in range(10):
                    f.write(f"line {i}\n")
                    f.flush()
                    time.sleep(0.1)
            time.sleep(1.5)

            print("\n[DEMO] Renaming and deleting...")
            (root1 / "hello.txt").rename(root1 / "greeting.txt")
            (root2 / "document.md").unlink()
            time.sleep(1.5)

        print("\n[DEMO] Watcher stopped, changing files while nobody is watching...")
        (root1 / "greeting.txt").write_text("Hello again, with more text")
        subdir = root2 / "subdir"
        subdir.mkdir()
        (subdir / "nested.txt").write_text("Nested file content")

        # === Step 2: Restart picks up offline changes ===
        print("\n[DEMO] Restarting watcher from the snapshot file...")
        with make_watcher(config) as watcher:
            watcher.start()
            time.sleep(1.5)

        print("\n" + "=" * 60)
        print("Demo completed successfully!")
        print("=" * 60)

    except KeyboardInterrupt:
        print("\n\nInterrupted!")

    finally:
        print(f"\nCleaning up demo directory: {demo_dir}")
        shutil.rmtree(demo_dir, ignore_errors=True)


if __name__ == "__main__":
    main()
