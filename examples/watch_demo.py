#!/usr/bin/env python3
"""
Glob mirroring demo.

This example demonstrates:
1. Initial copy of the files matching ``src/**/*.txt`` into ``dist/``
2. Live mirroring of created, modified and deleted files
3. The events a Watcher publishes

Usage:
    python examples/watch_demo.py

The demo will:
- Create a temporary directory structure
- Start a watcher and wait for ``watch-ready``
- Create/modify/delete files
- Show events being received
- Clean up
"""

import logging
import os
import shutil
import sys
import tempfile
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.globsync import SyncConfig, watch


def setup_logging() -> None:
    """Console logging, DEBUG for the globsync package."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(handler)
    logging.getLogger("src.globsync").setLevel(logging.DEBUG)


def main():
    """Run the mirroring demo."""
    setup_logging()

    print("=" * 60)
    print("Glob Mirroring Demo")
    print("=" * 60)

    demo_dir = Path(tempfile.mkdtemp(prefix="globsync_demo_"))
    os.chdir(demo_dir)
    print(f"\nDemo directory: {demo_dir}\n")

    (demo_dir / "src" / "notes").mkdir(parents=True)
    (demo_dir / "src" / "hello.txt").write_text("Hello")
    (demo_dir / "src" / "notes" / "skip.dat").write_text("not mirrored")

    listeners = {
        "watch-ready": lambda _: print("[EVENT] watch-ready"),
        "copy": lambda e: print(f"[EVENT] copy {e.src_path} -> {e.dst_path}"),
        "remove": lambda e: print(f"[EVENT] remove {e.path}"),
        "watch-error": lambda e: print(f"[EVENT] watch-error {e.path}: {e.message}"),
    }

    watcher = watch("src/**/*.txt", "dist", clean=True, listeners=listeners, config=SyncConfig(debounce_ms=50))
    try:
        watcher.wait_ready(timeout=10)

        print("\n[DEMO] Creating src/notes/new.txt")
        (demo_dir / "src" / "notes" / "new.txt").write_text("added")
        time.sleep(1)

        print("\n[DEMO] Modifying src/hello.txt")
        (demo_dir / "src" / "hello.txt").write_text("Hello, again")
        time.sleep(1)

        print("\n[DEMO] Deleting src/hello.txt")
        (demo_dir / "src" / "hello.txt").unlink()
        time.sleep(1)

        print("\n[DEMO] Destination tree:")
        for path in sorted((demo_dir / "dist").rglob("*")):
            print(f"  {path.relative_to(demo_dir)}")

    except KeyboardInterrupt:
        print("\n\nInterrupted!")

    finally:
        watcher.close()
        os.chdir(Path.home())
        print(f"\nCleaning up demo directory: {demo_dir}")
        shutil.rmtree(demo_dir, ignore_errors=True)


if __name__ == "__main__":
    main()
