#!/usr/bin/env python3
"""
Mount monitor demo.

This example demonstrates:
1. Event stream - prints every mounted volume, then live mount events
2. Folder deletion watcher - detects removal of a nested temporary folder

Usage:
    python examples/event_stream_demo.py

The demo will:
- Start the mount monitor and print the replayed mounts
- Create a temporary directory structure and watch its deepest folder
- Delete a grandparent folder and show the deletion being detected
- Keep printing live volume events for 30 seconds (plug in a USB stick)
"""

import shutil
import sys
import tempfile
import threading
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.mountie import FolderDeletionWatcher, MountMonitor


def print_events(monitor: MountMonitor, stop_event: threading.Event):
    """Print events from the monitor until stopped."""
    with monitor.subscribe() as subscription:
        while not stop_event.is_set() and not subscription.ended:
            event = subscription.get(timeout=0.5)
            if event is None:
                continue
            fs = event.filesystem
            print(f"[EVENTS] {event.event_type.value:<8} {fs.label or 'Untitled':<20} {fs.mountpoint}")


def deletion_demo():
    """Watch a nested folder and delete its grandparent."""
    base = Path(tempfile.mkdtemp(prefix="mountie_demo_"))
    target = base / "outer" / "middle" / "inner"
    target.mkdir(parents=True)
    
    deleted = threading.Event()
    watcher = FolderDeletionWatcher.watch(target, deleted.set)
    print(f"[FOLDER] Watching {target}")
    print(f"[FOLDER] Native watches on: {watcher.watched_directories}")
    
    time.sleep(0.5)
    print(f"[FOLDER] Deleting {base / 'outer'}")
    shutil.rmtree(base / "outer")
    
    if deleted.wait(timeout=5.0):
        print("[FOLDER] Deletion detected")
    else:
        print("[FOLDER] No deletion reported")
        watcher.stop()
    shutil.rmtree(base, ignore_errors=True)


def main():
    monitor = MountMonitor()
    stop_event = threading.Event()
    
    printer = threading.Thread(target=print_events, args=(monitor, stop_event), daemon=True)
    printer.start()
    
    time.sleep(1.0)
    deletion_demo()
    
    print("[MAIN] Listening for volume events for 30 seconds...")
    try:
        time.sleep(30)
    except KeyboardInterrupt:
        pass
    
    stop_event.set()
    monitor.stop()
    printer.join(timeout=2.0)
    print("[MAIN] Done")


if __name__ == "__main__":
    main()
