#!/usr/bin/env python3
"""
CLI for the mount monitor.

Usage:
    python -m src.cli events
    python -m src.cli list --json
    python -m src.cli watch-folder /path/to/folder
"""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env from project root
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()

from src.mountie import (
    FileSystem,
    FileSystemEvent,
    FileSystemEventType,
    FolderDeletionWatcher,
    MonitorConfig,
    MountMonitor,
)


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


def format_filesystem(fs: FileSystem) -> str:
    """One-line human readable description of a filesystem."""
    label = fs.label or "Untitled"
    total_gb = fs.size.total / (1024 ** 3)
    return f"{label:<24} {fs.mountpoint or '-':<32} {fs.filesystem_type:<8} {fs.protocol or '-':<6} {total_gb:8.1f} GB  {fs.uuid}"


def format_event(event: FileSystemEvent) -> str:
    """One-line human readable description of an event."""
    if event.event_type == FileSystemEventType.RENAME:
        return f"rename   {event.old_filesystem.label!r} -> {event.filesystem.label!r} at {event.filesystem.mountpoint}"
    return f"{event.event_type.value:<8} {format_filesystem(event.filesystem)}"


def build_config(args) -> MonitorConfig:
    return MonitorConfig.from_env(interval_ms=args.interval)


def cmd_events(args):
    """Stream volume events until interrupted."""
    shutdown = GracefulShutdown()
    monitor = MountMonitor(build_config(args))
    
    logger.info("Watching for volume events. Press Ctrl+C to stop")
    try:
        with monitor.subscribe() as subscription:
            while not shutdown.should_exit and not subscription.ended:
                event = subscription.get(timeout=0.5)
                if event is None:
                    continue
                if args.json:
                    print(json.dumps(event.to_dict()), flush=True)
                else:
                    print(format_event(event), flush=True)
    finally:
        monitor.stop()


def cmd_list(args):
    """Print the currently mounted filesystems."""
    with MountMonitor(build_config(args)) as monitor:
        state = monitor.state
    
    if args.json:
        print(json.dumps([fs.to_dict() for fs in state], indent=2))
        return
    for fs in state:
        print(format_filesystem(fs))


def cmd_watch_folder(args):
    """Block until a folder or one of its ancestors is deleted."""
    path = Path(args.path).resolve()
    if not path.is_dir():
        logger.error(f"Not a directory: {path}")
        sys.exit(1)
    
    shutdown = GracefulShutdown()
    deleted = threading.Event()
    watcher = FolderDeletionWatcher.watch(path, deleted.set)
    
    logger.info(f"Watching {path} for deletion. Press Ctrl+C to stop")
    try:
        while not shutdown.should_exit:
            if deleted.wait(timeout=0.5):
                print(f"deleted  {path}", flush=True)
                break
    finally:
        watcher.stop()
        watcher.join(timeout=2.0)


def main():
    parser = argparse.ArgumentParser(
        description="Monitor volume mounts, renames and unmounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stream mount events (current volumes first)
  python -m src.cli events

  # Print mounted volumes as JSON
  python -m src.cli list --json

  # Wait for a folder to be deleted
  python -m src.cli watch-folder /Volumes/USB/photos
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    events_parser = subparsers.add_parser("events", help="Stream volume events")
    events_parser.add_argument("--interval", type=int, default=None, help="Polling interval in ms (or MOUNTIE_INTERVAL_MS)")
    events_parser.add_argument("--json", action="store_true", help="Print events as JSON lines")
    events_parser.set_defaults(func=cmd_events)
    
    list_parser = subparsers.add_parser("list", help="List mounted volumes")
    list_parser.add_argument("--interval", type=int, default=None, help="Polling interval in ms (or MOUNTIE_INTERVAL_MS)")
    list_parser.add_argument("--json", action="store_true", help="Print as JSON")
    list_parser.set_defaults(func=cmd_list)
    
    folder_parser = subparsers.add_parser("watch-folder", help="Wait for a folder to be deleted")
    folder_parser.add_argument("path", help="Folder to watch")
    folder_parser.set_defaults(func=cmd_watch_folder)
    
    args = parser.parse_args()
    
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    
    args.func(args)


if __name__ == "__main__":
    main()
