"""Computes mount, rename and unmount events between two snapshots."""

import logging
from typing import Callable, Dict, List, Sequence

from .models import FileSystem, FileSystemEvent, is_directory

logger = logging.getLogger(__name__)


def diff_snapshots(
    old_state: Sequence[FileSystem],
    new_state: Sequence[FileSystem],
    is_dir: Callable[[str], bool] = is_directory,
) -> List[FileSystemEvent]:
    """
    Compare two snapshots by uuid and produce the events between them.
    
    Mount events come first, in new_state order; unmount and rename events
    follow in old_state order. Only label changes count as renames.
    
    Args:
        old_state: Previously known filesystems
        new_state: Freshly enumerated filesystems
        is_dir: Directory existence check for mount candidates
        
    Returns:
        Ordered list of FileSystemEvent
    """
    old_by_uuid: Dict[str, FileSystem] = {fs.uuid: fs for fs in old_state}
    new_by_uuid: Dict[str, FileSystem] = {fs.uuid: fs for fs in new_state}
    if len(new_by_uuid) < len(new_state):
        seen = set()
        for fs in new_state:
            if fs.uuid in seen:
                logger.debug(f"Duplicate uuid {fs.uuid} at {fs.mountpoint}; tracking one mountpoint per volume")
            seen.add(fs.uuid)
    events: List[FileSystemEvent] = []

    for filesystem in new_state:
        if filesystem.uuid in old_by_uuid:
            continue
        # The volume may be enumerated before its mount folder exists
        if filesystem.mountpoint and is_dir(filesystem.mountpoint):
            events.append(FileSystemEvent.mount(filesystem))
        else:
            logger.debug(f"Mount folder not present yet for {filesystem.device}: {filesystem.mountpoint}")

    for old_filesystem in old_state:
        filesystem = new_by_uuid.get(old_filesystem.uuid)
        if filesystem is None:
            events.append(FileSystemEvent.unmount(old_filesystem))
        elif filesystem.label != old_filesystem.label:
            events.append(FileSystemEvent.rename(filesystem, old_filesystem))

    return events
