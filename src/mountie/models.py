"""Data models for the mountie package."""

import os
import sys
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from .config import DEFAULT_UUID_NAMESPACE


class FileSystemEventType(Enum):
    """Types of volume events."""
    MOUNT = "mount"
    RENAME = "rename"
    UNMOUNT = "unmount"


@dataclass(frozen=True)
class FileSystemSize:
    """Byte counts of a mounted volume."""
    available: int
    total: int
    used: int

    def to_dict(self) -> dict:
        return {"available": self.available, "total": self.total, "used": self.used}

    @classmethod
    def from_dict(cls, data: dict) -> "FileSystemSize":
        return cls(
            available=data.get("available", 0),
            total=data.get("total", 0),
            used=data.get("used", 0),
        )


@dataclass(frozen=True)
class FileSystem:
    """
    A currently or formerly mounted volume.
    
    Attributes:
        device: Platform device identifier, stable while mounted
        label: Human-readable volume name (may be empty)
        filesystem_type: Filesystem format name ("SMB" for network shares)
        model: Hardware model, None for network/virtual volumes
        mountpoint: Absolute mount path, only meaningful while mounted
        mounted: Whether the volume is attached
        protocol: Transport/bus descriptor ("usb", "sata", "SMB", ...)
        serial: Hardware serial, None when not reported
        size: Available/total/used byte counts
        uuid: Identity key across snapshots
    """
    device: str
    label: str
    filesystem_type: str
    mountpoint: Optional[str]
    mounted: bool
    protocol: str
    size: FileSystemSize
    uuid: str
    model: Optional[str] = None
    serial: Optional[str] = None

    @property
    def sort_key(self) -> str:
        """Mountpoint when mounted, device otherwise."""
        return self.mountpoint if self.mounted and self.mountpoint else self.device

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "device": self.device,
            "label": self.label,
            "filesystem_type": self.filesystem_type,
            "model": self.model,
            "mountpoint": self.mountpoint,
            "mounted": self.mounted,
            "protocol": self.protocol,
            "serial": self.serial,
            "size": self.size.to_dict(),
            "uuid": self.uuid,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileSystem":
        """Create from dictionary."""
        return cls(
            device=data["device"],
            label=data.get("label", ""),
            filesystem_type=data.get("filesystem_type", ""),
            model=data.get("model"),
            mountpoint=data.get("mountpoint"),
            mounted=data.get("mounted", False),
            protocol=data.get("protocol", ""),
            serial=data.get("serial"),
            size=FileSystemSize.from_dict(data.get("size", {})),
            uuid=data["uuid"],
        )


@dataclass(frozen=True)
class FileSystemEvent:
    """
    A mount, rename or unmount of a volume.
    
    Attributes:
        event_type: MOUNT, RENAME or UNMOUNT
        filesystem: The volume as it is now (or was, for UNMOUNT)
        old_filesystem: For RENAME events, the record before the label changed
        timestamp: Unix timestamp when the event was produced
    """
    event_type: FileSystemEventType
    filesystem: FileSystem
    old_filesystem: Optional[FileSystem] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.event_type == FileSystemEventType.RENAME and self.old_filesystem is None:
            raise ValueError("rename events require old_filesystem")
        if self.event_type != FileSystemEventType.RENAME and self.old_filesystem is not None:
            raise ValueError(f"{self.event_type.value} events do not carry old_filesystem")

    @classmethod
    def mount(cls, filesystem: FileSystem) -> "FileSystemEvent":
        return cls(FileSystemEventType.MOUNT, filesystem)

    @classmethod
    def rename(cls, filesystem: FileSystem, old_filesystem: FileSystem) -> "FileSystemEvent":
        return cls(FileSystemEventType.RENAME, filesystem, old_filesystem)

    @classmethod
    def unmount(cls, filesystem: FileSystem) -> "FileSystemEvent":
        return cls(FileSystemEventType.UNMOUNT, filesystem)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "filesystem": self.filesystem.to_dict(),
            "old_filesystem": self.old_filesystem.to_dict() if self.old_filesystem else None,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileSystemEvent":
        """Create from dictionary."""
        old = data.get("old_filesystem")
        return cls(
            event_type=FileSystemEventType(data["event_type"]),
            filesystem=FileSystem.from_dict(data["filesystem"]),
            old_filesystem=FileSystem.from_dict(old) if old else None,
            timestamp=data.get("timestamp", time.time()),
        )


def compute_filesystem_uuid(
    device: str,
    native_uuid: Optional[str] = None,
    namespace: uuid.UUID = DEFAULT_UUID_NAMESPACE,
) -> str:
    """
    Compute the identity key of a volume.
    
    Args:
        device: Platform device identifier
        native_uuid: Filesystem UUID reported by the OS, if any
        namespace: Namespace for the name-based fallback
        
    Returns:
        The lower-cased native UUID, or a version 5 UUID derived from the device
    """
    if native_uuid and native_uuid.strip():
        return native_uuid.strip().lower()
    return str(uuid.uuid5(namespace, device))


def sort_filesystems(filesystems: Iterable[FileSystem], platform: Optional[str] = None) -> List[FileSystem]:
    """
    Sort filesystems for display.
    
    macOS sorts by label (empty labels as "Untitled"); every other platform
    sorts by mountpoint, or device when unmounted. Both are case-insensitive.
    """
    platform = platform or sys.platform
    if platform == "darwin":
        return sorted(filesystems, key=lambda fs: (fs.label or "Untitled").upper())
    return sorted(filesystems, key=lambda fs: fs.sort_key.upper())


def is_directory(path: Union[str, os.PathLike]) -> bool:
    """Check if a path is an existing directory. Never raises."""
    try:
        return os.path.isdir(path)
    except (OSError, ValueError, TypeError):
        return False
