"""Enumeration of mounted filesystems using psutil and platform tools."""

import json
import logging
import os
import plistlib
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import psutil

from .config import MonitorConfig
from .exceptions import SnapshotError
from .models import FileSystem, FileSystemSize, compute_filesystem_uuid, sort_filesystems

logger = logging.getLogger(__name__)

NETWORK_SHARE = "SMB"
DISK_IMAGE_PROTOCOL = "Disk Image"

LSBLK_COLUMNS = "PATH,NAME,LABEL,UUID,SERIAL,MODEL,TRAN,FSTYPE"


@dataclass
class BlockDevice:
    """Physical descriptor of a device, joined to filesystems by path."""
    path: str
    label: str = ""
    uuid: str = ""
    serial: str = ""
    model: str = ""
    protocol: str = ""


@dataclass
class RawFilesystemEntry:
    """A mounted filesystem as enumerated, before joining and filtering."""
    device: str
    mountpoint: str
    fstype: str
    size: Optional[FileSystemSize] = None


class SnapshotProvider:
    """
    Retrieves the current list of mounted filesystems.
    
    Filesystems and usage come from psutil; labels, uuids and bus
    descriptors come from lsblk on Linux and diskutil on macOS.
    """

    def __init__(self, config: Optional[MonitorConfig] = None):
        """
        Initialize the provider.
        
        Args:
            config: Monitor configuration (platform, filters, uuid namespace)
        """
        self.config = config or MonitorConfig()

    def _run_command(self, args: Sequence[str]) -> Optional[bytes]:
        """Run a command and return stdout, or None if it failed."""
        try:
            result = subprocess.run(
                list(args),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=10,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Could not run {args[0]}: {e}")
            return None
        if result.returncode != 0:
            logger.debug(f"{args[0]} exited with {result.returncode}: {result.stderr.decode(errors='replace').strip()}")
            return None
        return result.stdout

    def list_filesystems(self) -> List[RawFilesystemEntry]:
        """
        Enumerate mounted filesystems with their usage.
        
        Returns:
            Raw entries; size is None where usage could not be read
            
        Raises:
            SnapshotError: If the partition table cannot be read
        """
        try:
            partitions = list(psutil.disk_partitions(all=False))
            seen = {p.mountpoint for p in partitions}
            network_fstypes = set(self.config.network_fstypes)
            for partition in psutil.disk_partitions(all=True):
                if partition.fstype in network_fstypes and partition.mountpoint not in seen:
                    partitions.append(partition)
                    seen.add(partition.mountpoint)
        except (OSError, psutil.Error) as e:
            raise SnapshotError(f"Failed to enumerate partitions: {e}") from e

        entries = []
        for partition in partitions:
            size = None
            try:
                usage = psutil.disk_usage(partition.mountpoint)
                size = FileSystemSize(available=usage.free, total=usage.total, used=usage.used)
            except (OSError, psutil.Error) as e:
                logger.debug(f"No usage for {partition.mountpoint}: {e}")
            entries.append(RawFilesystemEntry(
                device=partition.device,
                mountpoint=partition.mountpoint,
                fstype=partition.fstype,
                size=size,
            ))
        return entries

    def list_block_devices(self, entries: Optional[Sequence[RawFilesystemEntry]] = None) -> List[BlockDevice]:
        """
        Enumerate block devices for the configured platform.
        
        Args:
            entries: Filesystem entries, used on platforms that describe
                devices one at a time
                
        Returns:
            Known block devices; empty when the platform tool is unavailable
        """
        platform = self.config.platform
        if platform.startswith("linux"):
            return self._lsblk_devices()
        if entries is None:
            entries = self.list_filesystems()
        if platform == "darwin":
            return self._diskutil_devices(entries)
        if platform == "win32":
            return self._windows_devices()
        return []

    def _lsblk_devices(self) -> List[BlockDevice]:
        output = self._run_command(["lsblk", "-J", "-b", "-o", LSBLK_COLUMNS])
        if output is None:
            return []
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            logger.debug(f"Unparseable lsblk output: {e}")
            return []

        devices: List[BlockDevice] = []

        def walk(nodes, parent: Optional[BlockDevice]) -> None:
            for node in nodes:
                path = node.get("path") or f"/dev/{node.get('name', '')}"
                # Partitions inherit bus descriptors from their disk
                device = BlockDevice(
                    path=path,
                    label=(node.get("label") or "").strip(),
                    uuid=(node.get("uuid") or "").strip(),
                    serial=(node.get("serial") or (parent.serial if parent else "")).strip(),
                    model=(node.get("model") or (parent.model if parent else "")).strip(),
                    protocol=(node.get("tran") or (parent.protocol if parent else "")).strip(),
                )
                devices.append(device)
                walk(node.get("children", []), device)

        walk(data.get("blockdevices", []), None)
        return devices

    def _diskutil_devices(self, entries: Sequence[RawFilesystemEntry]) -> List[BlockDevice]:
        devices = []
        for entry in entries:
            if not entry.device.startswith("/dev/"):
                continue
            output = self._run_command(["diskutil", "info", "-plist", entry.device])
            if output is None:
                continue
            try:
                info = plistlib.loads(output)
            except (plistlib.InvalidFileException, ValueError) as e:
                logger.debug(f"Unparseable diskutil output for {entry.device}: {e}")
                continue
            devices.append(BlockDevice(
                path=entry.device,
                label=info.get("VolumeName", ""),
                uuid=info.get("VolumeUUID", ""),
                model=info.get("MediaName", ""),
                protocol=info.get("BusProtocol", ""),
            ))
        return devices

    def _windows_devices(self) -> List[BlockDevice]:
        # Local drives have a physical descriptor; mapped network drives do not
        try:
            partitions = psutil.disk_partitions(all=True)
        except (OSError, psutil.Error) as e:
            logger.debug(f"Could not enumerate drives: {e}")
            return []
        return [
            BlockDevice(path=p.device)
            for p in partitions
            if "remote" not in p.opts.split(",")
        ]

    def _to_filesystem(self, entry: RawFilesystemEntry, device: Optional[BlockDevice]) -> FileSystem:
        size = entry.size
        if device is None:
            return FileSystem(
                device=entry.device,
                label=entry.device.rstrip(os.sep).split(os.sep)[-1] or entry.device,
                filesystem_type=NETWORK_SHARE,
                mountpoint=entry.mountpoint,
                mounted=True,
                protocol=NETWORK_SHARE,
                size=size,
                uuid=compute_filesystem_uuid(entry.device, None, self.config.uuid_namespace),
            )
        return FileSystem(
            device=entry.device,
            label=device.label,
            filesystem_type=entry.fstype,
            mountpoint=entry.mountpoint,
            mounted=True,
            protocol=device.protocol,
            size=size,
            uuid=compute_filesystem_uuid(entry.device, device.uuid, self.config.uuid_namespace),
            model=device.model or None,
            serial=device.serial or None,
        )

    def build_snapshot(
        self,
        entries: Sequence[RawFilesystemEntry],
        devices: Sequence[BlockDevice],
    ) -> List[FileSystem]:
        """
        Join, filter and sort raw entries into filesystems.
        
        Args:
            entries: Enumerated filesystems
            devices: Enumerated block devices
            
        Returns:
            Snapshot of mounted filesystems
        """
        device_map: Dict[str, BlockDevice] = {d.path: d for d in devices}
        filesystems = []
        for entry in entries:
            if self.config.should_ignore_mountpoint(entry.mountpoint):
                continue
            if entry.size is None:
                continue
            device = device_map.get(entry.device)
            if device is not None and device.protocol == DISK_IMAGE_PROTOCOL:
                continue
            filesystems.append(self._to_filesystem(entry, device))

        if self.config.sort:
            return sort_filesystems(filesystems, self.config.platform)
        return filesystems

    def get_snapshot(self) -> List[FileSystem]:
        """
        Retrieve the current snapshot of mounted filesystems.
        
        Raises:
            SnapshotError: If filesystems cannot be enumerated
        """
        entries = self.list_filesystems()
        devices = self.list_block_devices(entries)
        return self.build_snapshot(entries, devices)
