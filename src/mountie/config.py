"""Configuration for the mountie package."""

import os
import re
import sys
import uuid
from dataclasses import dataclass, field
from typing import Dict, List


# Next value above the RFC 4122 defined namespaces
DEFAULT_UUID_NAMESPACE = uuid.UUID("6ba7b815-9dad-11d1-80b4-00c04fd430c8")

DEFAULT_INTERVAL_MS = 10000


def _default_ignored_mountpoints() -> Dict[str, List[str]]:
    return {
        "darwin": [
            r"^$",
            r"^/private/",
            r"^/Volumes/Recovery$",
            r"^/System/",
        ],
        "linux": [],
        "win32": [],
    }


def _default_network_fstypes() -> List[str]:
    return [
        "nfs",
        "nfs4",
        "cifs",
        "smbfs",
        "smb3",
        "afpfs",
        "webdav",
        "fuse.sshfs",
    ]


@dataclass
class MonitorConfig:
    """
    Configuration options for the mount monitor.
    
    Attributes:
        interval_ms: Polling interval between filesystem snapshots
        uuid_namespace: Namespace for deriving uuids of devices without one
        ignored_mountpoint_patterns: Regexes of mountpoints to skip, per platform family
        network_fstypes: Filesystem types enumerated as network shares
        sort: Whether snapshots and state are sorted for display
        platform: Platform family used for filtering and sorting rules
        stop_timeout_s: How long stop() waits for background threads
    """
    interval_ms: int = DEFAULT_INTERVAL_MS
    uuid_namespace: uuid.UUID = DEFAULT_UUID_NAMESPACE
    ignored_mountpoint_patterns: Dict[str, List[str]] = field(default_factory=_default_ignored_mountpoints)
    network_fstypes: List[str] = field(default_factory=_default_network_fstypes)
    sort: bool = True
    platform: str = field(default_factory=lambda: sys.platform)
    stop_timeout_s: float = 5.0

    @property
    def interval_s(self) -> float:
        """Polling interval in seconds."""
        return self.interval_ms / 1000.0

    def should_ignore_mountpoint(self, mountpoint: str) -> bool:
        """
        Check if a mountpoint is excluded on the configured platform.
        
        Args:
            mountpoint: Mount path to check
            
        Returns:
            True if the mountpoint matches an ignore pattern
        """
        patterns = self.ignored_mountpoint_patterns.get(self.platform, [])
        return any(re.search(pattern, mountpoint) for pattern in patterns)

    @classmethod
    def from_env(cls, **overrides) -> "MonitorConfig":
        """
        Create a config from MOUNTIE_* environment variables.
        
        Keyword overrides take precedence over the environment.
        """
        values = {}
        interval = os.environ.get("MOUNTIE_INTERVAL_MS")
        if interval:
            values["interval_ms"] = int(interval)
        sort = os.environ.get("MOUNTIE_SORT")
        if sort:
            values["sort"] = sort.strip().lower() not in ("0", "false", "no", "off")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
