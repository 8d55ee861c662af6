"""Tests for models module."""

import uuid

import pytest

from src.mountie.config import DEFAULT_UUID_NAMESPACE
from src.mountie.models import (
    FileSystem,
    FileSystemEvent,
    FileSystemEventType,
    FileSystemSize,
    compute_filesystem_uuid,
    is_directory,
    sort_filesystems,
)


def make_fs(label="USB", mountpoint="/media/usb", device="/dev/sdb1", fs_uuid="1111-aaaa", mounted=True):
    return FileSystem(
        device=device,
        label=label,
        filesystem_type="vfat",
        mountpoint=mountpoint,
        mounted=mounted,
        protocol="usb",
        size=FileSystemSize(available=10, total=100, used=90),
        uuid=fs_uuid,
    )


class TestFileSystem:
    """Tests for FileSystem class."""

    def test_optional_fields_default_to_none(self):
        fs = make_fs()
        assert fs.model is None
        assert fs.serial is None

    def test_is_frozen(self):
        fs = make_fs()
        with pytest.raises(AttributeError):
            fs.label = "Other"

    def test_sort_key_uses_mountpoint_when_mounted(self):
        assert make_fs(mountpoint="/mnt/a").sort_key == "/mnt/a"

    def test_sort_key_uses_device_when_unmounted(self):
        fs = make_fs(mountpoint=None, mounted=False, device="/dev/sdc1")
        assert fs.sort_key == "/dev/sdc1"

    def test_to_dict(self):
        data = make_fs().to_dict()
        assert data["device"] == "/dev/sdb1"
        assert data["size"] == {"available": 10, "total": 100, "used": 90}
        assert data["uuid"] == "1111-aaaa"

    def test_from_dict(self):
        fs = make_fs()
        assert FileSystem.from_dict(fs.to_dict()) == fs


class TestFileSystemEvent:
    """Tests for FileSystemEvent class."""

    def test_mount_event(self):
        fs = make_fs()
        event = FileSystemEvent.mount(fs)
        assert event.event_type == FileSystemEventType.MOUNT
        assert event.filesystem == fs
        assert event.old_filesystem is None

    def test_rename_event(self):
        old = make_fs(label="Old")
        new = make_fs(label="New")
        event = FileSystemEvent.rename(new, old)
        assert event.event_type == FileSystemEventType.RENAME
        assert event.old_filesystem == old

    def test_rename_requires_old_filesystem(self):
        with pytest.raises(ValueError, match="old_filesystem"):
            FileSystemEvent(FileSystemEventType.RENAME, make_fs())

    def test_unmount_rejects_old_filesystem(self):
        with pytest.raises(ValueError):
            FileSystemEvent(FileSystemEventType.UNMOUNT, make_fs(), make_fs())

    def test_timestamp_auto_set(self):
        event = FileSystemEvent.unmount(make_fs())
        assert event.timestamp > 0

    def test_to_dict(self):
        event = FileSystemEvent.rename(make_fs(label="New"), make_fs(label="Old"))
        data = event.to_dict()
        assert data["event_type"] == "rename"
        assert data["filesystem"]["label"] == "New"
        assert data["old_filesystem"]["label"] == "Old"

    def test_from_dict(self):
        event = FileSystemEvent.unmount(make_fs())
        restored = FileSystemEvent.from_dict(event.to_dict())
        assert restored.event_type == FileSystemEventType.UNMOUNT
        assert restored.filesystem == event.filesystem
        assert restored.timestamp == event.timestamp


class TestComputeFilesystemUuid:
    """Tests for compute_filesystem_uuid function."""

    def test_native_uuid_lowercased(self):
        assert compute_filesystem_uuid("/dev/sdb1", "ABCD-1234") == "abcd-1234"

    def test_fallback_is_uuid5_of_device(self):
        expected = str(uuid.uuid5(DEFAULT_UUID_NAMESPACE, "//server/share"))
        assert compute_filesystem_uuid("//server/share") == expected

    def test_empty_native_uuid_falls_back(self):
        assert compute_filesystem_uuid("/dev/sdb1", "  ") == compute_filesystem_uuid("/dev/sdb1")

    def test_fallback_is_deterministic(self):
        assert compute_filesystem_uuid("/dev/disk4") == compute_filesystem_uuid("/dev/disk4")

    def test_fallback_differs_per_device(self):
        assert compute_filesystem_uuid("/dev/disk4") != compute_filesystem_uuid("/dev/disk5")

    def test_custom_namespace(self):
        namespace = uuid.NAMESPACE_URL
        assert compute_filesystem_uuid("x", None, namespace) == str(uuid.uuid5(namespace, "x"))


class TestSortFilesystems:
    """Tests for sort_filesystems function."""

    def test_darwin_sorts_by_label(self):
        b = make_fs(label="beta", mountpoint="/Volumes/a")
        a = make_fs(label="Alpha", mountpoint="/Volumes/z")
        assert sort_filesystems([b, a], "darwin") == [a, b]

    def test_darwin_empty_label_sorts_as_untitled(self):
        untitled = make_fs(label="")
        tango = make_fs(label="Tango")
        zulu = make_fs(label="Zulu")
        assert sort_filesystems([zulu, untitled, tango], "darwin") == [tango, untitled, zulu]

    def test_linux_sorts_by_mountpoint_case_insensitive(self):
        b = make_fs(mountpoint="/media/b")
        a = make_fs(mountpoint="/media/A")
        assert sort_filesystems([b, a], "linux") == [a, b]

    def test_unmounted_sorts_by_device(self):
        mounted = make_fs(mountpoint="/mnt/x", device="/dev/sda1")
        unmounted = make_fs(mountpoint=None, mounted=False, device="/dev/aaa")
        assert sort_filesystems([mounted, unmounted], "win32") == [unmounted, mounted]

    def test_returns_new_list(self):
        items = [make_fs(mountpoint="/b"), make_fs(mountpoint="/a")]
        result = sort_filesystems(items, "linux")
        assert result is not items
        assert items[0].mountpoint == "/b"


class TestIsDirectory:
    """Tests for is_directory function."""

    def test_existing_directory(self, tmp_path):
        assert is_directory(tmp_path) is True

    def test_file_is_not_directory(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        assert is_directory(f) is False

    def test_missing_path(self, tmp_path):
        assert is_directory(tmp_path / "missing") is False

    def test_invalid_path_never_raises(self):
        assert is_directory("bad\0path") is False
