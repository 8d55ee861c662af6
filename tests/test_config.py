"""Tests for config module."""

import uuid

import pytest

from src.mountie.config import DEFAULT_UUID_NAMESPACE, MonitorConfig


class TestMonitorConfig:
    """Tests for MonitorConfig class."""

    def test_default_values(self):
        config = MonitorConfig()
        assert config.interval_ms == 10000
        assert config.interval_s == 10.0
        assert config.uuid_namespace == uuid.UUID("6ba7b815-9dad-11d1-80b4-00c04fd430c8")
        assert config.sort is True
        assert config.stop_timeout_s == 5.0

    def test_custom_values(self):
        config = MonitorConfig(interval_ms=250, sort=False, platform="linux")
        assert config.interval_s == 0.25
        assert config.sort is False
        assert config.platform == "linux"

    def test_default_namespace_constant(self):
        assert MonitorConfig().uuid_namespace == DEFAULT_UUID_NAMESPACE

    def test_network_fstypes_default(self):
        config = MonitorConfig()
        assert "cifs" in config.network_fstypes
        assert "nfs" in config.network_fstypes
        assert "smbfs" in config.network_fstypes

    def test_darwin_ignores_system_mountpoints(self):
        config = MonitorConfig(platform="darwin")
        assert config.should_ignore_mountpoint("") is True
        assert config.should_ignore_mountpoint("/private/var/vm") is True
        assert config.should_ignore_mountpoint("/Volumes/Recovery") is True
        assert config.should_ignore_mountpoint("/System/Volumes/Data") is True

    def test_darwin_keeps_user_volumes(self):
        config = MonitorConfig(platform="darwin")
        assert config.should_ignore_mountpoint("/") is False
        assert config.should_ignore_mountpoint("/Volumes/USB") is False
        assert config.should_ignore_mountpoint("/Volumes/Recovery Disk") is False

    @pytest.mark.parametrize("platform", ["linux", "win32"])
    def test_other_platforms_ignore_nothing(self, platform):
        config = MonitorConfig(platform=platform)
        assert config.should_ignore_mountpoint("/System/Volumes/Data") is False
        assert config.should_ignore_mountpoint("") is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MOUNTIE_INTERVAL_MS", "2500")
        monkeypatch.setenv("MOUNTIE_SORT", "false")
        config = MonitorConfig.from_env()
        assert config.interval_ms == 2500
        assert config.sort is False

    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("MOUNTIE_INTERVAL_MS", raising=False)
        monkeypatch.delenv("MOUNTIE_SORT", raising=False)
        config = MonitorConfig.from_env()
        assert config.interval_ms == 10000
        assert config.sort is True

    def test_from_env_overrides_win(self, monkeypatch):
        monkeypatch.setenv("MOUNTIE_INTERVAL_MS", "2500")
        config = MonitorConfig.from_env(interval_ms=100)
        assert config.interval_ms == 100

    def test_from_env_ignores_none_overrides(self, monkeypatch):
        monkeypatch.setenv("MOUNTIE_INTERVAL_MS", "2500")
        config = MonitorConfig.from_env(interval_ms=None)
        assert config.interval_ms == 2500
