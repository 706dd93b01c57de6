"""Tests for FrameConfig."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

from frameclient.config import FrameConfig


class TestFrameConfig:
    def test_defaults(self):
        cfg = FrameConfig()
        assert cfg.host == ""
        assert cfg.api_port == 8001
        assert cfg.client_name == "FrameClient"
        assert cfg.wake_port == 9

    def test_load_save(self, tmp_path):
        cfg = FrameConfig(host="10.0.0.9", mac_address="AA:BB:CC:DD:EE:FF", client_name="Living Room")
        path = tmp_path / "config.json"
        cfg.save(path)

        loaded = FrameConfig.load(path)
        assert loaded.host == "10.0.0.9"
        assert loaded.mac_address == "AA:BB:CC:DD:EE:FF"
        assert loaded.client_name == "Living Room"

    def test_load_missing_file(self, tmp_path):
        cfg = FrameConfig.load(tmp_path / "nonexistent.json")
        assert cfg.host == ""

    def test_load_ignores_unknown_keys(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"host": "tv.local", "unknown_key": 1}))
        cfg = FrameConfig.load(path)
        assert cfg.host == "tv.local"
        assert not hasattr(cfg, "unknown_key")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FRAME_HOST", "192.168.0.50")
        monkeypatch.setenv("FRAME_MAC", "11:22:33:44:55:66")
        monkeypatch.setenv("FRAME_CLIENT_NAME", "Kitchen")
        monkeypatch.setenv("FRAME_API_PORT", "8002")
        cfg = FrameConfig.from_env()
        assert cfg.host == "192.168.0.50"
        assert cfg.mac_address == "11:22:33:44:55:66"
        assert cfg.client_name == "Kitchen"
        assert cfg.api_port == 8002

    def test_thumbnail_path_default_in_tempdir(self):
        cfg = FrameConfig()
        assert cfg.thumbnail_path == Path(tempfile.gettempdir()) / "frameclient"

    def test_thumbnail_path_override(self, tmp_path):
        cfg = FrameConfig(thumbnail_dir=str(tmp_path))
        assert cfg.thumbnail_path == tmp_path

    def test_from_env_invalid_port_falls_back(self, monkeypatch):
        monkeypatch.setenv("FRAME_API_PORT", "not-a-port")
        assert FrameConfig.from_env().api_port == 8001
        monkeypatch.setenv("FRAME_API_PORT", "70000")
        assert FrameConfig.from_env().api_port == 8001

    def test_from_env_unset_uses_defaults(self, monkeypatch):
        for name in ("FRAME_HOST", "FRAME_MAC", "FRAME_CLIENT_NAME", "FRAME_API_PORT"):
            monkeypatch.delenv(name, raising=False)
        cfg = FrameConfig.from_env()
        assert cfg.host == ""
        assert cfg.api_port == 8001
