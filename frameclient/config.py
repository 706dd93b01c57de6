"""Configuration for the Frame art-mode client."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_API_PORT = 8001
DEFAULT_CLIENT_NAME = "FrameClient"


@dataclass
class FrameConfig:
    """Client configuration, loaded from config.json or the environment."""

    host: str = ""
    mac_address: str = ""
    client_name: str = DEFAULT_CLIENT_NAME
    api_port: int = DEFAULT_API_PORT

    # Timeouts (seconds)
    connect_timeout: float = 10.0
    read_timeout: float = 30.0

    # Wake-on-LAN
    wake_broadcast: str = "255.255.255.255"
    wake_port: int = 9

    # Thumbnail downloads; empty means <tempdir>/frameclient
    thumbnail_dir: str = ""
    read_chunk_size: int = 65536

    @classmethod
    def load(cls, path: str | Path) -> FrameConfig:
        """Read *path*; keys that are not config fields are ignored."""
        path = Path(path)
        if not path.exists():
            logger.warning("Config not found at %s, using defaults", path)
            return cls()
        data = json.loads(path.read_text())
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    @classmethod
    def from_env(cls) -> FrameConfig:
        """Build a config from ``FRAME_*`` environment variables."""
        return cls(
            host=os.getenv("FRAME_HOST", ""),
            mac_address=os.getenv("FRAME_MAC", ""),
            client_name=os.getenv("FRAME_CLIENT_NAME", DEFAULT_CLIENT_NAME),
            api_port=_env_port("FRAME_API_PORT", DEFAULT_API_PORT),
        )

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2))

    @property
    def thumbnail_path(self) -> Path:
        """Directory downloaded thumbnails are written to."""
        if self.thumbnail_dir:
            return Path(self.thumbnail_dir)
        return Path(tempfile.gettempdir()) / "frameclient"


def _env_port(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        port = int(raw)
    except ValueError:
        port = -1
    if not 0 < port < 65536:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default
    return port
