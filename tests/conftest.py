"""pytest configuration for frameclient tests."""

import pytest


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def frame_config(tmp_path):
    from frameclient.config import FrameConfig

    return FrameConfig(
        host="10.0.0.5",
        mac_address="AA:BB:CC:DD:EE:FF",
        client_name="Test Client",
        connect_timeout=2.0,
        read_timeout=2.0,
        thumbnail_dir=str(tmp_path / "thumbs"),
    )
