"""frameclient: async client for the Samsung Frame TV art-mode API.

Quickstart::

    from frameclient import FrameClient, FrameConfig, Signal

    client = FrameClient(FrameConfig(host="192.168.1.20", mac_address="AA:BB:CC:DD:EE:FF"))
    client.on(Signal.CONNECTION_CHANGED, lambda up: print("connected" if up else "gone"))
    await client.connect()
"""

from __future__ import annotations

from frameclient.channel import ChannelState, ControlChannel
from frameclient.client import FrameClient, PendingUpload, Session, SessionState, Target
from frameclient.config import FrameConfig
from frameclient.errors import DiscoveryError, FrameClientError, TransferError
from frameclient.events import EventEmitter, Signal
from frameclient.rest import DiscoveryClient
from frameclient.wol import build_magic_packet, send_magic_packet

__version__ = "1.0.0"

__all__ = [
    "ChannelState",
    "ControlChannel",
    "DiscoveryClient",
    "DiscoveryError",
    "EventEmitter",
    "FrameClient",
    "FrameClientError",
    "FrameConfig",
    "PendingUpload",
    "Session",
    "SessionState",
    "Signal",
    "Target",
    "TransferError",
    "build_magic_packet",
    "send_magic_packet",
]
