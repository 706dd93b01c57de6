"""Wake-on-LAN magic packet for powering on the display.

The packet is six ``0xFF`` bytes followed by the 6-byte hardware address
repeated sixteen times, sent as one UDP broadcast datagram.  Sending is
fire-and-forget: nothing is awaited and failures never reach the caller.
"""

from __future__ import annotations

import logging
import re
import socket

logger = logging.getLogger(__name__)

WOL_BROADCAST = "255.255.255.255"
WOL_PORT = 9

_NON_HEX_RE = re.compile(r"[^0-9A-Fa-f]")


def normalize_mac(address: str) -> str:
    """Strip separators (and any other non-hex characters) from *address*."""
    return _NON_HEX_RE.sub("", address or "")


def build_magic_packet(address: str) -> bytes | None:
    """Return the 102-byte magic packet, or ``None`` for an unusable address."""
    mac = normalize_mac(address)
    if len(mac) != 12:
        return None
    return b"\xff" * 6 + bytes.fromhex(mac) * 16


def send_magic_packet(
    address: str,
    *,
    broadcast: str = WOL_BROADCAST,
    port: int = WOL_PORT,
) -> bool:
    """Broadcast a magic packet for *address*. Returns ``True`` if it was sent."""
    packet = build_magic_packet(address)
    if packet is None:
        logger.debug("Skipping wake-on-LAN, invalid MAC %r", address)
        return False
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setblocking(False)
            sock.sendto(packet, (broadcast, port))
    except OSError as exc:
        logger.warning("Wake-on-LAN to %s failed: %s", address, exc)
        return False
    logger.debug("Sent wake-on-LAN packet for %s", address)
    return True
