"""Tests for the wake-on-LAN magic packet."""

from __future__ import annotations

import socket
from unittest.mock import MagicMock, patch

import pytest

from frameclient.wol import build_magic_packet, normalize_mac, send_magic_packet


class TestMagicPacket:
    def test_packet_layout(self):
        packet = build_magic_packet("AA:BB:CC:DD:EE:FF")
        assert len(packet) == 102
        assert packet[:6] == b"\xff" * 6
        assert packet[6:] == bytes.fromhex("AABBCCDDEEFF") * 16

    def test_separators_ignored(self):
        assert build_magic_packet("aa-bb-cc-dd-ee-ff") == build_magic_packet("AABB.CCDD.EEFF")

    def test_normalize_strips_non_hex(self):
        assert normalize_mac(" aa:bb:cc:dd:ee:ff ") == "aabbccddeeff"
        assert normalize_mac("") == ""

    @pytest.mark.parametrize("address", ["", "AA:BB:CC", "AA:BB:CC:DD:EE:FF:00", "zz:zz:zz:zz:zz:zz"])
    def test_invalid_address_returns_none(self, address):
        assert build_magic_packet(address) is None


class TestSendMagicPacket:
    def test_sends_single_broadcast_datagram(self):
        sock = MagicMock()
        sock.__enter__.return_value = sock
        with patch("frameclient.wol.socket.socket", return_value=sock) as factory:
            assert send_magic_packet("AA:BB:CC:DD:EE:FF") is True

        factory.assert_called_once_with(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt.assert_called_once_with(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.sendto.assert_called_once()
        packet, address = sock.sendto.call_args.args
        assert len(packet) == 102
        assert address == ("255.255.255.255", 9)

    def test_invalid_address_sends_nothing(self):
        with patch("frameclient.wol.socket.socket") as factory:
            assert send_magic_packet("not-a-mac") is False
        factory.assert_not_called()

    def test_socket_error_is_swallowed(self):
        sock = MagicMock()
        sock.__enter__.return_value = sock
        sock.sendto.side_effect = OSError("network unreachable")
        with patch("frameclient.wol.socket.socket", return_value=sock):
            assert send_magic_packet("AA:BB:CC:DD:EE:FF") is False

    def test_custom_broadcast_and_port(self):
        sock = MagicMock()
        sock.__enter__.return_value = sock
        with patch("frameclient.wol.socket.socket", return_value=sock):
            send_magic_packet("AABBCCDDEEFF", broadcast="192.168.1.255", port=7)
        assert sock.sendto.call_args.args[1] == ("192.168.1.255", 7)
