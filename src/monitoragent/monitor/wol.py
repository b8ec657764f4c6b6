"""Wake-on-LAN magic packets."""

from __future__ import annotations

import logging
import re
import socket

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST = "255.255.255.255"
DEFAULT_PORT = 9

_MAC_RE = re.compile(r"^[0-9a-fA-F]{12}$")


def normalize_mac(mac: str) -> bytes:
    """Parse a MAC address written as aa:bb:.., aa-bb-.. or aabb...

    Raises:
        ValueError: If mac is not a 48-bit hardware address.
    """
    compact = mac.strip().replace(":", "").replace("-", "").replace(".", "")
    if not _MAC_RE.match(compact):
        raise ValueError(f"Invalid MAC address: {mac!r}")
    return bytes.fromhex(compact)


def build_magic_packet(mac: str) -> bytes:
    """Build the 102-byte magic packet: 6 x 0xFF followed by 16 x the MAC."""
    return b"\xff" * 6 + normalize_mac(mac) * 16


def send_magic_packet(
    mac: str,
    broadcast: str = DEFAULT_BROADCAST,
    port: int = DEFAULT_PORT,
) -> None:
    """Broadcast a magic packet for mac over UDP."""
    packet = build_magic_packet(mac)
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.sendto(packet, (broadcast, port))
    logger.info("Sent Wake-on-LAN packet to %s via %s:%d", mac, broadcast, port)
