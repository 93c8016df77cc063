"""Datagram transports used by the client and the server."""

from __future__ import annotations

import abc
import logging
import socket as _socket
from typing import Any, Optional, Tuple

from .types import MAX_PACKET_SIZE

_log = logging.getLogger(__name__)

Address = Tuple[Any, ...]


class Socket(abc.ABC):
    """A datagram endpoint."""

    @abc.abstractmethod
    def receive(self) -> Optional[Tuple[bytes, Address]]:
        """Return the next packet and its origin, or None if nothing is waiting."""

    @abc.abstractmethod
    def send(self, data: bytes, addr: Address) -> bool:
        """Send a packet; return True if it was sent whole."""


class UdpSocket(Socket):
    """A :class:`Socket` backed by an operating-system UDP socket.

    Whether :meth:`receive` waits for data depends on the blocking mode or
    timeout set on the wrapped socket.
    """

    def __init__(self, sock: _socket.socket) -> None:
        self._sock = sock

    @property
    def address(self) -> Address:
        """The local address the socket is bound to."""
        return self._sock.getsockname()

    def receive(self) -> Optional[Tuple[bytes, Address]]:
        try:
            data, addr = self._sock.recvfrom(MAX_PACKET_SIZE)
        except OSError:
            return None
        return data, addr

    def send(self, data: bytes, addr: Address) -> bool:
        try:
            sent = self._sock.sendto(data, addr)
        except OSError as exc:
            _log.warning("Packet sending error: %r", exc)
            return False
        return sent == len(data)

    def close(self) -> None:
        """Close the underlying socket."""
        self._sock.close()

    def __enter__(self) -> "UdpSocket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()