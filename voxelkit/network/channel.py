"""Reliable, ordered delivery on top of an unreliable packet stream."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Iterable, List, Optional, Tuple

from .types import RELIABLE_BUFFER_SIZE, RESEND_DELAY, ReliableMessage


@dataclass
class _QueuedPacket:
    sequence: int
    data: bytes
    first_send: Optional[float] = None
    last_send: Optional[float] = None


class Sender:
    """Sending side of a reliable channel: queues data and resends it until acknowledged."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._packets: Deque[_QueuedPacket] = deque()
        self._next_sequence = 1
        self._earliest_unacked_sequence = 1

    def __len__(self) -> int:
        """Number of packets not yet acknowledged."""
        return len(self._packets)

    def send(self, data: bytes) -> None:
        """Queue data for reliable delivery."""
        self._packets.append(_QueuedPacket(self._next_sequence, bytes(data)))
        self._next_sequence += 1

    def tick(self, send_message: Callable[[ReliableMessage], bool]) -> None:
        """Offer due packets to ``send_message``; it returns False when bandwidth is exhausted."""
        max_sequence = self._earliest_unacked_sequence + RELIABLE_BUFFER_SIZE
        for packet in self._packets:
            # The receiver could not buffer this packet
            if packet.sequence >= max_sequence:
                break
            now = self._clock()
            if packet.last_send is not None and now - packet.last_send <= RESEND_DELAY:
                continue
            if not send_message(ReliableMessage(packet.sequence, packet.data)):
                break
            packet.last_send = now
            if packet.first_send is None:
                packet.first_send = now

    def receive_acks(self, first_sequence: int, acks: Iterable[bool]) -> None:
        """Drop every packet before ``first_sequence`` and every packet whose ack bit is set."""
        bits = [bool(bit) for bit in acks]

        def acknowledged(packet: _QueuedPacket) -> bool:
            if packet.sequence < first_sequence:
                return True
            index = packet.sequence - first_sequence
            return index < len(bits) and bits[index]

        self._packets = deque(p for p in self._packets if not acknowledged(p))
        self._earliest_unacked_sequence = (
            self._packets[0].sequence if self._packets else self._next_sequence
        )


class Receiver:
    """Receiving side of a reliable channel.

    Call :meth:`receive` for incoming data, then :meth:`get_message` until it
    returns None, then :meth:`get_acks`.
    """

    def __init__(self) -> None:
        self._received: List[Optional[bytes]] = [None] * RELIABLE_BUFFER_SIZE
        self._received_sequences: List[int] = [0] * RELIABLE_BUFFER_SIZE
        self._next_sequence = 1

    def get_message(self) -> Optional[bytes]:
        """Return the next in-order message, or None if it has not arrived yet."""
        index = self._next_sequence % RELIABLE_BUFFER_SIZE
        data = self._received[index]
        if data is None or self._received_sequences[index] != self._next_sequence:
            return None
        self._received[index] = None
        self._next_sequence += 1
        return data

    def receive(self, sequence: int, data: bytes) -> None:
        """Store a reliable message; duplicates and stale sequences are ignored."""
        index = sequence % RELIABLE_BUFFER_SIZE
        previous = self._received_sequences[index]
        if sequence > previous:
            if sequence - previous > RELIABLE_BUFFER_SIZE:
                raise ValueError("sequence number too high received")
            self._received_sequences[index] = sequence
            self._received[index] = bytes(data)

    def get_acks(self) -> Tuple[int, List[bool]]:
        """Return the next expected sequence and the ack bits following it, trailing zeros removed."""
        sequence = self._next_sequence
        bits = []
        for offset in range(RELIABLE_BUFFER_SIZE):
            index = (offset + sequence) % RELIABLE_BUFFER_SIZE
            bits.append(
                self._received_sequences[index] >= sequence
                and self._received[index] is not None
            )
        while bits and not bits[-1]:
            bits.pop()
        return sequence, bits