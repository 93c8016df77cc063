"""Server side of the connection protocol: handshakes, timeouts and message batching."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Union

from .channel import Receiver, Sender
from .packet import PacketError, deserialize_server_packet, serialize_packet
from .transport import Address, Socket
from .types import (
    DISCONNECT_TIMEOUT,
    Challenge,
    ChallengeResponse,
    Message,
    MessageDelivery,
    ReliableAcksMessage,
    ReliableMessage,
    SimpleBitSet,
    ToClientMessages,
    ToServerDisconnect,
    ToServerMessages,
    ToServerPacket,
    TryConnect,
    UnreliableMessage,
)

_log = logging.getLogger(__name__)

MAX_PLAYERS = 10


@dataclass(frozen=True)
class ConnectedEvent:
    """A client completed the handshake."""

    id: Address


@dataclass(frozen=True)
class DisconnectedEvent:
    """A client disconnected or timed out."""

    id: Address


@dataclass(frozen=True)
class MessageEvent:
    """A client sent a message."""

    source_id: Address
    kind: MessageDelivery
    data: bytes


ServerEvent = Union[ConnectedEvent, DisconnectedEvent, MessageEvent]


@dataclass
class _ConnectReceived:
    client_salt: int
    server_salt: int
    time: float
    remote: Address


@dataclass
class _Connected:
    salts_xor: int
    last_client_packet: float
    remote: Address
    sender: Sender
    receiver: Receiver
    pending_unreliable: List[bytes] = field(default_factory=list)


_Slot = Optional[Union[_ConnectReceived, _Connected]]


class Server:
    """Accepts up to ten clients over a :class:`Socket`.

    Queue messages with :meth:`send_message`, then call :meth:`tick`.
    """

    def __init__(self, socket: Socket, clock: Callable[[], float] = time.monotonic) -> None:
        self._socket = socket
        self._clock = clock
        self._slots: List[_Slot] = [None] * MAX_PLAYERS
        self._events: List[ServerEvent] = []

    def read(self) -> None:
        """Process every packet waiting on the socket."""
        while (received := self._socket.receive()) is not None:
            data, src = received
            try:
                packet = deserialize_server_packet(data)
            except PacketError as exc:
                _log.debug("Dropping invalid packet from %r: %s", src, exc)
                continue
            index = self._find_client_slot(src)
            if index is not None:
                self._handle_client_packet(index, src, packet)
                continue
            free = self._find_free_slot()
            if free is not None and isinstance(packet, TryConnect):
                self._slots[free] = _ConnectReceived(
                    client_salt=packet.client_salt,
                    server_salt=secrets.randbits(32),
                    time=self._clock(),
                    remote=src,
                )

    def _handle_client_packet(self, index: int, src: Address, packet: ToServerPacket) -> None:
        slot = self._slots[index]
        if isinstance(slot, _ConnectReceived):
            expected = slot.client_salt ^ slot.server_salt
            if isinstance(packet, ChallengeResponse) and packet.salts_xor == expected:
                self._slots[index] = _Connected(
                    salts_xor=expected,
                    last_client_packet=self._clock(),
                    remote=src,
                    sender=Sender(self._clock),
                    receiver=Receiver(),
                )
                self._events.append(ConnectedEvent(src))
            return
        if not isinstance(slot, _Connected):
            return
        if isinstance(packet, ToServerMessages) and packet.salts_xor == slot.salts_xor:
            for message in packet.messages:
                match message:
                    case UnreliableMessage(data=data):
                        self._events.append(MessageEvent(src, MessageDelivery.UNRELIABLE, data))
                    case ReliableMessage(sequence=sequence, data=data):
                        slot.receiver.receive(sequence, data)
                    case ReliableAcksMessage(first_sequence=first_sequence, acks=acks):
                        slot.sender.receive_acks(first_sequence, acks.to_bits())
            while (data := slot.receiver.get_message()) is not None:
                self._events.append(MessageEvent(src, MessageDelivery.ORDERED, data))
        elif isinstance(packet, ToServerDisconnect) and packet.salts_xor == slot.salts_xor:
            self._slots[index] = None
            self._events.append(DisconnectedEvent(src))

    def _find_client_slot(self, addr: Address) -> Optional[int]:
        return next(
            (i for i, slot in enumerate(self._slots) if slot is not None and slot.remote == addr),
            None,
        )

    def _find_free_slot(self) -> Optional[int]:
        return next((i for i, slot in enumerate(self._slots) if slot is None), None)

    def tick(self) -> None:
        """Read incoming packets, handle timeouts and send everything that is due."""
        self.read()
        for index, slot in enumerate(self._slots):
            if slot is None:
                continue
            if isinstance(slot, _ConnectReceived):
                if self._clock() - slot.time > DISCONNECT_TIMEOUT:
                    self._slots[index] = None
                    return
                challenge = Challenge(slot.client_salt, slot.server_salt)
                self._socket.send(serialize_packet(challenge), slot.remote)
            else:
                if self._clock() - slot.last_client_packet > DISCONNECT_TIMEOUT:
                    self._events.append(DisconnectedEvent(slot.remote))
                    self._slots[index] = None
                    return
                self._flush(slot)

    def _flush(self, slot: _Connected) -> None:
        body: List[Message] = []

        def send_packet(messages: List[Message]) -> None:
            packet = serialize_packet(ToClientMessages(slot.salts_xor, messages))
            self._socket.send(packet, slot.remote)

        def send_message(message: Message) -> bool:
            body.append(message)
            try:
                serialize_packet(ToClientMessages(slot.salts_xor, body))
            except PacketError:
                # The new message does not fit: send what came before it
                last = body.pop()
                send_packet(body)
                body[:] = [last]
            return True

        pending, slot.pending_unreliable = slot.pending_unreliable, []
        for data in pending:
            send_message(UnreliableMessage(data))
        first_sequence, bits = slot.receiver.get_acks()
        send_message(ReliableAcksMessage(first_sequence, SimpleBitSet.from_bits(bits)))
        slot.sender.tick(send_message)
        if body:
            send_packet(body)

    def send_message(self, addr: Address, data: bytes, delivery: MessageDelivery) -> None:
        """Queue a message for a connected client; ignored for unknown clients."""
        index = self._find_client_slot(addr)
        if index is None:
            return
        slot = self._slots[index]
        if not isinstance(slot, _Connected):
            return
        if delivery is MessageDelivery.UNRELIABLE:
            slot.pending_unreliable.append(bytes(data))
        else:
            slot.sender.send(data)

    def get_events(self) -> Iterator[ServerEvent]:
        """Return and clear the events gathered so far."""
        events, self._events = self._events, []
        return iter(events)