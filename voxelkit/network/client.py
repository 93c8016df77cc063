"""Client side of the connection protocol: handshake, timeouts and message batching."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Tuple, Union

from .channel import Receiver, Sender
from .packet import PacketError, deserialize_client_packet, serialize_packet
from .transport import Address, Socket
from .types import (
    DISCONNECT_TIMEOUT,
    TIMEOUT_MESSAGE,
    Challenge,
    ChallengeResponse,
    Message,
    MessageDelivery,
    ReliableAcksMessage,
    ReliableMessage,
    SimpleBitSet,
    ToClientDisconnect,
    ToClientMessages,
    ToClientPacket,
    ToServerMessages,
    TryConnect,
    UnreliableMessage,
)

_log = logging.getLogger(__name__)


@dataclass
class _ConnectSent:
    client_salt: int
    time: float


@dataclass
class _ChallengeResponseSent:
    salts_xor: int
    time: float


@dataclass
class _Connected:
    salts_xor: int
    last_server_packet: float
    sender: Sender
    receiver: Receiver
    pending_unreliable: List[bytes] = field(default_factory=list)


@dataclass
class _Disconnected:
    message: str


_Status = Union[_ConnectSent, _ChallengeResponseSent, _Connected, _Disconnected]


class Client:
    """Connects to a server over a :class:`Socket` and exchanges messages with it.

    Call :meth:`connect` once, then :meth:`tick` regularly.
    """

    def __init__(
        self,
        socket: Socket,
        server_addr: Address,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._socket = socket
        self._server_addr = server_addr
        self._clock = clock
        self._status: _Status = _Disconnected("Not yet connected")
        self._messages: List[Tuple[MessageDelivery, bytes]] = []

    def connect(self) -> None:
        """Start the handshake; does nothing unless disconnected."""
        if isinstance(self._status, _Disconnected):
            self._status = _ConnectSent(secrets.randbits(32), self._clock())

    def is_connected(self) -> bool:
        """True once the handshake has completed."""
        return isinstance(self._status, _Connected)

    def read(self) -> None:
        """Process every packet waiting on the socket."""
        while (received := self._socket.receive()) is not None:
            data, src = received
            if src != self._server_addr:
                continue
            try:
                packet = deserialize_client_packet(data)
            except PacketError as exc:
                _log.debug("Dropping invalid packet: %s", exc)
                continue
            self._handle_packet(packet)

    def _handle_packet(self, packet: ToClientPacket) -> None:
        status = self._status
        if isinstance(status, _ConnectSent):
            if isinstance(packet, Challenge) and packet.client_salt == status.client_salt:
                self._status = _ChallengeResponseSent(
                    status.client_salt ^ packet.server_salt, self._clock()
                )
            elif isinstance(packet, ToClientDisconnect) and packet.salts_xor == status.client_salt:
                self._status = _Disconnected(packet.message)
            return
        if not isinstance(status, (_ChallengeResponseSent, _Connected)):
            return
        if isinstance(packet, ToClientMessages) and packet.salts_xor == status.salts_xor:
            if isinstance(status, _ChallengeResponseSent):
                status = _Connected(
                    salts_xor=status.salts_xor,
                    last_server_packet=self._clock(),
                    sender=Sender(self._clock),
                    receiver=Receiver(),
                )
                self._status = status
            for message in packet.messages:
                if isinstance(message, UnreliableMessage):
                    self._messages.append((MessageDelivery.UNRELIABLE, message.data))
                elif isinstance(message, ReliableMessage):
                    status.receiver.receive(message.sequence, message.data)
                elif isinstance(message, ReliableAcksMessage):
                    status.sender.receive_acks(message.first_sequence, message.acks.to_bits())
            while (data := status.receiver.get_message()) is not None:
                self._messages.append((MessageDelivery.ORDERED, data))
        elif isinstance(packet, ToClientDisconnect) and packet.salts_xor == status.salts_xor:
            self._status = _Disconnected(packet.message)

    def tick(self) -> None:
        """Read incoming packets, handle timeouts and send everything that is due."""
        self.read()
        status = self._status
        now = self._clock()
        if isinstance(status, _ConnectSent):
            if now - status.time > DISCONNECT_TIMEOUT:
                self._status = _Disconnected(TIMEOUT_MESSAGE)
                return
            self._send(TryConnect(status.client_salt))
        elif isinstance(status, _ChallengeResponseSent):
            if now - status.time > DISCONNECT_TIMEOUT:
                self._status = _Disconnected(TIMEOUT_MESSAGE)
                return
            self._send(ChallengeResponse(status.salts_xor))
        elif isinstance(status, _Connected):
            if now - status.last_server_packet > DISCONNECT_TIMEOUT:
                self._status = _Disconnected(TIMEOUT_MESSAGE)
                return
            self._flush(status)

    def _send(self, packet) -> None:
        self._socket.send(serialize_packet(packet), self._server_addr)

    def _flush(self, status: _Connected) -> None:
        body: List[Message] = []

        def send_message(message: Message) -> bool:
            body.append(message)
            try:
                serialize_packet(ToServerMessages(status.salts_xor, body))
            except PacketError:
                # The new message does not fit: send what came before it
                last = body.pop()
                self._send(ToServerMessages(status.salts_xor, body))
                body[:] = [last]
            return True

        pending, status.pending_unreliable = status.pending_unreliable, []
        for data in pending:
            send_message(UnreliableMessage(data))
        first_sequence, bits = status.receiver.get_acks()
        send_message(ReliableAcksMessage(first_sequence, SimpleBitSet.from_bits(bits)))
        status.sender.tick(send_message)
        if body:
            self._send(ToServerMessages(status.salts_xor, body))

    def send_message(self, data: bytes, delivery: MessageDelivery) -> None:
        """Queue a message for the server; ignored unless connected."""
        status = self._status
        if not isinstance(status, _Connected):
            return
        if delivery is MessageDelivery.UNRELIABLE:
            status.pending_unreliable.append(bytes(data))
        else:
            status.sender.send(data)

    def get_messages(self) -> Iterator[Tuple[MessageDelivery, bytes]]:
        """Return and clear the messages received so far."""
        messages, self._messages = self._messages, []
        return iter(messages)