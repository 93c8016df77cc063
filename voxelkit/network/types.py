"""Protocol constants, messages and packets exchanged between client and server."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple, Union

MAGIC_NUMBER = (0x4212313F).to_bytes(4, "little")
MAX_PACKET_SIZE = 1200
HEADER_SIZE = 4  # only the CRC32
MAX_PACKET_CONTENT = MAX_PACKET_SIZE - HEADER_SIZE
DISCONNECT_TIMEOUT = 5.0
TIMEOUT_MESSAGE = "Timed out"
RELIABLE_BUFFER_SIZE = 1024
RESEND_DELAY = 0.1
PADDING_SIZE = 32 * 32


class MessageDelivery(enum.Enum):
    """How a message is delivered."""

    UNRELIABLE = "unreliable"
    """The message may not arrive."""
    ORDERED = "ordered"
    """The message arrives exactly once, in order with the other ordered messages."""


@dataclass(frozen=True)
class SimpleBitSet:
    """A bit set in its wire form: packed bytes, least significant bit first."""

    last_byte_bits: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        if not 0 <= self.last_byte_bits < 8:
            raise ValueError("last_byte_bits must be between 0 and 7")

    @classmethod
    def from_bits(cls, bits: Iterable[bool]) -> "SimpleBitSet":
        """Pack a sequence of booleans."""
        flags = [bool(bit) for bit in bits]
        packed = bytearray((len(flags) + 7) // 8)
        for position, flag in enumerate(flags):
            if flag:
                packed[position // 8] |= 1 << (position % 8)
        return cls(len(flags) % 8, bytes(packed))

    def to_bits(self) -> List[bool]:
        """Unpack into a list of booleans."""
        bits = [bool(byte >> shift & 1) for byte in self.data for shift in range(8)]
        if self.last_byte_bits and bits:
            del bits[len(bits) - 8 + self.last_byte_bits:]
        return bits


@dataclass(frozen=True)
class UnreliableMessage:
    """A message that may be lost."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class ReliableMessage:
    """A message carrying a sequence number, resent until acknowledged."""

    sequence: int
    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class ReliableAcksMessage:
    """Acknowledgements: bit i is set if message ``first_sequence + i`` was received."""

    first_sequence: int
    acks: SimpleBitSet = field(default_factory=SimpleBitSet)


Message = Union[UnreliableMessage, ReliableMessage, ReliableAcksMessage]


def _message_tuple(messages: Iterable[Message]) -> Tuple[Message, ...]:
    return tuple(messages)


def _check_padding(padding: bytes) -> bytes:
    padding = bytes(padding)
    if len(padding) != PADDING_SIZE:
        raise ValueError(f"padding must be {PADDING_SIZE} bytes long")
    return padding


@dataclass(frozen=True)
class Challenge:
    """Server's answer to a connection attempt."""

    client_salt: int
    server_salt: int


@dataclass(frozen=True)
class ToClientMessages:
    """A batch of messages sent to a client."""

    salts_xor: int
    messages: Tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", _message_tuple(self.messages))


@dataclass(frozen=True)
class ToClientDisconnect:
    """Disconnection notice; ``salts_xor`` is the client salt if the server is full."""

    salts_xor: int
    message: str


@dataclass(frozen=True)
class TryConnect:
    """Connection attempt, padded so that it cannot be used for amplification."""

    client_salt: int
    padding: bytes = bytes(PADDING_SIZE)

    def __post_init__(self) -> None:
        object.__setattr__(self, "padding", _check_padding(self.padding))


@dataclass(frozen=True)
class ChallengeResponse:
    """Client's answer to a challenge."""

    salts_xor: int
    padding: bytes = bytes(PADDING_SIZE)

    def __post_init__(self) -> None:
        object.__setattr__(self, "padding", _check_padding(self.padding))


@dataclass(frozen=True)
class ToServerMessages:
    """A batch of messages sent to the server."""

    salts_xor: int
    messages: Tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", _message_tuple(self.messages))


@dataclass(frozen=True)
class ToServerDisconnect:
    """Client's disconnection notice."""

    salts_xor: int


ToClientPacket = Union[Challenge, ToClientMessages, ToClientDisconnect]
ToServerPacket = Union[TryConnect, ChallengeResponse, ToServerMessages, ToServerDisconnect]