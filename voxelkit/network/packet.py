"""Binary encoding of packets: a CRC32 header followed by a compact body."""

from __future__ import annotations

import zlib
from typing import Callable, Tuple, Union

from .types import (
    HEADER_SIZE,
    MAGIC_NUMBER,
    MAX_PACKET_CONTENT,
    Challenge,
    ChallengeResponse,
    Message,
    ReliableAcksMessage,
    ReliableMessage,
    SimpleBitSet,
    ToClientDisconnect,
    ToClientMessages,
    ToClientPacket,
    ToServerDisconnect,
    ToServerMessages,
    ToServerPacket,
    TryConnect,
    UnreliableMessage,
    PADDING_SIZE,
)


class PacketError(ValueError):
    """Raised when a packet cannot be encoded or decoded."""


_VARINT_WIDTHS = {251: 2, 252: 4, 253: 8, 254: 16}


def _put_varint(out: bytearray, value: int, bits: int) -> None:
    if not 0 <= value < 1 << bits:
        raise PacketError(f"value {value} does not fit in {bits} bits")
    if value < 251:
        out.append(value)
    elif value < 1 << 16:
        out.append(251)
        out += value.to_bytes(2, "little")
    elif value < 1 << 32:
        out.append(252)
        out += value.to_bytes(4, "little")
    else:
        out.append(253)
        out += value.to_bytes(8, "little")


def _put_u8(out: bytearray, value: int) -> None:
    if not 0 <= value < 256:
        raise PacketError(f"value {value} does not fit in a byte")
    out.append(value)


def _put_bytes(out: bytearray, data: bytes) -> None:
    _put_varint(out, len(data), 64)
    out += data


def _put_message(out: bytearray, message: Message) -> None:
    match message:
        case UnreliableMessage(data=data):
            _put_varint(out, 0, 32)
            _put_bytes(out, data)
        case ReliableMessage(sequence=sequence, data=data):
            _put_varint(out, 1, 32)
            _put_varint(out, sequence, 32)
            _put_bytes(out, data)
        case ReliableAcksMessage(first_sequence=first_sequence, acks=acks):
            _put_varint(out, 2, 32)
            _put_varint(out, first_sequence, 32)
            _put_u8(out, acks.last_byte_bits)
            _put_bytes(out, acks.data)
        case _:
            raise PacketError(f"unknown message {message!r}")


def _put_messages(out: bytearray, messages: Tuple[Message, ...]) -> None:
    _put_varint(out, len(messages), 64)
    for message in messages:
        _put_message(out, message)


def _put_packet(out: bytearray, packet: Union[ToClientPacket, ToServerPacket]) -> None:
    match packet:
        case Challenge(client_salt=client_salt, server_salt=server_salt):
            _put_varint(out, 0, 32)
            _put_varint(out, client_salt, 32)
            _put_varint(out, server_salt, 32)
        case ToClientMessages(salts_xor=salts_xor, messages=messages):
            _put_varint(out, 1, 32)
            _put_varint(out, salts_xor, 32)
            _put_messages(out, messages)
        case ToClientDisconnect(salts_xor=salts_xor, message=message):
            _put_varint(out, 2, 32)
            _put_varint(out, salts_xor, 32)
            _put_bytes(out, message.encode("utf-8"))
        case TryConnect(client_salt=client_salt, padding=padding):
            _put_varint(out, 0, 32)
            _put_varint(out, client_salt, 32)
            out += padding
        case ChallengeResponse(salts_xor=salts_xor, padding=padding):
            _put_varint(out, 1, 32)
            _put_varint(out, salts_xor, 32)
            out += padding
        case ToServerMessages(salts_xor=salts_xor, messages=messages):
            _put_varint(out, 2, 32)
            _put_varint(out, salts_xor, 32)
            _put_messages(out, messages)
        case ToServerDisconnect(salts_xor=salts_xor):
            _put_varint(out, 3, 32)
            _put_varint(out, salts_xor, 32)
        case _:
            raise PacketError(f"unknown packet {packet!r}")


def serialize_packet(packet: Union[ToClientPacket, ToServerPacket]) -> bytes:
    """Encode a packet, checksum header included."""
    content = bytearray()
    _put_packet(content, packet)
    if len(content) > MAX_PACKET_CONTENT:
        raise PacketError("packet content exceeds the size limit")
    checksum = zlib.crc32(MAGIC_NUMBER + content) & 0xFFFFFFFF
    return checksum.to_bytes(4, "little") + bytes(content)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise PacketError("unexpected end of packet")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def varint(self, bits: int) -> int:
        prefix = self.u8()
        if prefix < 251:
            return prefix
        width = _VARINT_WIDTHS.get(prefix)
        if width is None:
            raise PacketError(f"invalid integer prefix {prefix}")
        value = int.from_bytes(self.take(width), "little")
        if value >= 1 << bits:
            raise PacketError(f"integer does not fit in {bits} bits")
        return value

    def byte_string(self) -> bytes:
        return self.take(self.varint(64))

    def text(self) -> str:
        try:
            return self.byte_string().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PacketError("invalid UTF-8 in string") from exc

    def message(self) -> Message:
        tag = self.varint(32)
        if tag == 0:
            return UnreliableMessage(self.byte_string())
        if tag == 1:
            sequence = self.varint(32)
            return ReliableMessage(sequence, self.byte_string())
        if tag == 2:
            first_sequence = self.varint(32)
            last_byte_bits = self.u8()
            data = self.byte_string()
            try:
                acks = SimpleBitSet(last_byte_bits, data)
            except ValueError as exc:
                raise PacketError(str(exc)) from exc
            return ReliableAcksMessage(first_sequence, acks)
        raise PacketError(f"unknown message tag {tag}")

    def messages(self) -> Tuple[Message, ...]:
        count = self.varint(64)
        return tuple(self.message() for _ in range(count))


def _client_packet(reader: _Reader) -> ToClientPacket:
    tag = reader.varint(32)
    if tag == 0:
        client_salt = reader.varint(32)
        return Challenge(client_salt, reader.varint(32))
    if tag == 1:
        salts_xor = reader.varint(32)
        return ToClientMessages(salts_xor, reader.messages())
    if tag == 2:
        salts_xor = reader.varint(32)
        return ToClientDisconnect(salts_xor, reader.text())
    raise PacketError(f"unknown packet tag {tag}")


def _server_packet(reader: _Reader) -> ToServerPacket:
    tag = reader.varint(32)
    if tag == 0:
        client_salt = reader.varint(32)
        return TryConnect(client_salt, reader.take(PADDING_SIZE))
    if tag == 1:
        salts_xor = reader.varint(32)
        return ChallengeResponse(salts_xor, reader.take(PADDING_SIZE))
    if tag == 2:
        salts_xor = reader.varint(32)
        return ToServerMessages(salts_xor, reader.messages())
    if tag == 3:
        return ToServerDisconnect(reader.varint(32))
    raise PacketError(f"unknown packet tag {tag}")


def _checked_content(data: bytes) -> bytes:
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise PacketError("packet shorter than its header")
    content = data[HEADER_SIZE:]
    if len(content) > MAX_PACKET_CONTENT:
        raise PacketError("packet content exceeds the size limit")
    checksum = zlib.crc32(MAGIC_NUMBER + content) & 0xFFFFFFFF
    if checksum.to_bytes(4, "little") != data[:HEADER_SIZE]:
        raise PacketError("invalid checksum")
    return content


def _deserialize(data: bytes, decode: Callable[[_Reader], object]):
    return decode(_Reader(_checked_content(data)))


def deserialize_client_packet(data: bytes) -> ToClientPacket:
    """Decode a packet sent by the server to a client."""
    return _deserialize(data, _client_packet)


def deserialize_server_packet(data: bytes) -> ToServerPacket:
    """Decode a packet sent by a client to the server."""
    return _deserialize(data, _server_packet)