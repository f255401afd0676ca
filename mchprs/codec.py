"""Primitive protocol reading and writing, and packet framing."""

from __future__ import annotations

import io
import struct
import zlib
from dataclasses import dataclass, field
from itertools import count
from typing import Any, BinaryIO

from mchprs import nbt

_COMPRESSION_THRESHOLD = 256
_U64 = (1 << 64) - 1


class PacketDecodeError(Exception):
    """Raised when incoming packet data cannot be decoded."""


@dataclass
class SlotData:
    """An item stack in an inventory slot."""

    item_id: int
    item_count: int
    nbt: dict | None = None


@dataclass
class PalettedContainer:
    """Block or biome data as sent in chunk packets."""

    bits_per_entry: int
    palette: list[int] | None = None
    data_array: list[int] = field(default_factory=list)


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def encode_varint(value: int) -> bytes:
    """Encode a 32-bit integer as a protocol VarInt."""
    value &= 0xFFFFFFFF
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


class PacketReader:
    """Reads protocol primitives from a binary stream or bytes."""

    def __init__(self, stream):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        self._stream: BinaryIO = stream

    def _read_exact(self, size: int) -> bytes:
        if size < 0:
            raise PacketDecodeError(f"invalid length {size}")
        data = self._stream.read(size)
        if data is None or len(data) < size:
            raise PacketDecodeError("unexpected end of packet data")
        return data

    def _unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self._read_exact(struct.calcsize(fmt)))[0]

    def read_unsigned_byte(self) -> int:
        return self._unpack(">B")

    def read_byte(self) -> int:
        return self._unpack(">b")

    def read_bytes(self, count: int) -> bytes:
        return self._read_exact(count)

    def read_long(self) -> int:
        return self._unpack(">q")

    def read_int(self) -> int:
        return self._unpack(">i")

    def read_short(self) -> int:
        return self._unpack(">h")

    def read_unsigned_short(self) -> int:
        return self._unpack(">H")

    def read_double(self) -> float:
        return self._unpack(">d")

    def read_float(self) -> float:
        return self._unpack(">f")

    def read_bool(self) -> bool:
        return self.read_unsigned_byte() == 1

    def _read_var(self, bits: int) -> int:
        result = 0
        for num_read in count():
            byte = self.read_unsigned_byte()
            if num_read >= 5:
                raise PacketDecodeError("VarInt is too big")
            result |= (byte & 0x7F) << (7 * num_read)
            if not byte & 0x80:
                break
        return _to_signed(result, bits)

    def read_varint(self) -> int:
        return self._read_var(32)

    def read_varlong(self) -> int:
        return self._read_var(64)

    def read_string(self) -> str:
        length = self.read_varint()
        try:
            return self.read_bytes(length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PacketDecodeError(f"invalid UTF-8 string: {exc}") from exc

    def read_to_end(self) -> bytes:
        return self._stream.read() or b""

    def read_position(self) -> tuple[int, int, int]:
        value = self.read_long()
        x = value >> 38
        y = _to_signed(value, 12)
        z = _to_signed(value >> 12, 26)
        return x, y, z

    def read_nbt_blob(self) -> dict | None:
        """Read an NBT compound; None when the data holds no root compound."""
        try:
            result = nbt.read_nbt(self._stream)
        except nbt.NbtError as exc:
            raise PacketDecodeError(f"invalid NBT: {exc}") from exc
        return None if result is None else result[1]


class PacketWriter:
    """Accumulates protocol primitives into a byte buffer."""

    def __init__(self):
        self._buffer = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def _pack(self, fmt: str, value) -> None:
        try:
            self._buffer += struct.pack(fmt, value)
        except (struct.error, OverflowError) as exc:
            raise ValueError(f"cannot write {value!r}: {exc}") from exc

    def write_boolean(self, value: bool) -> None:
        self._buffer.append(1 if value else 0)

    def write_bytes(self, value: bytes) -> None:
        self._buffer += value

    def write_varint(self, value: int) -> None:
        self._buffer += encode_varint(value)

    def write_varlong(self, value: int) -> None:
        value &= _U64
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buffer.append(byte | 0x80)
            else:
                self._buffer.append(byte)
                return

    def write_byte(self, value: int) -> None:
        self._pack(">b", value)

    def write_unsigned_byte(self, value: int) -> None:
        self._pack(">B", value)

    def write_short(self, value: int) -> None:
        self._pack(">h", value)

    def write_unsigned_short(self, value: int) -> None:
        self._pack(">H", value)

    def write_int(self, value: int) -> None:
        self._pack(">i", value)

    def write_double(self, value: float) -> None:
        self._pack(">d", value)

    def write_float(self, value: float) -> None:
        self._pack(">f", value)

    def write_string(self, max_length: int, value: str) -> None:
        raw = value.encode("utf-8")
        if len(raw) > max_length * 4 + 3:
            raise ValueError("tried to write string longer than the max length")
        self.write_varint(len(raw))
        self._buffer += raw

    def write_uuid(self, value: int) -> None:
        self._buffer += (value & ((1 << 128) - 1)).to_bytes(16, "big")

    def write_long(self, value: int) -> None:
        """Write 64 bits; accepts both signed and unsigned values."""
        self._pack(">Q", value & _U64)

    def write_position(self, x: int, y: int, z: int) -> None:
        self.write_long(((x & 0x3FFFFFF) << 38) | ((z & 0x3FFFFFF) << 12) | (y & 0xFFF))

    def write_bool(self, value: bool) -> None:
        self._buffer.append(1 if value else 0)

    def write_nbt(self, value: Any) -> None:
        self._buffer += nbt.write_nbt(value, "")

    def write_nbt_blob(self, blob: dict) -> None:
        self._buffer += nbt.write_nbt(blob, "")

    def write_slot_data(self, slot_data: SlotData | None) -> None:
        if slot_data is None:
            self.write_bool(False)
            return
        self.write_bool(True)
        self.write_varint(slot_data.item_id)
        self.write_byte(slot_data.item_count)
        if slot_data.nbt is not None:
            self.write_nbt_blob(slot_data.nbt)
        else:
            self.write_byte(0)


@dataclass
class PacketEncoder:
    """An encoded packet body with its id, ready to be framed onto a stream."""

    buffer: bytes
    packet_id: int

    def __post_init__(self):
        self.buffer = bytes(self.buffer)

    def write_compressed(self, stream) -> None:
        """Frame the packet for a connection with compression enabled."""
        data = encode_varint(self.packet_id) + self.buffer
        if len(self.buffer) < _COMPRESSION_THRESHOLD:
            frame = encode_varint(1 + len(data)) + b"\x00" + data
        else:
            data_length = encode_varint(len(data))
            compressed = zlib.compress(data, 6)
            frame = (
                encode_varint(len(data_length) + len(compressed))
                + data_length
                + compressed
            )
        stream.write(frame)

    def write_uncompressed(self, stream) -> None:
        """Frame the packet for a connection without compression."""
        packet_id = encode_varint(self.packet_id)
        length = encode_varint(len(self.buffer) + len(packet_id))
        stream.write(length + packet_id + self.buffer)