"""Named Binary Tag (NBT) encoding and decoding, plus the registry map format."""

from __future__ import annotations

import dataclasses
import io
import struct
from collections.abc import Mapping
from enum import IntEnum
from typing import Any, BinaryIO


class NbtError(ValueError):
    """Raised when a value cannot be encoded as NBT or NBT data is malformed."""


class _Tag(IntEnum):
    END = 0
    BYTE = 1
    SHORT = 2
    INT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6
    BYTE_ARRAY = 7
    STRING = 8
    LIST = 9
    COMPOUND = 10
    INT_ARRAY = 11
    LONG_ARRAY = 12


class _Ranged(int):
    _bits = 64

    def __new__(cls, value: int = 0):
        obj = super().__new__(cls, value)
        limit = 1 << (cls._bits - 1)
        if not -limit <= obj < limit:
            raise NbtError(f"{cls.__name__} value {int(obj)} is out of range")
        return obj

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class Byte(_Ranged):
    """A signed 8-bit NBT integer."""

    _bits = 8


class Short(_Ranged):
    """A signed 16-bit NBT integer."""

    _bits = 16


class Int(_Ranged):
    """A signed 32-bit NBT integer."""

    _bits = 32


class Long(_Ranged):
    """A signed 64-bit NBT integer."""

    _bits = 64


class Float(float):
    """A 32-bit NBT floating point number."""

    def __repr__(self) -> str:
        return f"Float({float(self)!r})"


class Double(float):
    """A 64-bit NBT floating point number."""

    def __repr__(self) -> str:
        return f"Double({float(self)!r})"


class _TypedArray(list):
    _element: type = Long

    def __init__(self, iterable=()):
        super().__init__(self._element(v) for v in iterable)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


class ByteArray(_TypedArray):
    """An NBT array of signed bytes."""

    _element = Byte


class IntArray(_TypedArray):
    """An NBT array of signed 32-bit integers."""

    _element = Int


class LongArray(_TypedArray):
    """An NBT array of signed 64-bit integers."""

    _element = Long


class NBTMap:
    """A typed registry of named, numbered elements as used by the join game packet."""

    def __init__(self, self_type: str):
        self.self_type = self_type
        self.entries: list[tuple[str, int, Any]] = []

    def push_element(self, name: str, element: Any) -> None:
        """Append an element; its id is its position in the map."""
        self.entries.append((name, len(self.entries), element))

    def to_nbt(self) -> dict:
        return {
            "type": self.self_type,
            "value": [
                {"name": name, "id": Int(ident), "element": element}
                for name, ident, element in self.entries
            ],
        }


# ---------------------------------------------------------------- encoding


def _pack(fmt: str, value) -> bytes:
    try:
        return struct.pack(fmt, value)
    except (struct.error, OverflowError) as exc:
        raise NbtError(f"cannot pack {value!r}: {exc}") from exc


def _encode_mutf8(text: str) -> bytes:
    out = bytearray()
    for ch in text:
        cp = ord(ch)
        if cp == 0:
            out += b"\xc0\x80"
        elif cp > 0xFFFF:
            cp -= 0x10000
            for unit in (0xD800 | (cp >> 10), 0xDC00 | (cp & 0x3FF)):
                out += chr(unit).encode("utf-8", "surrogatepass")
        else:
            out += ch.encode("utf-8", "surrogatepass")
    return bytes(out)


def _decode_mutf8(raw: bytes) -> str:
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
        return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be")
    except UnicodeError as exc:
        raise NbtError(f"invalid NBT string: {exc}") from exc


def _normalize(value: Any) -> Any:
    to_nbt = getattr(value, "to_nbt", None)
    if callable(to_nbt):
        return to_nbt()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: getattr(value, f.name)
            for f in dataclasses.fields(value)
            if getattr(value, f.name) is not None
        }
    return value


def _tag_of(value: Any) -> _Tag:
    if isinstance(value, (Byte, bool)):
        return _Tag.BYTE
    if isinstance(value, Short):
        return _Tag.SHORT
    if isinstance(value, Long):
        return _Tag.LONG
    if isinstance(value, int):
        return _Tag.INT
    if isinstance(value, Float):
        return _Tag.FLOAT
    if isinstance(value, float):
        return _Tag.DOUBLE
    if isinstance(value, str):
        return _Tag.STRING
    if isinstance(value, (ByteArray, bytes, bytearray)):
        return _Tag.BYTE_ARRAY
    if isinstance(value, IntArray):
        return _Tag.INT_ARRAY
    if isinstance(value, LongArray):
        return _Tag.LONG_ARRAY
    if isinstance(value, Mapping):
        return _Tag.COMPOUND
    if isinstance(value, (list, tuple)):
        return _Tag.LIST
    raise NbtError(f"cannot encode {type(value).__name__} as NBT")


def _write_string(out: bytearray, text: str) -> None:
    raw = _encode_mutf8(text)
    if len(raw) > 0xFFFF:
        raise NbtError("NBT string is too long")
    out += struct.pack(">H", len(raw))
    out += raw


def _write_payload(out: bytearray, tag: _Tag, value: Any) -> None:
    if tag is _Tag.BYTE:
        out += _pack(">b", int(value))
    elif tag is _Tag.SHORT:
        out += _pack(">h", value)
    elif tag is _Tag.INT:
        out += _pack(">i", value)
    elif tag is _Tag.LONG:
        out += _pack(">q", value)
    elif tag is _Tag.FLOAT:
        out += _pack(">f", value)
    elif tag is _Tag.DOUBLE:
        out += _pack(">d", value)
    elif tag is _Tag.STRING:
        _write_string(out, value)
    elif tag is _Tag.BYTE_ARRAY:
        items = list(value)
        out += _pack(">i", len(items))
        fmt = ">B" if isinstance(value, (bytes, bytearray)) else ">b"
        for item in items:
            out += _pack(fmt, item)
    elif tag in (_Tag.INT_ARRAY, _Tag.LONG_ARRAY):
        fmt = ">i" if tag is _Tag.INT_ARRAY else ">q"
        out += _pack(">i", len(value))
        for item in value:
            out += _pack(fmt, item)
    elif tag is _Tag.LIST:
        items = [_normalize(v) for v in value]
        if not items:
            out.append(_Tag.END)
            out += _pack(">i", 0)
            return
        tags = {_tag_of(item) for item in items}
        if len(tags) > 1:
            raise NbtError("NBT list elements must all have the same type")
        element_tag = tags.pop()
        out.append(element_tag)
        out += _pack(">i", len(items))
        for item in items:
            _write_payload(out, element_tag, item)
    elif tag is _Tag.COMPOUND:
        for key, item in value.items():
            if not isinstance(key, str):
                raise NbtError(f"compound key {key!r} is not a string")
            item = _normalize(item)
            item_tag = _tag_of(item)
            out.append(item_tag)
            _write_string(out, key)
            _write_payload(out, item_tag, item)
        out.append(_Tag.END)
    else:
        raise NbtError(f"cannot write tag {tag!r}")


def write_nbt(value: Any, name: str = "") -> bytes:
    """Encode `value` as a named root compound tag."""
    value = _normalize(value)
    if _tag_of(value) is not _Tag.COMPOUND:
        raise NbtError("the NBT root must be a compound")
    out = bytearray([_Tag.COMPOUND])
    _write_string(out, name)
    _write_payload(out, _Tag.COMPOUND, value)
    return bytes(out)


# ---------------------------------------------------------------- decoding


def _read_exact(stream: BinaryIO, count: int) -> bytes:
    data = stream.read(count)
    if data is None or len(data) < count:
        raise NbtError("unexpected end of NBT data")
    return data


def _unpack(stream: BinaryIO, fmt: str) -> Any:
    return struct.unpack(fmt, _read_exact(stream, struct.calcsize(fmt)))[0]


def _read_tag(stream: BinaryIO) -> _Tag:
    raw = _unpack(stream, ">B")
    try:
        return _Tag(raw)
    except ValueError:
        raise NbtError(f"unknown NBT tag {raw}") from None


def _read_string(stream: BinaryIO) -> str:
    length = _unpack(stream, ">H")
    return _decode_mutf8(_read_exact(stream, length))


def _read_length(stream: BinaryIO) -> int:
    length = _unpack(stream, ">i")
    if length < 0:
        raise NbtError(f"negative NBT length {length}")
    return length


def _read_payload(stream: BinaryIO, tag: _Tag) -> Any:
    if tag is _Tag.BYTE:
        return Byte(_unpack(stream, ">b"))
    if tag is _Tag.SHORT:
        return Short(_unpack(stream, ">h"))
    if tag is _Tag.INT:
        return Int(_unpack(stream, ">i"))
    if tag is _Tag.LONG:
        return Long(_unpack(stream, ">q"))
    if tag is _Tag.FLOAT:
        return Float(_unpack(stream, ">f"))
    if tag is _Tag.DOUBLE:
        return Double(_unpack(stream, ">d"))
    if tag is _Tag.STRING:
        return _read_string(stream)
    if tag is _Tag.BYTE_ARRAY:
        length = _read_length(stream)
        return ByteArray(struct.unpack(f">{length}b", _read_exact(stream, length)))
    if tag is _Tag.INT_ARRAY:
        length = _read_length(stream)
        return IntArray(struct.unpack(f">{length}i", _read_exact(stream, 4 * length)))
    if tag is _Tag.LONG_ARRAY:
        length = _read_length(stream)
        return LongArray(struct.unpack(f">{length}q", _read_exact(stream, 8 * length)))
    if tag is _Tag.LIST:
        element_tag = _read_tag(stream)
        length = _read_length(stream)
        if element_tag is _Tag.END and length:
            raise NbtError("NBT list of end tags must be empty")
        return [_read_payload(stream, element_tag) for _ in range(length)]
    if tag is _Tag.COMPOUND:
        compound = {}
        while (item_tag := _read_tag(stream)) is not _Tag.END:
            key = _read_string(stream)
            compound[key] = _read_payload(stream, item_tag)
        return compound
    raise NbtError(f"unexpected NBT tag {tag!r}")


def read_nbt(stream) -> tuple[str, dict] | None:
    """Read a named root compound; return (name, compound), or None if the root is not a compound."""
    if isinstance(stream, (bytes, bytearray, memoryview)):
        stream = io.BytesIO(bytes(stream))
    tag = _read_tag(stream)
    if tag is _Tag.END:
        return None
    name = _read_string(stream)
    if tag is not _Tag.COMPOUND:
        return None
    return name, _read_payload(stream, _Tag.COMPOUND)