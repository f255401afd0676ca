import io
import zlib

import pytest

from mchprs.codec import (
    PacketDecodeError,
    PacketEncoder,
    PacketReader,
    PacketWriter,
    SlotData,
    encode_varint,
)
from mchprs.nbt import Short


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 2**31 - 1, -1, -(2**31), -12345])
def test_varint_round_trip(value):
    writer = PacketWriter()
    writer.write_varint(value)
    assert PacketReader(writer.getvalue()).read_varint() == value


def test_varint_wire_shape():
    assert encode_varint(0) == b"\x00"
    assert len(encode_varint(-1)) == 5
    assert len(encode_varint(127)) == 1
    assert len(encode_varint(128)) == 2


def test_varint_too_big():
    with pytest.raises(PacketDecodeError):
        PacketReader(b"\x80" * 6).read_varint()


@pytest.mark.parametrize("value", [0, 5, 300, 2**34])
def test_varlong_round_trip(value):
    writer = PacketWriter()
    writer.write_varlong(value)
    assert PacketReader(writer.getvalue()).read_varlong() == value


@pytest.mark.parametrize(
    "pos", [(0, 0, 0), (-5, -64, 1000000), (33554431, 2047, -33554432), (-1, -1, -1)]
)
def test_position_round_trip(pos):
    writer = PacketWriter()
    writer.write_position(*pos)
    assert PacketReader(writer.getvalue()).read_position() == pos


def test_position_packs_y_in_low_bits():
    writer = PacketWriter()
    writer.write_position(0, 1, 0)
    assert PacketReader(writer.getvalue()).read_long() == 1


def test_fixed_width_round_trips():
    writer = PacketWriter()
    writer.write_long(-(2**63))
    writer.write_int(-7)
    writer.write_short(-300)
    writer.write_unsigned_short(65535)
    writer.write_double(3.25)
    writer.write_float(1.5)
    writer.write_byte(-128)
    writer.write_unsigned_byte(255)
    reader = PacketReader(writer.getvalue())
    assert reader.read_long() == -(2**63)
    assert reader.read_int() == -7
    assert reader.read_short() == -300
    assert reader.read_unsigned_short() == 65535
    assert reader.read_double() == 3.25
    assert reader.read_float() == 1.5
    assert reader.read_byte() == -128
    assert reader.read_unsigned_byte() == 255
    assert reader.read_to_end() == b""


def test_write_long_accepts_unsigned():
    writer = PacketWriter()
    writer.write_long(2**64 - 1)
    assert PacketReader(writer.getvalue()).read_long() == -1


def test_out_of_range_int_raises():
    with pytest.raises(ValueError):
        PacketWriter().write_int(2**31)


def test_read_bool_only_one_is_true():
    reader = PacketReader(b"\x01\x02\x00")
    assert [reader.read_bool(), reader.read_bool(), reader.read_bool()] == [True, False, False]


def test_string_round_trip():
    writer = PacketWriter()
    writer.write_string(32767, "héllo wörld")
    writer.write_string(16, "Steve")
    reader = PacketReader(writer.getvalue())
    assert reader.read_string() == "héllo wörld"
    assert reader.read_string() == "Steve"


def test_string_length_limit():
    writer = PacketWriter()
    writer.write_string(16, "a" * 67)
    with pytest.raises(ValueError):
        writer.write_string(16, "a" * 68)


def test_invalid_utf8_raises():
    with pytest.raises(PacketDecodeError):
        PacketReader(b"\x02\xff\xfe").read_string()


def test_eof_raises():
    with pytest.raises(PacketDecodeError):
        PacketReader(b"\x00\x01").read_int()


def test_uuid_round_trip():
    value = 0x0123456789ABCDEF0011223344556677
    writer = PacketWriter()
    writer.write_uuid(value)
    data = PacketReader(writer.getvalue()).read_bytes(16)
    assert int.from_bytes(data, "big") == value


def test_read_to_end_returns_rest():
    reader = PacketReader(b"\x05rest of data")
    assert reader.read_varint() == 5
    assert reader.read_to_end() == b"rest of data"


def test_empty_slot():
    writer = PacketWriter()
    writer.write_slot_data(None)
    assert writer.getvalue() == b"\x00"


def test_slot_without_nbt():
    writer = PacketWriter()
    writer.write_slot_data(SlotData(item_id=42, item_count=3))
    reader = PacketReader(writer.getvalue())
    assert reader.read_bool() is True
    assert reader.read_varint() == 42
    assert reader.read_byte() == 3
    assert reader.read_nbt_blob() is None


def test_slot_with_nbt():
    writer = PacketWriter()
    writer.write_slot_data(SlotData(item_id=1, item_count=64, nbt={"Damage": Short(2)}))
    reader = PacketReader(writer.getvalue())
    reader.read_bool()
    reader.read_varint()
    reader.read_byte()
    assert reader.read_nbt_blob() == {"Damage": 2}


def test_malformed_nbt_blob_raises_decode_error():
    with pytest.raises(PacketDecodeError):
        PacketReader(b"\x0a\x00\x00\x01").read_nbt_blob()


def test_uncompressed_frame():
    out = io.BytesIO()
    PacketEncoder(b"abc", 0x3F).write_uncompressed(out)
    reader = PacketReader(out.getvalue())
    length = reader.read_varint()
    rest = reader.read_to_end()
    assert length == len(rest)
    body = PacketReader(rest)
    assert body.read_varint() == 0x3F
    assert body.read_to_end() == b"abc"


def test_compressed_frame_below_threshold():
    buffer = bytes(255)
    out = io.BytesIO()
    PacketEncoder(buffer, 0x22).write_compressed(out)
    reader = PacketReader(out.getvalue())
    length = reader.read_varint()
    rest = reader.read_to_end()
    assert length == len(rest)
    body = PacketReader(rest)
    assert body.read_varint() == 0
    assert body.read_varint() == 0x22
    assert body.read_to_end() == buffer


def test_compressed_frame_above_threshold():
    buffer = bytes(range(256)) * 2
    out = io.BytesIO()
    PacketEncoder(buffer, 0x22).write_compressed(out)
    reader = PacketReader(out.getvalue())
    length = reader.read_varint()
    rest = reader.read_to_end()
    assert length == len(rest)
    body = PacketReader(rest)
    data_length = body.read_varint()
    payload = zlib.decompress(body.read_to_end())
    assert payload == encode_varint(0x22) + buffer
    assert data_length == len(payload)