import io
import struct

import pytest

from mchprs import nbt
from mchprs.clientbound_world import (
    C3BMultiBlockChangeRecord,
    CBlockChange,
    CBlockEntityData,
    CChunkData,
    CChunkDataBlockEntity,
    CChunkDataSection,
    CEffect,
    CJoinGame,
    CJoinGameBiomeEffects,
    CJoinGameBiomeEffectsMoodSound,
    CJoinGameBiomeElement,
    CJoinGameDimensionCodec,
    CJoinGameDimensionElement,
    CMultiBlockChange,
    CSoundEffect,
    CTimeUpdate,
    CUnloadChunk,
    CUpdateViewPosition,
)
from mchprs.codec import PacketReader, PacketWriter, PalettedContainer


def _reader(packet):
    return PacketReader(packet.encode().buffer)


def _dimension():
    return CJoinGameDimensionElement(
        natural=1,
        ambient_light=1.0,
        has_ceiling=0,
        has_skylight=1,
        fixed_time=6000,
        shrunk=0,
        ultrawarm=0,
        has_raids=0,
        min_y=0,
        height=256,
        respawn_anchor_works=0,
        bed_works=1,
        piglin_safe=0,
        coordinate_scale=1.0,
        logical_height=256,
        infiniburn="minecraft:infiniburn_overworld",
    )


def _biome():
    return CJoinGameBiomeElement(
        depth=0.125,
        temperature=0.5,
        downfall=0.5,
        precipitation="none",
        category="none",
        scale=0.5,
        effects=CJoinGameBiomeEffects(
            sky_color=7907327,
            water_fog_color=329011,
            fog_color=12638463,
            water_color=4159204,
            mood_sound=CJoinGameBiomeEffectsMoodSound(
                tick_delay=6000,
                offset=2.0,
                sound="minecraft:ambient.cave",
                block_search_extent=8,
            ),
        ),
    )


def test_unload_chunk_wire_bytes():
    encoded = CUnloadChunk(chunk_x=3, chunk_z=-7).encode()
    assert encoded.packet_id == 0x1D
    assert encoded.buffer == struct.pack(">ii", 3, -7)


def test_block_change_round_trip():
    reader = _reader(CBlockChange(x=-12, y=-5, z=300, block_id=5000))
    assert reader.read_position() == (-12, -5, 300)
    assert reader.read_varint() == 5000
    assert reader.read_to_end() == b""


def test_block_entity_data_round_trip():
    data = {"Text1": "hello", "Count": nbt.Int(4)}
    packet = CBlockEntityData(x=1, y=2, z=3, ty=7, nbt=data)
    assert packet.encode().packet_id == 0x0A
    reader = _reader(packet)
    assert reader.read_position() == (1, 2, 3)
    assert reader.read_varint() == 7
    assert reader.read_nbt_blob() == data


def test_effect_round_trip():
    reader = _reader(
        CEffect(effect_id=1000, x=4, y=64, z=-4, data=0, disable_relative_volume=True)
    )
    assert reader.read_int() == 1000
    assert reader.read_position() == (4, 64, -4)
    assert reader.read_int() == 0
    assert reader.read_bool() is True


def test_time_update_and_view_position():
    reader = _reader(CTimeUpdate(world_age=123456789, time_of_day=-6000))
    assert (reader.read_long(), reader.read_long()) == (123456789, -6000)
    reader = _reader(CUpdateViewPosition(chunk_x=-2, chunk_z=9))
    assert (reader.read_varint(), reader.read_varint()) == (-2, 9)


def test_sound_effect_round_trip():
    packet = CSoundEffect(
        sound_id=10, sound_category=4, x=8, y=-16, z=24, volume=0.5, pitch=2.0
    )
    assert packet.encode().packet_id == 0x5D
    reader = _reader(packet)
    assert reader.read_varint() == 10
    assert reader.read_varint() == 4
    assert [reader.read_int() for _ in range(3)] == [8, -16, 24]
    assert reader.read_float() == 0.5
    assert reader.read_float() == 2.0


def test_multi_block_change_encodes_position_and_records():
    records = [
        C3BMultiBlockChangeRecord(x=1, y=2, z=3, block_id=77),
        C3BMultiBlockChangeRecord(x=15, y=15, z=0, block_id=20000),
    ]
    packet = CMultiBlockChange(chunk_x=-3, chunk_z=5, chunk_y=4, records=records)
    reader = _reader(packet)
    pos = reader.read_long()
    assert pos >> 42 == -3
    assert (pos >> 20) & 0x3FFFFF == 5
    assert pos & 0xFFFFF == 4
    assert reader.read_bool() is True
    assert reader.read_varint() == len(records)
    for record in records:
        value = reader.read_varlong()
        assert value >> 12 == record.block_id
        assert (value >> 8) & 0xF == record.x
        assert (value >> 4) & 0xF == record.z
        assert value & 0xF == record.y
    assert reader.read_to_end() == b""


def _parse_chunk(packet):
    reader = _reader(packet)
    header = (reader.read_int(), reader.read_int(), reader.read_nbt_blob())
    section_data = PacketReader(reader.read_bytes(reader.read_varint()))
    return reader, header, section_data


def test_chunk_data_sections_and_lighting():
    section = CChunkDataSection(
        block_count=2,
        block_states=PalettedContainer(
            bits_per_entry=4, palette=[0, 9], data_array=[0x10, 0]
        ),
        biomes=PalettedContainer(bits_per_entry=0, palette=[1], data_array=[]),
    )
    heightmaps = {"MOTION_BLOCKING": nbt.LongArray([1, 2])}
    packet = CChunkData(
        chunk_x=2, chunk_z=-1, heightmaps=heightmaps, chunk_sections=[section]
    )
    assert packet.encode().packet_id == 0x22
    reader, header, data = _parse_chunk(packet)
    assert header == (2, -1, heightmaps)

    assert data.read_short() == 2
    assert data.read_unsigned_byte() == 4
    assert [data.read_varint() for _ in range(data.read_varint())] == [0, 9]
    assert [data.read_long() for _ in range(data.read_varint())] == [0x10, 0]
    assert data.read_unsigned_byte() == 0
    assert data.read_varint() == 1
    assert data.read_varint() == 0
    assert data.read_to_end() == b""

    assert reader.read_varint() == 0  # block entities
    assert reader.read_bool() is True
    assert reader.read_varint() == 0
    assert reader.read_varint() == 0
    for _ in range(2):
        assert reader.read_varint() == 1
        assert reader.read_long() == 0b111
    assert reader.read_varint() == 0
    assert reader.read_varint() == 0
    assert reader.read_to_end() == b""


def test_chunk_data_block_entity_packing():
    entity = CChunkDataBlockEntity(x=3, z=10, y=70, ty=7, data={"id": "sign"})
    packet = CChunkData(chunk_x=0, chunk_z=0, block_entities=[entity])
    reader, _, data = _parse_chunk(packet)
    assert data.read_to_end() == b""
    assert reader.read_varint() == 1
    packed = reader.read_unsigned_byte()
    assert (packed >> 4, packed & 0xF) == (3, 10)
    assert reader.read_short() == 70
    assert reader.read_varint() == 7
    assert reader.read_nbt_blob() == {"id": "sign"}


def test_chunk_data_single_value_container_needs_palette():
    section = CChunkDataSection(
        block_count=0,
        block_states=PalettedContainer(bits_per_entry=0, palette=None),
        biomes=PalettedContainer(bits_per_entry=0, palette=[0]),
    )
    with pytest.raises(ValueError):
        CChunkData(chunk_x=0, chunk_z=0, chunk_sections=[section]).encode()


def test_dimension_codec_writes_registries():
    codec = CJoinGameDimensionCodec(
        dimensions={"minecraft:overworld": _dimension()},
        biomes={"minecraft:plains": _biome(), "minecraft:void": _biome()},
    )
    writer = PacketWriter()
    codec.write(writer)
    name, root = nbt.read_nbt(io.BytesIO(writer.getvalue()))
    assert name == ""
    dims = root["minecraft:dimension_type"]
    assert dims["type"] == "minecraft:dimension_type"
    assert [e["name"] for e in dims["value"]] == ["minecraft:overworld"]
    biomes = root["minecraft:worldgen/biome"]
    assert biomes["type"] == "minecraft:worldgen/biome"
    assert [(e["name"], e["id"]) for e in biomes["value"]] == [
        ("minecraft:plains", 0),
        ("minecraft:void", 1),
    ]
    mood = biomes["value"][0]["element"]["effects"]["mood_sound"]
    assert mood["sound"] == "minecraft:ambient.cave"
    assert isinstance(mood["offset"], nbt.Float)


def test_join_game_round_trip():
    packet = CJoinGame(
        entity_id=42,
        is_hardcore=False,
        gamemode=1,
        previous_gamemode=1,
        world_count=1,
        world_names=["mchprs:world"],
        dimension_codec=CJoinGameDimensionCodec(
            dimensions={"minecraft:overworld": _dimension()},
            biomes={"minecraft:plains": _biome()},
        ),
        dimension=_dimension(),
        world_name="mchprs:world",
        hashed_seed=-5,
        max_players=10,
        view_distance=8,
        simulation_distance=8,
        reduced_debug_info=False,
        enable_respawn_screen=True,
        is_debug=False,
        is_flat=True,
    )
    assert packet.encode().packet_id == 0x26
    reader = _reader(packet)
    assert reader.read_int() == 42
    assert reader.read_bool() is False
    assert (reader.read_unsigned_byte(), reader.read_unsigned_byte()) == (1, 1)
    assert reader.read_varint() == 1
    assert reader.read_string() == "mchprs:world"
    codec = reader.read_nbt_blob()
    assert set(codec) == {"minecraft:dimension_type", "minecraft:worldgen/biome"}
    dimension = reader.read_nbt_blob()
    assert dimension == _dimension().to_nbt()
    assert isinstance(dimension["natural"], nbt.Byte)
    assert isinstance(dimension["fixed_time"], nbt.Long)
    assert isinstance(dimension["height"], nbt.Int)
    assert reader.read_string() == "mchprs:world"
    assert reader.read_long() == -5
    assert [reader.read_varint() for _ in range(3)] == [10, 8, 8]
    assert [reader.read_bool() for _ in range(4)] == [False, True, False, True]
    assert reader.read_to_end() == b""