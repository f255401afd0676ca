"""Clientbound packets that describe the world: chunks, blocks, effects and the join game data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from mchprs.clientbound import ClientBoundPacket
from mchprs.codec import PacketWriter, PalettedContainer
from mchprs.nbt import Byte, Float, Int, Long, NBTMap

_MAX_STRING = 32767


def _i8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


def _full_bitmask_longs(bit_count: int) -> list[int]:
    """Return the 64-bit words of a bit set holding `bit_count` ones, lowest bits first."""
    return [
        (1 << min(64, bit_count - start)) - 1 for start in range(0, bit_count, 64)
    ]


@dataclass
class CBlockEntityData(ClientBoundPacket):
    x: int
    y: int
    z: int
    ty: int
    nbt: dict

    packet_id: ClassVar[int] = 0x0A

    def _write(self, writer: PacketWriter) -> None:
        writer.write_position(self.x, self.y, self.z)
        writer.write_varint(self.ty)
        writer.write_nbt_blob(self.nbt)


@dataclass
class CBlockChange(ClientBoundPacket):
    x: int
    y: int
    z: int
    block_id: int

    packet_id: ClassVar[int] = 0x0C

    def _write(self, writer: PacketWriter) -> None:
        writer.write_position(self.x, self.y, self.z)
        writer.write_varint(self.block_id)


@dataclass
class CUnloadChunk(ClientBoundPacket):
    chunk_x: int
    chunk_z: int

    packet_id: ClassVar[int] = 0x1D

    def _write(self, writer: PacketWriter) -> None:
        writer.write_int(self.chunk_x)
        writer.write_int(self.chunk_z)


@dataclass
class CChunkDataSection:
    """One 16x16x16 section of a chunk data packet."""

    block_count: int
    block_states: PalettedContainer
    biomes: PalettedContainer


@dataclass
class CChunkDataBlockEntity:
    """A block entity inside a chunk data packet, positioned relative to the chunk."""

    x: int
    z: int
    y: int
    ty: int
    data: dict


def _write_container(writer: PacketWriter, container: PalettedContainer) -> None:
    writer.write_unsigned_byte(container.bits_per_entry)
    if container.bits_per_entry == 0:
        if not container.palette:
            raise ValueError(
                "container with 0 bits per entry should have a palette with one entry"
            )
        writer.write_varint(container.palette[0])
    elif container.palette is not None:
        writer.write_varint(len(container.palette))
        for entry in container.palette:
            writer.write_varint(entry)
    writer.write_varint(len(container.data_array))
    for long in container.data_array:
        writer.write_long(long)


@dataclass
class CChunkData(ClientBoundPacket):
    chunk_x: int
    chunk_z: int
    heightmaps: dict = field(default_factory=dict)
    chunk_sections: list[CChunkDataSection] = field(default_factory=list)
    block_entities: list[CChunkDataBlockEntity] = field(default_factory=list)

    packet_id: ClassVar[int] = 0x22

    def _write(self, writer: PacketWriter) -> None:
        writer.write_int(self.chunk_x)
        writer.write_int(self.chunk_z)
        writer.write_nbt_blob(self.heightmaps)

        data = PacketWriter()
        for section in self.chunk_sections:
            data.write_short(section.block_count)
            for container in (section.block_states, section.biomes):
                _write_container(data, container)
        section_bytes = data.getvalue()
        writer.write_varint(len(section_bytes))
        writer.write_bytes(section_bytes)

        writer.write_varint(len(self.block_entities))
        for block_entity in self.block_entities:
            writer.write_byte(_i8((block_entity.x << 4) | block_entity.z))
            writer.write_short(block_entity.y)
            writer.write_varint(block_entity.ty)
            writer.write_nbt_blob(block_entity.data)

        # Lighting is not sent: the world always has full ambient light.
        writer.write_bool(True)  # trust edges
        writer.write_varint(0)  # sky light mask
        writer.write_varint(0)  # block light mask
        empty_mask = _full_bitmask_longs(len(self.chunk_sections) + 2)
        for _ in range(2):  # empty sky light mask, empty block light mask
            writer.write_varint(len(empty_mask))
            for long in empty_mask:
                writer.write_long(long)
        writer.write_varint(0)  # sky light arrays
        writer.write_varint(0)  # block light arrays


@dataclass
class CEffect(ClientBoundPacket):
    effect_id: int
    x: int
    y: int
    z: int
    data: int
    disable_relative_volume: bool

    packet_id: ClassVar[int] = 0x23

    def _write(self, writer: PacketWriter) -> None:
        writer.write_int(self.effect_id)
        writer.write_position(self.x, self.y, self.z)
        writer.write_int(self.data)
        writer.write_bool(self.disable_relative_volume)


@dataclass
class CJoinGameDimensionElement:
    natural: int
    ambient_light: float
    has_ceiling: int
    has_skylight: int
    fixed_time: int
    shrunk: int
    ultrawarm: int
    has_raids: int
    min_y: int
    height: int
    respawn_anchor_works: int
    bed_works: int
    piglin_safe: int
    coordinate_scale: float
    logical_height: int
    infiniburn: str

    def to_nbt(self) -> dict:
        return {
            "natural": Byte(self.natural),
            "ambient_light": Float(self.ambient_light),
            "has_ceiling": Byte(self.has_ceiling),
            "has_skylight": Byte(self.has_skylight),
            "fixed_time": Long(self.fixed_time),
            "shrunk": Byte(self.shrunk),
            "ultrawarm": Byte(self.ultrawarm),
            "has_raids": Byte(self.has_raids),
            "min_y": Int(self.min_y),
            "height": Int(self.height),
            "respawn_anchor_works": Byte(self.respawn_anchor_works),
            "bed_works": Byte(self.bed_works),
            "piglin_safe": Byte(self.piglin_safe),
            "coordinate_scale": Float(self.coordinate_scale),
            "logical_height": Int(self.logical_height),
            "infiniburn": self.infiniburn,
        }


@dataclass
class CJoinGameBiomeEffectsMoodSound:
    tick_delay: int
    offset: float
    sound: str
    block_search_extent: int

    def to_nbt(self) -> dict:
        return {
            "tick_delay": Int(self.tick_delay),
            "offset": Float(self.offset),
            "sound": self.sound,
            "block_search_extent": Int(self.block_search_extent),
        }


@dataclass
class CJoinGameBiomeEffects:
    sky_color: int
    water_fog_color: int
    fog_color: int
    water_color: int
    mood_sound: CJoinGameBiomeEffectsMoodSound

    def to_nbt(self) -> dict:
        return {
            "sky_color": Int(self.sky_color),
            "water_fog_color": Int(self.water_fog_color),
            "fog_color": Int(self.fog_color),
            "water_color": Int(self.water_color),
            "mood_sound": self.mood_sound.to_nbt(),
        }


@dataclass
class CJoinGameBiomeElement:
    depth: float
    temperature: float
    downfall: float
    precipitation: str
    category: str
    scale: float
    effects: CJoinGameBiomeEffects

    def to_nbt(self) -> dict:
        return {
            "depth": Float(self.depth),
            "temperature": Float(self.temperature),
            "downfall": Float(self.downfall),
            "precipitation": self.precipitation,
            "category": self.category,
            "scale": Float(self.scale),
            "effects": self.effects.to_nbt(),
        }


@dataclass
class CJoinGameDimensionCodec:
    """The dimension type and biome registries sent when a player joins."""

    dimensions: dict[str, CJoinGameDimensionElement] = field(default_factory=dict)
    biomes: dict[str, CJoinGameBiomeElement] = field(default_factory=dict)

    def write(self, writer: PacketWriter) -> None:
        dimension_map = NBTMap("minecraft:dimension_type")
        for name, element in self.dimensions.items():
            dimension_map.push_element(name, element)
        biome_map = NBTMap("minecraft:worldgen/biome")
        for name, element in self.biomes.items():
            biome_map.push_element(name, element)
        writer.write_nbt(
            {
                "minecraft:dimension_type": dimension_map,
                "minecraft:worldgen/biome": biome_map,
            }
        )


@dataclass
class CJoinGame(ClientBoundPacket):
    entity_id: int
    is_hardcore: bool
    gamemode: int
    previous_gamemode: int
    world_count: int
    world_names: list[str]
    dimension_codec: CJoinGameDimensionCodec
    dimension: CJoinGameDimensionElement
    world_name: str
    hashed_seed: int
    max_players: int
    view_distance: int
    simulation_distance: int
    reduced_debug_info: bool
    enable_respawn_screen: bool
    is_debug: bool
    is_flat: bool

    packet_id: ClassVar[int] = 0x26

    def _write(self, writer: PacketWriter) -> None:
        writer.write_int(self.entity_id)
        writer.write_bool(self.is_hardcore)
        writer.write_unsigned_byte(self.gamemode)
        writer.write_unsigned_byte(self.previous_gamemode)
        writer.write_varint(self.world_count)
        for world_name in self.world_names:
            writer.write_string(_MAX_STRING, world_name)
        self.dimension_codec.write(writer)
        writer.write_nbt(self.dimension)
        writer.write_string(_MAX_STRING, self.world_name)
        writer.write_long(self.hashed_seed)
        writer.write_varint(self.max_players)
        writer.write_varint(self.view_distance)
        writer.write_varint(self.simulation_distance)
        writer.write_boolean(self.reduced_debug_info)
        writer.write_boolean(self.enable_respawn_screen)
        writer.write_boolean(self.is_debug)
        writer.write_boolean(self.is_flat)


@dataclass
class C3BMultiBlockChangeRecord:
    """One changed block inside a section, with coordinates relative to the section."""

    x: int
    y: int
    z: int
    block_id: int


@dataclass
class CMultiBlockChange(ClientBoundPacket):
    chunk_x: int
    chunk_z: int
    chunk_y: int
    records: list[C3BMultiBlockChangeRecord] = field(default_factory=list)

    packet_id: ClassVar[int] = 0x3F

    def _write(self, writer: PacketWriter) -> None:
        pos = (
            ((self.chunk_x & 0x3FFFFF) << 42)
            | ((self.chunk_z & 0x3FFFFF) << 20)
            | (self.chunk_y & 0xFFFFF)
        )
        writer.write_long(pos)
        # Always the inverse of the preceding light update's trust edges flag.
        writer.write_bool(True)
        writer.write_varint(len(self.records))
        for record in self.records:
            writer.write_varlong(
                (record.block_id << 12) | (record.x << 8) | (record.z << 4) | record.y
            )


@dataclass
class CUpdateViewPosition(ClientBoundPacket):
    chunk_x: int
    chunk_z: int

    packet_id: ClassVar[int] = 0x49

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.chunk_x)
        writer.write_varint(self.chunk_z)


@dataclass
class CTimeUpdate(ClientBoundPacket):
    world_age: int
    time_of_day: int

    packet_id: ClassVar[int] = 0x59

    def _write(self, writer: PacketWriter) -> None:
        writer.write_long(self.world_age)
        writer.write_long(self.time_of_day)


@dataclass
class CSoundEffect(ClientBoundPacket):
    sound_id: int
    sound_category: int
    x: int
    y: int
    z: int
    volume: float
    pitch: float

    packet_id: ClassVar[int] = 0x5D

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.sound_id)
        writer.write_varint(self.sound_category)
        writer.write_int(self.x)
        writer.write_int(self.y)
        writer.write_int(self.z)
        writer.write_float(self.volume)
        writer.write_float(self.pitch)