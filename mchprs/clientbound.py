"""Packets sent from the server to the client."""

from __future__ import annotations

import math
import struct
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from mchprs.codec import PacketEncoder, PacketWriter, SlotData

_MAX_STRING = 32767


def _i8(value: int) -> int:
    """Reinterpret the low 8 bits of `value` as a signed byte."""
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


def _f32(value: float) -> float:
    return struct.unpack(">f", struct.pack(">f", value))[0]


def _angle(degrees: float) -> int:
    """Convert degrees to the protocol's 1/256 turn angle byte."""
    scaled = _f32(_f32(_f32(degrees) / 360.0) * 256.0)
    if math.isnan(scaled):
        whole = 0
    elif scaled >= 2**31 - 1:
        whole = 2**31 - 1
    elif scaled <= -(2**31):
        whole = -(2**31)
    else:
        whole = int(scaled)
    remainder = math.copysign(abs(whole) % 256, whole) if whole else 0
    return _i8(int(remainder))


class ClientBoundPacket(ABC):
    """A packet that can be encoded for sending to a client."""

    packet_id: ClassVar[int]

    def encode(self) -> PacketEncoder:
        """Encode the packet body together with its id."""
        writer = PacketWriter()
        self._write(writer)
        return PacketEncoder(writer.getvalue(), self.packet_id)

    @abstractmethod
    def _write(self, writer: PacketWriter) -> None:
        """Write the packet body."""


# Server list ping packets


@dataclass
class CResponse(ClientBoundPacket):
    json_response: str

    packet_id: ClassVar[int] = 0x00

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.json_response)


# Login packets


@dataclass
class CDisconnectLogin(ClientBoundPacket):
    reason: str

    packet_id: ClassVar[int] = 0x00

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.reason)


@dataclass
class CPong(ClientBoundPacket):
    payload: int

    packet_id: ClassVar[int] = 0x01

    def _write(self, writer: PacketWriter) -> None:
        writer.write_long(self.payload)


@dataclass
class CLoginSuccess(ClientBoundPacket):
    uuid: int
    username: str

    packet_id: ClassVar[int] = 0x02

    def _write(self, writer: PacketWriter) -> None:
        writer.write_uuid(self.uuid)
        writer.write_string(16, self.username)


@dataclass
class CSetCompression(ClientBoundPacket):
    threshold: int

    packet_id: ClassVar[int] = 0x03

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.threshold)


@dataclass
class CSpawnEntity(ClientBoundPacket):
    entity_id: int
    object_uuid: int
    entity_type: int
    x: float
    y: float
    z: float
    pitch: float
    yaw: float
    data: int
    velocity_x: int
    velocity_y: int
    velocity_z: int

    packet_id: ClassVar[int] = 0x00

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_uuid(self.object_uuid)
        writer.write_varint(self.entity_type)
        writer.write_double(self.x)
        writer.write_double(self.y)
        writer.write_double(self.z)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))
        writer.write_int(self.data)
        writer.write_short(self.velocity_x)
        writer.write_short(self.velocity_y)
        writer.write_short(self.velocity_z)


@dataclass
class CSpawnLivingEntity(ClientBoundPacket):
    entity_id: int
    entity_uuid: int
    entity_type: int
    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    head_pitch: float
    velocity_x: int
    velocity_y: int
    velocity_z: int

    packet_id: ClassVar[int] = 0x02

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_uuid(self.entity_uuid)
        writer.write_varint(self.entity_type)
        writer.write_double(self.x)
        writer.write_double(self.y)
        writer.write_double(self.z)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))
        writer.write_byte(_angle(self.head_pitch))
        writer.write_short(self.velocity_x)
        writer.write_short(self.velocity_y)
        writer.write_short(self.velocity_z)


@dataclass
class CSpawnPlayer(ClientBoundPacket):
    entity_id: int
    uuid: int
    x: float
    y: float
    z: float
    yaw: float
    pitch: float

    packet_id: ClassVar[int] = 0x04

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_uuid(self.uuid)
        writer.write_double(self.x)
        writer.write_double(self.y)
        writer.write_double(self.z)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))


# Play packets


@dataclass
class CEntityAnimation(ClientBoundPacket):
    entity_id: int
    animation: int

    packet_id: ClassVar[int] = 0x06

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_unsigned_byte(self.animation)


@dataclass
class CChatMessage(ClientBoundPacket):
    message: str
    position: int
    sender: int

    packet_id: ClassVar[int] = 0x0F

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.message)
        writer.write_byte(self.position)
        writer.write_uuid(self.sender)


@dataclass
class CTabCompleteMatch:
    match: str
    tooltip: str | None = None


@dataclass
class CTabComplete(ClientBoundPacket):
    id: int
    start: int
    length: int
    matches: list[CTabCompleteMatch] = field(default_factory=list)

    packet_id: ClassVar[int] = 0x11

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.id)
        writer.write_varint(self.start)
        writer.write_varint(self.length)
        writer.write_varint(len(self.matches))
        for entry in self.matches:
            writer.write_string(_MAX_STRING, entry.match)
            writer.write_bool(entry.tooltip is not None)
            if entry.tooltip is not None:
                writer.write_string(_MAX_STRING, entry.tooltip)


class ParserKind(Enum):
    """Argument parsers a command node may declare, with the number of arguments each takes."""

    ENTITY = ("minecraft:entity", 1)
    VEC2 = ("minecraft:vec2", 0)
    VEC3 = ("minecraft:vec3", 0)
    INTEGER = ("brigadier:integer", 2)
    FLOAT = ("brigadier:float", 2)
    BLOCK_POS = ("minecraft:block_pos", 0)
    BLOCK_STATE = ("minecraft:block_state", 0)
    STRING = ("brigadier:string", 1)

    @property
    def identifier(self) -> str:
        return self.value[0]

    @property
    def arity(self) -> int:
        return self.value[1]


@dataclass(frozen=True)
class CDeclareCommandsNodeParser:
    """A command argument parser with its properties (entity flags, bounds or string type)."""

    kind: ParserKind
    args: tuple = ()

    def __post_init__(self):
        if len(self.args) != self.kind.arity:
            raise ValueError(
                f"{self.kind.name} parser takes {self.kind.arity} arguments, "
                f"got {len(self.args)}"
            )

    def write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.kind.identifier)
        if self.kind is ParserKind.ENTITY:
            writer.write_byte(self.args[0])
        elif self.kind is ParserKind.INTEGER:
            writer.write_byte(3)  # both min and max supplied
            writer.write_int(self.args[0])
            writer.write_int(self.args[1])
        elif self.kind is ParserKind.FLOAT:
            writer.write_byte(3)
            writer.write_float(self.args[0])
            writer.write_float(self.args[1])
        elif self.kind is ParserKind.STRING:
            writer.write_varint(self.args[0])


@dataclass
class CDeclareCommandsNode:
    flags: int
    children: Sequence[int] = ()
    redirect_node: int | None = None
    name: str | None = None
    parser: CDeclareCommandsNodeParser | None = None
    suggestions_type: str | None = None


@dataclass
class CDeclareCommands(ClientBoundPacket):
    nodes: Sequence[CDeclareCommandsNode]
    root_index: int

    packet_id: ClassVar[int] = 0x12

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(len(self.nodes))
        for node in self.nodes:
            writer.write_byte(node.flags)
            writer.write_varint(len(node.children))
            for child in node.children:
                writer.write_varint(child)
            if node.redirect_node is not None:
                writer.write_varint(node.redirect_node)
            if node.name is not None:
                writer.write_string(_MAX_STRING, node.name)
            if node.parser is not None:
                node.parser.write(writer)
            if node.suggestions_type is not None:
                writer.write_string(_MAX_STRING, node.suggestions_type)
        writer.write_varint(self.root_index)


@dataclass
class CWindowItems(ClientBoundPacket):
    window_id: int
    state_id: int
    slot_data: list[SlotData | None]
    carried_item: SlotData | None = None

    packet_id: ClassVar[int] = 0x14

    def _write(self, writer: PacketWriter) -> None:
        writer.write_unsigned_byte(self.window_id)
        writer.write_varint(self.state_id)
        writer.write_varint(len(self.slot_data))
        for slot in self.slot_data:
            writer.write_slot_data(slot)
        writer.write_slot_data(self.carried_item)


@dataclass
class CSetSlot(ClientBoundPacket):
    window_id: int
    state_id: int
    slot: int
    slot_data: SlotData | None

    packet_id: ClassVar[int] = 0x16

    def _write(self, writer: PacketWriter) -> None:
        writer.write_unsigned_byte(self.window_id)
        writer.write_varint(self.state_id)
        writer.write_short(self.slot)
        writer.write_slot_data(self.slot_data)


@dataclass
class CPluginMessage(ClientBoundPacket):
    channel: str
    data: bytes

    packet_id: ClassVar[int] = 0x18

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.channel)
        writer.write_bytes(self.data)


@dataclass
class CDisconnect(ClientBoundPacket):
    reason: str

    packet_id: ClassVar[int] = 0x1A

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(_MAX_STRING, self.reason)


class CChangeGameStateReason(Enum):
    CHANGE_GAMEMODE = 3


@dataclass
class CChangeGameState(ClientBoundPacket):
    reason: CChangeGameStateReason
    value: float

    packet_id: ClassVar[int] = 0x1E

    def _write(self, writer: PacketWriter) -> None:
        writer.write_unsigned_byte(self.reason.value)
        writer.write_float(self.value)


@dataclass
class CKeepAlive(ClientBoundPacket):
    id: int

    packet_id: ClassVar[int] = 0x21

    def _write(self, writer: PacketWriter) -> None:
        writer.write_long(self.id)


@dataclass
class COpenSignEditor(ClientBoundPacket):
    pos_x: int
    pos_y: int
    pos_z: int

    packet_id: ClassVar[int] = 0x2F

    def _write(self, writer: PacketWriter) -> None:
        writer.write_position(self.pos_x, self.pos_y, self.pos_z)


@dataclass
class CEntityPosition(ClientBoundPacket):
    entity_id: int
    delta_x: int
    delta_y: int
    delta_z: int
    on_ground: bool

    packet_id: ClassVar[int] = 0x29

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_short(self.delta_x)
        writer.write_short(self.delta_y)
        writer.write_short(self.delta_z)
        writer.write_bool(self.on_ground)


@dataclass
class CEntityPositionAndRotation(ClientBoundPacket):
    entity_id: int
    delta_x: int
    delta_y: int
    delta_z: int
    yaw: float
    pitch: float
    on_ground: bool

    packet_id: ClassVar[int] = 0x2A

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_short(self.delta_x)
        writer.write_short(self.delta_y)
        writer.write_short(self.delta_z)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))
        writer.write_bool(self.on_ground)


@dataclass
class CEntityRotation(ClientBoundPacket):
    entity_id: int
    yaw: float
    pitch: float
    on_ground: bool

    packet_id: ClassVar[int] = 0x2B

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))
        writer.write_bool(self.on_ground)


@dataclass
class COpenWindow(ClientBoundPacket):
    window_id: int
    window_type: int
    window_title: str

    packet_id: ClassVar[int] = 0x2E

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.window_id)
        writer.write_varint(self.window_type)
        writer.write_string(_MAX_STRING, self.window_title)


@dataclass
class CPlayerAbilities(ClientBoundPacket):
    flags: int
    fly_speed: float
    fov_modifier: float

    packet_id: ClassVar[int] = 0x32

    def _write(self, writer: PacketWriter) -> None:
        writer.write_unsigned_byte(self.flags)
        writer.write_float(self.fly_speed)
        writer.write_float(self.fov_modifier)


@dataclass
class CPlayerInfoAddPlayerProperty:
    name: str
    value: str
    signature: str | None = None


@dataclass
class CPlayerInfoAddPlayer:
    uuid: int
    name: str
    properties: list[CPlayerInfoAddPlayerProperty] = field(default_factory=list)
    gamemode: int = 0
    ping: int = 0
    display_name: str | None = None


@dataclass
class CPlayerInfoAddPlayers(ClientBoundPacket):
    players: list[CPlayerInfoAddPlayer]

    packet_id: ClassVar[int] = 0x36

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(0)
        writer.write_varint(len(self.players))
        for player in self.players:
            writer.write_uuid(player.uuid)
            writer.write_string(16, player.name)
            writer.write_varint(len(player.properties))
            for prop in player.properties:
                writer.write_string(_MAX_STRING, prop.name)
                writer.write_string(_MAX_STRING, prop.value)
                writer.write_boolean(prop.signature is not None)
                if prop.signature is not None:
                    writer.write_string(_MAX_STRING, prop.signature)
            writer.write_varint(player.gamemode)
            writer.write_varint(player.ping)
            writer.write_boolean(player.display_name is not None)
            if player.display_name is not None:
                writer.write_string(_MAX_STRING, player.display_name)


@dataclass
class CPlayerInfoUpdateGamemode(ClientBoundPacket):
    uuid: int
    gamemode: int

    packet_id: ClassVar[int] = 0x36

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(1)
        writer.write_varint(1)
        writer.write_uuid(self.uuid)
        writer.write_varint(self.gamemode)


@dataclass
class CPlayerInfoRemovePlayers(ClientBoundPacket):
    uuids: list[int]

    packet_id: ClassVar[int] = 0x36

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(4)
        writer.write_varint(len(self.uuids))
        for uuid in self.uuids:
            writer.write_uuid(uuid)


@dataclass
class CPlayerPositionAndLook(ClientBoundPacket):
    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    flags: int
    teleport_id: int
    dismount_vehicle: bool

    packet_id: ClassVar[int] = 0x38

    def _write(self, writer: PacketWriter) -> None:
        writer.write_double(self.x)
        writer.write_double(self.y)
        writer.write_double(self.z)
        writer.write_float(self.yaw)
        writer.write_float(self.pitch)
        writer.write_unsigned_byte(self.flags)
        writer.write_varint(self.teleport_id)
        writer.write_bool(self.dismount_vehicle)


@dataclass
class CDestroyEntities(ClientBoundPacket):
    entity_ids: list[int]

    packet_id: ClassVar[int] = 0x3A

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(len(self.entity_ids))
        for entity_id in self.entity_ids:
            writer.write_varint(entity_id)


@dataclass
class CEntityHeadLook(ClientBoundPacket):
    entity_id: int
    yaw: float

    packet_id: ClassVar[int] = 0x3E

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_byte(_angle(self.yaw))


@dataclass
class CHeldItemChange(ClientBoundPacket):
    slot: int

    packet_id: ClassVar[int] = 0x48

    def _write(self, writer: PacketWriter) -> None:
        writer.write_byte(self.slot)


@dataclass
class CDisplayScoreboard(ClientBoundPacket):
    position: int
    score_name: str

    packet_id: ClassVar[int] = 0x4C

    def _write(self, writer: PacketWriter) -> None:
        writer.write_byte(_i8(self.position))
        writer.write_string(16, self.score_name)


@dataclass
class CEntityMetadataEntry:
    index: int
    metadata_type: int
    value: bytes


@dataclass
class CEntityMetadata(ClientBoundPacket):
    entity_id: int
    metadata: list[CEntityMetadataEntry] = field(default_factory=list)

    packet_id: ClassVar[int] = 0x4D

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        for entry in self.metadata:
            writer.write_unsigned_byte(entry.index)
            writer.write_varint(entry.metadata_type)
            writer.write_bytes(entry.value)
        writer.write_byte(-1)  # terminator 0xFF


@dataclass
class CEntityEquipmentEquipment:
    slot: int
    item: SlotData | None = None


@dataclass
class CEntityEquipment(ClientBoundPacket):
    entity_id: int
    equipment: list[CEntityEquipmentEquipment] = field(default_factory=list)

    packet_id: ClassVar[int] = 0x50

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        for slot in self.equipment:
            writer.write_varint(slot.slot)
            writer.write_slot_data(slot.item)


@dataclass
class CScoreboardObjective(ClientBoundPacket):
    objective_name: str
    mode: int
    objective_value: str
    ty: int

    packet_id: ClassVar[int] = 0x53

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(16, self.objective_name)
        writer.write_byte(_i8(self.mode))
        if self.mode in (0, 2):
            writer.write_string(_MAX_STRING, self.objective_value)
            writer.write_varint(self.ty)


@dataclass
class CUpdateScore(ClientBoundPacket):
    entity_name: str
    action: int
    objective_name: str
    value: int

    packet_id: ClassVar[int] = 0x56

    def _write(self, writer: PacketWriter) -> None:
        writer.write_string(40, self.entity_name)
        writer.write_byte(_i8(self.action))
        writer.write_string(16, self.objective_name)
        if self.action != 1:
            writer.write_varint(self.value)


@dataclass
class CEntityTeleport(ClientBoundPacket):
    entity_id: int
    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    on_ground: bool

    packet_id: ClassVar[int] = 0x62

    def _write(self, writer: PacketWriter) -> None:
        writer.write_varint(self.entity_id)
        writer.write_double(self.x)
        writer.write_double(self.y)
        writer.write_double(self.z)
        writer.write_byte(_angle(self.yaw))
        writer.write_byte(_angle(self.pitch))
        writer.write_bool(self.on_ground)