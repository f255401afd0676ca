"""Packets sent from the client to the server, and the interface that handles them."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from mchprs.codec import PacketReader, SlotData

logger = logging.getLogger(__name__)


class ServerBoundPacketHandler:
    """Receives decoded packets; every handler ignores its packet unless overridden."""

    def _unhandled(self, packet: ServerBoundPacket, player_idx: int) -> None:
        logger.debug(
            "%s ignored %s from player %d",
            type(self).__name__,
            type(packet).__name__,
            player_idx,
        )

    def handle_handshake(self, packet: SHandshake, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_request(self, packet: SRequest, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_ping(self, packet: SPing, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_login_start(self, packet: SLoginStart, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_chat_message(self, packet: SChatMessage, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_client_settings(self, packet: SClientSettings, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_tab_complete(self, packet: STabComplete, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_plugin_message(self, packet: SPluginMessage, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_keep_alive(self, packet: SKeepAlive, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_position(self, packet: SPlayerPosition, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_position_and_rotation(
        self, packet: SPlayerPositionAndRotation, player_idx: int
    ) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_rotation(self, packet: SPlayerRotation, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_movement(self, packet: SPlayerMovement, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_abilities(self, packet: SPlayerAbilities, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_digging(self, packet: SPlayerDigging, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_entity_action(self, packet: SEntityAction, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_animation(self, packet: SAnimation, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_player_block_placement(
        self, packet: SPlayerBlockPlacement, player_idx: int
    ) -> None:
        self._unhandled(packet, player_idx)

    def handle_held_item_change(self, packet: SHeldItemChange, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_creative_inventory_action(
        self, packet: SCreativeInventoryAction, player_idx: int
    ) -> None:
        self._unhandled(packet, player_idx)

    def handle_update_sign(self, packet: SUpdateSign, player_idx: int) -> None:
        self._unhandled(packet, player_idx)

    def handle_unknown(self, packet: SUnknown, player_idx: int) -> None:
        self._unhandled(packet, player_idx)


class ServerBoundPacket(ABC):
    """A packet decoded from a client, dispatched to a handler by its kind."""

    _handler_name: ClassVar[str]

    @classmethod
    @abstractmethod
    def decode(cls, reader: PacketReader) -> ServerBoundPacket:
        """Decode the packet body from `reader`."""

    def handle(self, handler: ServerBoundPacketHandler, player_idx: int) -> None:
        """Pass this packet to the matching method of `handler`."""
        getattr(handler, self._handler_name)(self, player_idx)


@dataclass
class SUnknown(ServerBoundPacket):
    _handler_name: ClassVar[str] = "handle_unknown"

    @classmethod
    def decode(cls, reader: PacketReader) -> SUnknown:
        return cls()


@dataclass
class SHandshake(ServerBoundPacket):
    protocol_version: int
    server_address: str
    server_port: int
    next_state: int

    _handler_name: ClassVar[str] = "handle_handshake"

    @classmethod
    def decode(cls, reader: PacketReader) -> SHandshake:
        return cls(
            protocol_version=reader.read_varint(),
            server_address=reader.read_string(),
            server_port=reader.read_unsigned_short(),
            next_state=reader.read_varint(),
        )


@dataclass
class SRequest(ServerBoundPacket):
    _handler_name: ClassVar[str] = "handle_request"

    @classmethod
    def decode(cls, reader: PacketReader) -> SRequest:
        return cls()


@dataclass
class SPing(ServerBoundPacket):
    payload: int

    _handler_name: ClassVar[str] = "handle_ping"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPing:
        return cls(payload=reader.read_long())


@dataclass
class SLoginStart(ServerBoundPacket):
    name: str

    _handler_name: ClassVar[str] = "handle_login_start"

    @classmethod
    def decode(cls, reader: PacketReader) -> SLoginStart:
        return cls(name=reader.read_string())


@dataclass
class SChatMessage(ServerBoundPacket):
    message: str

    _handler_name: ClassVar[str] = "handle_chat_message"

    @classmethod
    def decode(cls, reader: PacketReader) -> SChatMessage:
        return cls(message=reader.read_string())


@dataclass
class SClientSettings(ServerBoundPacket):
    locale: str
    view_distance: int
    chat_mode: int
    chat_colors: bool
    displayed_skin_parts: int
    main_hand: int
    enable_text_filtering: bool
    allow_server_listings: bool

    _handler_name: ClassVar[str] = "handle_client_settings"

    @classmethod
    def decode(cls, reader: PacketReader) -> SClientSettings:
        return cls(
            locale=reader.read_string(),
            view_distance=reader.read_byte(),
            chat_mode=reader.read_varint(),
            chat_colors=reader.read_bool(),
            displayed_skin_parts=reader.read_unsigned_byte(),
            main_hand=reader.read_varint(),
            enable_text_filtering=reader.read_bool(),
            allow_server_listings=reader.read_bool(),
        )


@dataclass
class STabComplete(ServerBoundPacket):
    transaction_id: int
    text: str

    _handler_name: ClassVar[str] = "handle_tab_complete"

    @classmethod
    def decode(cls, reader: PacketReader) -> STabComplete:
        return cls(transaction_id=reader.read_varint(), text=reader.read_string())


@dataclass
class SPluginMessage(ServerBoundPacket):
    channel: str
    data: bytes

    _handler_name: ClassVar[str] = "handle_plugin_message"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPluginMessage:
        return cls(channel=reader.read_string(), data=reader.read_to_end())


@dataclass
class SKeepAlive(ServerBoundPacket):
    id: int

    _handler_name: ClassVar[str] = "handle_keep_alive"

    @classmethod
    def decode(cls, reader: PacketReader) -> SKeepAlive:
        return cls(id=reader.read_long())


@dataclass
class SPlayerPosition(ServerBoundPacket):
    x: float
    y: float
    z: float
    on_ground: bool

    _handler_name: ClassVar[str] = "handle_player_position"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerPosition:
        return cls(
            x=reader.read_double(),
            y=reader.read_double(),
            z=reader.read_double(),
            on_ground=reader.read_bool(),
        )


@dataclass
class SPlayerPositionAndRotation(ServerBoundPacket):
    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    on_ground: bool

    _handler_name: ClassVar[str] = "handle_player_position_and_rotation"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerPositionAndRotation:
        return cls(
            x=reader.read_double(),
            y=reader.read_double(),
            z=reader.read_double(),
            yaw=reader.read_float(),
            pitch=reader.read_float(),
            on_ground=reader.read_bool(),
        )


@dataclass
class SPlayerRotation(ServerBoundPacket):
    yaw: float
    pitch: float
    on_ground: bool

    _handler_name: ClassVar[str] = "handle_player_rotation"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerRotation:
        return cls(
            yaw=reader.read_float(),
            pitch=reader.read_float(),
            on_ground=reader.read_bool(),
        )


@dataclass
class SPlayerMovement(ServerBoundPacket):
    on_ground: bool

    _handler_name: ClassVar[str] = "handle_player_movement"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerMovement:
        return cls(on_ground=reader.read_bool())


@dataclass
class SPlayerAbilities(ServerBoundPacket):
    is_flying: bool

    _handler_name: ClassVar[str] = "handle_player_abilities"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerAbilities:
        return cls(is_flying=reader.read_byte() != 0)


@dataclass
class SPlayerDigging(ServerBoundPacket):
    status: int
    x: int
    y: int
    z: int
    face: int

    _handler_name: ClassVar[str] = "handle_player_digging"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerDigging:
        status = reader.read_varint()
        x, y, z = reader.read_position()
        face = reader.read_byte()
        return cls(status=status, x=x, y=y, z=z, face=face)


@dataclass
class SEntityAction(ServerBoundPacket):
    entity_id: int
    action_id: int
    jump_boost: int

    _handler_name: ClassVar[str] = "handle_entity_action"

    @classmethod
    def decode(cls, reader: PacketReader) -> SEntityAction:
        return cls(
            entity_id=reader.read_varint(),
            action_id=reader.read_varint(),
            jump_boost=reader.read_varint(),
        )


@dataclass
class SAnimation(ServerBoundPacket):
    hand: int

    _handler_name: ClassVar[str] = "handle_animation"

    @classmethod
    def decode(cls, reader: PacketReader) -> SAnimation:
        return cls(hand=reader.read_varint())


@dataclass
class SPlayerBlockPlacement(ServerBoundPacket):
    hand: int
    x: int
    y: int
    z: int
    face: int
    cursor_x: float
    cursor_y: float
    cursor_z: float
    inside_block: bool

    _handler_name: ClassVar[str] = "handle_player_block_placement"

    @classmethod
    def decode(cls, reader: PacketReader) -> SPlayerBlockPlacement:
        hand = reader.read_varint()
        x, y, z = reader.read_position()
        return cls(
            hand=hand,
            x=x,
            y=y,
            z=z,
            face=reader.read_varint(),
            cursor_x=reader.read_float(),
            cursor_y=reader.read_float(),
            cursor_z=reader.read_float(),
            inside_block=reader.read_bool(),
        )


@dataclass
class SHeldItemChange(ServerBoundPacket):
    slot: int

    _handler_name: ClassVar[str] = "handle_held_item_change"

    @classmethod
    def decode(cls, reader: PacketReader) -> SHeldItemChange:
        return cls(slot=reader.read_short())


@dataclass
class SCreativeInventoryAction(ServerBoundPacket):
    slot: int
    clicked_item: SlotData | None

    _handler_name: ClassVar[str] = "handle_creative_inventory_action"

    @classmethod
    def decode(cls, reader: PacketReader) -> SCreativeInventoryAction:
        slot = reader.read_short()
        clicked_item = None
        if reader.read_bool():
            clicked_item = SlotData(
                item_id=reader.read_varint(),
                item_count=reader.read_byte(),
                nbt=reader.read_nbt_blob(),
            )
        return cls(slot=slot, clicked_item=clicked_item)


@dataclass
class SUpdateSign(ServerBoundPacket):
    x: int
    y: int
    z: int
    lines: tuple[str, str, str, str]

    _handler_name: ClassVar[str] = "handle_update_sign"

    @classmethod
    def decode(cls, reader: PacketReader) -> SUpdateSign:
        x, y, z = reader.read_position()
        lines = tuple(reader.read_string() for _ in range(4))
        return cls(x=x, y=y, z=z, lines=lines)