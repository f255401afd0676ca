"""Protocol states and decoding of framed serverbound packets."""

from __future__ import annotations

import zlib
from enum import Enum

from mchprs.codec import PacketDecodeError, PacketReader
from mchprs.serverbound import (
    SAnimation,
    SChatMessage,
    SClientSettings,
    SCreativeInventoryAction,
    SEntityAction,
    SHandshake,
    SHeldItemChange,
    SKeepAlive,
    SLoginStart,
    SPing,
    SPlayerAbilities,
    SPlayerBlockPlacement,
    SPlayerDigging,
    SPlayerMovement,
    SPlayerPosition,
    SPlayerPositionAndRotation,
    SPlayerRotation,
    SPluginMessage,
    SRequest,
    STabComplete,
    SUnknown,
    SUpdateSign,
    ServerBoundPacket,
)


class NetworkState(Enum):
    """The four states of a protocol connection."""

    HANDSHAKE = "handshake"
    STATUS = "status"
    LOGIN = "login"
    PLAY = "play"


_PLAY_PACKETS: dict[int, type[ServerBoundPacket]] = {
    0x03: SChatMessage,
    0x05: SClientSettings,
    0x06: STabComplete,
    0x0A: SPluginMessage,
    0x0F: SKeepAlive,
    0x11: SPlayerPosition,
    0x12: SPlayerPositionAndRotation,
    0x13: SPlayerRotation,
    0x14: SPlayerMovement,
    0x19: SPlayerAbilities,
    0x1A: SPlayerDigging,
    0x1B: SEntityAction,
    0x25: SHeldItemChange,
    0x28: SCreativeInventoryAction,
    0x2B: SUpdateSign,
    0x2C: SAnimation,
    0x2E: SPlayerBlockPlacement,
}

_HANDSHAKE_NEXT_STATES = {1: NetworkState.STATUS, 2: NetworkState.LOGIN}


def decode_packet(
    data: bytes, state: NetworkState
) -> tuple[ServerBoundPacket, NetworkState]:
    """Decode an uncompressed packet (id and body); return it with the resulting state."""
    reader = PacketReader(data)
    packet_id = reader.read_varint()

    if state is NetworkState.HANDSHAKE and packet_id == 0x00:
        handshake = SHandshake.decode(reader)
        return handshake, _HANDSHAKE_NEXT_STATES.get(handshake.next_state, state)
    if state is NetworkState.STATUS and packet_id == 0x00:
        return SRequest.decode(reader), state
    if state is NetworkState.STATUS and packet_id == 0x01:
        return SPing.decode(reader), state
    if state is NetworkState.LOGIN and packet_id == 0x00:
        return SLoginStart.decode(reader), NetworkState.PLAY

    packet_type = _PLAY_PACKETS.get(packet_id, SUnknown)
    return packet_type.decode(reader), state


def read_packet(
    stream, compressed: bool, state: NetworkState
) -> tuple[ServerBoundPacket, NetworkState]:
    """Read one length-prefixed packet from `stream`; return it with the resulting state."""
    reader = PacketReader(stream)
    length = reader.read_varint()
    frame = PacketReader(reader.read_bytes(length))
    if compressed:
        decompressed_length = frame.read_varint()
        data = frame.read_to_end()
        if decompressed_length != 0:
            try:
                data = zlib.decompress(data)
            except zlib.error as exc:
                raise PacketDecodeError(f"invalid compressed packet: {exc}") from exc
    else:
        data = frame.read_to_end()
    return decode_packet(data, state)