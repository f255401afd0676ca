"""A compiled redstone graph and its compact little-endian binary form."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO

__all__ = [
    "BlockPos",
    "LinkType",
    "ComparatorMode",
    "Link",
    "NodeKind",
    "NodeType",
    "NodeState",
    "Node",
    "serialize",
    "serialize_into",
    "deserialize",
    "deserialize_from",
]


@dataclass(frozen=True)
class BlockPos:
    """A block position in the world."""

    x: int
    y: int
    z: int


class LinkType(Enum):
    DEFAULT = 0
    SIDE = 1


class ComparatorMode(Enum):
    COMPARE = 0
    SUBTRACT = 1


class NodeKind(Enum):
    REPEATER = 0
    TORCH = 1
    COMPARATOR = 2
    LAMP = 3
    BUTTON = 4
    LEVER = 5
    PRESSURE_PLATE = 6
    TRAPDOOR = 7
    WIRE = 8
    CONSTANT = 9


@dataclass(frozen=True)
class NodeType:
    """The kind of a node; repeaters carry a delay and comparators a mode."""

    kind: NodeKind
    delay: int | None = None
    mode: ComparatorMode | None = None

    def __post_init__(self):
        if (self.kind is NodeKind.REPEATER) != (self.delay is not None):
            raise ValueError("a delay is given exactly for repeaters")
        if (self.kind is NodeKind.COMPARATOR) != (self.mode is not None):
            raise ValueError("a mode is given exactly for comparators")

    @classmethod
    def repeater(cls, delay: int) -> NodeType:
        return cls(NodeKind.REPEATER, delay=delay)

    @classmethod
    def comparator(cls, mode: ComparatorMode) -> NodeType:
        return cls(NodeKind.COMPARATOR, mode=mode)


@dataclass
class Link:
    ty: LinkType
    weight: int
    to: int


@dataclass
class NodeState:
    powered: bool = False
    repeater_locked: bool = False
    output_strength: int = 0


@dataclass
class Node:
    ty: NodeType
    block: tuple[BlockPos, int] | None = None
    """Position and protocol id of the block."""
    state: NodeState = field(default_factory=NodeState)
    facing_diode: bool = False
    comparator_far_input: int | None = None
    inputs: list[Link] = field(default_factory=list)
    updates: list[int] = field(default_factory=list)


class _Encoder:
    def __init__(self) -> None:
        self.buffer = bytearray()

    def _pack(self, fmt: str, value) -> None:
        try:
            self.buffer += struct.pack(fmt, value)
        except struct.error as err:
            raise ValueError(f"cannot encode {value!r}: {err}") from err

    def u8(self, value: int) -> None:
        self._pack("<B", value)

    def u32(self, value: int) -> None:
        self._pack("<I", value)

    def i32(self, value: int) -> None:
        self._pack("<i", value)

    def u64(self, value: int) -> None:
        self._pack("<Q", value)

    def bool(self, value: bool) -> None:
        self.u8(1 if value else 0)

    def node(self, node: Node) -> None:
        self.u32(node.ty.kind.value)
        if node.ty.kind is NodeKind.REPEATER:
            self.u8(node.ty.delay)
        elif node.ty.kind is NodeKind.COMPARATOR:
            self.u32(node.ty.mode.value)

        if node.block is None:
            self.u8(0)
        else:
            pos, block_id = node.block
            self.u8(1)
            self.i32(pos.x)
            self.i32(pos.y)
            self.i32(pos.z)
            self.u32(block_id)

        self.bool(node.state.powered)
        self.bool(node.state.repeater_locked)
        self.u8(node.state.output_strength)
        self.bool(node.facing_diode)

        if node.comparator_far_input is None:
            self.u8(0)
        else:
            self.u8(1)
            self.u8(node.comparator_far_input)

        self.u64(len(node.inputs))
        for link in node.inputs:
            self.u32(link.ty.value)
            self.u8(link.weight)
            self.u64(link.to)

        self.u64(len(node.updates))
        for update in node.updates:
            self.u64(update)


class _Decoder:
    def __init__(self, reader: BinaryIO):
        self._reader = reader

    def _unpack(self, fmt: str):
        size = struct.calcsize(fmt)
        data = self._reader.read(size)
        if len(data) < size:
            raise ValueError("unexpected end of graph data")
        return struct.unpack(fmt, data)[0]

    def u8(self) -> int:
        return self._unpack("<B")

    def u32(self) -> int:
        return self._unpack("<I")

    def i32(self) -> int:
        return self._unpack("<i")

    def u64(self) -> int:
        return self._unpack("<Q")

    def bool(self) -> bool:
        value = self.u8()
        if value > 1:
            raise ValueError(f"invalid boolean value {value}")
        return value == 1

    def present(self) -> bool:
        tag = self.u8()
        if tag > 1:
            raise ValueError(f"invalid option tag {tag}")
        return tag == 1

    def node_type(self) -> NodeType:
        kind = NodeKind(self.u32())
        if kind is NodeKind.REPEATER:
            return NodeType.repeater(self.u8())
        if kind is NodeKind.COMPARATOR:
            return NodeType.comparator(ComparatorMode(self.u32()))
        return NodeType(kind)

    def node(self) -> Node:
        ty = self.node_type()
        block = None
        if self.present():
            pos = BlockPos(self.i32(), self.i32(), self.i32())
            block = (pos, self.u32())
        state = NodeState(
            powered=self.bool(),
            repeater_locked=self.bool(),
            output_strength=self.u8(),
        )
        facing_diode = self.bool()
        comparator_far_input = self.u8() if self.present() else None
        inputs = [
            Link(ty=LinkType(self.u32()), weight=self.u8(), to=self.u64())
            for _ in range(self.u64())
        ]
        updates = [self.u64() for _ in range(self.u64())]
        return Node(
            ty=ty,
            block=block,
            state=state,
            facing_diode=facing_diode,
            comparator_far_input=comparator_far_input,
            inputs=inputs,
            updates=updates,
        )

    def nodes(self) -> list[Node]:
        return [self.node() for _ in range(self.u64())]


def serialize(nodes: list[Node]) -> bytes:
    """Encode a node list."""
    encoder = _Encoder()
    encoder.u64(len(nodes))
    for node in nodes:
        encoder.node(node)
    return bytes(encoder.buffer)


def serialize_into(writer: BinaryIO, nodes: list[Node]) -> None:
    """Encode a node list into a binary stream."""
    writer.write(serialize(nodes))


def deserialize(data: bytes) -> list[Node]:
    """Decode a node list; raises ValueError on malformed data."""
    return deserialize_from(io.BytesIO(data))


def deserialize_from(reader: BinaryIO) -> list[Node]:
    """Decode a node list from a binary stream; raises ValueError on malformed data."""
    return _Decoder(reader).nodes()