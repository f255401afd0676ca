"""In-memory chunk storage: packed bit buffers, paletted sections and chunks."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from mchprs.clientbound_world import (
    C3BMultiBlockChangeRecord,
    CChunkData,
    CChunkDataBlockEntity,
    CChunkDataSection,
    CMultiBlockChange,
)
from mchprs.codec import PacketEncoder, PalettedContainer
from mchprs.nbt import LongArray

_U64 = (1 << 64) - 1
_SECTION_VOLUME = 16 * 16 * 16
_GLOBAL_PALETTE_BITS = 15
_VALID_ENTRIES_PER_LONG = frozenset({16, 12, 10, 9, 8, 7, 6, 5, 4})


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >= 1 << (bits - 1) else value


class BitBuffer:
    """Fixed-width unsigned entries packed into 64-bit words, lowest bits first."""

    def __init__(self, bits_per_entry: int, entries: int, longs: list[int]):
        if bits_per_entry <= 0 or 64 // bits_per_entry not in _VALID_ENTRIES_PER_LONG:
            raise ValueError(f"unsupported bits per entry: {bits_per_entry}")
        self.bits_per_entry = bits_per_entry
        self.entries = entries
        self.entries_per_long = 64 // bits_per_entry
        self.mask = (1 << bits_per_entry) - 1
        self.longs = longs

    @classmethod
    def create(cls, bits_per_entry: int, entries: int) -> BitBuffer:
        """Create a zero-filled buffer holding `entries` entries."""
        if bits_per_entry <= 0:
            raise ValueError(f"unsupported bits per entry: {bits_per_entry}")
        per_long = 64 // bits_per_entry
        return cls(bits_per_entry, entries, [0] * (-(-entries // per_long)))

    def _locate(self, index: int) -> tuple[int, int]:
        if index < 0:
            raise IndexError(f"entry index {index} is negative")
        word, slot = divmod(index, self.entries_per_long)
        return word, slot * self.bits_per_entry

    def get_entry(self, index: int) -> int:
        word, shift = self._locate(index)
        return (self.longs[word] >> shift) & self.mask

    def set_entry(self, index: int, value: int) -> None:
        word, shift = self._locate(index)
        cleared = self.longs[word] & ~(self.mask << shift)
        self.longs[word] = (cleared | (value << shift)) & _U64

    def __repr__(self) -> str:
        return (
            f"BitBuffer(bits_per_entry={self.bits_per_entry}, entries={self.entries}, "
            f"entries_per_long={self.entries_per_long}, mask={self.mask})"
        )


class PalettedBitBuffer:
    """A bit buffer of palette indices that grows, and finally stores raw ids directly."""

    def __init__(self, entries: int, direct_threshold: int):
        self.data = BitBuffer.create(4, entries)
        self.palette: list[int] = [0]
        self.max_entries = 16
        self.use_palette = True
        # 9 for block states, 4 for biomes
        self.direct_threshold = direct_threshold

    @classmethod
    def _load(
        cls,
        entries: int,
        bits_per_entry: int,
        longs: list[int],
        palette: list[int],
        direct_threshold: int,
    ) -> PalettedBitBuffer:
        buffer = cls.__new__(cls)
        buffer.data = BitBuffer(bits_per_entry, entries, longs)
        buffer.palette = palette
        buffer.use_palette = bits_per_entry < 9
        buffer.max_entries = 1 << bits_per_entry
        buffer.direct_threshold = direct_threshold
        return buffer

    @property
    def entries(self) -> int:
        return self.data.entries

    def _resize(self) -> None:
        if not self.use_palette:
            raise RuntimeError("a buffer using the global palette never resizes")
        old_bits = self.data.bits_per_entry
        if old_bits + 1 >= self.direct_threshold:
            self.max_entries = 1 << _GLOBAL_PALETTE_BITS
            self.use_palette = False
            new_bits = _GLOBAL_PALETTE_BITS
        else:
            self.max_entries <<= 1
            new_bits = old_bits + 1
        old = self.data
        self.data = BitBuffer.create(new_bits, old.entries)
        if new_bits == _GLOBAL_PALETTE_BITS:
            for index in range(old.entries):
                self.data.set_entry(index, self.palette[old.get_entry(index)])
            self.palette = []
        else:
            for index in range(old.entries):
                self.data.set_entry(index, old.get_entry(index))

    def get_entry(self, index: int) -> int:
        if self.use_palette:
            return self.palette[self.data.get_entry(index)]
        return self.data.get_entry(index)

    def set_entry(self, index: int, value: int) -> None:
        if not self.use_palette:
            self.data.set_entry(index, value)
            return
        try:
            palette_index = self.palette.index(value)
        except ValueError:
            if len(self.palette) + 1 > self.max_entries:
                self._resize()
                self.set_entry(index, value)
                return
            palette_index = len(self.palette)
            self.palette.append(value)
        self.data.set_entry(index, palette_index)

    def encode_packet(self) -> PalettedContainer:
        """Describe the buffer as a paletted container for the chunk data packet."""
        if self.use_palette and len(self.palette) == 1:
            return PalettedContainer(
                bits_per_entry=0, palette=[self.palette[0]], data_array=[0]
            )
        return PalettedContainer(
            bits_per_entry=self.data.bits_per_entry,
            palette=list(self.palette) if self.use_palette else None,
            data_array=list(self.data.longs),
        )

    def __repr__(self) -> str:
        return (
            f"PalettedBitBuffer(data={self.data!r}, palette_len={len(self.palette)}, "
            f"max_entries={self.max_entries}, use_palette={self.use_palette})"
        )


@dataclass
class ChunkSectionData:
    """The saved form of a chunk section."""

    data: list[int]
    palette: list[int]
    bits_per_block: int
    block_count: int
    entries: int


@dataclass
class ChunkData:
    """The saved form of a chunk: one optional entry per section, plus block entities."""

    sections: list[ChunkSectionData | None]
    block_entities: dict = field(default_factory=dict)


def _empty_multi_block() -> CMultiBlockChange:
    return CMultiBlockChange(chunk_x=0, chunk_z=0, chunk_y=0, records=[])


class ChunkSection:
    """A 16x16x16 block section that buffers changes until they are flushed."""

    def __init__(self) -> None:
        self.buffer = PalettedBitBuffer(_SECTION_VOLUME, 9)
        self.block_count = 0
        self.multi_block_change = _empty_multi_block()
        self.changed_blocks = [-1] * _SECTION_VOLUME
        self.changed = False

    @staticmethod
    def _index(x: int, y: int, z: int) -> int:
        return (y << 8) | (z << 4) | x

    def get_block(self, x: int, y: int, z: int) -> int:
        index = self._index(x, y, z)
        pending = self.changed_blocks[index]
        return pending if pending >= 0 else self.buffer.get_entry(index)

    def set_block(self, x: int, y: int, z: int, block: int) -> bool:
        """Set a block; return True if it changed."""
        old = self.get_block(x, y, z)
        if old == 0 and block != 0:
            self.block_count += 1
        elif old != 0 and block == 0:
            self.block_count -= 1
        changed = old != block
        if changed:
            self.changed = True
            self.changed_blocks[self._index(x, y, z)] = block
        return changed

    @classmethod
    def load(cls, data: ChunkSectionData | None) -> ChunkSection:
        section = cls()
        if data is None:
            return section
        section.buffer = PalettedBitBuffer._load(
            data.entries,
            data.bits_per_block & 0xFF,
            [long & _U64 for long in data.data],
            [entry & 0xFFFFFFFF for entry in data.palette],
            9,
        )
        section.block_count = data.block_count & 0xFFFFFFFF
        return section

    def save(self) -> ChunkSectionData | None:
        """Return the saved form, or None if the section is entirely air."""
        self.flush()
        buffer = self.buffer
        if buffer.use_palette and buffer.palette == [0]:
            return None
        return ChunkSectionData(
            data=[_to_signed(long, 64) for long in buffer.data.longs],
            palette=[_to_signed(entry, 32) for entry in buffer.palette],
            bits_per_block=_to_signed(buffer.data.bits_per_entry, 8),
            block_count=_to_signed(self.block_count, 32),
            entries=buffer.entries,
        )

    def compress(self) -> None:
        """Rebuild the buffer so its palette holds only the ids in use."""
        new_buffer = PalettedBitBuffer(_SECTION_VOLUME, 9)
        for index in range(_SECTION_VOLUME):
            new_buffer.set_entry(index, self.buffer.get_entry(index))
        self.buffer = new_buffer

    def encode_packet(self) -> CChunkDataSection:
        return CChunkDataSection(
            block_count=_to_signed(self.block_count, 16),
            block_states=self.buffer.encode_packet(),
            biomes=PalettedContainer(bits_per_entry=0, palette=[0], data_array=[]),
        )

    def flush(self) -> None:
        """Write pending changes into the buffer."""
        if self.changed:
            for index, block in enumerate(self.changed_blocks):
                if block >= 0:
                    self.buffer.set_entry(index, block)

    def multi_block(self, chunk_x: int, chunk_y: int, chunk_z: int) -> CMultiBlockChange:
        """Apply pending changes and return the multi block change describing them."""
        change = self.multi_block_change
        change.chunk_x = chunk_x
        change.chunk_y = chunk_y
        change.chunk_z = chunk_z
        if self.changed:
            for index, block in enumerate(self.changed_blocks):
                if block >= 0:
                    self.buffer.set_entry(index, block)
                    change.records.append(
                        C3BMultiBlockChangeRecord(
                            x=index & 0xF,
                            y=index >> 8,
                            z=(index & 0xF0) >> 4,
                            block_id=block,
                        )
                    )
            self.changed = False
            self.changed_blocks = [-1] * _SECTION_VOLUME
        return change


class Chunk:
    """A column of chunk sections at chunk coordinates (x, z) with its block entities.

    Block entities are stored by position; when encoded for the client, each one
    is asked for `to_nbt(True)` (None to skip it) and its type id via `ty()`.
    """

    def __init__(
        self,
        x: int,
        z: int,
        sections: list[ChunkSection],
        block_entities: dict | None = None,
    ):
        self.x = x
        self.z = z
        self.sections = sections
        self.block_entities = {} if block_entities is None else block_entities

    @classmethod
    def empty(cls, x: int, z: int, num_sections: int) -> Chunk:
        return cls(x, z, [ChunkSection() for _ in range(num_sections)])

    @classmethod
    def load(cls, x: int, z: int, chunk_data: ChunkData) -> Chunk:
        return cls(
            x,
            z,
            [ChunkSection.load(data) for data in chunk_data.sections],
            chunk_data.block_entities,
        )

    def save(self) -> ChunkData:
        return ChunkData(
            sections=[section.save() for section in self.sections],
            block_entities=dict(self.block_entities),
        )

    def encode_packet(self) -> PacketEncoder:
        height = len(self.sections) * 16
        heightmap = BitBuffer.create(height.bit_length(), 16 * 16)
        for x in range(16):
            for z in range(16):
                heightmap.set_entry(x * 16 + z, self.get_top_most_block(x, z))
        heightmaps = {
            "MOTION_BLOCKING": LongArray(_to_signed(v, 64) for v in heightmap.longs)
        }

        block_entities = []
        for pos, block_entity in self.block_entities.items():
            nbt = block_entity.to_nbt(True)
            if nbt is not None:
                block_entities.append(
                    CChunkDataBlockEntity(
                        x=_to_signed(pos.x, 8),
                        z=_to_signed(pos.z, 8),
                        y=_to_signed(pos.y, 16),
                        ty=block_entity.ty(),
                        data=nbt,
                    )
                )
        return CChunkData(
            chunk_x=self.x,
            chunk_z=self.z,
            heightmaps=heightmaps,
            chunk_sections=[section.encode_packet() for section in self.sections],
            block_entities=block_entities,
        ).encode()

    @staticmethod
    def encode_empty_packet(x: int, z: int, num_sections: int) -> PacketEncoder:
        sections = [
            CChunkDataSection(
                block_count=0,
                block_states=PalettedContainer(
                    bits_per_entry=0, palette=[0], data_array=[0]
                ),
                biomes=PalettedContainer(bits_per_entry=0, palette=[0], data_array=[0]),
            )
            for _ in range(num_sections)
        ]
        return CChunkData(
            chunk_x=x,
            chunk_z=z,
            heightmaps={},
            chunk_sections=sections,
            block_entities=[],
        ).encode()

    def get_top_most_block(self, x: int, z: int) -> int:
        top_most = 0
        for section_y, section in enumerate(self.sections):
            base = section_y * 16
            for y in range(15, -1, -1):
                if section.get_block(x, y, z) != 0 and top_most < y + base:
                    top_most = base
        return top_most

    def set_block(self, x: int, y: int, z: int, block_id: int) -> bool:
        """Set a block; return True if it changed."""
        return self.sections[y >> 4].set_block(x, y & 0xF, z, block_id)

    def get_block(self, x: int, y: int, z: int) -> int:
        section_y = y // 16
        if 0 <= section_y < len(self.sections):
            return self.sections[section_y].get_block(x, y & 0xF, z)
        return 0

    def get_block_entity(self, pos) -> Any:
        return self.block_entities.get(pos)

    def delete_block_entity(self, pos) -> None:
        self.block_entities.pop(pos, None)

    def set_block_entity(self, pos, block_entity) -> None:
        self.block_entities[pos] = block_entity

    def compress(self) -> None:
        for section in self.sections:
            section.compress()

    def multi_blocks(self) -> Iterator[CMultiBlockChange]:
        """Yield the multi block change of every section that has pending changes."""
        for section_y, section in enumerate(self.sections):
            if section.changed:
                yield section.multi_block(self.x, section_y, self.z)

    def reset_multi_blocks(self) -> None:
        for section in self.sections:
            section.multi_block_change.records.clear()