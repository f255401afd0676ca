"""Block positions, scheduled ticks, the world interface and region iteration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

_CHUNK_SIZE = 16


@dataclass(frozen=True)
class BlockPos:
    """An absolute block position."""

    x: int
    y: int
    z: int


class TickPriority(IntEnum):
    """Priority of a scheduled tick; lower values run first."""

    HIGHEST = 0
    HIGHER = 1
    HIGH = 2
    NORMAL = 3


@dataclass
class TickEntry:
    """A tick scheduled for the block at `pos`."""

    ticks_left: int
    tick_priority: TickPriority
    pos: BlockPos


class World(ABC):
    """Block storage that can be read, changed and ticked."""

    @abstractmethod
    def get_block_raw(self, pos: BlockPos) -> int:
        """Return the block state id at `pos`."""

    @abstractmethod
    def set_block_raw(self, pos: BlockPos, block: int) -> bool:
        """Store a block without side effects; return True if it changed."""

    @abstractmethod
    def delete_block_entity(self, pos: BlockPos) -> None:
        """Remove the block entity at `pos` if there is one."""

    @abstractmethod
    def get_block_entity(self, pos: BlockPos) -> Any:
        """Return the block entity at `pos`, or None."""

    @abstractmethod
    def set_block_entity(self, pos: BlockPos, block_entity: Any) -> None:
        """Set the block entity at `pos`, replacing any previous one."""

    @abstractmethod
    def get_chunk(self, x: int, z: int) -> Any:
        """Return the chunk at chunk coordinates (x, z), or None if absent."""

    @abstractmethod
    def schedule_tick(self, pos: BlockPos, delay: int, priority: TickPriority) -> None:
        """Schedule a tick at `pos` after `delay` ticks."""

    @abstractmethod
    def pending_tick_at(self, pos: BlockPos) -> bool:
        """Return True if a tick is scheduled at `pos`."""

    def is_cursed(self) -> bool:
        return False


def _span(a: int, b: int) -> range:
    start, end = min(a, b), max(a, b)
    return range(start, end + 1, _CHUNK_SIZE)


def iter_blocks_optimized(
    world: World, first_pos: BlockPos, second_pos: BlockPos
) -> Iterator[BlockPos]:
    """Yield every position in the box between two corners, skipping empty sections.

    The chunk is looked up again for each section, so the world may be
    changed while iterating.
    """
    end_x = max(first_pos.x, second_pos.x)
    end_y = max(first_pos.y, second_pos.y)
    end_z = max(first_pos.z, second_pos.z)

    for chunk_start_x in _span(first_pos.x, second_pos.x):
        for chunk_start_z in _span(first_pos.z, second_pos.z):
            for chunk_start_y in _span(first_pos.y, second_pos.y):
                chunk_x = chunk_start_x // _CHUNK_SIZE
                chunk_z = chunk_start_z // _CHUNK_SIZE
                chunk = world.get_chunk(chunk_x, chunk_z)
                if chunk is None:
                    raise LookupError(f"no chunk at ({chunk_x}, {chunk_z})")
                section_index = chunk_start_y // _CHUNK_SIZE
                if not 0 <= section_index < len(chunk.sections):
                    raise IndexError(f"section {section_index} is outside the chunk")
                if chunk.sections[section_index].block_count == 0:
                    continue

                chunk_end_x = min(chunk_start_x + _CHUNK_SIZE - 1, end_x)
                chunk_end_y = min(chunk_start_y + _CHUNK_SIZE - 1, end_y)
                chunk_end_z = min(chunk_start_z + _CHUNK_SIZE - 1, end_z)
                for y in range(chunk_start_y, chunk_end_y + 1):
                    for z in range(chunk_start_z, chunk_end_z + 1):
                        for x in range(chunk_start_x, chunk_end_x + 1):
                            yield BlockPos(x, y, z)