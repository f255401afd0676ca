import pytest

from mchprs.storage import Chunk
from mchprs.world import BlockPos, TickEntry, TickPriority, World, iter_blocks_optimized


class _FlatWorld(World):
    def __init__(self, size=2, sections=16):
        self.chunks = {
            (x, z): Chunk.empty(x, z, sections) for x in range(size) for z in range(size)
        }
        self.ticks = []

    def get_chunk(self, x, z):
        return self.chunks.get((x, z))

    def _chunk_for(self, pos):
        return self.chunks[(pos.x // 16, pos.z // 16)]

    def get_block_raw(self, pos):
        return self._chunk_for(pos).get_block(pos.x & 15, pos.y, pos.z & 15)

    def set_block_raw(self, pos, block):
        return self._chunk_for(pos).set_block(pos.x & 15, pos.y, pos.z & 15, block)

    def delete_block_entity(self, pos):
        self._chunk_for(pos).delete_block_entity(pos)

    def get_block_entity(self, pos):
        return self._chunk_for(pos).get_block_entity(pos)

    def set_block_entity(self, pos, block_entity):
        self._chunk_for(pos).set_block_entity(pos, block_entity)

    def schedule_tick(self, pos, delay, priority):
        self.ticks.append(TickEntry(delay, priority, pos))

    def pending_tick_at(self, pos):
        return any(entry.pos == pos for entry in self.ticks)


def test_empty_world_yields_nothing():
    world = _FlatWorld()
    assert list(iter_blocks_optimized(world, BlockPos(0, 0, 0), BlockPos(20, 5, 20))) == []


def test_only_sections_with_blocks_are_visited():
    world = _FlatWorld()
    world.set_block_raw(BlockPos(1, 1, 1), 5)
    result = list(iter_blocks_optimized(world, BlockPos(0, 0, 0), BlockPos(20, 5, 20)))
    expected = {
        BlockPos(x, y, z) for x in range(16) for y in range(6) for z in range(16)
    }
    assert set(result) == expected
    assert len(result) == len(expected)
    assert result[0] == BlockPos(0, 0, 0)
    assert result[1] == BlockPos(1, 0, 0)


def test_corner_order_does_not_matter():
    world = _FlatWorld()
    world.set_block_raw(BlockPos(17, 2, 3), 9)
    forward = list(iter_blocks_optimized(world, BlockPos(0, 0, 0), BlockPos(20, 4, 20)))
    backward = list(iter_blocks_optimized(world, BlockPos(20, 4, 20), BlockPos(0, 0, 0)))
    assert forward == backward
    assert BlockPos(17, 2, 3) in forward


def test_world_may_change_during_iteration():
    world = _FlatWorld()
    world.set_block_raw(BlockPos(0, 0, 0), 3)
    for pos in iter_blocks_optimized(world, BlockPos(0, 0, 0), BlockPos(3, 0, 0)):
        world.set_block_raw(pos, 7)
    assert [world.get_block_raw(BlockPos(x, 0, 0)) for x in range(4)] == [7, 7, 7, 7]


def test_missing_chunk_raises():
    world = _FlatWorld(size=1)
    with pytest.raises(LookupError):
        list(iter_blocks_optimized(world, BlockPos(0, 0, 0), BlockPos(40, 0, 0)))


def test_is_cursed_defaults_to_false():
    world = _FlatWorld()
    assert World.is_cursed(world) is False


def test_tick_priority_order():
    priorities = [TickPriority.NORMAL, TickPriority.HIGHEST, TickPriority.HIGH, TickPriority.HIGHER]
    origin = BlockPos(0, 0, 0)
    entries = [TickEntry(0, priority, origin) for priority in priorities]
    ordered = sorted(entries, key=lambda entry: entry.tick_priority)
    assert [entry.tick_priority for entry in ordered] == [
        TickPriority.HIGHEST,
        TickPriority.HIGHER,
        TickPriority.HIGH,
        TickPriority.NORMAL,
    ]


def test_tick_entries_compare_by_value():
    world = _FlatWorld()
    world.schedule_tick(BlockPos(1, 2, 3), 4, TickPriority.HIGH)
    assert world.ticks == [TickEntry(4, TickPriority.HIGH, BlockPos(1, 2, 3))]
    assert world.pending_tick_at(BlockPos(1, 2, 3)) is True
    assert world.pending_tick_at(BlockPos(0, 0, 0)) is False


def test_block_pos_is_hashable_and_frozen():
    positions = {BlockPos(1, 2, 3), BlockPos(1, 2, 3)}
    assert len(positions) == 1
    with pytest.raises(AttributeError):
        BlockPos(1, 2, 3).x = 5