# mchprs

Building blocks for a Minecraft server aimed at redstone work: the wire
protocol (VarInts, positions, strings, NBT, framed and zlib-compressed
packets), the server-bound and client-bound packet sets, paletted chunk
storage, a world interface with region iteration, a small TCP connection
layer and the binary form of a compiled redstone graph.

The package uses only the standard library.

## Modules

| Module | What it holds |
| --- | --- |
| `mchprs.nbt` | NBT tag types (`Byte`, `Short`, `Int`, `Long`, `Float`, `Double`, `ByteArray`, `IntArray`, `LongArray`), `write_nbt`, `read_nbt`, `NbtError`, `NBTMap` |
| `mchprs.codec` | `PacketReader`, `PacketWriter`, `PacketEncoder`, `encode_varint`, `PacketDecodeError`, `SlotData`, `PalettedContainer` |
| `mchprs.serverbound` | Packets sent by the client (`SHandshake`, `SLoginStart`, `SPlayerPosition`, ...) and `ServerBoundPacketHandler` |
| `mchprs.protocol` | `NetworkState`, `decode_packet`, `read_packet` |
| `mchprs.clientbound` | Login, chat, command, entity, inventory, player info and scoreboard packets sent to the client |
| `mchprs.clientbound_world` | Chunk data, block change, multi block change, join game, effect, sound and time packets |
| `mchprs.storage` | `BitBuffer`, `PalettedBitBuffer`, `ChunkSection`, `Chunk` and their saved forms `ChunkSectionData`, `ChunkData` |
| `mchprs.world` | `BlockPos`, `TickPriority`, `TickEntry`, the abstract `World`, `iter_blocks_optimized` |
| `mchprs.server` | `NetworkServer`, `NetworkClient`, `HandshakingConn`, `PlayerConn`, `PlayerPacketSender` |
| `mchprs.redpiler_graph` | Redstone graph `Node`s and `serialize` / `deserialize` |

## Writing and framing a packet

```python
import io

from mchprs.codec import PacketEncoder, PacketWriter

writer = PacketWriter()
writer.write_varint(300)
writer.write_string(32767, "hello")
writer.write_position(10, 64, -5)

encoder = PacketEncoder(writer.getvalue(), 0x0F)
out = io.BytesIO()
encoder.write_uncompressed(out)   # length, packet id, body
encoder.write_compressed(out)     # framing used once compression is on
```

`write_compressed` sends bodies shorter than 256 bytes with a data length
of 0 and zlib-compresses longer ones. `write_string` raises `ValueError`
when the encoded string is longer than the protocol allows for the given
maximum length.

Client-bound packets are dataclasses that build their encoders themselves:

```python
from mchprs.clientbound import CPong

encoder = CPong(payload=42).encode()
```

## Reading packets

`PacketReader` wraps a binary stream or a bytes object and reads the
protocol's types; running out of data, an oversized VarInt or invalid UTF-8
raises `PacketDecodeError`.

`read_packet(stream, compressed, state)` reads one length-prefixed packet
and returns `(packet, new_state)`; `decode_packet(data, state)` does the
same for an already unframed, uncompressed packet. The state moves from
`NetworkState.HANDSHAKE` to `STATUS` or `LOGIN` according to the handshake,
and from `LOGIN` to `PLAY` on login start. Unknown packet ids decode to
`SUnknown`.

A decoded packet is dispatched with `packet.handle(handler, player_idx)` to
the matching method of a `ServerBoundPacketHandler` subclass; methods that
are not overridden only log the packet at debug level.

## NBT

`write_nbt(value, name="")` encodes a mapping (or a dataclass, or an object
with `to_nbt()`) as a root compound; plain `int` becomes an Int tag, `float`
a Double, `bool` a Byte, and the tag classes pick other widths.
`read_nbt` returns `(name, compound)`, or `None` when the root is not a
compound. `NBTMap` is the numbered registry layout used in the join game
packet.

## Chunk storage

```python
from mchprs.storage import BitBuffer, Chunk

buffer = BitBuffer.create(5, 24)
buffer.set_entry(3, 17)
assert buffer.get_entry(3) == 17

chunk = Chunk.empty(0, 0, 16)
chunk.set_block(1, 70, 2, 9)
assert chunk.get_block(1, 70, 2) == 9
```

Sections grow their palette as new block ids appear and switch to direct
15-bit ids once the palette would need 9 bits. Changed blocks are held per
section until they are flushed; `Chunk.multi_blocks` yields a
`CMultiBlockChange` for each changed section and `reset_multi_blocks`
clears the collected records. `Chunk.save` and `Chunk.load` convert to and
from `ChunkData`, in which an all-air section is `None`.
`Chunk.encode_packet` builds the chunk data packet; block entities stored in
the chunk are expected to offer `to_nbt(True)` (returning `None` to skip)
and `ty()`.

## World and regions

`World` is an abstract base class for block storage.
`iter_blocks_optimized(world, first_pos, second_pos)` yields every
`BlockPos` in the box between two corners, skipping 16-block sections whose
block count is zero, and raises `LookupError` when a chunk is missing.

## Connections

`NetworkServer("127.0.0.1:25565")` listens in a background thread; each
call to `update()` moves newly accepted clients into
`handshaking_clients`. Every client has its own reading thread, and
`receive_packets()` returns what has been decoded since the last call.
`HandshakingConn.set_compressed` switches the framing, `PlayerConn.from_handshaking`
promotes a connection, and `PlayerConn.alive` turns false once the client
disconnects. The server can be used as a context manager or stopped with
`close()`.

## Redstone graph

`mchprs.redpiler_graph.serialize` turns a list of `Node` values into a
compact little-endian byte string and `deserialize` reads it back;
`serialize_into` and `deserialize_from` do the same against a stream.
Malformed data raises `ValueError`.

## What the package does not do

There is no server program and no command to start one: the connection
layer accepts clients and decodes their packets, but nothing here answers
a status request, completes a login or runs game logic. Plots are not
loaded from or saved to files; `ChunkData` is an in-memory form only.
There is no block registry, no block entity implementation and no redstone
simulation; the graph module only stores and serialises nodes.

## Tests

The test suite uses pytest, installed through the `test` extra:

```
pip install -e .[test]
pytest
```