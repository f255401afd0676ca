"""TCP connections: accepting clients, reading their packets and sending packets back."""

from __future__ import annotations

import io
import itertools
import logging
import queue
import socket
import threading
import zlib
from typing import Any, BinaryIO

from mchprs.codec import PacketEncoder, PacketReader
from mchprs.protocol import NetworkState, decode_packet

logger = logging.getLogger(__name__)

_CLOSED = object()
_ACCEPT_POLL_SECONDS = 0.2


def _send(stream: BinaryIO, data: PacketEncoder, compressed: bool) -> None:
    """Write one packet to `stream` and push it onto the wire."""
    try:
        if compressed:
            data.write_compressed(stream)
        else:
            data.write_uncompressed(stream)
        stream.flush()
    except (OSError, ValueError):
        pass


def _decompress(frame: bytes) -> bytes:
    reader = PacketReader(io.BytesIO(frame))
    decompressed_length = reader.read_varint()
    body = reader.read_to_end()
    # A declared length of 0 means the body was sent uncompressed.
    return zlib.decompress(body) if decompressed_length else body


class NetworkClient:
    """One TCP connection; a background thread decodes packets as they arrive.

    `id` is unique per server and becomes the player's entity id.
    """

    def __init__(self, id: int, sock: socket.socket):
        self.id = id
        self.socket = sock
        self.compressed = threading.Event()
        self.disconnected = False
        self._writer = sock.makefile("wb")
        self._packets: queue.Queue[Any] = queue.Queue()
        self._thread = threading.Thread(
            target=self._listen, name=f"client-{id}", daemon=True
        )
        self._thread.start()

    def _listen(self) -> None:
        state = NetworkState.HANDSHAKE
        try:
            with self.socket.makefile("rb") as stream:
                reader = PacketReader(stream)
                while True:
                    length = reader.read_varint()
                    frame = reader.read_bytes(length)
                    if self.compressed.is_set():
                        frame = _decompress(frame)
                    packet, state = decode_packet(frame, state)
                    self._packets.put(packet)
        except Exception:  # any read or decode failure ends the connection
            logger.debug("client %d stopped reading", self.id, exc_info=True)
        finally:
            self._packets.put(_CLOSED)

    def receive_packets(self) -> list:
        """Return every packet decoded since the last call."""
        packets = []
        while True:
            try:
                packet = self._packets.get_nowait()
            except queue.Empty:
                break
            if packet is _CLOSED:
                self.disconnected = True
                break
            packets.append(packet)
        return packets

    def send_packet(self, data: PacketEncoder) -> None:
        _send(self._writer, data, self.compressed.is_set())

    def close_connection(self) -> None:
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass


class HandshakingConn:
    """A client in the handshake, status or login state."""

    def __init__(self, client: NetworkClient):
        self.client = client
        self.username: str | None = None
        self.uuid: int | None = None

    def send_packet(self, data: PacketEncoder) -> None:
        self.client.send_packet(data)

    def receive_packets(self) -> list:
        return self.client.receive_packets()

    def set_compressed(self, compressed: bool) -> None:
        if compressed:
            self.client.compressed.set()
        else:
            self.client.compressed.clear()

    def close_connection(self) -> None:
        self.client.close_connection()


class PlayerConn:
    """A client that has joined the game."""

    def __init__(self, client: NetworkClient):
        self.client = client
        self.alive = True

    @classmethod
    def from_handshaking(cls, conn: HandshakingConn) -> PlayerConn:
        return cls(conn.client)

    def send_packet(self, data: PacketEncoder) -> None:
        self.client.send_packet(data)

    def receive_packets(self) -> list:
        packets = self.client.receive_packets()
        if self.client.disconnected:
            self.alive = False
        return packets

    def close_connection(self) -> None:
        self.alive = False
        self.client.close_connection()


class PlayerPacketSender:
    """Sends compressed packets to a player from anywhere."""

    def __init__(self, conn: PlayerConn):
        sock = conn.client.socket
        self._writer: BinaryIO | None
        if sock.fileno() < 0:
            logger.warning("Creating PlayerPacketSender with dead stream")
            self._writer = None
        else:
            self._writer = sock.makefile("wb")

    def send_packet(self, data: PacketEncoder) -> None:
        # The player has logged in, so the stream is compressed.
        if self._writer is not None:
            _send(self._writer, data, True)


def _split_address(bind_address: str) -> tuple[str, int]:
    host, sep, port = bind_address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid bind address: {bind_address!r}")
    return host.strip("[]"), int(port)


class NetworkServer:
    """Accepts TCP clients in the background; `update` collects the new ones."""

    def __init__(self, bind_address: str):
        self._listener = socket.create_server(_split_address(bind_address))
        self._listener.settimeout(_ACCEPT_POLL_SECONDS)
        self._new_clients: queue.Queue[Any] = queue.Queue()
        self._closing = threading.Event()
        # Clients in handshake, status or login; they move on once they start playing.
        self.handshaking_clients: list[HandshakingConn] = []
        self._thread = threading.Thread(
            target=self._accept_loop, name="network-server", daemon=True
        )
        self._thread.start()

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._listener.getsockname()[:2]
        return host, port

    def _accept_loop(self) -> None:
        for client_id in itertools.count():
            while True:
                try:
                    sock, _ = self._listener.accept()
                    break
                except socket.timeout:
                    if self._closing.is_set():
                        return
                except OSError:
                    if not self._closing.is_set():
                        self._new_clients.put(_CLOSED)
                    return
            sock.setblocking(True)
            self._new_clients.put(NetworkClient(client_id, sock))

    def update(self) -> None:
        """Move newly accepted clients into `handshaking_clients`."""
        while True:
            try:
                client = self._new_clients.get_nowait()
            except queue.Empty:
                return
            if client is _CLOSED:
                raise RuntimeError("client receiver channel disconnected")
            self.handshaking_clients.append(HandshakingConn(client))

    def close(self) -> None:
        """Stop accepting clients."""
        self._closing.set()
        self._listener.close()
        self._thread.join(timeout=2)

    def __enter__(self) -> NetworkServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()