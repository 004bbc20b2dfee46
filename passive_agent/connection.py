from __future__ import annotations

import socket
import struct
import zlib

from passive_agent.errors import FramingError

HEADER_MAGIC = b"ZBXD"
FLAG_PROTOCOL = 0x01
FLAG_COMPRESSED = 0x02
FLAG_LARGE = 0x04

MAX_PAYLOAD = 1 << 30
RAW_READ_CHUNK = 65536


def pack_frame(payload: bytes) -> bytes:
    return HEADER_MAGIC + struct.pack("<BII", FLAG_PROTOCOL, len(payload), 0) + payload


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = sock.recv(min(n - len(data), RAW_READ_CHUNK))
        if not chunk:
            raise FramingError(f"connection closed after {len(data)} of {n} bytes")
        data += chunk
    return data


def _recv_rest(sock: socket.socket, data: bytes) -> bytes:
    while len(data) <= MAX_PAYLOAD:
        try:
            chunk = sock.recv(RAW_READ_CHUNK)
        except TimeoutError:
            # Plain-text clients may keep the connection open after the key.
            chunk = b""
        if not chunk:
            return data.rstrip(b"\r\n")
        data += chunk
    raise FramingError("request is too large")


def read_frame(sock: socket.socket) -> bytes:
    """
    Read one request from the socket.

    Framed requests start with ``ZBXD``, a flags byte and two little-endian
    lengths (4 bytes each, 8 with the large-packet flag). Anything else is a
    headerless request and is read until the peer stops sending.
    """
    head = b""
    while len(head) < len(HEADER_MAGIC):
        chunk = sock.recv(len(HEADER_MAGIC) - len(head))
        if not chunk:
            return head
        head += chunk
        if not HEADER_MAGIC.startswith(head):
            return _recv_rest(sock, head)

    flags = _recv_exact(sock, 1)[0]
    if not flags & FLAG_PROTOCOL:
        raise FramingError(f"unsupported protocol flags 0x{flags:02x}")

    if flags & FLAG_LARGE:
        data_len, reserved = struct.unpack("<QQ", _recv_exact(sock, 16))
    else:
        data_len, reserved = struct.unpack("<II", _recv_exact(sock, 8))

    if data_len > MAX_PAYLOAD or reserved > MAX_PAYLOAD:
        raise FramingError(f"message size {data_len} exceeds the maximum of {MAX_PAYLOAD}")

    payload = _recv_exact(sock, data_len)
    if flags & FLAG_COMPRESSED:
        inflater = zlib.decompressobj()
        try:
            # Never inflate more than the header announces.
            out = inflater.decompress(payload, reserved + 1)
        except zlib.error as exc:
            raise FramingError(f"cannot decompress message: {exc}") from exc
        if len(out) > reserved or inflater.unconsumed_tail:
            raise FramingError(f"uncompressed size exceeds header {reserved}")
        if len(out) != reserved:
            raise FramingError(f"uncompressed size {len(out)} does not match header {reserved}")
        payload = out
    return payload


class SocketConnection:
    def __init__(self, sock: socket.socket, peer: tuple) -> None:
        self.sock = sock
        self.peer = peer

    def write(self, data: bytes) -> int:
        self.sock.sendall(pack_frame(data))
        return len(data)

    def address(self) -> str:
        return str(self.peer[0])
