from __future__ import annotations

import logging
import socket
import threading

from passive_agent.connection import SocketConnection, read_frame
from passive_agent.errors import FramingError
from passive_agent.handler import PassiveCheckHandler
from passive_agent.scheduler import TaskScheduler

logger = logging.getLogger(__name__)

ACCEPT_POLL_S = 0.5


class PassiveListener:
    """Accepts server connections and answers one passive check per connection."""

    def __init__(
        self,
        host: str,
        port: int,
        scheduler: TaskScheduler,
        version: str,
        allowed_peers: tuple[str, ...] = (),
        read_timeout_s: float = 3,
    ) -> None:
        self.host = host
        self.port = port
        self.scheduler = scheduler
        self.version = version
        self.allowed_peers = set(allowed_peers)
        self.read_timeout_s = read_timeout_s
        self.sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()

    def start(self) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind((self.host, self.port))
        self.sock.listen(64)
        self.sock.settimeout(ACCEPT_POLL_S)
        self.port = self.sock.getsockname()[1]

        self._thread = threading.Thread(target=self.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Listening for passive checks on %s:%s", self.host, self.port)

    def stop(self) -> None:
        self._stopping.set()
        if self.sock is not None:
            self.sock.close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        logger.info("Passive check listener stopped")

    def serve_forever(self) -> None:
        if self.sock is None:
            raise RuntimeError("listener not started")

        while not self._stopping.is_set():
            try:
                conn, addr = self.sock.accept()
            except TimeoutError:
                continue
            except OSError:
                if self._stopping.is_set():
                    return
                raise
            threading.Thread(
                target=self._serve_connection,
                args=(conn, addr),
                daemon=True,
            ).start()

    def _allowed(self, peer_ip: str) -> bool:
        return not self.allowed_peers or peer_ip in self.allowed_peers

    def _serve_connection(self, conn: socket.socket, addr: tuple) -> None:
        with conn:
            if not self._allowed(addr[0]):
                logger.warning("Rejected connection from %s: not an allowed peer", addr[0])
                return

            conn.settimeout(self.read_timeout_s)
            try:
                payload = read_frame(conn)
            except (FramingError, OSError) as exc:
                logger.warning("Cannot read request from %s: %s", addr[0], exc)
                return
            if not payload:
                return

            conn.settimeout(None)
            handler = PassiveCheckHandler(SocketConnection(conn, addr), self.scheduler, self.version)
            handler.handle(payload)
