from __future__ import annotations

import socket

from passive_agent.errors import CheckError

DEFAULT_HOST = "127.0.0.1"


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise CheckError("Invalid second parameter.") from None
    if not 1 <= port <= 65535:
        raise CheckError("Invalid second parameter.")
    return port


def run_tcp(host: str, port: int, timeout_s: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except OSError:
        return False


def net_tcp_port(params: list[str], timeout_s: float = 3) -> str:
    """net.tcp.port[<ip>,port] -> 1 when the port accepts connections, else 0."""
    if len(params) != 2:
        raise CheckError("Invalid number of parameters.")
    host = params[0] or DEFAULT_HOST
    port = _parse_port(params[1])
    return "1" if run_tcp(host, port, timeout_s=timeout_s) else "0"
