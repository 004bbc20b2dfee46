import os
import socket
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "agent.yml"


class Settings:
    AGENT_VERSION: str = os.getenv("AGENT_VERSION", "7.0.0")
    AGENT_HOSTNAME: str = os.getenv("AGENT_HOSTNAME") or socket.gethostname()
    AGENT_TIMEOUT: int = int(os.getenv("AGENT_TIMEOUT", 3))
    AGENT_LISTEN_IP: str = os.getenv("AGENT_LISTEN_IP", "0.0.0.0")
    AGENT_LISTEN_PORT: int = int(os.getenv("AGENT_LISTEN_PORT", 10050))
    AGENT_ALLOWED_PEERS: tuple[str, ...] = tuple(
        peer.strip()
        for peer in os.getenv("AGENT_ALLOWED_PEERS", "").split(",")
        if peer.strip()
    )
    AGENT_MAX_WORKERS: int = int(os.getenv("AGENT_MAX_WORKERS", 8))
    AGENT_CONFIG_PATH: str = os.getenv("AGENT_CONFIG_PATH", str(DEFAULT_CONFIG_PATH))
    AGENT_LOG_LEVEL: str = os.getenv("AGENT_LOG_LEVEL", "INFO")


settings = Settings()
