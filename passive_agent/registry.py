from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from passive_agent.checks.agent_check import agent_hostname, agent_ping, agent_version
from passive_agent.checks.http_check import web_page_get, web_page_perf
from passive_agent.checks.tcp_check import net_tcp_port
from passive_agent.models import AgentConfig

logger = logging.getLogger(__name__)

PluginFunc = Callable[[list[str], float], Any]


@dataclass(frozen=True)
class Plugin:
    name: str
    func: PluginFunc
    description: str = ""


class PluginRegistry:
    def __init__(self, config: AgentConfig | None = None) -> None:
        self._plugins: dict[str, Plugin] = {}
        self.config = config or AgentConfig()

    def register(self, name: str, func: PluginFunc, description: str = "") -> None:
        if name in self._plugins:
            raise ValueError(f"Duplicate metric: {name}")
        self._plugins[name] = Plugin(name=name, func=func, description=description)

    def get(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def describe(self) -> dict[str, str]:
        return {name: p.description for name, p in sorted(self._plugins.items())}


def load_agent_config(path: Path | str) -> AgentConfig:
    path = Path(path)
    if not path.exists():
        logger.info("No agent config at %s, using defaults", path)
        return AgentConfig()

    data = yaml.safe_load(path.read_text()) or {}
    return AgentConfig.model_validate(data)


def build_registry(version: str, hostname: str, config: AgentConfig | None = None) -> PluginRegistry:
    reg = PluginRegistry(config)
    reg.register(
        "agent.ping",
        lambda params, timeout_s: agent_ping(params),
        "Agent availability check. Always returns 1.",
    )
    reg.register(
        "agent.version",
        lambda params, timeout_s: agent_version(params, version),
        "Version of the agent.",
    )
    reg.register(
        "agent.hostname",
        lambda params, timeout_s: agent_hostname(params, hostname),
        "Agent host name.",
    )
    reg.register(
        "net.tcp.port",
        lambda params, timeout_s: net_tcp_port(params, timeout_s=timeout_s),
        "Checks if it is possible to make a TCP connection to the specified port.",
    )
    reg.register(
        "web.page.get",
        lambda params, timeout_s: web_page_get(params, timeout_s=timeout_s),
        "Get content of a web page.",
    )
    reg.register(
        "web.page.perf",
        lambda params, timeout_s: web_page_perf(params, timeout_s=timeout_s),
        "Loading time of a full web page (in seconds).",
    )
    return reg
