from __future__ import annotations

from passive_agent.errors import CheckError


def _no_params(params: list[str]) -> None:
    if params and params != [""]:
        raise CheckError("Too many parameters.")


def agent_ping(params: list[str]) -> str:
    _no_params(params)
    return "1"


def agent_version(params: list[str], version: str) -> str:
    _no_params(params)
    return version


def agent_hostname(params: list[str], hostname: str) -> str:
    _no_params(params)
    return hostname
