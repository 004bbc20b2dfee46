from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(description="Health status")


class ConfigResponse(BaseModel):
    version: str
    hostname: str
    listen_ip: str
    listen_port: int = Field(ge=0, le=65535)
    timeout: int = Field(ge=1)
    allowed_peers: list[str] = Field(default_factory=list)


class ChecksResponse(BaseModel):
    metrics: dict[str, str] = Field(description="Supported metric names and descriptions")
    aliases: dict[str, str] = Field(default_factory=dict)
    deny_keys: list[str] = Field(default_factory=list)
    count: int


class CheckTestResponse(BaseModel):
    key: str
    value: str


class SchedulerStatsResponse(BaseModel):
    default_timeout: int
    counters: dict[str, int] = Field(
        description="Executions per caller class and outcome, e.g. passive.ok"
    )
