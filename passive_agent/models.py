from __future__ import annotations

from typing import Dict, List, Union
from pydantic import BaseModel, ConfigDict, Field


class CheckItem(BaseModel):
    key: str = ""
    timeout: str = ""


class CheckBatchRequest(BaseModel):
    request: str = ""
    data: List[CheckItem] = Field(default_factory=list)


class ValueResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str


class ErrorResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: str


# One result element carries either a value or an error, never both.
CheckResult = Union[ValueResult, ErrorResult]


class CheckBatchResponse(BaseModel):
    version: str
    data: List[CheckResult]


class AgentConfig(BaseModel):
    aliases: Dict[str, str] = Field(default_factory=dict)
    deny_keys: List[str] = Field(default_factory=list)
