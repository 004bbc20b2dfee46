from __future__ import annotations

from pydantic import ValidationError

from passive_agent.models import (
    CheckBatchRequest,
    CheckBatchResponse,
    CheckResult,
    ErrorResult,
    ValueResult,
)

NOTSUPPORTED = b"ZBX_NOTSUPPORTED"


def format_error(message: str) -> bytes:
    # 'ZBX_NOTSUPPORTED\0<error message>', nothing after the message.
    return NOTSUPPORTED + b"\x00" + message.encode("utf-8", errors="surrogateescape")


def decode_request(raw: bytes) -> CheckBatchRequest | None:
    """
    Return the structured request carried by ``raw``, or None when the bytes
    should be served as a plain-text key instead.
    """
    try:
        request = CheckBatchRequest.model_validate_json(raw)
    except ValidationError:
        return None
    if not request.data:
        return None
    return request


def build_response(version: str, value: str | None = None, error: str | None = None) -> CheckBatchResponse:
    result: CheckResult
    if error is not None:
        result = ErrorResult(error=error)
    else:
        result = ValueResult(value=value or "")
    return CheckBatchResponse(version=version, data=[result])


def encode_response(response: CheckBatchResponse) -> bytes:
    return response.model_dump_json().encode("utf-8")
