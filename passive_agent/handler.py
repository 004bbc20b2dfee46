from __future__ import annotations

import logging
from typing import Protocol

from passive_agent.errors import CheckError, InvalidTimeoutError
from passive_agent.formatting import (
    build_response,
    decode_request,
    encode_response,
    format_error,
)
from passive_agent.models import CheckItem
from passive_agent.scheduler import CallerClass, TaskScheduler

logger = logging.getLogger(__name__)

# Long enough to see a real timeout problem rather than hide it.
LEGACY_CHECK_TIMEOUT_S = 60


class ConnectionHandle(Protocol):
    def write(self, data: bytes) -> int: ...

    def address(self) -> str: ...


class PassiveCheckHandler:
    """Answers one passive check request on an accepted connection.

    Requests arrive either as a JSON envelope or as a bare item key. The
    reply uses the same dialect as the request. Check failures are answered,
    never raised; write failures are only logged.
    """

    def __init__(self, conn: ConnectionHandle, scheduler: TaskScheduler, version: str) -> None:
        self.conn = conn
        self.scheduler = scheduler
        self.version = version

    def handle(self, raw_request: bytes) -> None:
        request = decode_request(raw_request)
        if request is None:
            self._handle_legacy(raw_request)
        else:
            self._handle_structured(request.data[0])

    def _timeout_for(self, item: CheckItem) -> int:
        try:
            return self.scheduler.parse_timeout(item.timeout)
        except InvalidTimeoutError as exc:
            logger.debug(
                "invalid timeout '%s' for key '%s' from '%s': %s, using %ss",
                item.timeout,
                item.key,
                self.conn.address(),
                exc,
                self.scheduler.default_timeout,
            )
            return self.scheduler.default_timeout

    def _handle_structured(self, item: CheckItem) -> None:
        timeout = self._timeout_for(item)

        try:
            value = self.scheduler.execute(item.key, timeout, CallerClass.PASSIVE)
        except CheckError as exc:
            response = build_response(self.version, error=exc.message)
        else:
            response = build_response(self.version, value=value)

        try:
            out = encode_response(response)
            logger.debug("sending passive check response: '%s' to '%s'", out.decode("utf-8"), self.conn.address())
            self.conn.write(out)
        except (ValueError, OSError) as exc:
            logger.debug("could not send response to server '%s': %s", self.conn.address(), exc)

    def _handle_legacy(self, raw_request: bytes) -> None:
        key = raw_request.decode("utf-8", errors="surrogateescape")

        try:
            value = self.scheduler.execute(key, LEGACY_CHECK_TIMEOUT_S, CallerClass.PASSIVE)
        except CheckError as exc:
            logger.debug(
                "sending passive check response: %s: '%s' to '%s'",
                "ZBX_NOTSUPPORTED",
                exc.message,
                self.conn.address(),
            )
            out = format_error(exc.message)
        else:
            logger.debug("sending passive check response: '%s' to '%s'", value, self.conn.address())
            out = value.encode("utf-8", errors="surrogateescape")

        try:
            self.conn.write(out)
        except OSError as exc:
            logger.debug("could not send response to server '%s': %s", self.conn.address(), exc)
