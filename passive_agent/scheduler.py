from __future__ import annotations

import logging
import re
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from enum import IntEnum
from typing import Any, Protocol

from passive_agent.errors import CheckError, InvalidTimeoutError
from passive_agent.keys import parse_item_key
from passive_agent.registry import PluginRegistry

logger = logging.getLogger(__name__)

MAX_ITEM_TIMEOUT = 600
TIMEOUT_MESSAGE = "Timeout occurred while gathering data."

_SUFFIXES = {"s": 1, "m": 60, "h": 3600}


class CallerClass(IntEnum):
    LOCAL = 0
    PASSIVE = 1
    HTTP = 2


class TaskScheduler(Protocol):
    default_timeout: int

    def parse_timeout(self, raw: str) -> int: ...

    def execute(self, key: str, timeout_s: float, caller: CallerClass) -> str: ...


def parse_item_timeout(raw: str, default: int) -> int:
    """
    Parse an item timeout such as ``"3"``, ``"10s"`` or ``"1m"`` into seconds.
    An empty string means the agent default.
    """
    if raw == "":
        return default

    text = raw.strip()
    multiplier = 1
    if text and text[-1] in _SUFFIXES:
        multiplier = _SUFFIXES[text[-1]]
        text = text[:-1]

    if not (text.isascii() and text.isdigit()):
        raise InvalidTimeoutError("Unsupported timeout value.")

    seconds = int(text) * multiplier
    if not 1 <= seconds <= MAX_ITEM_TIMEOUT:
        raise InvalidTimeoutError("Unsupported timeout value.")
    return seconds


def _wildcard_match(pattern: str, key: str) -> bool:
    # Only "*" is special; brackets in key patterns are literal.
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, key) is not None


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class LocalScheduler:
    def __init__(
        self,
        registry: PluginRegistry,
        default_timeout: int = 3,
        max_workers: int = 8,
    ) -> None:
        self.registry = registry
        self.default_timeout = default_timeout
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="check")
        # key -> [lock, number of callers holding or waiting on it]
        self._key_locks: dict[str, list] = {}
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter()

    def parse_timeout(self, raw: str) -> int:
        return parse_item_timeout(raw, self.default_timeout)

    def _resolve(self, key: str) -> str:
        aliases = self.registry.config.aliases
        if key in aliases:
            return aliases[key]

        name, _ = parse_item_key(key)
        target = aliases.get(name)
        if target and "[" not in target:
            return target + key[len(name):]
        return key

    def _checkout_key(self, key: str) -> threading.Lock:
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._key_locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin_key(self, key: str) -> None:
        with self._lock:
            entry = self._key_locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._key_locks[key]

    def _count(self, caller: CallerClass, outcome: str) -> None:
        with self._lock:
            self._counts[f"{caller.name.lower()}.{outcome}"] += 1

    def execute(self, key: str, timeout_s: float, caller: CallerClass) -> str:
        try:
            value = self._execute(key, timeout_s)
        except CheckError:
            self._count(caller, "failed")
            raise
        self._count(caller, "ok")
        return value

    def _execute(self, key: str, timeout_s: float) -> str:
        resolved = self._resolve(key)
        name, params = parse_item_key(resolved)

        denied = any(_wildcard_match(pattern, resolved) for pattern in self.registry.config.deny_keys)
        plugin = None if denied else self.registry.get(name)
        if plugin is None:
            raise CheckError(f"Unknown metric {name}")

        # At most one execution of a given key at a time.
        lock = self._checkout_key(resolved)
        if not lock.acquire(timeout=timeout_s):
            self._checkin_key(resolved)
            raise CheckError(TIMEOUT_MESSAGE)

        def run() -> Any:
            try:
                return plugin.func(params, timeout_s)
            finally:
                lock.release()
                self._checkin_key(resolved)

        try:
            future = self._pool.submit(run)
        except RuntimeError:
            lock.release()
            self._checkin_key(resolved)
            raise CheckError("Agent is shutting down.") from None

        try:
            value = future.result(timeout=timeout_s)
        except FutureTimeout:
            logger.debug("check %s timed out after %ss", resolved, timeout_s)
            raise CheckError(TIMEOUT_MESSAGE) from None
        except CheckError:
            raise
        except Exception as exc:
            logger.debug("check %s failed: %s", resolved, exc)
            raise CheckError(str(exc) or exc.__class__.__name__) from exc

        return _to_text(value)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
