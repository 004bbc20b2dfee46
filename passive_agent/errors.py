from __future__ import annotations


class CheckError(RuntimeError):
    """A check could not produce a value.

    The message is sent back to the server as-is, so keep it human readable.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidTimeoutError(ValueError):
    pass


class FramingError(RuntimeError):
    pass
