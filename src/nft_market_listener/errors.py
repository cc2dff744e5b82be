from __future__ import annotations


class ListenerError(Exception):
    """Base class for all errors raised by the listener."""


class ConfigError(ListenerError):
    """Required configuration is missing or malformed."""


class ConnectError(ListenerError):
    """The RPC endpoint is unreachable or unresponsive."""


class RpcError(ListenerError):
    """The RPC endpoint answered with an error object or an unusable payload."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}" if code is None else f"{method}: [{code}] {message}")
        self.method = method
        self.code = code


class FetchError(ListenerError):
    """Logs for a block could not be retrieved."""

    def __init__(self, block_number: int, cause: Exception) -> None:
        super().__init__(f"failed to fetch logs for block {block_number}: {cause}")
        self.block_number = block_number
        self.cause = cause


class DecodeError(ListenerError):
    """A log matched a known signature but its payload is malformed."""


class ChainIdMismatch(ListenerError):
    """Remote chain id differs from the configured one. Logged, never fatal."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Chain ID mismatch. Expected: {expected}, Got: {actual}")
        self.expected = expected
        self.actual = actual
