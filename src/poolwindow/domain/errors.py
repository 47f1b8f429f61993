from __future__ import annotations


class PoolWindowError(Exception):
    """Base class for every error raised by poolwindow."""


class FutureTimestampError(PoolWindowError):
    def __init__(self, start: int, now: int) -> None:
        super().__init__(f"Given start timestamp {start} is in the future (now={now})")
        self.start = start
        self.now = now


class NodeUnavailableError(PoolWindowError):
    """A required RPC round trip failed; fatal to the whole request."""


class BlockNotFoundError(NodeUnavailableError):
    def __init__(self, identifier: int | str) -> None:
        super().__init__(f"Block not found: {identifier}")
        self.identifier = identifier


class PoolNotFoundError(PoolWindowError):
    pass


class DecodeError(PoolWindowError, ValueError):
    """A single log could not be decoded. Scoped to that log only."""

    def __init__(self, topic0: str, reason: str) -> None:
        super().__init__(f"{reason} (topic0={topic0 or '<none>'})")
        self.topic0 = topic0
        self.reason = reason


class UnknownSignatureError(DecodeError):
    def __init__(self, topic0: str) -> None:
        super().__init__(topic0, "Unknown event signature")
