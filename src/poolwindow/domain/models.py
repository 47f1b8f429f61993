from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union
from .value_types import Address, FailureKind, Topic0

@dataclass(slots=True, frozen=True)
class BlockHeader:
    number: int
    timestamp: int                     # unix seconds

@dataclass(slots=True, frozen=True)
class BlockRange:
    start: int
    end: int
    def span(self) -> int: return max(0, self.end - self.start + 1)
    def is_empty(self) -> bool: return self.end < self.start

@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: int                         # unix seconds, inclusive
    end: int
    def duration(self) -> int: return self.end - self.start

@dataclass(slots=True, frozen=True)
class RawLog:
    address: Address                   # lowercased hex with 0x
    topics: tuple[str, ...]            # all topics, lowercased with 0x
    data_hex: str                      # hex with 0x (or "0x")
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0

    @property
    def topic0(self) -> Topic0:
        return Topic0(self.topics[0] if self.topics else "")


# ──────────────────────────────
# Decoded events (closed union)
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class SwapEvent:
    sender: str                        # checksum address
    recipient: str
    amount0: int                       # int256
    amount1: int                       # int256
    sqrt_price_x96: int                # uint160
    liquidity: int                     # uint128
    tick: int                          # int24
    pool: str = ""
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0
    event: str = field(default="Swap", init=False)

@dataclass(slots=True, frozen=True)
class MintEvent:
    sender: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int                        # uint128 liquidity
    amount0: int
    amount1: int
    pool: str = ""
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0
    event: str = field(default="Mint", init=False)

@dataclass(slots=True, frozen=True)
class BurnEvent:
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int
    pool: str = ""
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0
    event: str = field(default="Burn", init=False)

@dataclass(slots=True, frozen=True)
class CollectEvent:
    owner: str
    recipient: str
    tick_lower: int
    tick_upper: int
    amount0: int                       # uint128
    amount1: int                       # uint128
    pool: str = ""
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0
    event: str = field(default="Collect", init=False)

DomainEvent = Union[SwapEvent, MintEvent, BurnEvent, CollectEvent]

@dataclass(slots=True, frozen=True)
class DecodeFailure:
    kind: FailureKind
    topic0: str
    reason: str
    block_number: int = 0
    tx_hash: str = ""
    log_index: int = 0

DecodeOutcome = Union[SwapEvent, MintEvent, BurnEvent, CollectEvent, DecodeFailure]

@dataclass(slots=True, frozen=True)
class ActivityReport:
    pool: Address
    window: TimeWindow
    block_range: BlockRange
    avg_block_time: int
    outcomes: tuple[DecodeOutcome, ...]

    @property
    def events(self) -> list[DomainEvent]:
        return [o for o in self.outcomes if not isinstance(o, DecodeFailure)]

    @property
    def failures(self) -> list[DecodeFailure]:
        return [o for o in self.outcomes if isinstance(o, DecodeFailure)]
