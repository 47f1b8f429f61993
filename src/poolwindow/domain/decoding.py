from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from eth_utils import to_checksum_address

from .errors import DecodeError, UnknownSignatureError
from .models import (
    BurnEvent, CollectEvent, DecodeFailure, DecodeOutcome, DomainEvent,
    MintEvent, RawLog, SwapEvent,
)
from .value_types import EventKind, Topic0

logger = logging.getLogger(__name__)


# Topic0 constants (lowercase, with 0x): keccak of the Uniswap V3 pool event signatures
SWAP_T0    = Topic0("0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67")
MINT_T0    = Topic0("0x7a53080ba414158be7ec69b987b5fb7d07dee101fe85488f0853ae16239d0bde")
BURN_T0    = Topic0("0x0c396cd989a39f4459b5fa1aed6a9a8dcdbc45908acfd67e028cd568da98982c")
COLLECT_T0 = Topic0("0x70935338e69775456a85ddef226c395fb668b63fa0115f5f20610b388e6ca9c0")

_INT24_MIN, _INT24_MAX = -(1 << 23), (1 << 23) - 1


# --------- 32B word slicing (fast, no eth_abi) --------------------------------

def _strip0x(s: str) -> str:
    return s[2:] if s[:2].lower() == "0x" else s

def _hex_bytes(t0: str, s: str, what: str) -> bytes:
    h = _strip0x(s)
    if len(h) % 2:
        raise DecodeError(t0, f"{what}: odd-length hex")
    try:
        return bytes.fromhex(h)
    except ValueError:
        raise DecodeError(t0, f"{what}: invalid hex") from None

def _word(b: bytes, i: int) -> bytes:
    return b[i*32:(i+1)*32]

def _u256(w: bytes) -> int:
    return int.from_bytes(w, "big")

def _i256(w: bytes) -> int:
    return int.from_bytes(w, "big", signed=True)

def _uint(t0: str, w: bytes, bits: int, name: str) -> int:
    v = _u256(w)
    if v >> bits:
        raise DecodeError(t0, f"{name} does not fit in uint{bits}")
    return v

def _int24(t0: str, w: bytes, name: str) -> int:
    """Signed int24 from a sign-extended 32-byte word."""
    v = _i256(w)
    if not _INT24_MIN <= v <= _INT24_MAX:
        raise DecodeError(t0, f"{name} does not fit in int24")
    return v

def _addr(t0: str, w: bytes, name: str) -> str:
    if any(w[:12]):
        raise DecodeError(t0, f"{name} is not a left-padded address")
    return to_checksum_address("0x" + w[-20:].hex())


# --------- per-event decoders -------------------------------------------------
# Each receives the log (for position metadata), the indexed topic words after
# topic0, and the raw data bytes already checked against the expected width.

def _pos(log: RawLog) -> dict:
    try:
        pool = to_checksum_address(log.address)
    except ValueError:
        pool = log.address
    return {"pool": pool, "block_number": log.block_number,
            "tx_hash": log.tx_hash, "log_index": log.log_index}

def _decode_swap(log: RawLog, topics: Sequence[bytes], data: bytes) -> SwapEvent:
    # indexed: sender, recipient
    # data: ["int256","int256","uint160","uint128","int24"]
    t0 = log.topic0
    return SwapEvent(
        sender=_addr(t0, topics[0], "sender"),
        recipient=_addr(t0, topics[1], "recipient"),
        amount0=_i256(_word(data, 0)),
        amount1=_i256(_word(data, 1)),
        sqrt_price_x96=_uint(t0, _word(data, 2), 160, "sqrtPriceX96"),
        liquidity=_uint(t0, _word(data, 3), 128, "liquidity"),
        tick=_int24(t0, _word(data, 4), "tick"),
        **_pos(log),
    )

def _decode_mint(log: RawLog, topics: Sequence[bytes], data: bytes) -> MintEvent:
    # indexed: owner, tickLower, tickUpper
    # data: ["address","uint128","uint256","uint256"]
    t0 = log.topic0
    return MintEvent(
        sender=_addr(t0, _word(data, 0), "sender"),
        owner=_addr(t0, topics[0], "owner"),
        tick_lower=_int24(t0, topics[1], "tickLower"),
        tick_upper=_int24(t0, topics[2], "tickUpper"),
        amount=_uint(t0, _word(data, 1), 128, "amount"),
        amount0=_u256(_word(data, 2)),
        amount1=_u256(_word(data, 3)),
        **_pos(log),
    )

def _decode_burn(log: RawLog, topics: Sequence[bytes], data: bytes) -> BurnEvent:
    # indexed: owner, tickLower, tickUpper
    # data: ["uint128","uint256","uint256"]
    t0 = log.topic0
    return BurnEvent(
        owner=_addr(t0, topics[0], "owner"),
        tick_lower=_int24(t0, topics[1], "tickLower"),
        tick_upper=_int24(t0, topics[2], "tickUpper"),
        amount=_uint(t0, _word(data, 0), 128, "amount"),
        amount0=_u256(_word(data, 1)),
        amount1=_u256(_word(data, 2)),
        **_pos(log),
    )

def _decode_collect(log: RawLog, topics: Sequence[bytes], data: bytes) -> CollectEvent:
    # indexed: owner, tickLower, tickUpper
    # data: ["address","uint128","uint128"]
    t0 = log.topic0
    return CollectEvent(
        owner=_addr(t0, topics[0], "owner"),
        recipient=_addr(t0, _word(data, 0), "recipient"),
        tick_lower=_int24(t0, topics[1], "tickLower"),
        tick_upper=_int24(t0, topics[2], "tickUpper"),
        amount0=_uint(t0, _word(data, 1), 128, "amount0"),
        amount1=_uint(t0, _word(data, 2), 128, "amount1"),
        **_pos(log),
    )


# ---------------------------- dispatch table ----------------------------------

@dataclass(slots=True, frozen=True)
class EventShape:
    kind: EventKind
    indexed: int                       # topics after topic0
    words: int                         # 32-byte words in data
    decode: Callable[[RawLog, Sequence[bytes], bytes], DomainEvent]

DECODERS: dict[Topic0, EventShape] = {
    SWAP_T0:    EventShape("Swap",    2, 5, _decode_swap),
    MINT_T0:    EventShape("Mint",    3, 4, _decode_mint),
    BURN_T0:    EventShape("Burn",    3, 3, _decode_burn),
    COLLECT_T0: EventShape("Collect", 3, 3, _decode_collect),
}

# ---------------------------- public API --------------------------------------

def decode_log(log: RawLog) -> DomainEvent:
    """Decode one raw log into its typed event.

    Raises UnknownSignatureError when topic0 is not one of the pool events and
    DecodeError when the topics or data do not match the event layout.
    """
    t0 = log.topic0.lower()
    shape = DECODERS.get(Topic0(t0))
    if shape is None:
        raise UnknownSignatureError(t0)

    if len(log.topics) != shape.indexed + 1:
        raise DecodeError(t0, f"{shape.kind}: expected {shape.indexed + 1} topics, got {len(log.topics)}")
    topics = [_hex_bytes(t0, t, "topic") for t in log.topics[1:]]
    if any(len(t) != 32 for t in topics):
        raise DecodeError(t0, f"{shape.kind}: topics must be 32 bytes")

    data = _hex_bytes(t0, log.data_hex or "0x", "data")
    if len(data) != 32 * shape.words:
        raise DecodeError(t0, f"{shape.kind}: expected {32 * shape.words} data bytes, got {len(data)}")

    return shape.decode(log, topics, data)


def dispatch(log: RawLog) -> DecodeOutcome:
    """Like decode_log, but returns a DecodeFailure instead of raising."""
    try:
        return decode_log(log)
    except UnknownSignatureError as e:
        logger.debug("unknown event signature %s at block %s log %s", e.topic0, log.block_number, log.log_index)
        kind = "unknown_signature"
        err: DecodeError = e
    except DecodeError as e:
        logger.warning("malformed log at block %s log %s: %s", log.block_number, log.log_index, e)
        kind = "malformed"
        err = e
    return DecodeFailure(
        kind=kind,
        topic0=err.topic0,
        reason=err.reason,
        block_number=log.block_number,
        tx_hash=log.tx_hash,
        log_index=log.log_index,
    )


def decode_logs(logs: Iterable[RawLog]) -> list[DecodeOutcome]:
    """One outcome per log, input order preserved."""
    return [dispatch(rl) for rl in logs]
