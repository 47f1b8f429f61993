from __future__ import annotations

import asyncio
from collections import Counter
from typing import Sequence

from poolwindow.domain.decoding import BURN_T0, COLLECT_T0, MINT_T0, SWAP_T0
from poolwindow.domain.errors import BlockNotFoundError, NodeUnavailableError
from poolwindow.domain.models import BlockHeader, RawLog
from poolwindow.domain.value_types import ZERO_ADDRESS, Address

# digit-only addresses are their own checksum form
POOL = Address("0x" + "9" * 40)
SENDER = "0x" + "1" * 40
RECIPIENT = "0x" + "2" * 40
OWNER = "0x" + "3" * 40
TOKEN_A = "0x" + "4" * 40
TOKEN_B = "0x" + "5" * 40
FACTORY = "0x" + "6" * 40


class FakeRPC:
    """In-memory chain: block n has timestamp timestamps[n]; the last block is latest."""

    def __init__(
        self,
        timestamps: Sequence[int],
        logs: Sequence[RawLog] = (),
        *,
        pools: dict[tuple[str, str, int], str] | None = None,
        fail_blocks: Sequence[int] = (),
        fail_logs: bool = False,
    ) -> None:
        self.timestamps = list(timestamps)
        self.logs = list(logs)
        self.pools = pools or {}
        self.fail_blocks = set(fail_blocks)
        self.fail_logs = fail_logs
        self.calls: Counter[str] = Counter()
        self.block_requests: list[int | str] = []
        self.log_requests: list[tuple[int, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def latest_number(self) -> int:
        return len(self.timestamps) - 1

    async def __aenter__(self) -> "FakeRPC":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    async def get_block(self, identifier):
        self.calls["get_block"] += 1
        self.block_requests.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            n = self.latest_number if identifier == "latest" else identifier
            if n in self.fail_blocks:
                raise NodeUnavailableError(f"boom at {n}")
            if not 0 <= n <= self.latest_number:
                raise BlockNotFoundError(identifier)
            return BlockHeader(n, self.timestamps[n])
        finally:
            self.in_flight -= 1

    async def get_logs(self, address, from_block, to_block):
        self.calls["get_logs"] += 1
        self.log_requests.append((from_block, to_block))
        await asyncio.sleep(0)
        if self.fail_logs:
            raise NodeUnavailableError("eth_getLogs RPC error code=-32005 message=too many results")
        return [rl for rl in self.logs if from_block <= rl.block_number <= to_block]

    async def get_pool(self, factory, token_a, token_b, fee):
        self.calls["get_pool"] += 1
        key = (token_a.lower(), token_b.lower(), fee)
        return Address(self.pools.get(key, ZERO_ADDRESS))


def uniform_chain(n: int, spacing: int = 12, t0: int = 1_600_000_000) -> list[int]:
    return [t0 + spacing * i for i in range(n)]


# ---- ABI word builders --------------------------------------------------------

def w_uint(v: int) -> bytes:
    return v.to_bytes(32, "big")

def w_int(v: int) -> bytes:
    return v.to_bytes(32, "big", signed=True)

def w_addr(a: str) -> bytes:
    return bytes(12) + bytes.fromhex(a[2:])

def hx(b: bytes) -> str:
    return "0x" + b.hex()


def make_log(topics: Sequence[str], data: bytes, *, block: int = 1, index: int = 0) -> RawLog:
    return RawLog(
        address=POOL.lower(),
        topics=tuple(topics),
        data_hex=hx(data),
        block_number=block,
        tx_hash="0x" + f"{block:064x}",
        log_index=index,
    )


def swap_log(amount0=-5_000, amount1=7_000, sqrt_price_x96=2**96, liquidity=10**18, tick=-887_000, **kw) -> RawLog:
    data = w_int(amount0) + w_int(amount1) + w_uint(sqrt_price_x96) + w_uint(liquidity) + w_int(tick)
    return make_log([SWAP_T0, hx(w_addr(SENDER)), hx(w_addr(RECIPIENT))], data, **kw)


def mint_log(tick_lower=-600, tick_upper=600, amount=123_456, amount0=10**20, amount1=3, **kw) -> RawLog:
    data = w_addr(SENDER) + w_uint(amount) + w_uint(amount0) + w_uint(amount1)
    return make_log([MINT_T0, hx(w_addr(OWNER)), hx(w_int(tick_lower)), hx(w_int(tick_upper))], data, **kw)


def burn_log(tick_lower=-120, tick_upper=240, amount=999, amount0=1, amount1=2, **kw) -> RawLog:
    data = w_uint(amount) + w_uint(amount0) + w_uint(amount1)
    return make_log([BURN_T0, hx(w_addr(OWNER)), hx(w_int(tick_lower)), hx(w_int(tick_upper))], data, **kw)


def collect_log(tick_lower=-60, tick_upper=60, amount0=11, amount1=22, **kw) -> RawLog:
    data = w_addr(RECIPIENT) + w_uint(amount0) + w_uint(amount1)
    return make_log([COLLECT_T0, hx(w_addr(OWNER)), hx(w_int(tick_lower)), hx(w_int(tick_upper))], data, **kw)


def unknown_log(**kw) -> RawLog:
    # ERC-20 Transfer, emitted by many contracts but not by the pool
    t0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    return make_log([t0, hx(w_addr(SENDER)), hx(w_addr(RECIPIENT))], w_uint(1), **kw)
