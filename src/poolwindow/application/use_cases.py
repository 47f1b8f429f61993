from __future__ import annotations
import asyncio
import logging
from typing import Callable

from eth_utils import is_address, to_checksum_address

from ..domain.decoding import decode_logs
from ..domain.errors import FutureTimestampError, PoolNotFoundError
from ..domain.models import ActivityReport, BlockRange, DecodeOutcome, RawLog, TimeWindow
from ..domain.value_types import ZERO_ADDRESS, Address, EndResolution
from ..ports.rpc import RPCClient
from .estimator import NUM_BLOCKS, estimate_block_interval
from .planning import plan_chunks, project_end_block
from .resolver import resolve_block_for_timestamp
from .utils import now_ts

logger = logging.getLogger(__name__)

DEFAULT_FEE = 3000  # 0.3% tier


def check_window(window: TimeWindow, now: Callable[[], int] = now_ts) -> None:
    current = now()
    if window.start > current:
        raise FutureTimestampError(window.start, current)


async def resolve_block_range(
    rpc: RPCClient,
    window: TimeWindow,
    *,
    sample_size: int = NUM_BLOCKS,
    end_resolution: EndResolution = "projected",
) -> tuple[BlockRange, int]:
    """Map a time window onto an inclusive block range; also returns the average block time.

    "projected" derives the end block from the start block and the average
    block time (one search); "exact" runs a second search for window.end.
    The end is capped at the chain head.
    """
    avg = await estimate_block_interval(rpc, sample_size)
    latest = await rpc.get_block("latest")
    from_block = await resolve_block_for_timestamp(rpc, window.start, avg, latest=latest)
    if end_resolution == "exact":
        to_block = await resolve_block_for_timestamp(rpc, window.end, avg, latest=latest)
    elif end_resolution == "projected":
        to_block = project_end_block(from_block, window.duration(), avg)
    else:
        raise ValueError(f"Unknown end resolution: {end_resolution!r}")
    return BlockRange(from_block, min(to_block, latest.number)), avg


async def fetch_logs(
    rpc: RPCClient,
    pool_address: Address,
    block_range: BlockRange,
    *,
    step: int | None = None,
    concurrency: int = 8,
) -> list[RawLog]:
    """All logs of the pool in block_range, in node order. Any failed chunk fails the call."""
    chunks = plan_chunks(block_range, step)
    sem = asyncio.Semaphore(concurrency)

    async def run_chunk(ch: BlockRange) -> list[RawLog]:
        async with sem:
            return await rpc.get_logs(pool_address, ch.start, ch.end)

    parts = await asyncio.gather(*(run_chunk(ch) for ch in chunks))
    return [rl for part in parts for rl in part]


def checked_address(value: str, name: str = "pool") -> Address:
    """Checksummed form of a user-supplied address; ValueError if it is not one."""
    if not is_address(value):
        raise ValueError(f"Invalid {name} address: {value!r}")
    return Address(to_checksum_address(value))


async def _collect_report(
    rpc: RPCClient,
    pool_address: Address,
    window: TimeWindow,
    *,
    sample_size: int = NUM_BLOCKS,
    end_resolution: EndResolution = "projected",
    log_step: int | None = None,
    concurrency: int = 8,
) -> ActivityReport:
    block_range, avg = await resolve_block_range(
        rpc, window, sample_size=sample_size, end_resolution=end_resolution,
    )
    if block_range.is_empty():
        logger.info("empty block range %d-%d for window %d-%d", block_range.start, block_range.end, window.start, window.end)
        logs: list[RawLog] = []
    else:
        logs = await fetch_logs(rpc, pool_address, block_range, step=log_step, concurrency=concurrency)
        logger.info("fetched %d logs for %s in blocks %d-%d", len(logs), pool_address, block_range.start, block_range.end)

    return ActivityReport(
        pool=pool_address,
        window=window,
        block_range=block_range,
        avg_block_time=avg,
        outcomes=tuple(decode_logs(logs)),
    )


async def fetch_activity_report(
    rpc: RPCClient,
    pool_address: Address,
    window: TimeWindow,
    *,
    now: Callable[[], int] = now_ts,
    **options,
) -> ActivityReport:
    """Activity of a known pool; the window and the address are checked before any RPC."""
    check_window(window, now)
    pool = checked_address(pool_address)
    return await _collect_report(rpc, pool, window, **options)


async def get_activity(
    rpc: RPCClient,
    pool_address: Address,
    window: TimeWindow,
    **options,
) -> list[DecodeOutcome]:
    """Decoded pool activity for a time window, one outcome per log in node order."""
    report = await fetch_activity_report(rpc, pool_address, window, **options)
    return list(report.outcomes)


async def resolve_pool(
    rpc: RPCClient,
    factory: Address,
    token_a: Address,
    token_b: Address,
    fee: int = DEFAULT_FEE,
) -> Address:
    factory = checked_address(factory, "factory")
    token_a = checked_address(token_a, "token_a")
    token_b = checked_address(token_b, "token_b")
    pool = await rpc.get_pool(factory, token_a, token_b, fee)
    if pool.lower() == ZERO_ADDRESS:
        raise PoolNotFoundError(f"No pool for {token_a}/{token_b} with fee {fee}")
    logger.info("resolved pool %s for %s/%s fee=%d", pool, token_a, token_b, fee)
    return checked_address(pool)


async def get_pool_activity(
    rpc: RPCClient,
    factory: Address,
    token_a: Address,
    token_b: Address,
    window: TimeWindow,
    *,
    fee: int = DEFAULT_FEE,
    now: Callable[[], int] = now_ts,
    **options,
) -> ActivityReport:
    """Resolve the pool for a token pair through the factory, then fetch its activity."""
    check_window(window, now)
    pool = await resolve_pool(rpc, factory, token_a, token_b, fee)
    return await _collect_report(rpc, pool, window, **options)
