from __future__ import annotations

import asyncio
import logging

from ..domain.models import BlockHeader
from ..ports.rpc import RPCClient

logger = logging.getLogger(__name__)

NUM_BLOCKS = 100  # trailing window for the average block time


async def sample_headers(rpc: RPCClient, sample_size: int = NUM_BLOCKS) -> list[BlockHeader]:
    """Latest header followed by its predecessors, newest first.

    The predecessor fetches run concurrently; any failure fails the whole
    sample. On a chain shorter than the window only existing blocks are taken.
    """
    if sample_size < 2:
        raise ValueError(f"sample_size must be >= 2, got {sample_size}")
    latest = await rpc.get_block("latest")
    n = min(sample_size, latest.number + 1)
    if n < 2:
        raise ValueError(f"chain too short to estimate block time (latest={latest.number})")
    older = await asyncio.gather(*(rpc.get_block(latest.number - i) for i in range(1, n)))
    return [latest, *older]


def average_interval(headers: list[BlockHeader]) -> int:
    """Mean seconds per block over headers ordered by decreasing number; at least 1."""
    diffs = [headers[i - 1].timestamp - headers[i].timestamp for i in range(1, len(headers))]
    if not diffs:
        raise ValueError("need at least two headers")
    return max(1, sum(diffs) // len(diffs))


async def estimate_block_interval(rpc: RPCClient, sample_size: int = NUM_BLOCKS) -> int:
    headers = await sample_headers(rpc, sample_size)
    avg = average_interval(headers)
    logger.debug("average block time over %d blocks ending at %d: %ds", len(headers), headers[0].number, avg)
    return avg
