from __future__ import annotations

import logging

from ..domain.models import BlockHeader
from ..ports.rpc import RPCClient

logger = logging.getLogger(__name__)


def estimate_block_number(latest: BlockHeader, target_ts: int, avg_interval: int) -> int:
    """Coarse guess from the head backwards; may fall outside [0, latest.number]."""
    return latest.number - (latest.timestamp - target_ts) // avg_interval


async def resolve_block_for_timestamp(
    rpc: RPCClient,
    target_ts: int,
    avg_interval: int,
    *,
    latest: BlockHeader | None = None,
) -> int:
    """Smallest block number whose timestamp is >= target_ts.

    Bisection over [0, latest.number] relying on non-decreasing block
    timestamps. The first probe is the estimate derived from avg_interval,
    later probes are midpoints. Returns latest.number when the target lies past
    the head and 0 when it precedes genesis.
    """
    if avg_interval < 1:
        raise ValueError(f"avg_interval must be >= 1, got {avg_interval}")
    if latest is None:
        latest = await rpc.get_block("latest")

    low, high = 0, latest.number
    # mid must stay in [low, high) so that low never overshoots the head
    mid = min(max(estimate_block_number(latest, target_ts, avg_interval), low), max(high - 1, low))
    probes = 0
    while low < high:
        block = await rpc.get_block(mid)
        probes += 1
        if block.timestamp < target_ts:
            low = mid + 1
        else:
            high = mid
        mid = (low + high) // 2

    logger.debug("timestamp %d -> block %d after %d probes", target_ts, low, probes)
    return low
