"""Uniswap V3 pool activity over a wall-clock time window.

This package provides:
- Timestamp to block resolution (average block time + seeded bisection)
- A fixed topic0 dispatcher decoding Swap/Mint/Burn/Collect logs
- An orchestrator composing both over a JSON-RPC client
"""

from poolwindow.application.estimator import estimate_block_interval
from poolwindow.application.resolver import resolve_block_for_timestamp
from poolwindow.application.use_cases import fetch_activity_report, get_activity, get_pool_activity
from poolwindow.domain.decoding import decode_log, decode_logs, dispatch

__version__ = "0.1.0"

__all__ = [
    "decode_log",
    "decode_logs",
    "dispatch",
    "estimate_block_interval",
    "fetch_activity_report",
    "get_activity",
    "get_pool_activity",
    "resolve_block_for_timestamp",
]
