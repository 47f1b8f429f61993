from __future__ import annotations
from dataclasses import asdict
from typing import Any, Iterable

from ..domain.models import ActivityReport, DecodeFailure, DecodeOutcome

# fields that can exceed 2**53 and must travel as decimal strings in JSON
BIG_INT_FIELDS = frozenset({"amount", "amount0", "amount1", "liquidity", "sqrt_price_x96"})


def outcome_to_dict(outcome: DecodeOutcome) -> dict[str, Any]:
    d = asdict(outcome)
    if isinstance(outcome, DecodeFailure):
        return {
            "error": {"kind": d.pop("kind"), "topic0": d.pop("topic0"), "reason": d.pop("reason")},
            **d,
        }
    return {k: (str(v) if k in BIG_INT_FIELDS else v) for k, v in d.items()}


def outcomes_to_dicts(outcomes: Iterable[DecodeOutcome]) -> list[dict[str, Any]]:
    return [outcome_to_dict(o) for o in outcomes]


def report_to_dict(report: ActivityReport) -> dict[str, Any]:
    return {
        "pool": report.pool,
        "start_timestamp": report.window.start,
        "end_timestamp": report.window.end,
        "from_block": report.block_range.start,
        "to_block": report.block_range.end,
        "avg_block_time": report.avg_block_time,
        "data": outcomes_to_dicts(report.outcomes),
    }
