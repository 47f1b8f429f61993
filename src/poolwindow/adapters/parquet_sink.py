from __future__ import annotations
import os, pyarrow as pa, pyarrow.parquet as pq
from typing import Iterable

from ..domain.models import DecodeFailure, DecodeOutcome

ACTIVITY_SCHEMA = pa.schema([
    pa.field("block_number",    pa.int64()),
    pa.field("tx_hash",         pa.large_string()),
    pa.field("log_index",       pa.int32()),
    pa.field("pool",            pa.large_string()),
    pa.field("event",           pa.large_string()),
    pa.field("owner",           pa.large_string()),
    pa.field("sender",          pa.large_string()),
    pa.field("recipient",       pa.large_string()),
    pa.field("tick_lower",      pa.int32()),
    pa.field("tick_upper",      pa.int32()),
    pa.field("tick",            pa.int32()),
    pa.field("liquidity",       pa.large_string()),   # big ints as strings
    pa.field("sqrt_price_x96",  pa.large_string()),
    pa.field("amount0",         pa.large_string()),
    pa.field("amount1",         pa.large_string()),
    pa.field("error_kind",      pa.large_string()),
    pa.field("error",           pa.large_string()),
])

COLS = [f.name for f in ACTIVITY_SCHEMA]

def empty_columns() -> dict[str, list]:
    return {name: [] for name in COLS}

def _opt_str(v: int | None) -> str | None:
    return None if v is None else str(v)

def _row(o: DecodeOutcome) -> dict:
    row: dict = dict.fromkeys(COLS)
    row.update(block_number=o.block_number, tx_hash=o.tx_hash, log_index=o.log_index)
    if isinstance(o, DecodeFailure):
        row.update(event=None, error_kind=o.kind, error=f"{o.reason} (topic0={o.topic0 or '<none>'})")
        return row
    row.update(
        pool=o.pool,
        event=o.event,
        owner=getattr(o, "owner", None),
        sender=getattr(o, "sender", None),
        recipient=getattr(o, "recipient", None),
        tick_lower=getattr(o, "tick_lower", None),
        tick_upper=getattr(o, "tick_upper", None),
        tick=getattr(o, "tick", None),
        # Mint/Burn call the position liquidity "amount"
        liquidity=_opt_str(getattr(o, "liquidity", getattr(o, "amount", None))),
        sqrt_price_x96=_opt_str(getattr(o, "sqrt_price_x96", None)),
        amount0=str(o.amount0),
        amount1=str(o.amount1),
    )
    return row

def outcomes_to_table(outcomes: Iterable[DecodeOutcome]) -> pa.Table:
    """One row per outcome, in input order; failures carry error_kind/error."""
    cols = empty_columns()
    for o in outcomes:
        for k, v in _row(o).items():
            cols[k].append(v)
    arrays = {k: pa.array(v, type=ACTIVITY_SCHEMA.field(k).type) for k, v in cols.items()}
    return pa.Table.from_pydict(arrays, schema=ACTIVITY_SCHEMA)

def write_outcomes(path: str, outcomes: Iterable[DecodeOutcome], codec: str = "zstd") -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = path + ".tmp"
    pq.write_table(outcomes_to_table(outcomes), tmp, compression=codec)
    os.replace(tmp, path)
    return path
