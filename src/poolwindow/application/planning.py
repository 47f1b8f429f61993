from __future__ import annotations
from ..domain.models import BlockRange

def plan_chunks(block_range: BlockRange, step: int | None) -> list[BlockRange]:
    """Split an inclusive range into consecutive chunks of at most `step` blocks."""
    if block_range.is_empty(): return []
    if step is None: return [block_range]
    if step < 1: raise ValueError(f"step must be >= 1, got {step}")
    out: list[BlockRange] = []
    b = block_range.start
    while b <= block_range.end:
        fb, tb = b, min(block_range.end, b + step - 1)
        out.append(BlockRange(fb, tb))
        b = tb + 1
    return out

def project_end_block(from_block: int, duration_s: int, avg_interval: int) -> int:
    return from_block + duration_s // avg_interval
