# poolwindow/ports/rpc.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import BlockHeader, RawLog
from ..domain.value_types import Address, BlockTag


class RPCClient(Protocol):
    """Port defining the contract for an Ethereum JSON-RPC client.

    Network errors surface as NodeUnavailableError; retries, if any, are the
    implementation's business.
    """

    async def get_block(self, identifier: int | BlockTag) -> BlockHeader:
        """Return the header for a block number or tag; BlockNotFoundError if the node has none."""

    async def get_logs(
        self,
        address: Address,
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """Return logs for [from_block, to_block] inclusive in node order (block, then log index)."""

    async def get_pool(
        self,
        factory: Address,
        token_a: Address,
        token_b: Address,
        fee: int,
    ) -> Address:
        """Return factory.getPool(token_a, token_b, fee); the zero address if no pool exists."""
