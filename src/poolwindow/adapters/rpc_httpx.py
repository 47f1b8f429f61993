from __future__ import annotations
import asyncio, logging, httpx
from typing import TYPE_CHECKING, Any
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from ..domain.errors import BlockNotFoundError, NodeUnavailableError
from ..domain.models import BlockHeader, RawLog
from ..domain.value_types import Address, BlockTag
from ..ports.rpc import RPCClient

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

GET_POOL_SELECTOR = function_signature_to_4byte_selector("getPool(address,address,uint24)")

def _to_hex_block(n: int | str) -> str: return n if isinstance(n, str) else hex(int(n))

def _addr_word(a: str) -> bytes:
    h = a[2:] if a[:2].lower() == "0x" else a
    if len(h) != 40:
        raise ValueError(f"Invalid address: {a}")
    return bytes(12) + bytes.fromhex(h)

def encode_get_pool(token_a: str, token_b: str, fee: int) -> str:
    if not 0 <= fee < (1 << 24):
        raise ValueError(f"fee does not fit in uint24: {fee}")
    payload = GET_POOL_SELECTOR + _addr_word(token_a) + _addr_word(token_b) + fee.to_bytes(32, "big")
    return "0x" + payload.hex()

def _parse_log(rl: dict[str, Any]) -> RawLog:
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return RawLog(
        address=Address(rl["address"].lower()),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=int(rl["blockNumber"], 16),
        tx_hash=(rl.get("transactionHash") or "").lower(),
        log_index=int(rl["logIndex"], 16),
    )

class HttpxRPC(RPCClient):
    def __init__(
        self,
        rpc_url: str,
        timeout_s: int = 20,
        max_conn: int = 64,
        *,
        retries: int = 3,
        backoff_s: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.retries = retries
        self.backoff_s = backoff_s
        self.client = httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
            transport=transport,
        )
        self._ids = 0

    async def __aenter__(self) -> "HttpxRPC":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        self._ids += 1
        payload = {"jsonrpc":"2.0","id":self._ids,"method":method,"params":params}
        # retry on 429 with simple backoff; everything else fails fast
        for attempt in range(self.retries):
            try:
                r = await self.client.post(self.rpc_url, json=payload)
            except httpx.HTTPError as e:
                raise NodeUnavailableError(f"{method} transport error: {type(e).__name__}: {e}") from e
            if r.status_code == 429:
                ra = r.headers.get("Retry-After")
                delay = float(ra) if ra and ra.isdigit() else (self.backoff_s * (2**attempt))
                logger.info("%s rate limited, retrying in %.1fs (attempt %d/%d)", method, delay, attempt + 1, self.retries)
                await asyncio.sleep(delay); continue
            try:
                r.raise_for_status()
                data = r.json()
            except (httpx.HTTPStatusError, ValueError) as e:
                raise NodeUnavailableError(f"{method} failed: {e}") from e
            if not isinstance(data, dict):
                raise NodeUnavailableError(f"{method} returned a non-object response: {type(data).__name__}")
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    code, msg = err.get("code"), err.get("message")
                else:
                    code, msg = None, str(err)
                raise NodeUnavailableError(f"{method} RPC error code={code} message={msg}")
            return data.get("result")
        raise NodeUnavailableError(f"Retries exhausted for {method}")

    async def get_block(self, identifier: int | BlockTag) -> BlockHeader:
        res = await self._call("eth_getBlockByNumber", [_to_hex_block(identifier), False])
        if res is None:
            raise BlockNotFoundError(identifier)
        try:
            return BlockHeader(number=int(res["number"], 16), timestamp=int(res["timestamp"], 16))
        except (KeyError, TypeError, ValueError) as e:
            raise NodeUnavailableError(f"Malformed block {identifier}: {e}") from e

    async def get_logs(self, address: Address, from_block: int, to_block: int) -> list[RawLog]:
        flt: dict[str, Any] = {
            "address": str(address).lower(),
            "fromBlock": _to_hex_block(from_block),
            "toBlock": _to_hex_block(to_block),
        }
        res = await self._call("eth_getLogs", [flt])
        try:
            return [_parse_log(rl) for rl in res or []]
        except (KeyError, TypeError, ValueError) as e:
            raise NodeUnavailableError(f"Malformed eth_getLogs result: {e}") from e

    async def get_pool(self, factory: Address, token_a: Address, token_b: Address, fee: int) -> Address:
        call = {"to": str(factory).lower(), "data": encode_get_pool(token_a, token_b, fee)}
        res = await self._call("eth_call", [call, "latest"])
        h = (res or "0x")[2:]
        if len(h) < 64:
            raise NodeUnavailableError(f"getPool returned {res!r}")
        return Address(to_checksum_address("0x" + h[24:64]))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HttpxRPC":
        return cls(settings.rpc_url, timeout_s=settings.timeout_s, max_conn=max(32, 2*settings.concurrency))
