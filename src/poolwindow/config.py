from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Mapping

from .application.estimator import NUM_BLOCKS
from .application.use_cases import DEFAULT_FEE
from .domain.value_types import Address, EndResolution

ENV_PREFIX = "POOLWINDOW_"

# Uniswap V3 factory on Ethereum mainnet
UNISWAP_V3_FACTORY = Address("0x1F98431c8aD98523631AE4a59f267346ea31F984")


@dataclass(slots=True, frozen=True)
class Settings:
    rpc_url: str = "https://eth.llamarpc.com"
    factory_address: Address = UNISWAP_V3_FACTORY
    fee: int = DEFAULT_FEE
    sample_size: int = NUM_BLOCKS
    end_resolution: EndResolution = "projected"
    log_step: int | None = None        # None -> one eth_getLogs for the whole range
    concurrency: int = 8
    timeout_s: int = 20
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.sample_size < 2:
            raise ValueError(f"sample_size must be >= 2, got {self.sample_size}")
        if self.end_resolution not in ("projected", "exact"):
            raise ValueError(f"end_resolution must be 'projected' or 'exact', got {self.end_resolution!r}")
        if self.log_step is not None and self.log_step < 1:
            raise ValueError(f"log_step must be >= 1, got {self.log_step}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            v = env.get(ENV_PREFIX + name)
            return v.strip() if v and v.strip() else None

        def get_int(name: str) -> int | None:
            v = get(name)
            if v is None:
                return None
            try:
                return int(v)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {v!r}") from None

        overrides = {
            "rpc_url": get("RPC_URL"),
            "factory_address": get("FACTORY"),
            "fee": get_int("FEE"),
            "sample_size": get_int("SAMPLE_SIZE"),
            "end_resolution": get("END_RESOLUTION"),
            "log_step": get_int("LOG_STEP"),
            "concurrency": get_int("CONCURRENCY"),
            "timeout_s": get_int("TIMEOUT"),
            "host": get("HOST"),
            "port": get_int("PORT"),
            "log_level": get("LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in overrides.items() if v is not None})

    def with_overrides(self, **kw) -> "Settings":
        """Copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in kw.items() if v is not None})
