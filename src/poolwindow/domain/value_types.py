from __future__ import annotations
from typing import NewType, Literal

Address = NewType("Address", str)   # 0x-prefixed, checksummed or lowercase
Topic0  = NewType("Topic0", str)    # 66-char 0x-hash, lowercase
EventKind = Literal["Swap", "Mint", "Burn", "Collect"]
FailureKind = Literal["unknown_signature", "malformed"]
EndResolution = Literal["projected", "exact"]
BlockTag = Literal["latest"]
ZERO_ADDRESS = Address("0x" + "0" * 40)
