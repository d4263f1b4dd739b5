"""Languages and chains a contract action can declare."""

from __future__ import annotations

from enum import Enum


class ContractLanguage(str, Enum):
    """Source languages the compiler service understands."""

    SOLIDITY = "solidity"
    RUST = "rust"
    JAVASCRIPT = "javascript"


class ChainTarget(str, Enum):
    """Chain a contract is intended for (informational, copied into reports)."""

    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    BSC = "bsc"
    SOLANA = "solana"
    NEAR = "near"
