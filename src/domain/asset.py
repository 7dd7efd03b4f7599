"""Chain and asset value objects

A deployment serves exactly one chain. Each invoice on that chain asks for
either the chain's native coin or a fungible token.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Chain(str, Enum):
    """Chain families with their own derivation and transaction formats"""
    EVM = "evm"
    SOLANA = "solana"


class AssetFamily(str, Enum):
    """Asset families an invoice can request"""
    NATIVE = "native"
    TOKEN = "token"


# Decimal precision of each chain's fee currency
NATIVE_DECIMALS = {
    Chain.EVM: 18,
    Chain.SOLANA: 9,
}

NATIVE_SYMBOLS = {
    Chain.EVM: "ETH",
    Chain.SOLANA: "SOL",
}


@dataclass(frozen=True)
class AssetParams:
    """
    Identifies the asset being paid or swept

    token_identifier is the ERC-20 contract address (EVM) or the SPL mint
    (Solana). It is set iff family is TOKEN.
    """

    family: AssetFamily
    token_identifier: Optional[str] = None
    symbol: Optional[str] = None

    def __post_init__(self):
        if self.family == AssetFamily.TOKEN and not self.token_identifier:
            raise ValueError("token_identifier is required for token assets")
        if self.family == AssetFamily.NATIVE and self.token_identifier:
            raise ValueError("token_identifier must be empty for native assets")

    @property
    def is_token(self) -> bool:
        return self.family == AssetFamily.TOKEN

    @classmethod
    def native(cls, symbol: Optional[str] = None) -> "AssetParams":
        return cls(family=AssetFamily.NATIVE, symbol=symbol)

    @classmethod
    def token(cls, token_identifier: str, symbol: Optional[str] = None) -> "AssetParams":
        return cls(family=AssetFamily.TOKEN, token_identifier=token_identifier, symbol=symbol)
