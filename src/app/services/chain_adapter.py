"""Chain Adapter Interface

Uniform operations over a chain's native coin and its fungible tokens. The
watcher and sweeper only talk to this interface; transaction encoding stays
in the concrete adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional
from src.domain.asset import AssetParams, Chain


@dataclass(frozen=True)
class FeeEstimate:
    """
    Native-currency cost of a transfer, in base units

    fee: network fee for the transfer itself
    account_creation_deposit: rent for creating the destination token
        account inside the transfer (0 when it already exists or the chain
        has no such concept)
    reserve: balance the sender must still hold after the transfer
        (rent-exempt minimum on Solana, 0 on EVM)
    """

    fee: int
    account_creation_deposit: int = 0
    reserve: int = 0
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None

    @property
    def required_native(self) -> int:
        return self.fee + self.account_creation_deposit + self.reserve


@dataclass(frozen=True)
class TxReference:
    """Confirmed transaction reference"""

    chain: Chain
    tx_id: str
    extra: dict = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return self.tx_id


class ChainAdapter(ABC):
    """
    Abstract chain adapter

    All methods perform RPC calls bounded by the adapter's timeout and raise
    ChainError subclasses:
    - RpcUnavailableError: transport failure (retryable)
    - AccountNotFoundError: account missing
    - InsufficientFundsError: signer cannot cover amount + fee
    - SubmissionRejectedError: node rejected the tx or it reverted
    - ChainTimeoutError: confirmation not observed in time (retryable)
    """

    chain: Chain

    @abstractmethod
    async def get_balance(self, address: str, asset: AssetParams) -> int:
        """
        Balance of asset held by address, in base units

        A token account that does not exist yet has balance 0.
        """
        pass

    @abstractmethod
    async def get_native_balance(self, address: str) -> int:
        """Native fee-currency balance of address, in base units"""
        pass

    @abstractmethod
    async def get_decimals(self, asset: AssetParams) -> int:
        """
        Decimal precision of asset

        Token decimals are read from the token's on-chain metadata on every
        call.
        """
        pass

    @abstractmethod
    async def estimate_transfer_fee(
        self,
        from_address: str,
        to_address: str,
        asset: AssetParams,
        amount: Optional[int] = None,
    ) -> FeeEstimate:
        """
        Estimate the native-currency cost of transferring asset

        Args:
            from_address: Sender
            to_address: Recipient
            asset: Asset to transfer
            amount: Amount in base units (a nominal amount is used if None)
        """
        pass

    @abstractmethod
    async def submit_transfer(
        self,
        signer: Any,
        to_address: str,
        amount: int,
        asset: AssetParams,
        fee_budget: FeeEstimate,
    ) -> TxReference:
        """
        Sign, submit and confirm a transfer of asset from the signer's address

        Args:
            signer: Signer controlling the sender address
            to_address: Recipient
            amount: Amount in base units
            asset: Asset to transfer
            fee_budget: Estimate obtained from estimate_transfer_fee

        Returns:
            TxReference of the confirmed transaction
        """
        pass

    @abstractmethod
    async def submit_top_up(self, operator_signer: Any, to_address: str, amount: int) -> TxReference:
        """
        Send amount of native currency from the operator hot wallet

        Submissions against the operator signer are serialized.
        """
        pass

    @abstractmethod
    def signer_address(self, signer: Any) -> str:
        """Address controlled by signer"""
        pass

    async def close(self) -> None:
        """Release network resources"""
        return None
